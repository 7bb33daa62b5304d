"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "download", "preview", "status", "clear", "exit", "help"]

UPLOAD_FLAGS = ["--encrypt", "--key", "--store-key"]

STYLE = Style.from_dict(
    {
        "prompt": "#7B61FF bold",
        "command": "#0088ff bold",
    }
)

VIOLET = "\033[38;2;123;97;255m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{VIOLET}
 ██████╗ ██████╗ ██╗██╗   ██╗███████╗██╗  ██╗ █████╗ ██████╗ ███████╗
 ██╔══██╗██╔══██╗██║██║   ██║██╔════╝██║  ██║██╔══██╗██╔══██╗██╔════╝
 ██████╔╝██████╔╝██║██║   ██║███████╗███████║███████║██████╔╝█████╗
 ██╔═══╝ ██╔══██╗██║╚██╗ ██╔╝╚════██║██╔══██║██╔══██║██╔══██╗██╔══╝
 ██║     ██║  ██║██║ ╚████╔╝ ███████║██║  ██║██║  ██║██║  ██║███████╗
 ╚═╝     ╚═╝  ╚═╝╚═╝  ╚═══╝  ╚══════╝╚═╝  ╚═╝╚═╝  ╚═╝╚═╝  ╚═╝╚══════╝
{RESET}"""

WELCOME_TITLE = "PrivShare CLI - Share files on decentralized storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "privshare> "

HELP_TEXT = """Available commands:
  upload <path> [--encrypt] [--key K] [--store-key]
                                        Upload a file and print its share code
  download <share-code> [output] [--key K]
                                        Download a file (defaults to downloads/<file name>)
  preview <share-code>                  Show file name, size and encryption without downloading
  status                                Check storage network connectivity
  clear                                 Clear screen and redisplay welcome message
  help                                  Show this help
  exit                                  Exit REPL

Encryption: --encrypt uses AES-256-GCM. Without --key a random key is generated
and printed once. --store-key embeds the key in the share record, so anyone with
the share code can decrypt.
Examples:
  upload report.pdf
  upload notes.txt --encrypt
  upload notes.txt --encrypt --key "correct horse battery staple"
  preview privshare://0g-ab12-cd34-ef56-gh78
  download privshare://0g-ab12-cd34-ef56-gh78
  download privshare://0g-ab12-cd34-ef56-gh78 downloads/copy.txt --key <key>"""
