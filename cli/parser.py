"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    DownloadCommand,
    PreviewCommand,
    StatusCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Download/Preview/Status)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "preview":
        return _parse_preview(tokens[1:])
    elif command_name == "status":
        if len(tokens) > 1:
            raise ParseError("status takes no arguments")
        return StatusCommand()
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _split_flags(args: list[str], value_flags: set[str], bool_flags: set[str]) -> tuple[list[str], dict]:
    """Separate --flags from positional arguments."""
    positional = []
    flags: dict = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in value_flags:
            if i + 1 >= len(args):
                raise ParseError(f"{arg} requires a value")
            flags[arg] = args[i + 1]
            i += 2
            continue
        if arg in bool_flags:
            flags[arg] = True
        elif arg.startswith("--"):
            raise ParseError(f"Unknown option: {arg}")
        else:
            positional.append(arg)
        i += 1
    return positional, flags


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [--encrypt] [--key K] [--store-key]' command."""
    positional, flags = _split_flags(args, {"--key"}, {"--encrypt", "--store-key"})
    if len(positional) != 1:
        raise ParseError("upload requires exactly 1 file: upload <path> [--encrypt] [--key K] [--store-key]")

    encrypt = bool(flags.get("--encrypt"))
    key = flags.get("--key")
    store_key = bool(flags.get("--store-key"))
    if (key or store_key) and not encrypt:
        raise ParseError("--key and --store-key require --encrypt")

    return UploadCommand(file_path=positional[0], encrypt=encrypt, key=key, store_key=store_key)


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <share-code> [output_path] [--key K]' command."""
    positional, flags = _split_flags(args, {"--key"}, set())
    if not 1 <= len(positional) <= 2:
        raise ParseError("download requires a share code: download <share-code> [output_path] [--key K]")

    output_path = positional[1] if len(positional) > 1 else None
    return DownloadCommand(share_code=positional[0], output_path=output_path, key=flags.get("--key"))


def _parse_preview(args: list[str]) -> PreviewCommand:
    """Parse 'preview <share-code>' command."""
    if len(args) != 1:
        raise ParseError("preview requires exactly 1 argument: <share-code>")
    return PreviewCommand(share_code=args[0])
