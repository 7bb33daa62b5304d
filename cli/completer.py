"""Custom completer for PrivShare CLI with file and flag autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS, UPLOAD_FLAGS


class PrivShareCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path and flag completion for the 'upload' command
    - '--key' completion for the 'download' command
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]

        if command == "download" and current_word.startswith("-"):
            yield from self._complete_flags(current_word, ["--key"], tokens)
            return

        if command != "upload":
            return

        if current_word.startswith("-"):
            yield from self._complete_flags(current_word, UPLOAD_FLAGS, tokens)
            return

        has_path = any(not t.startswith("-") for t in tokens[1:-1 if not is_typing_new_token else None])
        if not has_path:
            yield from self._complete_local_files(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_flags(self, partial: str, flags: list[str], tokens: list[str]) -> Iterable[Completion]:
        for flag in flags:
            if flag.startswith(partial) and flag not in tokens[:-1]:
                yield Completion(flag, start_position=-len(partial))

    def _complete_local_files(self, partial: str) -> Iterable[Completion]:
        """
        Complete file paths relative to the current directory.

        Directories are offered with a trailing slash so completion can
        continue into them.
        """
        base = Path.cwd()
        directory_part, _, name_part = partial.rpartition("/")
        search_dir = base / directory_part if directory_part else base

        if not search_dir.is_dir():
            return

        prefix = f"{directory_part}/" if directory_part else ""
        for item in sorted(search_dir.iterdir()):
            if item.name.startswith(".") or not item.name.startswith(name_part):
                continue
            candidate = f"{prefix}{item.name}/" if item.is_dir() else f"{prefix}{item.name}"
            yield Completion(candidate, start_position=-len(partial))
