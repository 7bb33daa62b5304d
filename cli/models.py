"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload a local file and mint a share code."""

    file_path: str
    encrypt: bool = False
    key: str | None = None
    store_key: bool = False
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class DownloadCommand:
    """Download a file by share code."""

    share_code: str
    output_path: str | None = None
    key: str | None = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class PreviewCommand:
    """Show the pointer record behind a share code."""

    share_code: str
    command: Literal["preview"] = "preview"


@dataclass(frozen=True)
class StatusCommand:
    """Check storage network connectivity."""

    command: Literal["status"] = "status"


CommandRequest = (
    UploadCommand
    | DownloadCommand
    | PreviewCommand
    | StatusCommand
)
