"""Utility functions for CLI operations."""

from pathlib import Path

from sharecode.pointer_record import PointerRecord


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_record(record: PointerRecord) -> str:
    """Render a pointer record for preview output."""
    lines = [
        f"Share code:  {record.share_code}",
        f"File name:   {record.file_name}",
        f"Size:        {format_file_size(record.file_size)}",
        f"Type:        {record.mime_type}",
        f"Encrypted:   {'yes' if record.is_encrypted else 'no'}",
        f"Root digest: {record.root_digest}",
        f"Uploader:    {record.uploader}",
        f"Uploaded:    {record.upload_time}",
    ]
    if record.transaction_ref:
        lines.append(f"Transaction: {record.transaction_ref}")
    return "\n".join(lines)


def resolve_output_path(output_path: str | None, download_dir: Path, file_name: str) -> Path:
    """
    Pick where a download is written.

    No output path means download_dir/<file_name>. An existing directory
    receives the file under its original name. The stored file name is
    reduced to its last path component.
    """
    safe_name = Path(file_name).name or "download"
    if output_path:
        target = Path(output_path)
        if target.is_dir():
            target = target / safe_name
    else:
        target = download_dir / safe_name
    target.parent.mkdir(parents=True, exist_ok=True)
    return target
