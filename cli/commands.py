"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.models import (
    DownloadCommand,
    PreviewCommand,
    StatusCommand,
    UploadCommand,
)
from cli.config import Config
from cli.privshare_client import PrivShareClient

logger = get_logger(__name__)


_client: Optional[PrivShareClient] = None


def get_client() -> PrivShareClient:
    """
    Get or create global PrivShareClient instance.

    Returns:
        PrivShareClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new PrivShareClient instance")
        config = Config(Path.home() / '.privshare' / 'config.json')
        _client = PrivShareClient(config)
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[PrivShareClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file path and encryption options
        client: Optional PrivShareClient for dependency injection (testing)

    Returns:
        Share code or error message
    """
    logger.info(f"Executing upload command: {cmd.file_path} encrypt={cmd.encrypt}")
    if client is None:
        client = get_client()
    return client.upload(cmd.file_path, encrypt=cmd.encrypt, key=cmd.key, store_key=cmd.store_key)


def handle_download(cmd: DownloadCommand, client: Optional[PrivShareClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with share code, optional output path and key
        client: Optional PrivShareClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing download command: {cmd.share_code}")
    if client is None:
        client = get_client()
    return client.download(cmd.share_code, output_path=cmd.output_path, key=cmd.key)


def handle_preview(cmd: PreviewCommand, client: Optional[PrivShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.preview(cmd.share_code)


def handle_status(cmd: StatusCommand, client: Optional[PrivShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.status()
