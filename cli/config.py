"""Configuration management for PrivShare CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_EXPECTED_REPLICA,
    DEFAULT_INDEXER_RPC,
    DEFAULT_MAX_CONCURRENT_FETCHES,
    DEFAULT_RPC_URL,
    MAX_FILE_SIZE,
    SHARE_CODE_NAMESPACE,
    SHARE_CODE_SCHEME,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "rpc_url": os.environ.get("PRIVSHARE_RPC_URL", DEFAULT_RPC_URL),
        "indexer_rpc": os.environ.get("PRIVSHARE_INDEXER_RPC", DEFAULT_INDEXER_RPC),
        "index_url": os.environ.get("PRIVSHARE_INDEX_URL"),
        "signer_url": os.environ.get("PRIVSHARE_SIGNER_URL"),
        "wallet_address": os.environ.get("PRIVSHARE_WALLET_ADDRESS"),
        "pinata_jwt": os.environ.get("PINATA_JWT"),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "max_concurrent_fetches": DEFAULT_MAX_CONCURRENT_FETCHES,
        "enable_proof_verification": True,
        "max_file_size": MAX_FILE_SIZE,
        "expected_replica": DEFAULT_EXPECTED_REPLICA,
        "scheme": SHARE_CODE_SCHEME,
        "namespace": SHARE_CODE_NAMESPACE,
        "check_collisions": False,
        "cache_path": None,
        "download_dir": "downloads",
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.privshare/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupted file is copied to config.json.bak and defaults are used.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.privshare' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file {self.config_path} unreadable ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except (IOError, OSError) as copy_error:
                    logger.warning(f"Config backup failed: {copy_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError as e:
                logger.warning(f"Could not write default config to {self.config_path}: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_rpc_url(self) -> str:
        return self.data.get('rpc_url') or DEFAULT_RPC_URL

    def get_indexer_rpc(self) -> str:
        return self.data.get('indexer_rpc') or DEFAULT_INDEXER_RPC

    def get_index_url(self) -> Optional[str]:
        """
        Get pointer index service URL.

        Returns:
            Base URL string or None when no index service is configured
        """
        return self.data.get('index_url')

    def get_pinata_jwt(self) -> Optional[str]:
        return self.data.get('pinata_jwt')

    def get_signer_config(self) -> Optional[dict]:
        """
        Get signing service configuration.

        Returns:
            Dictionary with 'signer_url' and 'wallet_address', or None if
            either is missing (uploads are then disabled)
        """
        signer_url = self.data.get('signer_url')
        address = self.data.get('wallet_address')
        if not signer_url or not address:
            return None
        return {'signer_url': signer_url, 'wallet_address': address}

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_transfer_config(self) -> dict:
        """
        Get download/upload tuning.

        Returns:
            Dictionary with 'max_concurrent_fetches', 'enable_proof_verification',
            'max_file_size' and 'expected_replica'
        """
        return {
            'max_concurrent_fetches': self.data.get('max_concurrent_fetches', DEFAULT_MAX_CONCURRENT_FETCHES),
            'enable_proof_verification': self.data.get('enable_proof_verification', True),
            'max_file_size': self.data.get('max_file_size', MAX_FILE_SIZE),
            'expected_replica': self.data.get('expected_replica', DEFAULT_EXPECTED_REPLICA),
        }

    def get_share_code_config(self) -> dict:
        return {
            'scheme': self.data.get('scheme', SHARE_CODE_SCHEME),
            'namespace': self.data.get('namespace', SHARE_CODE_NAMESPACE),
            'check_collisions': self.data.get('check_collisions', False),
        }

    def get_cache_path(self) -> Path:
        """Pointer cache file; defaults to pointers.json beside the config file."""
        cache_path = self.data.get('cache_path')
        if cache_path:
            return Path(cache_path)
        return self.config_path.parent / 'pointers.json'

    def get_download_dir(self) -> Path:
        return Path(self.data.get('download_dir') or 'downloads')
