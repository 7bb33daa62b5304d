"""
Same-device pointer cache.

Stores published pointer records in a JSON file so share codes minted on
this machine resolve without an index. Writes are best-effort: a failed
save is logged and the in-memory copy is kept.
"""

import json
import threading
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from common.logging_config import get_logger
from sharecode.pointer_record import PointerRecord

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "privshare:mapping:"
DEFAULT_POINTER_CACHE_PATH = Path.home() / ".privshare" / "pointers.json"


class LocalPointerCache:
    """
    Thread-safe persistent cache of pointer records keyed by share code.
    """

    def __init__(self, cache_path: Optional[Path] = None):
        """
        Args:
            cache_path: Path to JSON cache file (default: ~/.privshare/pointers.json)
        """
        self._cache_path = Path(cache_path or DEFAULT_POINTER_CACHE_PATH)
        self._cache_lock = threading.RLock()
        self._file_lock = threading.Lock()
        self._cache: Dict[str, dict] = {}

        self._load_from_disk()

        logger.debug(f"Pointer cache initialized [path={self._cache_path}]")

    def get(self, code: str) -> Optional[PointerRecord]:
        with self._cache_lock:
            entry = self._cache.get(self._make_cache_key(code))

        if entry is None:
            return None

        try:
            return PointerRecord.from_wire(entry)
        except ValidationError as e:
            logger.warning(f"Ignoring corrupted cache entry for {code}: {e.error_count()} error(s)")
            return None

    def put(self, code: str, record: PointerRecord) -> bool:
        """
        Cache a record. Never raises on disk failure.

        Returns:
            True if the record was persisted to disk
        """
        with self._cache_lock:
            self._cache[self._make_cache_key(code)] = record.to_wire()
        return self._save_to_disk()

    def __contains__(self, code: str) -> bool:
        with self._cache_lock:
            return self._make_cache_key(code) in self._cache

    def __len__(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    def _load_from_disk(self) -> bool:
        if not self._cache_path.exists():
            return False

        try:
            with self._file_lock:
                with open(self._cache_path, 'r') as f:
                    data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("cache root is not an object")
        except (json.JSONDecodeError, ValueError, IOError) as e:
            logger.warning(
                f"Failed to load pointer cache from {self._cache_path}: {e}, "
                "starting with empty cache"
            )
            return False

        with self._cache_lock:
            self._cache = data
        logger.info(f"Pointer cache loaded from {self._cache_path} ({len(data)} record(s))")
        return True

    def _save_to_disk(self) -> bool:
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)

            with self._cache_lock:
                data = dict(self._cache)

            with self._file_lock:
                with open(self._cache_path, 'w') as f:
                    json.dump(data, f, indent=2)
            return True

        except (IOError, OSError) as e:
            logger.warning(
                f"Failed to save pointer cache to {self._cache_path}: {e}, "
                "continuing with in-memory cache only"
            )
            return False

    @staticmethod
    def _make_cache_key(code: str) -> str:
        return f"{CACHE_KEY_PREFIX}{code}"
