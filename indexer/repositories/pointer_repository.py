"""Pointer repository for database operations."""

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from indexer.database import get_db_connection

logger = get_logger(__name__)


@dataclass
class StoredPointer:
    share_code: str
    root_digest: str
    record: dict
    created_at: datetime


def _row_to_pointer(row: sqlite3.Row) -> StoredPointer:
    return StoredPointer(
        share_code=row["share_code"],
        root_digest=row["root_digest"],
        record=json.loads(row["record"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class PointerRepository:
    @staticmethod
    def insert(share_code: str, root_digest: str, record: dict, created_at: datetime) -> bool:
        """
        Insert a pointer unless the share code is already taken.

        Returns:
            True if inserted, False if the share code already exists
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO pointers (share_code, root_digest, record, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (share_code, root_digest, json.dumps(record, sort_keys=True), created_at.isoformat())
            )
            conn.commit()
            return cursor.rowcount == 1

    @staticmethod
    def get_by_code(share_code: str) -> Optional[StoredPointer]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT share_code, root_digest, record, created_at FROM pointers WHERE share_code = ?",
                (share_code,)
            )
            row = cursor.fetchone()
            return _row_to_pointer(row) if row is not None else None

    @staticmethod
    def list_by_root(root_digest: str) -> List[StoredPointer]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT share_code, root_digest, record, created_at FROM pointers
                WHERE root_digest = ? ORDER BY created_at
                """,
                (root_digest.lower(),)
            )
            return [_row_to_pointer(row) for row in cursor.fetchall()]

    @staticmethod
    def count() -> int:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS n FROM pointers")
            return cursor.fetchone()["n"]
