"""
Local key/value storage with localStorage semantics.

The vault key and the encrypted credential blob each live in one slot.
A write replaces the whole value in a single statement, so readers never
see a half-written blob.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from .setup_database import setup_database

logger = logging.getLogger(__name__)


class SqliteStorage:
    """Slots persisted in a SQLite file."""

    def __init__(self, path: str) -> None:
        self.path = path
        setup_database(path)

    def get_db_connection(self) -> sqlite3.Connection:
        """Kết nối đến database"""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row  # Trả về kết quả dạng dictionary
        return conn

    def get_item(self, key: str) -> Optional[str]:
        conn = self.get_db_connection()
        try:
            row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        conn = self.get_db_connection()
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO storage (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, datetime.now().strftime('%Y-%m-%d %H:%M:%S')),
                )
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self.get_db_connection()
        try:
            with conn:
                conn.execute("DELETE FROM storage WHERE key = ?", (key,))
        finally:
            conn.close()

    def keys(self) -> List[str]:
        conn = self.get_db_connection()
        try:
            rows = conn.execute("SELECT key FROM storage ORDER BY key").fetchall()
        finally:
            conn.close()
        return [row["key"] for row in rows]


class MemoryStorage:
    """In-process slots; same interface as SqliteStorage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)
