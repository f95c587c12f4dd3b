"""Local slot storage for the vault key and the encrypted credential blob."""

from .db_manager import MemoryStorage, SqliteStorage
from .setup_database import setup_database

__all__ = ["MemoryStorage", "SqliteStorage", "setup_database"]
