"""
Durable key-value stores backing the usage ledger.

The ledger only needs ``get``, ``set`` and ``delete`` on string keys and
values, synchronous from the caller's point of view.
"""

import sqlite3
from typing import Dict, Optional

from .db import get_connection


class StorageError(Exception):
    """Raised when the backing store cannot complete an operation."""


class SQLiteKeyValueStore:
    """Key-value store persisted in a single SQLite table.
    
    Each call opens and closes its own connection, so instances are cheap
    and can be shared freely.
    """
    
    def __init__(self, db_path: str = "usage_ledger.db"):
        """Initialize the store with a database path.
        
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
    
    def _connect(self) -> sqlite3.Connection:
        try:
            return get_connection(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
    
    def initialize_schema(self) -> None:
        """Create the kv_store table if it doesn't exist."""
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize {self.db_path}: {e}") from e
        finally:
            conn.close()
    
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent.
        
        A database without the kv_store table is treated as empty.
        """
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
        except sqlite3.OperationalError as e:
            if "no such table" in str(e).lower():
                return None
            raise StorageError(f"Cannot read {key!r}: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read {key!r}: {e}") from e
        finally:
            conn.close()
        return row[0] if row else None
    
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        self.initialize_schema()
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, value)
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Cannot write {key!r}: {e}") from e
        finally:
            conn.close()
    
    def delete(self, key: str) -> None:
        """Remove key if present."""
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.OperationalError as e:
            if "no such table" in str(e).lower():
                return
            raise StorageError(f"Cannot delete {key!r}: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Cannot delete {key!r}: {e}") from e
        finally:
            conn.close()


class InMemoryKeyValueStore:
    """Process-local store, useful for tests and ephemeral sessions."""
    
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
    
    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)
    
    def set(self, key: str, value: str) -> None:
        self._data[key] = value
    
    def delete(self, key: str) -> None:
        self._data.pop(key, None)
