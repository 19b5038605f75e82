"""
Database connection management.

Provides SQLite connection for the durable key-value store.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: str = "usage_ledger.db") -> sqlite3.Connection:
    """Create and return a SQLite database connection.
    
    Args:
        db_path: Path to SQLite database file
        
    Returns:
        SQLite connection
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path))
    return conn
