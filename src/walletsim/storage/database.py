# src/walletsim/storage/database.py
from typing import Optional, Dict, Iterator, Tuple
import sqlite3
import os
import threading

from ..exceptions import DatabaseError

class Database:
    """Durable key-value storage; every value is stored as text"""

    def __init__(self, db_path: str):
        """Initialize database connection"""
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._local = threading.local()
        self._init_db()

    def _get_conn(self):
        """Get thread-local database connection"""
        if not hasattr(self._local, 'conn'):
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    def _init_db(self):
        """Initialize database tables"""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS key_value_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

    def put(self, key: str, value: str) -> None:
        """Store a key-value pair"""
        try:
            conn = self._get_conn()
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO key_value_store (key, value) VALUES (?, ?)",
                    (key, str(value))
                )
        except sqlite3.Error as e:
            raise DatabaseError(f"Error storing data: {str(e)}") from e

    def get(self, key: str) -> Optional[str]:
        """Retrieve a value by key, None when absent or unreadable"""
        try:
            conn = self._get_conn()
            cursor = conn.execute(
                "SELECT value FROM key_value_store WHERE key = ?",
                (key,)
            )
            row = cursor.fetchone()
        except sqlite3.Error:
            return None
        if row is None:
            return None
        return row['value']

    def delete(self, key: str) -> bool:
        """Delete a key-value pair"""
        try:
            conn = self._get_conn()
            with conn:
                conn.execute(
                    "DELETE FROM key_value_store WHERE key = ?",
                    (key,)
                )
            return True
        except sqlite3.Error:
            return False

    def batch_write(self, items: Dict[str, str]) -> bool:
        """Write multiple key-value pairs atomically"""
        try:
            conn = self._get_conn()
            with conn:
                for key, value in items.items():
                    conn.execute(
                        "INSERT OR REPLACE INTO key_value_store (key, value) VALUES (?, ?)",
                        (key, str(value))
                    )
            return True
        except sqlite3.Error as e:
            raise DatabaseError(f"Error in batch write: {str(e)}") from e

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all key-value pairs"""
        conn = self._get_conn()
        cursor = conn.execute("SELECT key, value FROM key_value_store")
        for row in cursor:
            yield row['key'], row['value']

    def close(self):
        """Close database connection"""
        if hasattr(self._local, 'conn'):
            self._local.conn.close()
            delattr(self._local, 'conn')
