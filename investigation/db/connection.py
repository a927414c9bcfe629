"""SQLite connection factory for the save store.

Provides configured connections with:
- sqlite3.Row row factory (dict-like access)
- Foreign keys enabled (PRAGMA foreign_keys = ON)
"""
import sqlite3
from pathlib import Path


def get_connection(db_path: str, check_same_thread: bool = True) -> sqlite3.Connection:
    """Return a configured SQLite connection.

    Args:
        db_path: Path to the SQLite database file, or ":memory:". Parent
                 directories are created if they do not exist.
        check_same_thread: Pass False for connections shared across
                 request threads (calls must still be serialized).

    Returns:
        sqlite3.Connection with row_factory=sqlite3.Row and foreign
        keys enabled.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
