"""Schema migration: applies numbered SQL files from migrations/ in order.

Idempotent: each migration name recorded in schema_migrations; applied once.

Usage:
    python -m investigation.db.migrate --db ./data/casebook.db
"""
import argparse
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  name TEXT PRIMARY KEY,
  applied_at TEXT NOT NULL
);
"""

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _migration_files() -> list[Path]:
    """Return sorted list of .sql files in migrations/ (0001_*.sql, 0002_*.sql, ...)."""
    if not MIGRATIONS_DIR.exists():
        return []
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def apply_migrations(conn: sqlite3.Connection) -> list[str]:
    """Apply pending migrations on an open connection. Returns the names applied."""
    conn.executescript(SCHEMA_MIGRATIONS_TABLE)
    conn.commit()

    applied: list[str] = []
    cursor = conn.cursor()
    for fp in _migration_files():
        name = fp.stem  # e.g. 0001_init
        cursor.execute("SELECT name FROM schema_migrations WHERE name = ?", (name,))
        if cursor.fetchone():
            continue
        conn.executescript(fp.read_text(encoding="utf-8"))
        now = datetime.now(timezone.utc).isoformat()
        cursor.execute(
            "INSERT INTO schema_migrations (name, applied_at) VALUES (?, ?)",
            (name, now),
        )
        conn.commit()
        applied.append(name)
        logger.info("Applied migration %s", name)
    return applied


def apply_schema(db_path: str) -> list[str]:
    """Apply all pending migrations to the database file at db_path."""
    from investigation.db.connection import get_connection

    conn = get_connection(db_path)
    try:
        return apply_migrations(conn)
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Apply migrations to SQLite database."
    )
    parser.add_argument(
        "--db",
        type=str,
        default="./data/casebook.db",
        help="Path to SQLite database file",
    )
    args = parser.parse_args()
    apply_schema(args.db)
    print(f"Migrations applied: {args.db}")


if __name__ == "__main__":
    main()
