"""`casebook migrate`: apply the save-store schema to a SQLite database."""
from __future__ import annotations

from investigation.config import DEFAULT_DB_PATH
from investigation.db.migrate import apply_schema


def register(subparsers) -> None:
    p = subparsers.add_parser("migrate", help="Apply database migrations")
    p.add_argument("--db", default=DEFAULT_DB_PATH, help=f"SQLite database path (default: {DEFAULT_DB_PATH})")
    p.set_defaults(func=run)


def run(args) -> int:
    applied = apply_schema(args.db)
    if applied:
        for name in applied:
            print(f"applied {name}")
    else:
        print("schema up to date")
    print(f"Migrations applied: {args.db}")
    return 0
