"""`casebook reset`: delete a save slot so the next session starts a new game."""
from __future__ import annotations

from investigation.config import DEFAULT_DB_PATH, DEFAULT_SAVE_SLOT
from investigation.core.persistence import save_key
from investigation.db.store import SqliteKeyValueStore


def register(subparsers) -> None:
    p = subparsers.add_parser("reset", help="Delete a save slot (new game)")
    p.add_argument("--db", default=DEFAULT_DB_PATH, help=f"SQLite database path (default: {DEFAULT_DB_PATH})")
    p.add_argument("--slot", default=DEFAULT_SAVE_SLOT, help=f"Save slot (default: {DEFAULT_SAVE_SLOT})")
    p.set_defaults(func=run)


def run(args) -> int:
    store = SqliteKeyValueStore(args.db)
    try:
        deleted = store.delete(save_key(args.slot))
    finally:
        store.close()
    if deleted:
        print(f"Deleted save slot '{args.slot}'")
    else:
        print(f"No saved investigation in slot '{args.slot}'")
    return 0
