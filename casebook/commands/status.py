"""`casebook status`: show the saved progress of a save slot."""
from __future__ import annotations

import json

from investigation.config import DEFAULT_DB_PATH, DEFAULT_SAVE_SLOT
from investigation.core.persistence import migrate_record, save_key
from investigation.db.store import SqliteKeyValueStore


def register(subparsers) -> None:
    p = subparsers.add_parser("status", help="Show saved investigation progress")
    p.add_argument("--db", default=DEFAULT_DB_PATH, help=f"SQLite database path (default: {DEFAULT_DB_PATH})")
    p.add_argument("--slot", default=DEFAULT_SAVE_SLOT, help=f"Save slot (default: {DEFAULT_SAVE_SLOT})")
    p.add_argument("--json", action="store_true", help="Print the save record as JSON")
    p.set_defaults(func=run)


def run(args) -> int:
    store = SqliteKeyValueStore(args.db)
    try:
        raw = store.get(save_key(args.slot))
    except json.JSONDecodeError as e:
        print(f"Slot '{args.slot}' holds an unusable save (corrupt payload: {e})")
        return 1
    finally:
        store.close()

    if raw is None:
        print(f"No saved investigation in slot '{args.slot}'")
        return 0
    record = migrate_record(raw)
    if record is None:
        version = raw.get("version") if isinstance(raw, dict) else None
        print(f"Slot '{args.slot}' holds an unusable save (version {version!r})")
        return 1

    if args.json:
        print(json.dumps(record.model_dump(mode="json"), indent=2))
        return 0

    print(f"Slot:        {args.slot}")
    print(f"Case:        {record.case_id or '(unknown)'}")
    print(f"Saved at:    {record.timestamp}")
    print(f"Phase:       {record.phase}")
    print(f"Introduced:  {', '.join(record.introduced_characters) or '-'}")
    print(f"Unlocked:    {len(record.unlocked_clues)} clue(s)")
    print(f"Discovered:  {len(record.discovered_clues)} clue(s) {', '.join(record.discovered_clues)}".rstrip())
    print(f"Accused:     {', '.join(record.accused_suspects) or '-'}")
    print(f"Failures:    {record.failed_confrontations}")
    print(f"Notebook:    {len(record.notebook_entries)} entr{'y' if len(record.notebook_entries) == 1 else 'ies'}")
    return 0
