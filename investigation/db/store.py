"""Durable key-value stores for save records.

The persistence gateway only needs get/put/delete of one JSON document per
slot, so any backend satisfying `KeyValueStore` will do. Store errors are
raised to the caller; the gateway turns them into save-complete events.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Protocol

from investigation.db.connection import get_connection
from investigation.db.migrate import apply_migrations

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> dict[str, Any] | None: ...

    def put(self, key: str, value: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...


class MemoryKeyValueStore:
    """In-process store; values are JSON round-tripped so callers never share references."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteKeyValueStore:
    """Save slots in the `save_slots` table; schema applied on first use."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = get_connection(self._db_path, check_same_thread=False)
            apply_migrations(conn)
            self._conn = conn
        return self._conn

    def get(self, key: str) -> dict[str, Any] | None:
        row = self._connection().execute(
            "SELECT payload_json FROM save_slots WHERE slot = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["payload_json"])

    def put(self, key: str, value: dict[str, Any]) -> None:
        conn = self._connection()
        payload = json.dumps(value)
        version = value.get("version", 0) if isinstance(value, dict) else 0
        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            """INSERT INTO save_slots (slot, payload_json, version, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(slot) DO UPDATE SET
                 payload_json = excluded.payload_json,
                 version = excluded.version,
                 updated_at = excluded.updated_at""",
            (key, payload, int(version or 0), now),
        )
        conn.commit()

    def delete(self, key: str) -> bool:
        conn = self._connection()
        cur = conn.execute("DELETE FROM save_slots WHERE slot = ?", (key,))
        conn.commit()
        return cur.rowcount > 0

    def keys(self) -> list[str]:
        rows = self._connection().execute("SELECT slot FROM save_slots ORDER BY slot").fetchall()
        return [r["slot"] for r in rows]

    def updated_at(self, key: str) -> str | None:
        row = self._connection().execute(
            "SELECT updated_at FROM save_slots WHERE slot = ?",
            (key,),
        ).fetchone()
        return row["updated_at"] if row else None

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
