"""Persistence gateway: versioned save records in a durable key-value store.

Routine state changes are coalesced into one debounced write; phase
transitions and confrontation outcomes are flushed immediately by the
components that produce them. The active confrontation is never saved.

Storage failures never raise out of here: saves report through a
`save-complete` event and loads fall back to "no saved state".
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from investigation.constants import PHASE_INTRODUCTION, PHASE_INVESTIGATION, SAVE_SCHEMA_VERSION
from investigation.core.error_handling import log_error_with_context
from investigation.core.event_bus import EventBus
from investigation.core.scheduler import Scheduler, TimerHandle
from investigation.db.store import KeyValueStore
from investigation.models.events import STATE_CHANGING_EVENTS, SaveCompleted
from investigation.models.state import InvestigationState, SaveRecord

logger = logging.getLogger(__name__)

SAVE_KEY_PREFIX = "investigation"

_STORE_ERRORS = (sqlite3.Error, OSError, TypeError, ValueError)

# Version-1 saves tagged the phase by the incident rather than by name.
_V1_PHASES = {
    "pre-incident": PHASE_INTRODUCTION,
    "post-incident": PHASE_INVESTIGATION,
}
_V1_VERSIONS = (1, "1", "1.0", "1.0.0")


def save_key(slot: str) -> str:
    return f"{SAVE_KEY_PREFIX}:{slot}"


def _timestamp_from_v1(raw: Any) -> str:
    if isinstance(raw, (int, float)) and raw > 0:
        return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc).isoformat()
    if isinstance(raw, str) and raw:
        return raw
    return datetime.now(timezone.utc).isoformat()


def _migrate_v1(data: dict[str, Any]) -> SaveRecord:
    """Progression save from the first release: camelCase keys, no accusation state."""
    phase = _V1_PHASES.get(str(data.get("currentPhase", "")), None)
    if phase is None:
        raise ValueError(f"unknown v1 phase: {data.get('currentPhase')!r}")
    history = data.get("conversationHistory") or {}
    if not isinstance(history, dict):
        raise ValueError("v1 conversationHistory must be a mapping")
    return SaveRecord(
        version=SAVE_SCHEMA_VERSION,
        timestamp=_timestamp_from_v1(data.get("timestamp")),
        phase=phase,
        introduced_characters=list(data.get("introducedNPCs") or []),
        unlocked_clues=list(data.get("unlockedClues") or []),
        discovered_clues=list(data.get("discoveredClues") or []),
        visit_counts={str(npc): dict(tiers) for npc, tiers in history.items()},
    )


def migrate_record(data: Any) -> SaveRecord | None:
    """Return a current-version SaveRecord for `data`, or None when it cannot be used."""
    if not isinstance(data, dict):
        logger.warning("Ignoring save record that is not a mapping")
        return None
    version = data.get("version")
    try:
        if version == SAVE_SCHEMA_VERSION:
            return SaveRecord.model_validate(data)
        if version in _V1_VERSIONS:
            record = _migrate_v1(data)
            logger.info("Migrated save record from version %s to %d", version, SAVE_SCHEMA_VERSION)
            return record
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning("Save record (version %s) could not be migrated: %s", version, e)
        return None
    logger.warning("No migration path for save version %r; starting fresh", version)
    return None


class PersistenceGateway:
    def __init__(
        self,
        state: InvestigationState,
        store: KeyValueStore,
        scheduler: Scheduler,
        bus: EventBus,
        slot: str = "default",
        case_id: str = "",
        debounce_seconds: float = 1.0,
    ) -> None:
        self._state = state
        self._store = store
        self._scheduler = scheduler
        self._bus = bus
        self._slot = slot
        self._case_id = case_id
        self._debounce = max(0.0, debounce_seconds)
        self._pending: TimerHandle | None = None
        self._last_saved_at: str | None = None
        self._last_error: str | None = None
        bus.subscribe_all(self._on_event)

    @property
    def slot(self) -> str:
        return self._slot

    @property
    def key(self) -> str:
        return save_key(self._slot)

    @property
    def last_saved_at(self) -> str | None:
        return self._last_saved_at

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def has_pending_save(self) -> bool:
        return self._pending is not None and not self._pending.cancelled

    def schedule_save(self) -> None:
        """Debounced save: restarts the quiet-period timer."""
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
        self._pending = self._scheduler.call_later(self._debounce, self._flush_pending, label="save")

    def save_now(self) -> bool:
        """Write immediately, superseding any pending debounced save."""
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
        return self.save()

    def save(self) -> bool:
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            record = SaveRecord.from_state(self._state, timestamp=timestamp, case_id=self._case_id)
            self._store.put(self.key, record.model_dump(mode="json"))
        except _STORE_ERRORS as e:
            log_error_with_context(e, "persistence", case_id=self._case_id, operation="save")
            self._last_error = f"{type(e).__name__}: {e}"
            self._bus.publish(SaveCompleted(success=False, error=self._last_error))
            return False
        self._last_saved_at = timestamp
        self._last_error = None
        logger.debug("Saved slot %s", self._slot)
        self._bus.publish(SaveCompleted(success=True))
        return True

    def load(self) -> SaveRecord | None:
        """Read and migrate the slot's record. None means "no saved state"."""
        try:
            raw = self._store.get(self.key)
        except (*_STORE_ERRORS, json.JSONDecodeError) as e:
            log_error_with_context(e, "persistence", case_id=self._case_id, operation="load")
            return None
        if raw is None:
            return None
        record = migrate_record(raw)
        if record is not None and record.case_id and self._case_id and record.case_id != self._case_id:
            logger.warning(
                "Save slot %s belongs to case %s, not %s; restoring what still applies",
                self._slot,
                record.case_id,
                self._case_id,
            )
        return record

    def clear(self) -> bool:
        """Delete the slot and drop any pending save."""
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
        try:
            return self._store.delete(self.key)
        except _STORE_ERRORS as e:
            log_error_with_context(e, "persistence", case_id=self._case_id, operation="clear")
            return False

    def _flush_pending(self) -> None:
        self._pending = None
        self.save()

    def _on_event(self, event: BaseModel) -> None:
        if getattr(event, "event_type", None) in STATE_CHANGING_EVENTS:
            self.schedule_save()
