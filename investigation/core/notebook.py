"""Investigation notebook: notes from conversations and discovered clues.

Entries live in `InvestigationState.notebook_entries` so they are saved with
the rest of the run. Duplicate (source, text) pairs are ignored and the
oldest entries are dropped once the notebook is full.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from investigation.constants import DEFAULT_NOTEBOOK_MAX_ENTRIES
from investigation.core.event_bus import EventBus
from investigation.models.events import NotebookEntryAdded
from investigation.models.state import InvestigationState

logger = logging.getLogger(__name__)

CATEGORY_CHARACTER = "character"
CATEGORY_CLUE = "clue"

_CATEGORY_ORDER = {CATEGORY_CHARACTER: 0, CATEGORY_CLUE: 1}


class Notebook:
    def __init__(
        self,
        state: InvestigationState,
        bus: EventBus,
        max_entries: int = DEFAULT_NOTEBOOK_MAX_ENTRIES,
    ) -> None:
        self._state = state
        self._bus = bus
        self._max_entries = max(1, max_entries)

    def add_entry(self, category: str, source_id: str, title: str, text: str) -> dict[str, Any] | None:
        text = (text or "").strip()
        if not text:
            logger.warning("Ignoring empty notebook note from %s", source_id)
            return None
        if self.has_entry(source_id, text):
            logger.debug("Notebook already has this note from %s", source_id)
            return None

        entry = {
            "id": uuid.uuid4().hex[:12],
            "category": category,
            "source_id": source_id,
            "title": title or source_id,
            "text": text,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        entries = self._state.notebook_entries
        entries.append(entry)
        if len(entries) > self._max_entries:
            dropped = len(entries) - self._max_entries
            del entries[:dropped]
            logger.info("Notebook full; dropped %d oldest entries", dropped)

        self._bus.publish(
            NotebookEntryAdded(
                entry_id=entry["id"],
                category=category,
                source_id=source_id,
                text=text,
            )
        )
        return entry

    def record_character(self, character_id: str, name: str, note: str) -> dict[str, Any] | None:
        return self.add_entry(CATEGORY_CHARACTER, character_id, name, note)

    def record_clue(self, clue_id: str, name: str, note: str) -> dict[str, Any] | None:
        return self.add_entry(CATEGORY_CLUE, clue_id, name, note)

    def has_entry(self, source_id: str, text: str) -> bool:
        return any(
            e.get("source_id") == source_id and e.get("text") == text
            for e in self._state.notebook_entries
        )

    def entries(self) -> list[dict[str, Any]]:
        return [dict(e) for e in self._state.notebook_entries]

    def sections(self) -> list[dict[str, Any]]:
        """Entries grouped by source: characters first, then clues, each alphabetical by title."""
        grouped: dict[tuple[str, str], dict[str, Any]] = {}
        for e in self._state.notebook_entries:
            key = (e.get("category", ""), e.get("source_id", ""))
            section = grouped.setdefault(
                key,
                {"category": key[0], "source_id": key[1], "title": e.get("title", key[1]), "notes": []},
            )
            section["notes"].append(e.get("text", ""))
        return sorted(
            grouped.values(),
            key=lambda s: (_CATEGORY_ORDER.get(s["category"], 99), s["title"].lower()),
        )

    def __len__(self) -> int:
        return len(self._state.notebook_entries)
