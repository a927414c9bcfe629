"""Clue lifecycle: locked -> unlocked -> discovered.

State lives in two sets on InvestigationState: `unlocked_clues` (every clue
that has left the locked state) and `discovered_clues` (a subset of it).
Transitions never go backwards and never skip a state.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from investigation.constants import CLUE_DISCOVERED, CLUE_LOCKED, CLUE_UNLOCKED
from investigation.content.models import ClueCatalog
from investigation.core.event_bus import EventBus
from investigation.models.events import ClueDiscovered, ClueUnlocked, ClueUnlockRequested
from investigation.models.state import InvestigationState

if TYPE_CHECKING:
    from investigation.core.notebook import Notebook
    from investigation.core.phase_controller import PhaseController

logger = logging.getLogger(__name__)


class ClueTracker:
    def __init__(
        self,
        state: InvestigationState,
        catalog: ClueCatalog,
        bus: EventBus,
        phases: PhaseController,
        notebook: Notebook | None = None,
    ) -> None:
        self._state = state
        self._catalog = catalog
        self._bus = bus
        self._phases = phases
        self._notebook = notebook
        bus.subscribe("clue-unlock-requested", self._on_unlock_requested)

    # ── queries ──

    def get_state(self, clue_id: str) -> str | None:
        """Lifecycle state of a clue, or None for an unknown id."""
        if self._catalog.get(clue_id) is None:
            return None
        if clue_id in self._state.discovered_clues:
            return CLUE_DISCOVERED
        if clue_id in self._state.unlocked_clues:
            return CLUE_UNLOCKED
        return CLUE_LOCKED

    def is_unlocked(self, clue_id: str) -> bool:
        return self.get_state(clue_id) == CLUE_UNLOCKED

    def is_discovered(self, clue_id: str) -> bool:
        return clue_id in self._state.discovered_clues

    def can_interact(self, clue_id: str) -> bool:
        """True iff the clue is exactly unlocked and the current phase allows clue interaction."""
        return self.get_state(clue_id) == CLUE_UNLOCKED and self._phases.clues_enabled()

    def unlocked_ids(self) -> list[str]:
        return sorted(self._state.unlocked_clues)

    def discovered_ids(self) -> list[str]:
        return sorted(self._state.discovered_clues)

    def discovered_count(self) -> int:
        return len(self._state.discovered_clues)

    def total_count(self) -> int:
        return len(self._catalog.clues)

    def all_discovered(self) -> bool:
        return all(c in self._state.discovered_clues for c in self._catalog.ids())

    def states(self) -> dict[str, str]:
        return {cid: self.get_state(cid) or CLUE_LOCKED for cid in self._catalog.ids()}

    # ── commands ──

    def unlock(self, clue_id: str) -> bool:
        clue = self._catalog.get(clue_id)
        if clue is None:
            logger.error("Cannot unlock unknown clue: %s", clue_id)
            return False
        current = self.get_state(clue_id)
        if current != CLUE_LOCKED:
            logger.warning("Clue %s already %s; unlock ignored", clue_id, current)
            return False

        self._state.unlocked_clues.add(clue_id)
        logger.info("Clue unlocked: %s", clue_id)
        self._bus.publish(ClueUnlocked(clue_id=clue_id, name=clue.name))
        return True

    def discover(self, clue_id: str) -> bool:
        clue = self._catalog.get(clue_id)
        if clue is None:
            logger.error("Cannot discover unknown clue: %s", clue_id)
            return False
        current = self.get_state(clue_id)
        if current == CLUE_LOCKED:
            logger.error("Invariant violation: attempted to discover locked clue %s", clue_id)
            return False
        if current == CLUE_DISCOVERED:
            logger.warning("Clue %s already discovered", clue_id)
            return False

        self._state.discovered_clues.add(clue_id)
        count = len(self._state.discovered_clues)
        logger.info("Clue discovered: %s (%d/%d)", clue_id, count, self.total_count())
        self._bus.publish(ClueDiscovered(clue_id=clue_id, name=clue.name, discovered_count=count))
        if self._notebook is not None:
            self._notebook.record_clue(clue_id, clue.name, clue.notebook_note)
        return True

    def initialize(self) -> None:
        """Fresh-game baseline: clues with an immediate unlock condition start unlocked, silently."""
        self._state.unlocked_clues = {c.id for c in self._catalog.clues if c.unlock.immediate}
        self._state.discovered_clues = set()

    def restore(self, unlocked_ids: Iterable[str], discovered_ids: Iterable[str]) -> None:
        """Bulk-apply saved clue state. Discovered is applied first, so it wins over unlocked."""
        self.initialize()
        known = set(self._catalog.ids())
        for cid in discovered_ids:
            if cid not in known:
                logger.warning("Skipping unknown discovered clue from save: %s", cid)
                continue
            self._state.discovered_clues.add(cid)
            self._state.unlocked_clues.add(cid)
        for cid in unlocked_ids:
            if cid not in known:
                logger.warning("Skipping unknown unlocked clue from save: %s", cid)
                continue
            self._state.unlocked_clues.add(cid)

    def _on_unlock_requested(self, event: ClueUnlockRequested) -> None:
        self.unlock(event.clue_id)
