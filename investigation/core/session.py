"""Investigation session: wires every engine component around one shared state.

Construction order follows the dependency graph (state, bus and scheduler
first, then persistence, then the managers that flush through it), so no
component ever looks a collaborator up globally.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Any

from pydantic import BaseModel

from investigation.config import DEFAULT_DB_PATH, DEFAULT_SAVE_SLOT, EVENT_LOG_SIZE, SAVE_DEBOUNCE_SECONDS
from investigation.content.loader import load_case
from investigation.content.models import CaseBundle
from investigation.core.accusation_engine import AccusationEngine
from investigation.core.clue_tracker import ClueTracker
from investigation.core.conversation import ConversationManager
from investigation.core.dialog_selector import DialogSelector
from investigation.core.event_bus import EventBus
from investigation.core.notebook import Notebook
from investigation.core.persistence import PersistenceGateway
from investigation.core.phase_controller import PhaseController
from investigation.core.scheduler import Scheduler
from investigation.db.store import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from investigation.models.events import ProgressionReset, StateRestored
from investigation.models.outcomes import ProgressSnapshot
from investigation.models.state import AccusationState, InvestigationState, SaveRecord

logger = logging.getLogger(__name__)


class InvestigationSession:
    def __init__(
        self,
        bundle: CaseBundle,
        store: KeyValueStore | None = None,
        scheduler: Scheduler | None = None,
        slot: str = DEFAULT_SAVE_SLOT,
        debounce_seconds: float = SAVE_DEBOUNCE_SECONDS,
        event_log_size: int = EVENT_LOG_SIZE,
        restore: bool = True,
    ) -> None:
        self.bundle = bundle
        self.state = InvestigationState()
        self.bus = EventBus()
        self.scheduler = scheduler or Scheduler()
        self.store = store if store is not None else MemoryKeyValueStore()

        self._event_log: deque[dict[str, Any]] = deque(maxlen=max(1, event_log_size))
        self._event_seq = 0
        self.bus.subscribe_all(self._record_event)

        self.persistence = PersistenceGateway(
            self.state,
            self.store,
            self.scheduler,
            self.bus,
            slot=slot,
            case_id=bundle.case_id,
            debounce_seconds=debounce_seconds,
        )
        self.notebook = Notebook(self.state, self.bus)
        self.phases = PhaseController(self.state, bundle.phase, self.bus, self.scheduler, self.persistence)
        self.clues = ClueTracker(self.state, bundle.clues, self.bus, self.phases, self.notebook)
        self.dialogs = DialogSelector(self.state, bundle)
        self.conversations = ConversationManager(
            bundle, self.phases, self.dialogs, self.clues, self.bus, notebook=self.notebook
        )
        self.accusation = AccusationEngine(self.state, bundle.accusation, self.clues, self.bus, self.persistence)

        self.restored = self.start(restore=restore)

    # ── lifecycle ──

    def start(self, restore: bool = True) -> bool:
        """Restore from the save slot when possible, otherwise start fresh. Returns True if restored."""
        record = self.persistence.load() if restore else None
        if record is None:
            self.clues.initialize()
            logger.info("Started fresh investigation for case %s", self.bundle.case_id)
            return False
        self.apply_record(record)
        return True

    def apply_record(self, record: SaveRecord) -> None:
        self.phases.restore(record.phase, record.introduced_characters)
        self.clues.restore(record.unlocked_clues, record.discovered_clues)
        self.state.visit_counts = {cid: dict(tiers) for cid, tiers in record.visit_counts.items()}
        self.accusation.restore(
            AccusationState(
                failed_count=record.failed_confrontations,
                accused_suspects=list(record.accused_suspects),
                last_accusation_at=record.last_accusation_at,
            )
        )
        self.state.notebook_entries = [dict(e) for e in record.notebook_entries]
        logger.info(
            "Restored case %s from slot %s (%s, %d discovered)",
            self.bundle.case_id,
            self.persistence.slot,
            self.state.phase,
            len(self.state.discovered_clues),
        )
        self.bus.publish(
            StateRestored(
                phase=self.state.phase,
                unlocked_count=len(self.state.unlocked_clues),
                discovered_count=len(self.state.discovered_clues),
            )
        )

    def reset(self) -> None:
        """New game: delete the save slot and clear every piece of state, including failure counters."""
        self.persistence.clear()
        self.conversations.reset()
        self.phases.reset()
        self.accusation.reset()
        self.state.visit_counts = {}
        self.state.notebook_entries = []
        self.clues.initialize()
        logger.info("Investigation reset for case %s", self.bundle.case_id)
        self.bus.publish(ProgressionReset())

    def close(self) -> None:
        if self.persistence.has_pending_save():
            self.persistence.save_now()
        closer = getattr(self.store, "close", None)
        if callable(closer):
            closer()

    # ── queries ──

    def get_dialog_tier(self) -> int:
        return self.dialogs.global_tier(self.clues.discovered_count())

    def get_progress(self) -> ProgressSnapshot:
        accusation = self.state.accusation
        return ProgressSnapshot(
            phase=self.phases.phase,
            introduced_count=len(self.phases.introduced_characters()),
            required_count=len(self.phases.required_characters()),
            all_introduced=self.phases.all_introduced(),
            incident_triggered=self.phases.incident_triggered(),
            unlocked_count=len(self.state.unlocked_clues),
            discovered_count=self.clues.discovered_count(),
            total_clues=self.clues.total_count(),
            dialog_tier=self.get_dialog_tier(),
            accusation_stage=self.accusation.stage,
            failed_confrontations=accusation.failed_count,
            game_over=self.accusation.is_game_over(),
        )

    def snapshot(self) -> dict[str, Any]:
        """Read-only view of everything the presentation layer renders."""
        current = self.conversations.current()
        progress = self.accusation.progress()
        statement = self.accusation.current_statement()
        return {
            "case_id": self.bundle.case_id,
            "progress": self.get_progress().model_dump(),
            "introduced_characters": sorted(self.phases.introduced_characters()),
            "clues": self.clues.states(),
            "conversation": current.model_dump() if current else None,
            "notebook": self.notebook.sections(),
            "accusation": {
                "stage": self.accusation.stage,
                "last_outcome": self.accusation.last_outcome,
                "accused_suspects": list(self.state.accusation.accused_suspects),
                "confrontation": progress.to_dict() if progress else None,
                "statement": statement.model_dump() if statement else None,
            },
            "save": {
                "slot": self.persistence.slot,
                "last_saved_at": self.persistence.last_saved_at,
                "last_error": self.persistence.last_error,
                "pending": self.persistence.has_pending_save(),
            },
        }

    def events_since(self, seq: int = 0) -> list[dict[str, Any]]:
        return [e for e in self._event_log if e["seq"] > seq]

    @property
    def last_event_seq(self) -> int:
        return self._event_seq

    def _record_event(self, event: BaseModel) -> None:
        self._event_seq += 1
        self._event_log.append({"seq": self._event_seq, "event": event.model_dump(mode="json")})


def open_session(
    case_id: str | None = None,
    db_path: str | None = None,
    slot: str | None = None,
    scheduler: Scheduler | None = None,
    case_dir: str | None = None,
) -> InvestigationSession:
    """Load a case and attach it to the sqlite save store."""
    bundle = load_case(case_id, case_dir=case_dir)
    store = SqliteKeyValueStore(db_path or DEFAULT_DB_PATH)
    return InvestigationSession(bundle, store=store, scheduler=scheduler, slot=slot or DEFAULT_SAVE_SLOT)
