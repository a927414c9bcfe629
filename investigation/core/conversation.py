"""Conversation lifecycle: at most one open conversation at a time.

Opening selects the dialog and pauses the character; closing (naturally or
early) finalizes the conversation's effects. In the introduction phase that
means introducing the character, in the investigation phase it releases the
tier's clue unlocks. Unlocks are never emitted while the dialog is still open.
"""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from investigation.constants import DEFAULT_DIALOG_HISTORY_SIZE, PHASE_INTRODUCTION
from investigation.content.models import CaseBundle
from investigation.core.clue_tracker import ClueTracker
from investigation.core.dialog_selector import DialogSelector
from investigation.core.event_bus import EventBus
from investigation.core.notebook import Notebook
from investigation.core.phase_controller import PhaseController
from investigation.models.events import ClueUnlockRequested, ConversationClosed, ConversationOpened
from investigation.models.outcomes import DialogSelection

logger = logging.getLogger(__name__)


@runtime_checkable
class Pausable(Protocol):
    """Presentation-layer entity that stops moving while it is being talked to."""

    def pause_movement(self) -> None: ...

    def resume_movement(self) -> None: ...


class ConversationManager:
    def __init__(
        self,
        bundle: CaseBundle,
        phases: PhaseController,
        selector: DialogSelector,
        clues: ClueTracker,
        bus: EventBus,
        notebook: Notebook | None = None,
        history_size: int = DEFAULT_DIALOG_HISTORY_SIZE,
    ) -> None:
        self._bundle = bundle
        self._phases = phases
        self._selector = selector
        self._clues = clues
        self._bus = bus
        self._notebook = notebook
        self._current: DialogSelection | None = None
        self._entity: Pausable | None = None
        self._history: deque[dict[str, Any]] = deque(maxlen=max(1, history_size))

    def is_open(self) -> bool:
        return self._current is not None

    def current(self) -> DialogSelection | None:
        return self._current

    def history(self) -> list[dict[str, Any]]:
        return list(self._history)

    def open_conversation(self, character_id: str, entity: Pausable | None = None) -> DialogSelection | None:
        """Start talking to `character_id`. Returns None if a conversation is already open."""
        if self._current is not None:
            logger.warning(
                "Conversation with %s already open; ignoring open for %s",
                self._current.character_id,
                character_id,
            )
            return None

        phase = self._phases.phase
        global_tier = self._selector.global_tier(self._clues.discovered_count())
        selection = self._selector.select_dialog(character_id, phase, global_tier)
        self._current = selection

        if entity is not None:
            if isinstance(entity, Pausable):
                entity.pause_movement()
                self._entity = entity
            else:
                logger.warning("Entity for %s cannot be paused: %r", character_id, entity)

        self._record_note(selection)
        self._history.append({
            "character_id": character_id,
            "phase": phase,
            "tier": selection.tier,
            "lines": list(selection.lines),
            "at": datetime.now(timezone.utc).isoformat(),
        })
        self._bus.publish(
            ConversationOpened(
                character_id=character_id,
                phase=phase,
                tier=selection.tier,
                is_follow_up=selection.is_follow_up,
            )
        )
        return selection

    def close_conversation(self) -> list[str]:
        """Finish the open conversation and apply its effects. Returns the unlock requests emitted."""
        selection = self._current
        if selection is None:
            logger.warning("close_conversation called with no open conversation")
            return []

        self._current = None
        entity, self._entity = self._entity, None

        requests: list[str] = []
        if selection.phase == PHASE_INTRODUCTION:
            self._phases.introduce_character(selection.character_id)
        else:
            requests = self._selector.unlocks_for(selection.character_id, selection.tier)
            for clue_id in requests:
                self._bus.publish(
                    ClueUnlockRequested(
                        clue_id=clue_id,
                        character_id=selection.character_id,
                        tier=selection.tier if selection.tier is not None else 0,
                    )
                )

        if entity is not None:
            entity.resume_movement()

        self._bus.publish(
            ConversationClosed(
                character_id=selection.character_id,
                phase=selection.phase,
                tier=selection.tier,
                unlock_requests=requests,
            )
        )
        return requests

    def reset(self) -> None:
        if self._entity is not None:
            self._entity.resume_movement()
        self._current = None
        self._entity = None
        self._history.clear()

    def _record_note(self, selection: DialogSelection) -> None:
        if self._notebook is None or not selection.record_in_notebook or not selection.notebook_note:
            return
        if not self._phases.notebook_enabled():
            return
        tree = self._bundle.dialogs.get(selection.character_id)
        name = tree.name if tree else selection.character_id
        self._notebook.record_character(selection.character_id, name, selection.notebook_note)
