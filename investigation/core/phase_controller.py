"""Two-phase narrative state: introductions first, then the investigation.

The transition fires once, a configured delay after the last required
character has been introduced. Phase never reverts.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from investigation.constants import PHASE_INTRODUCTION, PHASE_INVESTIGATION, PHASE_ORDER
from investigation.content.models import PhaseConfig, PhaseSettings
from investigation.core.event_bus import EventBus
from investigation.core.scheduler import Scheduler, TimerHandle
from investigation.models.events import CharacterIntroduced, IncidentTriggered, PhaseChanged
from investigation.models.state import InvestigationState

if TYPE_CHECKING:
    from investigation.core.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class PhaseController:
    def __init__(
        self,
        state: InvestigationState,
        config: PhaseConfig,
        bus: EventBus,
        scheduler: Scheduler,
        persistence: PersistenceGateway | None = None,
    ) -> None:
        self._state = state
        self._config = config
        self._bus = bus
        self._scheduler = scheduler
        self._persistence = persistence
        self._pending: TimerHandle | None = None

    # ── queries ──

    @property
    def phase(self) -> str:
        return self._state.phase

    def is_introduction(self) -> bool:
        return self._state.phase == PHASE_INTRODUCTION

    def is_investigation(self) -> bool:
        return self._state.phase == PHASE_INVESTIGATION

    def introduced_characters(self) -> frozenset[str]:
        return frozenset(self._state.introduced_characters)

    def required_characters(self) -> list[str]:
        return list(self._config.incident.required_characters)

    def remaining_characters(self) -> list[str]:
        return [c for c in self._config.incident.required_characters if c not in self._state.introduced_characters]

    def all_introduced(self) -> bool:
        return not self.remaining_characters()

    def incident_triggered(self) -> bool:
        return self.is_investigation()

    def transition_pending(self) -> bool:
        return self._pending is not None and not self._pending.cancelled

    def settings(self) -> PhaseSettings:
        phases = self._config.phases
        return phases.investigation if self.is_investigation() else phases.introduction

    def clues_enabled(self) -> bool:
        return self.settings().clues_enabled

    def notebook_enabled(self) -> bool:
        return self.settings().notebook_enabled

    # ── commands ──

    def introduce_character(self, character_id: str) -> bool:
        """Mark a character as introduced. Returns False if already introduced."""
        if not character_id:
            logger.error("introduce_character called without a character id")
            return False
        if character_id in self._state.introduced_characters:
            logger.debug("Character %s already introduced", character_id)
            return False

        self._state.introduced_characters.add(character_id)
        required = self._config.incident.required_characters
        introduced_required = sum(1 for c in required if c in self._state.introduced_characters)
        logger.info("Character introduced: %s (%d/%d)", character_id, introduced_required, len(required))
        self._bus.publish(
            CharacterIntroduced(
                character_id=character_id,
                introduced_count=introduced_required,
                required_count=len(required),
            )
        )
        self._maybe_schedule_transition()
        return True

    def transition_phase(self) -> bool:
        """Enter the investigation phase. Runs at most once per game."""
        if self.is_investigation():
            logger.debug("transition_phase ignored: already in %s", PHASE_INVESTIGATION)
            return False
        if not self.all_introduced():
            logger.warning(
                "transition_phase rejected: characters not introduced yet: %s",
                ", ".join(self.remaining_characters()),
            )
            return False

        self._cancel_pending()
        previous = self._state.phase
        self._state.phase = PHASE_INVESTIGATION
        logger.info("Phase changed: %s -> %s", previous, PHASE_INVESTIGATION)
        self._bus.publish(PhaseChanged(phase=PHASE_INVESTIGATION, previous_phase=previous))
        cutscene = self._config.incident.cutscene
        self._bus.publish(
            IncidentTriggered(
                at=self._scheduler.now(),
                speech_lines=list(cutscene.speech_lines) if cutscene else [],
            )
        )
        if self._persistence is not None:
            self._persistence.save_now()
        return True

    def restore(self, phase: str, introduced: list[str] | set[str]) -> None:
        """Apply restored state without emitting events."""
        self._cancel_pending()
        if phase not in PHASE_ORDER:
            logger.warning("Unknown saved phase %r; starting in %s", phase, PHASE_INTRODUCTION)
            phase = PHASE_INTRODUCTION
        self._state.phase = phase
        self._state.introduced_characters = set(introduced)
        # Saved mid-pause: the incident is still owed.
        self._maybe_schedule_transition()

    def reset(self) -> None:
        self._cancel_pending()
        self._state.phase = PHASE_INTRODUCTION
        self._state.introduced_characters = set()

    # ── internals ──

    def _maybe_schedule_transition(self) -> None:
        if not self.is_introduction() or not self.all_introduced() or self.transition_pending():
            return
        delay = self._config.incident.delay
        logger.info("All required characters introduced; incident in %.1fs", delay)
        self._pending = self._scheduler.call_later(delay, self._on_incident_timer, label="incident")

    def _on_incident_timer(self) -> None:
        self._pending = None
        self.transition_phase()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
