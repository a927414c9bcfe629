"""Accusation state machine: suspect selection, confrontation, verdict.

    idle -> suspect_selected -> confronting -> (success | failed) -> idle

A confrontation walks the suspect's statements in order; each statement that
requires evidence must be contradicted before advancing. Mistakes are counted
per confrontation, failed confrontations durably across sessions. Reaching the
failure limit triggers the bad ending and ends the game.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from investigation.constants import (
    STAGE_CONFRONTING,
    STAGE_FAILED,
    STAGE_IDLE,
    STAGE_SUCCESS,
    STAGE_SUSPECT_SELECTED,
)
from investigation.content.models import AccusationScript, ConfrontationSequence, Statement
from investigation.core.clue_tracker import ClueTracker
from investigation.core.event_bus import EventBus
from investigation.core.evidence_validator import EvidenceValidationError, validate_evidence
from investigation.models.events import (
    AccusationCancelled,
    AccusationFailed,
    AccusationStarted,
    AccusationSucceeded,
    BadEndingTriggered,
    EvidencePresented,
    StatementAdvanced,
    SuspectSelectionOpened,
)
from investigation.models.outcomes import (
    AccusationEligibility,
    BadEndingData,
    EvidenceResult,
    FailureSummary,
    VictorySummary,
)
from investigation.models.state import AccusationState, ConfrontationProgress, InvestigationState

if TYPE_CHECKING:
    from investigation.core.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

REASON_TOO_MANY_MISTAKES = "too_many_mistakes"
REASON_WRONG_SUSPECT = "wrong_suspect"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AccusationEngine:
    def __init__(
        self,
        state: InvestigationState,
        script: AccusationScript,
        clues: ClueTracker,
        bus: EventBus,
        persistence: PersistenceGateway | None = None,
    ) -> None:
        self._state = state
        self._script = script
        self._clues = clues
        self._bus = bus
        self._persistence = persistence
        self._stage = STAGE_IDLE
        self._last_outcome: str | None = None

    # ── queries ──

    @property
    def stage(self) -> str:
        return self._stage

    @property
    def last_outcome(self) -> str | None:
        return self._last_outcome

    @property
    def culprit(self) -> str:
        return self._script.settings.culprit

    @property
    def mistake_limit(self) -> int:
        return self._script.settings.mistake_limit

    @property
    def failure_limit(self) -> int:
        return self._script.settings.failure_limit

    def accusation_state(self) -> AccusationState:
        return self._state.accusation

    def progress(self) -> ConfrontationProgress | None:
        return self._state.confrontation

    def is_game_over(self) -> bool:
        return self._state.accusation.failed_count >= self.failure_limit

    def available_suspects(self) -> list[str]:
        return list(self._script.confrontations.keys())

    def has_accused(self, suspect_id: str) -> bool:
        return suspect_id in self._state.accusation.accused_suspects

    def can_initiate_accusation(self) -> AccusationEligibility:
        discovered = self._clues.discovered_count()
        required = self._script.settings.minimum_clues
        if self.is_game_over():
            return AccusationEligibility(
                can_initiate=False,
                discovered_count=discovered,
                required_count=required,
                reason="The investigation is over. No further accusations can be made.",
            )
        if discovered < required:
            missing = required - discovered
            return AccusationEligibility(
                can_initiate=False,
                discovered_count=discovered,
                required_count=required,
                reason=(
                    f"You need to discover {missing} more clue{'s' if missing != 1 else ''} "
                    f"before making an accusation ({discovered}/{required})."
                ),
            )
        return AccusationEligibility(can_initiate=True, discovered_count=discovered, required_count=required)

    def current_sequence(self) -> ConfrontationSequence | None:
        progress = self._state.confrontation
        if progress is None:
            return None
        return self._script.confrontations.get(progress.suspect_id)

    def current_statement(self) -> Statement | None:
        progress = self._state.confrontation
        sequence = self.current_sequence()
        if progress is None or sequence is None or progress.completed:
            return None
        if progress.statement_index >= len(sequence.statements):
            return None
        return sequence.statements[progress.statement_index]

    def is_confrontation_complete(self) -> bool:
        progress = self._state.confrontation
        return progress is not None and progress.completed

    def bad_ending_data(self) -> BadEndingData:
        ending = self._script.endings.bad_ending
        return BadEndingData(
            despair_speech=ending.despair_speech,
            failure_explanation=ending.failure_explanation,
            actual_culprit=self.culprit,
        )

    # ── commands ──

    def open_suspect_selection(self) -> list[str] | None:
        if self._stage != STAGE_IDLE:
            logger.warning("Suspect selection not available in stage %s", self._stage)
            return None
        eligibility = self.can_initiate_accusation()
        if not eligibility.can_initiate:
            logger.info("Accusation not available: %s", eligibility.reason)
            return None
        self._stage = STAGE_SUSPECT_SELECTED
        suspects = self.available_suspects()
        self._bus.publish(SuspectSelectionOpened(suspects=suspects))
        return suspects

    def start_accusation(self, suspect_id: str) -> Statement | None:
        """Begin a confrontation with `suspect_id`. Returns its first statement, or None if rejected."""
        if self._stage not in (STAGE_IDLE, STAGE_SUSPECT_SELECTED):
            logger.warning("start_accusation(%s) ignored: stage is %s", suspect_id, self._stage)
            return None
        eligibility = self.can_initiate_accusation()
        if not eligibility.can_initiate:
            logger.warning("start_accusation(%s) rejected: %s", suspect_id, eligibility.reason)
            return None
        sequence = self._script.confrontations.get(suspect_id)
        if sequence is None:
            logger.error("start_accusation: no confrontation defined for suspect %s", suspect_id)
            return None

        now = _now_iso()
        self._state.confrontation = ConfrontationProgress(suspect_id, started_at=now)
        accusation = self._state.accusation
        if suspect_id not in accusation.accused_suspects:
            accusation.accused_suspects.append(suspect_id)
        accusation.last_accusation_at = now
        self._stage = STAGE_CONFRONTING
        self._last_outcome = None

        first = sequence.statements[0]
        logger.info("Accusation started against %s", suspect_id)
        self._bus.publish(AccusationStarted(suspect_id=suspect_id, statement_id=first.id))
        return first

    def present_evidence(self, clue_id: str) -> EvidenceResult | None:
        progress = self._state.confrontation
        statement = self.current_statement()
        sequence = self.current_sequence()
        if progress is None or statement is None or sequence is None:
            logger.info("present_evidence(%s) ignored: no statement awaiting evidence", clue_id)
            return None
        if not statement.requires_presentation:
            logger.info("Statement %s is informational; evidence %s ignored", statement.id, clue_id)
            return None
        if progress.statement_satisfied:
            logger.info("Statement %s already contradicted; advance to continue", statement.id)
            return None

        try:
            result = validate_evidence(
                statement,
                clue_id,
                progress.mistake_count,
                self._clues.discovered_ids(),
                progress.presented_evidence,
                sequence.statements,
                progress.statement_index,
                mistake_limit=self.mistake_limit,
            )
        except EvidenceValidationError as e:
            logger.error("Evidence rejected for statement %s: %s", e.statement_id, e)
            return None

        progress.presented_evidence.append(clue_id)
        progress.mistake_count = result.mistake_count
        if result.correct:
            progress.statement_satisfied = True
            progress.satisfied_evidence.append(clue_id)
        elif result.is_bonus and clue_id not in progress.bonus_evidence:
            progress.bonus_evidence.append(clue_id)

        self._bus.publish(
            EvidencePresented(
                suspect_id=progress.suspect_id,
                statement_id=statement.id,
                clue_id=clue_id,
                correct=result.correct,
                is_bonus=result.is_bonus,
                out_of_order=result.out_of_order,
                mistake_count=result.mistake_count,
            )
        )

        if result.confrontation_failed:
            self.on_confrontation_failed(progress.suspect_id, reason=REASON_TOO_MANY_MISTAKES)
        return result

    def advance_statement(self) -> Statement | None:
        """Move to the next statement. Returns it, or None when the sequence is exhausted or the move is illegal."""
        progress = self._state.confrontation
        statement = self.current_statement()
        sequence = self.current_sequence()
        if progress is None or statement is None or sequence is None:
            logger.error("advance_statement called with no active statement")
            return None
        if statement.requires_presentation and not progress.statement_satisfied:
            logger.error("advance_statement rejected: statement %s not contradicted yet", statement.id)
            return None

        progress.statement_index += 1
        progress.statement_satisfied = False
        if progress.statement_index >= len(sequence.statements):
            progress.completed = True
            logger.info("Confrontation with %s complete", progress.suspect_id)
            self._bus.publish(
                StatementAdvanced(
                    suspect_id=progress.suspect_id,
                    statement_index=progress.statement_index,
                    completed=True,
                )
            )
            return None

        nxt = sequence.statements[progress.statement_index]
        self._bus.publish(
            StatementAdvanced(
                suspect_id=progress.suspect_id,
                statement_index=progress.statement_index,
                statement_id=nxt.id,
            )
        )
        return nxt

    def on_confrontation_success(self, suspect_id: str) -> VictorySummary | FailureSummary | None:
        """Resolve a completed confrontation. Accusing anyone but the culprit is a failure."""
        progress = self._state.confrontation
        if progress is None or progress.suspect_id != suspect_id:
            logger.error("on_confrontation_success(%s): no active confrontation with that suspect", suspect_id)
            return None
        if suspect_id != self.culprit:
            logger.info("Accused %s is not the culprit", suspect_id)
            return self.on_confrontation_failed(suspect_id, reason=REASON_WRONG_SUSPECT)
        if not progress.completed:
            logger.error("on_confrontation_success(%s): confrontation not complete", suspect_id)
            return None

        sequence = self._script.confrontations[suspect_id]
        victory = self._script.endings.victory
        all_discovered = self._clues.all_discovered()
        bonus_used = bool(progress.bonus_evidence)
        acknowledgment = None
        if all_discovered and bonus_used and victory.bonus_acknowledgment:
            acknowledgment = victory.bonus_acknowledgment

        summary = VictorySummary(
            suspect_id=suspect_id,
            confession=sequence.confession,
            motive=sequence.motive,
            reaction=victory.reactions.get(suspect_id, ""),
            key_evidence=list(progress.satisfied_evidence),
            bonus_evidence=list(progress.bonus_evidence),
            all_clues_discovered=all_discovered,
            bonus_acknowledgment=acknowledgment,
        )

        self._finish(STAGE_SUCCESS)
        logger.info("Accusation succeeded against %s", suspect_id)
        self._bus.publish(
            AccusationSucceeded(
                suspect_id=suspect_id,
                all_clues_discovered=all_discovered,
                bonus_evidence_used=bonus_used,
            )
        )
        if self._persistence is not None:
            self._persistence.save_now()
        return summary

    def on_confrontation_failed(self, suspect_id: str, reason: str = REASON_TOO_MANY_MISTAKES) -> FailureSummary | None:
        progress = self._state.confrontation
        if progress is None or progress.suspect_id != suspect_id:
            logger.error("on_confrontation_failed(%s): no active confrontation with that suspect", suspect_id)
            return None
        if progress.mistake_count < self.mistake_limit and suspect_id == self.culprit:
            logger.error(
                "on_confrontation_failed(%s) rejected: %d/%d mistakes against the culprit",
                suspect_id,
                progress.mistake_count,
                self.mistake_limit,
            )
            return None

        accusation = self._state.accusation
        accusation.failed_count += 1
        self._finish(STAGE_FAILED)
        rejection = self._script.settings.rejection_dialog
        summary = FailureSummary(
            suspect_id=suspect_id,
            reason=reason,
            failed_count=accusation.failed_count,
            failure_limit=self.failure_limit,
            rejection_speaker=rejection.speaker,
            rejection_text=rejection.text,
        )

        if self.is_game_over():
            summary.bad_ending = self.bad_ending_data()
            logger.warning("Bad ending: %d failed confrontations", accusation.failed_count)
            self._bus.publish(
                BadEndingTriggered(
                    suspect_id=suspect_id,
                    failed_count=accusation.failed_count,
                    actual_culprit=self.culprit,
                )
            )
        else:
            logger.info(
                "Accusation against %s failed (%s); %d/%d failures",
                suspect_id,
                reason,
                accusation.failed_count,
                self.failure_limit,
            )
            self._bus.publish(
                AccusationFailed(suspect_id=suspect_id, failed_count=accusation.failed_count, reason=reason)
            )
        if self._persistence is not None:
            self._persistence.save_now()
        return summary

    def cancel_accusation(self) -> bool:
        """Back out of selection or a confrontation with no penalty."""
        if self._stage not in (STAGE_SUSPECT_SELECTED, STAGE_CONFRONTING):
            logger.debug("cancel_accusation ignored in stage %s", self._stage)
            return False
        progress = self._state.confrontation
        suspect_id = progress.suspect_id if progress else ""
        self._state.confrontation = None
        self._stage = STAGE_IDLE
        logger.info("Accusation cancelled%s", f" ({suspect_id})" if suspect_id else "")
        self._bus.publish(AccusationCancelled(suspect_id=suspect_id))
        return True

    def restore(self, accusation: AccusationState) -> None:
        """Apply durable accusation state; any confrontation restarts from scratch."""
        self._state.accusation = accusation
        self._state.confrontation = None
        self._stage = STAGE_IDLE
        self._last_outcome = None

    def reset(self) -> None:
        self.restore(AccusationState())

    def _finish(self, outcome: str) -> None:
        self._state.confrontation = None
        self._stage = STAGE_IDLE
        self._last_outcome = outcome
