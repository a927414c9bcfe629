"""Typed engine events.

One pydantic model per event name, discriminated on `event_type`. Payloads are
JSON-serializable so the API can hand them straight to the presentation layer.
"""
from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class CharacterIntroduced(BaseModel):
    event_type: Literal["character-introduced"] = "character-introduced"
    character_id: str
    introduced_count: int
    required_count: int


class PhaseChanged(BaseModel):
    event_type: Literal["phase-changed"] = "phase-changed"
    phase: str
    previous_phase: str


class IncidentTriggered(BaseModel):
    event_type: Literal["incident-triggered"] = "incident-triggered"
    at: float
    speech_lines: List[str] = Field(default_factory=list)


class ClueUnlockRequested(BaseModel):
    event_type: Literal["clue-unlock-requested"] = "clue-unlock-requested"
    clue_id: str
    character_id: str
    tier: int


class ClueUnlocked(BaseModel):
    event_type: Literal["clue-unlocked"] = "clue-unlocked"
    clue_id: str
    name: str


class ClueDiscovered(BaseModel):
    event_type: Literal["clue-discovered"] = "clue-discovered"
    clue_id: str
    name: str
    discovered_count: int


class NotebookEntryAdded(BaseModel):
    event_type: Literal["notebook-entry-added"] = "notebook-entry-added"
    entry_id: str
    category: str
    source_id: str
    text: str


class ConversationOpened(BaseModel):
    event_type: Literal["conversation-opened"] = "conversation-opened"
    character_id: str
    phase: str
    tier: Optional[int] = None
    is_follow_up: bool = False


class ConversationClosed(BaseModel):
    event_type: Literal["conversation-closed"] = "conversation-closed"
    character_id: str
    phase: str
    tier: Optional[int] = None
    unlock_requests: List[str] = Field(default_factory=list)


class SuspectSelectionOpened(BaseModel):
    event_type: Literal["suspect-selection-opened"] = "suspect-selection-opened"
    suspects: List[str] = Field(default_factory=list)


class AccusationStarted(BaseModel):
    event_type: Literal["accusation-started"] = "accusation-started"
    suspect_id: str
    statement_id: str


class EvidencePresented(BaseModel):
    event_type: Literal["evidence-presented"] = "evidence-presented"
    suspect_id: str
    statement_id: str
    clue_id: str
    correct: bool
    is_bonus: bool
    out_of_order: bool
    mistake_count: int


class StatementAdvanced(BaseModel):
    event_type: Literal["statement-advanced"] = "statement-advanced"
    suspect_id: str
    statement_index: int
    statement_id: Optional[str] = None
    completed: bool = False


class AccusationSucceeded(BaseModel):
    event_type: Literal["accusation-success"] = "accusation-success"
    suspect_id: str
    all_clues_discovered: bool
    bonus_evidence_used: bool


class AccusationFailed(BaseModel):
    event_type: Literal["accusation-failed"] = "accusation-failed"
    suspect_id: str
    failed_count: int
    reason: str


class AccusationCancelled(BaseModel):
    event_type: Literal["accusation-cancelled"] = "accusation-cancelled"
    suspect_id: str


class BadEndingTriggered(BaseModel):
    event_type: Literal["bad-ending-triggered"] = "bad-ending-triggered"
    suspect_id: str
    failed_count: int
    actual_culprit: str


class SaveCompleted(BaseModel):
    event_type: Literal["save-complete"] = "save-complete"
    success: bool
    error: Optional[str] = None


class StateRestored(BaseModel):
    event_type: Literal["state-restored"] = "state-restored"
    phase: str
    unlocked_count: int
    discovered_count: int


class ProgressionReset(BaseModel):
    event_type: Literal["progression-reset"] = "progression-reset"


InvestigationEvent = Annotated[
    Union[
        CharacterIntroduced,
        PhaseChanged,
        IncidentTriggered,
        ClueUnlockRequested,
        ClueUnlocked,
        ClueDiscovered,
        NotebookEntryAdded,
        ConversationOpened,
        ConversationClosed,
        SuspectSelectionOpened,
        AccusationStarted,
        EvidencePresented,
        StatementAdvanced,
        AccusationSucceeded,
        AccusationFailed,
        AccusationCancelled,
        BadEndingTriggered,
        SaveCompleted,
        StateRestored,
        ProgressionReset,
    ],
    Field(discriminator="event_type"),
]

EVENT_ADAPTER: TypeAdapter = TypeAdapter(InvestigationEvent)

# Events that mutate durable state; any of these schedules a (debounced) save.
STATE_CHANGING_EVENTS: frozenset[str] = frozenset({
    "character-introduced",
    "phase-changed",
    "clue-unlocked",
    "clue-discovered",
    "notebook-entry-added",
    "conversation-opened",
    "accusation-started",
    "accusation-success",
    "accusation-failed",
    "bad-ending-triggered",
})


def parse_event(data: dict) -> BaseModel:
    """Rebuild a typed event from its JSON form."""
    return EVENT_ADAPTER.validate_python(data)
