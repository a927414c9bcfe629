"""Runtime investigation state and its persisted form.

`InvestigationState` is the single shared mutable resource. Each manager owns
one slice of it (phase/introductions, clue sets, visit counts, accusation
counters); everyone else reads snapshots through manager accessors.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from investigation.constants import PHASE_INTRODUCTION, SAVE_SCHEMA_VERSION


class AccusationState:
    """Durable accusation counters; survive confrontations and sessions until a new game."""

    def __init__(
        self,
        failed_count: int = 0,
        accused_suspects: list[str] | None = None,
        last_accusation_at: str | None = None,
    ) -> None:
        self.failed_count = failed_count
        self.accused_suspects = accused_suspects or []
        self.last_accusation_at = last_accusation_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "failed_count": self.failed_count,
            "accused_suspects": list(self.accused_suspects),
            "last_accusation_at": self.last_accusation_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccusationState:
        return cls(
            failed_count=int(data.get("failed_count", 0)),
            accused_suspects=list(data.get("accused_suspects") or []),
            last_accusation_at=data.get("last_accusation_at"),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccusationState):
            return NotImplemented
        return self.to_dict() == other.to_dict()


class ConfrontationProgress:
    """Ephemeral progress through one confrontation. Never persisted."""

    def __init__(self, suspect_id: str, started_at: str) -> None:
        self.suspect_id = suspect_id
        self.statement_index = 0
        self.mistake_count = 0
        self.presented_evidence: list[str] = []
        self.bonus_evidence: list[str] = []
        # Evidence that satisfied each statement, in statement order.
        self.satisfied_evidence: list[str] = []
        self.statement_satisfied = False
        self.completed = False
        self.started_at = started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "suspect_id": self.suspect_id,
            "statement_index": self.statement_index,
            "mistake_count": self.mistake_count,
            "presented_evidence": list(self.presented_evidence),
            "bonus_evidence": list(self.bonus_evidence),
            "satisfied_evidence": list(self.satisfied_evidence),
            "statement_satisfied": self.statement_satisfied,
            "completed": self.completed,
            "started_at": self.started_at,
        }


class InvestigationState:
    """Everything a save record captures, plus the ephemeral confrontation slot."""

    def __init__(self) -> None:
        self.phase: str = PHASE_INTRODUCTION
        self.introduced_characters: set[str] = set()
        self.unlocked_clues: set[str] = set()
        self.discovered_clues: set[str] = set()
        # character_id -> {tier: visit count}
        self.visit_counts: dict[str, dict[int, int]] = {}
        self.accusation = AccusationState()
        self.confrontation: ConfrontationProgress | None = None
        self.notebook_entries: list[dict[str, Any]] = []

    def visit_count(self, character_id: str, tier: int) -> int:
        return self.visit_counts.get(character_id, {}).get(tier, 0)

    def to_dict(self) -> dict[str, Any]:
        """Durable slice only; excludes the active confrontation."""
        return {
            "phase": self.phase,
            "introduced_characters": sorted(self.introduced_characters),
            "unlocked_clues": sorted(self.unlocked_clues),
            "discovered_clues": sorted(self.discovered_clues),
            "visit_counts": {
                cid: {str(tier): count for tier, count in sorted(tiers.items())}
                for cid, tiers in sorted(self.visit_counts.items())
            },
            "accusation": self.accusation.to_dict(),
            "notebook_entries": [dict(e) for e in self.notebook_entries],
        }

    def durable_equals(self, other: InvestigationState) -> bool:
        return self.to_dict() == other.to_dict()


class SaveRecord(BaseModel):
    """Versioned persisted form of InvestigationState."""

    version: int = SAVE_SCHEMA_VERSION
    timestamp: str
    case_id: str = ""
    phase: str = PHASE_INTRODUCTION
    introduced_characters: List[str] = Field(default_factory=list)
    unlocked_clues: List[str] = Field(default_factory=list)
    discovered_clues: List[str] = Field(default_factory=list)
    visit_counts: Dict[str, Dict[int, int]] = Field(default_factory=dict)
    accused_suspects: List[str] = Field(default_factory=list)
    failed_confrontations: int = 0
    last_accusation_at: Optional[str] = None
    notebook_entries: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: InvestigationState, timestamp: str, case_id: str = "") -> SaveRecord:
        return cls(
            timestamp=timestamp,
            case_id=case_id,
            phase=state.phase,
            introduced_characters=sorted(state.introduced_characters),
            unlocked_clues=sorted(state.unlocked_clues),
            discovered_clues=sorted(state.discovered_clues),
            visit_counts={cid: dict(tiers) for cid, tiers in state.visit_counts.items()},
            accused_suspects=list(state.accusation.accused_suspects),
            failed_confrontations=state.accusation.failed_count,
            last_accusation_at=state.accusation.last_accusation_at,
            notebook_entries=[dict(e) for e in state.notebook_entries],
        )
