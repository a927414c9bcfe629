"""Structured results returned by engine operations (read-only views for the presentation layer)."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class DialogSelection(BaseModel):
    character_id: str
    phase: str
    tier: Optional[int] = None
    lines: List[str]
    is_follow_up: bool = False
    record_in_notebook: bool = False
    notebook_note: Optional[str] = None
    unlocks_clues: List[str] = Field(default_factory=list)


class EvidenceResult(BaseModel):
    """Outcome of checking one piece of evidence against the current statement."""

    correct: bool
    is_bonus: bool = False
    out_of_order: bool = False
    mistake_count: int
    confrontation_failed: bool = False
    response: str = ""


class AccusationEligibility(BaseModel):
    can_initiate: bool
    discovered_count: int
    required_count: int
    reason: str = ""


class VictorySummary(BaseModel):
    suspect_id: str
    confession: str
    motive: str
    reaction: str = ""
    key_evidence: List[str] = Field(default_factory=list)
    bonus_evidence: List[str] = Field(default_factory=list)
    all_clues_discovered: bool = False
    bonus_acknowledgment: Optional[str] = None


class BadEndingData(BaseModel):
    despair_speech: str
    failure_explanation: str
    actual_culprit: str


class FailureSummary(BaseModel):
    suspect_id: str
    reason: str
    failed_count: int
    failure_limit: int
    rejection_speaker: str = ""
    rejection_text: str = ""
    bad_ending: Optional[BadEndingData] = None


class ProgressSnapshot(BaseModel):
    phase: str
    introduced_count: int
    required_count: int
    all_introduced: bool
    incident_triggered: bool
    unlocked_count: int
    discovered_count: int
    total_clues: int
    dialog_tier: int
    accusation_stage: str
    failed_confrontations: int
    game_over: bool = False
