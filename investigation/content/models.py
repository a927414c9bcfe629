"""Pydantic models for case documents (phase, clue catalog, dialog trees, accusation script).

Each document validates its own structure; `CaseBundle` cross-checks references
between documents and reports every problem at once.
"""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from investigation.constants import (
    DEFAULT_DIALOG_TIER_THRESHOLDS,
    DEFAULT_FAILURE_LIMIT,
    DEFAULT_INCIDENT_DELAY,
    DEFAULT_MISTAKE_LIMIT,
)


class Position(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: float
    y: float


# ── phase.yaml ──


class PhaseSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    clues_enabled: bool = False
    notebook_enabled: bool = False


class PhaseSet(BaseModel):
    model_config = ConfigDict(extra="forbid")

    introduction: PhaseSettings = Field(
        default_factory=lambda: PhaseSettings(name="Introduction")
    )
    investigation: PhaseSettings = Field(
        default_factory=lambda: PhaseSettings(
            name="Investigation", clues_enabled=True, notebook_enabled=True
        )
    )


class IncidentCutscene(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry_position: Position
    door_position: Position
    speech_lines: List[str]
    duration: float = 8.0

    @field_validator("speech_lines")
    @classmethod
    def _require_speech(cls, v: List[str]) -> List[str]:
        lines = [str(line) for line in v or [] if str(line).strip()]
        if not lines:
            raise ValueError("incident.cutscene.speech_lines must contain at least one line")
        return lines

    @field_validator("duration")
    @classmethod
    def _positive_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("incident.cutscene.duration must be > 0")
        return v


class IncidentTrigger(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required_characters: List[str]
    delay: float = DEFAULT_INCIDENT_DELAY
    cutscene: IncidentCutscene | None = None

    @field_validator("required_characters")
    @classmethod
    def _validate_required(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("incident.required_characters must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("incident.required_characters contains duplicates")
        return v

    @field_validator("delay")
    @classmethod
    def _non_negative_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("incident.delay must be >= 0")
        return v


class PhaseConfig(BaseModel):
    """phase.yaml: phase settings, incident trigger and the global dialog-tier scheme."""
    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    phases: PhaseSet = Field(default_factory=PhaseSet)
    incident: IncidentTrigger
    dialog_tiers: List[int] = Field(default_factory=lambda: list(DEFAULT_DIALOG_TIER_THRESHOLDS))

    @field_validator("dialog_tiers")
    @classmethod
    def _validate_thresholds(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("dialog_tiers must not be empty")
        if v[0] != 0:
            raise ValueError("dialog_tiers must start at 0")
        for prev, cur in zip(v, v[1:]):
            if cur <= prev:
                raise ValueError("dialog_tiers thresholds must be strictly increasing")
        return v


# ── clues.yaml ──


class ClueUnlockCondition(BaseModel):
    """Either `immediate: true` or a `(character_id, tier)` conversation."""
    model_config = ConfigDict(extra="forbid")

    immediate: bool = False
    character_id: str | None = None
    tier: int | None = None

    @model_validator(mode="after")
    def _exactly_one_form(self) -> ClueUnlockCondition:
        by_conversation = self.character_id is not None or self.tier is not None
        if self.immediate and by_conversation:
            raise ValueError("unlock must be either immediate or (character_id, tier), not both")
        if not self.immediate:
            if self.character_id is None or self.tier is None:
                raise ValueError("unlock needs both character_id and tier unless immediate")
            if self.tier < 0:
                raise ValueError("unlock.tier must be >= 0")
        return self


class ClueDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    description: str
    notebook_note: str
    unlock: ClueUnlockCondition = Field(default_factory=lambda: ClueUnlockCondition(immediate=True))
    # Position, sprite and sizing metadata for the presentation layer; not interpreted here.
    presentation: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "name", "notebook_note")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("must not be blank")
        return v.strip()


class ClueCatalog(BaseModel):
    """clues.yaml"""
    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    clues: List[ClueDefinition]

    @model_validator(mode="after")
    def _unique_ids(self) -> ClueCatalog:
        seen: set[str] = set()
        for clue in self.clues:
            if clue.id in seen:
                raise ValueError(f"Duplicate clue id: {clue.id}")
            seen.add(clue.id)
        return self

    def get(self, clue_id: str) -> ClueDefinition | None:
        for clue in self.clues:
            if clue.id == clue_id:
                return clue
        return None

    def ids(self) -> list[str]:
        return [c.id for c in self.clues]


# ── dialogs/<character>.yaml ──


class IntroductionBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lines: List[str]
    record_in_notebook: bool = False
    notebook_note: str | None = None

    @field_validator("lines")
    @classmethod
    def _line_count(cls, v: List[str]) -> List[str]:
        if not v or len(v) > 10:
            raise ValueError("introduction.lines must have 1-10 lines")
        return v

    @model_validator(mode="after")
    def _note_when_recording(self) -> IntroductionBlock:
        if self.record_in_notebook and not self.notebook_note:
            raise ValueError("introduction.notebook_note is required when record_in_notebook is true")
        return self


class DialogTier(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tier: int
    threshold: int
    lines: List[str]
    repeat_lines: List[str]
    record_in_notebook: bool = False
    notebook_note: str | None = None
    unlocks_clues: List[str] = Field(default_factory=list)

    @field_validator("tier", "threshold")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("tier and threshold must be >= 0")
        return v

    @field_validator("lines", "repeat_lines")
    @classmethod
    def _non_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("must be a non-empty list of lines")
        return v

    @model_validator(mode="after")
    def _note_when_recording(self) -> DialogTier:
        if self.record_in_notebook and not self.notebook_note:
            raise ValueError(f"tiers[{self.tier}].notebook_note is required when record_in_notebook is true")
        return self


class CharacterDialogTree(BaseModel):
    """dialogs/<character>.yaml: one introduction block plus ordered investigation tiers."""
    model_config = ConfigDict(extra="forbid")

    character_id: str
    name: str
    introduction: IntroductionBlock
    tiers: List[DialogTier]

    @model_validator(mode="after")
    def _validate_tiers(self) -> CharacterDialogTree:
        if not self.tiers:
            raise ValueError(f"dialog[{self.character_id}] needs at least one tier")
        indices = [t.tier for t in self.tiers]
        if len(set(indices)) != len(indices):
            raise ValueError(f"dialog[{self.character_id}] has duplicate tier indices")
        ordered = sorted(self.tiers, key=lambda t: t.tier)
        if ordered[0].tier != 0 or ordered[0].threshold != 0:
            raise ValueError(f"dialog[{self.character_id}] needs tier 0 with threshold 0")
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.threshold <= prev.threshold:
                raise ValueError(
                    f"dialog[{self.character_id}] tier {cur.tier} threshold must exceed tier {prev.tier}"
                )
        self.tiers = ordered
        return self

    def get_tier(self, tier: int) -> DialogTier | None:
        for t in self.tiers:
            if t.tier == tier:
                return t
        return None


# ── accusation.yaml ──


class SpokenLine(BaseModel):
    model_config = ConfigDict(extra="forbid")

    speaker: str
    text: str


class Statement(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    text: str
    speaker: str = "suspect"
    requires_presentation: bool = True
    required_evidence: str | None = None
    acceptable_evidence: List[str] = Field(default_factory=list)
    bonus_evidence: str | None = None
    correct_response: str = ""
    incorrect_response: str = ""
    bonus_response: str | None = None

    @model_validator(mode="after")
    def _evidence_shape(self) -> Statement:
        if self.required_evidence and self.acceptable_evidence:
            raise ValueError(
                f"statement[{self.id}] sets both required_evidence and acceptable_evidence"
            )
        if self.requires_presentation and not self.accepted_evidence():
            raise ValueError(f"statement[{self.id}] requires evidence but has none defined")
        return self

    def accepted_evidence(self) -> list[str]:
        """Clue ids that contradict this statement."""
        if self.acceptable_evidence:
            return list(self.acceptable_evidence)
        if self.required_evidence:
            return [self.required_evidence]
        return []


class ConfrontationSequence(BaseModel):
    model_config = ConfigDict(extra="forbid")

    motive: str
    confession: str
    statements: List[Statement]

    @field_validator("statements")
    @classmethod
    def _validate_statements(cls, v: List[Statement]) -> List[Statement]:
        if not v:
            raise ValueError("confrontation has no statements")
        ids = [s.id for s in v]
        if len(set(ids)) != len(ids):
            raise ValueError("confrontation statement ids must be unique")
        return v


class AccusationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    culprit: str
    minimum_clues: int = 0
    mistake_limit: int = DEFAULT_MISTAKE_LIMIT
    failure_limit: int = DEFAULT_FAILURE_LIMIT
    rejection_dialog: SpokenLine = Field(
        default_factory=lambda: SpokenLine(
            speaker="host",
            text="This is unacceptable! Too many mistakes. Please investigate more thoroughly!",
        )
    )

    @field_validator("minimum_clues")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("settings.minimum_clues must be >= 0")
        return v

    @field_validator("mistake_limit", "failure_limit")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("settings limits must be >= 1")
        return v


class VictoryEnding(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reactions: Dict[str, str] = Field(default_factory=dict)
    bonus_acknowledgment: str = ""


class BadEnding(BaseModel):
    model_config = ConfigDict(extra="forbid")

    despair_speech: str
    failure_explanation: str


class Endings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    victory: VictoryEnding
    bad_ending: BadEnding


class AccusationScript(BaseModel):
    """accusation.yaml"""
    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    settings: AccusationSettings
    confrontations: Dict[str, ConfrontationSequence]
    endings: Endings


# ── bundle ──


class CaseBundle(BaseModel):
    """All four documents of one case, cross-validated."""
    model_config = ConfigDict(extra="forbid")

    case_id: str = "case"
    phase: PhaseConfig
    clues: ClueCatalog
    dialogs: Dict[str, CharacterDialogTree]
    accusation: AccusationScript

    def reference_errors(self) -> list[str]:
        """Return every dangling or inconsistent cross-document reference."""
        errors: list[str] = []
        clue_ids = set(self.clues.ids())

        for cid in self.phase.incident.required_characters:
            if cid not in self.dialogs:
                errors.append(f"incident.required_characters references character without dialog: {cid}")

        for clue in self.clues.clues:
            cond = clue.unlock
            if cond.immediate:
                continue
            tree = self.dialogs.get(cond.character_id or "")
            if tree is None:
                errors.append(f"clue[{clue.id}].unlock references missing character: {cond.character_id}")
                continue
            tier = tree.get_tier(cond.tier if cond.tier is not None else -1)
            if tier is None:
                errors.append(f"clue[{clue.id}].unlock references missing tier {cond.tier} of {cond.character_id}")
            elif clue.id not in tier.unlocks_clues:
                errors.append(
                    f"clue[{clue.id}].unlock names {cond.character_id} tier {cond.tier}, "
                    f"but that tier does not list it in unlocks_clues"
                )

        for cid, tree in self.dialogs.items():
            if tree.character_id != cid:
                errors.append(f"dialog[{cid}] declares character_id {tree.character_id}")
            for tier in tree.tiers:
                for ref in tier.unlocks_clues:
                    if ref not in clue_ids:
                        errors.append(f"dialog[{cid}].tiers[{tier.tier}].unlocks_clues references missing clue: {ref}")

        script = self.accusation
        culprit = script.settings.culprit
        if culprit not in script.confrontations:
            errors.append(f"settings.culprit {culprit} has no confrontation defined")
        if culprit not in script.endings.victory.reactions:
            errors.append(f"endings.victory.reactions has no reaction for culprit: {culprit}")
        if script.settings.minimum_clues > len(clue_ids):
            errors.append(
                f"settings.minimum_clues ({script.settings.minimum_clues}) exceeds clue count ({len(clue_ids)})"
            )
        for suspect_id, seq in script.confrontations.items():
            for idx, st in enumerate(seq.statements):
                for ref in st.accepted_evidence():
                    if ref not in clue_ids:
                        errors.append(f"confrontations[{suspect_id}][{idx}] {st.id} references missing clue: {ref}")
                if st.bonus_evidence and st.bonus_evidence not in clue_ids:
                    errors.append(
                        f"confrontations[{suspect_id}][{idx}] {st.id} references missing bonus clue: {st.bonus_evidence}"
                    )
        return errors

    def suspects(self) -> list[str]:
        return list(self.accusation.confrontations.keys())
