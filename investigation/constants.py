"""Engine-wide constants: phase names, clue states, accusation stages, defaults."""
from __future__ import annotations

# Narrative phases (monotonic: introduction -> investigation, never back)
PHASE_INTRODUCTION = "introduction"
PHASE_INVESTIGATION = "investigation"
PHASE_ORDER: tuple[str, ...] = (PHASE_INTRODUCTION, PHASE_INVESTIGATION)

# Clue lifecycle (locked -> unlocked -> discovered, never backward, never skipping)
CLUE_LOCKED = "locked"
CLUE_UNLOCKED = "unlocked"
CLUE_DISCOVERED = "discovered"

# Accusation state machine
STAGE_IDLE = "idle"
STAGE_SUSPECT_SELECTED = "suspect_selected"
STAGE_CONFRONTING = "confronting"
STAGE_SUCCESS = "success"
STAGE_FAILED = "failed"

# Defaults used when a case document leaves a tunable out
DEFAULT_INCIDENT_DELAY = 2.0
DEFAULT_DIALOG_TIER_THRESHOLDS: tuple[int, ...] = (0, 1, 3, 5)
DEFAULT_MISTAKE_LIMIT = 3
DEFAULT_FAILURE_LIMIT = 2
DEFAULT_NOTEBOOK_MAX_ENTRIES = 100
DEFAULT_DIALOG_HISTORY_SIZE = 50

# Shown instead of a technical error when dialog content cannot be resolved
FALLBACK_DIALOG_LINE = "…"

# Persisted save record schema
SAVE_SCHEMA_VERSION = 2
