"""Engine configuration constants read from the environment.

Narrative tunables (incident delay, tier thresholds, mistake limits) live in the
case documents under CASE_DIR; this module only covers deployment concerns.
"""
from __future__ import annotations

import os
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean env flag."""
    val = os.environ.get(name, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Project root: resolve relative to this file's location
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATA_ROOT = Path(os.environ.get("CASEBOOK_DATA_ROOT", str(_PROJECT_ROOT / "data")))
CASE_DIR = os.environ.get("CASEBOOK_CASE_DIR", str(DATA_ROOT / "static" / "cases"))
DEFAULT_CASE_ID = os.environ.get("CASEBOOK_CASE", "library").strip() or "library"
DEFAULT_DB_PATH = os.environ.get("CASEBOOK_DB_PATH", str(DATA_ROOT / "casebook.db"))
DEFAULT_SAVE_SLOT = os.environ.get("CASEBOOK_SAVE_SLOT", "default").strip() or "default"

# Routine mutations coalesce into one write after this many seconds of quiet.
SAVE_DEBOUNCE_SECONDS = _env_float("CASEBOOK_SAVE_DEBOUNCE_SECONDS", 1.0)

# Events kept for pollers of the API event log.
EVENT_LOG_SIZE = _env_int("CASEBOOK_EVENT_LOG_SIZE", 200)

DEV_MODE = _env_flag("CASEBOOK_DEV_MODE", default=True)
