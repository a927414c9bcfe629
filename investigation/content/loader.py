"""Case loader: reads the four YAML documents of a case and validates them as one bundle.

Layout of a case directory:

    <CASE_DIR>/<case_id>/phase.yaml
    <CASE_DIR>/<case_id>/clues.yaml
    <CASE_DIR>/<case_id>/accusation.yaml
    <CASE_DIR>/<case_id>/dialogs/<character_id>.yaml

Every structural and cross-reference problem is collected before failing, so a
broken case reports all of its errors in one go.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import BaseModel, ValidationError

from investigation.cache import clear_cache, get_cache_value
from investigation.content.models import (
    AccusationScript,
    CaseBundle,
    CharacterDialogTree,
    ClueCatalog,
    PhaseConfig,
)

logger = logging.getLogger(__name__)

_CASE_CACHE_KEY = "case_bundles"

_DOCUMENT_FILES: dict[str, str] = {
    "phase": "phase",
    "clues": "clues",
    "accusation": "accusation",
}


class CaseValidationError(ValueError):
    """Raised when case documents are malformed or inconsistent; carries every error found."""

    def __init__(self, errors: list[str], case_id: str | None = None) -> None:
        self.errors = list(errors)
        self.case_id = case_id
        label = f"case {case_id}" if case_id else "case"
        super().__init__(f"Invalid {label}: {len(self.errors)} error(s) found")


def _normalize_case_key(value: str) -> str:
    """Normalize case identifiers for directory names and cache keys."""
    raw = (value or "").strip().lower()
    raw = re.sub(r"[^a-z0-9]+", "_", raw)
    return raw.strip("_")


def _resolve_case_root(case_dir: str | Path | None = None) -> Path:
    if case_dir is not None:
        return Path(case_dir)
    from investigation.config import CASE_DIR

    return Path(CASE_DIR)


def _read_yaml(path: Path, errors: list[str]) -> object:
    """Parse one document; unreadable or malformed files are reported in `errors`."""
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError, OSError) as e:
        errors.append(f"{path.name}: {e}")
        logger.error("Failed to read case document %s: %s", path, e)
        return None


def _find_document(dir_path: Path, stem: str) -> Path | None:
    for ext in (".yaml", ".yml"):
        fp = dir_path / f"{stem}{ext}"
        if fp.exists() and fp.is_file():
            return fp
    return None


def _dialog_files(dir_path: Path) -> Iterable[Path]:
    dialog_dir = dir_path / "dialogs"
    if not dialog_dir.is_dir():
        return []
    return sorted(dialog_dir.glob("*.yml")) + sorted(dialog_dir.glob("*.yaml"))


def _format_validation_error(label: str, err: ValidationError) -> list[str]:
    out: list[str] = []
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()) if part != "__root__")
        msg = item.get("msg", "invalid")
        out.append(f"{label}: {loc}: {msg}" if loc else f"{label}: {msg}")
    return out


def _validate_document(label: str, model: type[BaseModel], data: Any, errors: list[str]) -> Any:
    if not isinstance(data, dict):
        errors.append(f"{label}: document must be a mapping")
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors.extend(_format_validation_error(label, e))
        return None


def build_case(
    *,
    phase: Any,
    clues: Any,
    dialogs: Iterable[Any],
    accusation: Any,
    case_id: str = "case",
) -> CaseBundle:
    """Validate already-parsed documents into a CaseBundle.

    Raises CaseValidationError listing every structural and reference error.
    """
    errors: list[str] = []
    phase_cfg = _validate_document("phase", PhaseConfig, phase, errors)
    catalog = _validate_document("clues", ClueCatalog, clues, errors)
    script = _validate_document("accusation", AccusationScript, accusation, errors)

    trees: dict[str, CharacterDialogTree] = {}
    for idx, raw in enumerate(dialogs or []):
        label = f"dialogs[{idx}]"
        if isinstance(raw, dict) and raw.get("character_id"):
            label = f"dialogs[{raw['character_id']}]"
        tree = _validate_document(label, CharacterDialogTree, raw, errors)
        if tree is None:
            continue
        if tree.character_id in trees:
            errors.append(f"{label}: duplicate dialog tree for character {tree.character_id}")
            continue
        trees[tree.character_id] = tree

    if errors:
        _log_errors(case_id, errors)
        raise CaseValidationError(errors, case_id=case_id)

    bundle = CaseBundle(
        case_id=case_id,
        phase=phase_cfg,
        clues=catalog,
        dialogs=trees,
        accusation=script,
    )
    ref_errors = bundle.reference_errors()
    if ref_errors:
        _log_errors(case_id, ref_errors)
        raise CaseValidationError(ref_errors, case_id=case_id)

    logger.info(
        "Case %s validated: %d clues, %d characters, %d suspects",
        case_id,
        len(catalog.clues),
        len(trees),
        len(script.confrontations),
    )
    return bundle


def _log_errors(case_id: str, errors: list[str]) -> None:
    logger.error("Case %s failed validation (%d error(s)):", case_id, len(errors))
    for error in errors:
        logger.error("  - %s", error)


def load_case_documents(case_path: Path, errors: list[str] | None = None) -> dict[str, Any]:
    """Read the raw YAML documents of a case directory (no validation).

    Files that cannot be read or parsed come back as None (dialog files are
    skipped) and their errors are appended to `errors` when given.
    """
    read_errors = errors if errors is not None else []
    docs: dict[str, Any] = {}
    for key, stem in _DOCUMENT_FILES.items():
        fp = _find_document(case_path, stem)
        docs[key] = _read_yaml(fp, read_errors) if fp else None
    dialogs = []
    for fp in _dialog_files(case_path):
        before = len(read_errors)
        data = _read_yaml(fp, read_errors)
        if len(read_errors) == before:
            dialogs.append(data)
    docs["dialogs"] = dialogs
    return docs


def load_case_from_path(case_path: str | Path, case_id: str | None = None) -> CaseBundle:
    """Load and validate a case directory. Missing or unreadable documents are reported as errors."""
    path = Path(case_path)
    cid = case_id or _normalize_case_key(path.name) or "case"
    if not path.is_dir():
        raise CaseValidationError([f"case directory not found: {path}"], case_id=cid)

    errors: list[str] = []
    docs = load_case_documents(path, errors)
    for stem in _DOCUMENT_FILES.values():
        if _find_document(path, stem) is None:
            errors.append(f"missing document: {stem}.yaml")
    if not _dialog_files(path):
        errors.append("missing dialogs/: no character dialog trees found")
    if errors:
        _log_errors(cid, errors)
        raise CaseValidationError(errors, case_id=cid)

    return build_case(
        phase=docs["phase"],
        clues=docs["clues"],
        dialogs=docs["dialogs"],
        accusation=docs["accusation"],
        case_id=cid,
    )


def load_case(case_id: str | None = None, case_dir: str | Path | None = None) -> CaseBundle:
    """Return the validated case bundle for `case_id`, cached per (root, case)."""
    from investigation.config import DEFAULT_CASE_ID

    key = _normalize_case_key(case_id or DEFAULT_CASE_ID)
    root = _resolve_case_root(case_dir)
    cache: dict[str, CaseBundle] = get_cache_value(_CASE_CACHE_KEY, dict)
    cache_key = f"{root.resolve()}::{key}"
    if cache_key in cache:
        return cache[cache_key]

    case_path = root / key
    if not case_path.is_dir() and root.is_dir():
        for p in root.iterdir():
            if p.is_dir() and _normalize_case_key(p.name) == key:
                case_path = p
                break

    bundle = load_case_from_path(case_path, case_id=key)
    cache[cache_key] = bundle
    return bundle


def list_cases(case_dir: str | Path | None = None) -> list[str]:
    """Return case ids available under the case root (directories holding a phase document)."""
    root = _resolve_case_root(case_dir)
    if not root.is_dir():
        return []
    return sorted(
        _normalize_case_key(p.name)
        for p in root.iterdir()
        if p.is_dir() and _find_document(p, "phase") is not None
    )


def clear_case_cache() -> None:
    """Clear cached case bundles (useful for tests)."""
    clear_cache(_CASE_CACHE_KEY)
