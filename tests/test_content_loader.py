"""Case document validation: structure, cross-references, and the bundled sample case."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from investigation.content.loader import (
    CaseValidationError,
    build_case,
    list_cases,
    load_case,
    load_case_from_path,
)

REPO_CASES = Path(__file__).resolve().parent.parent / "data" / "static" / "cases"


def _errors(case_docs) -> list[str]:
    with pytest.raises(CaseValidationError) as exc:
        build_case(**case_docs)
    return exc.value.errors


def test_valid_case_builds(bundle) -> None:
    assert bundle.accusation.settings.culprit == "dave"
    assert set(bundle.dialogs) == {"alice", "bob", "carol", "dave", "emma"}
    assert bundle.clues.ids() == ["crumbs", "plate", "C1", "papers", "hiding"]
    assert bundle.suspects() == ["dave", "alice"]


def test_dialog_tiers_are_sorted_by_index(case_docs) -> None:
    case_docs["dialogs"][0]["tiers"].reverse()
    built = build_case(**case_docs)
    assert [t.tier for t in built.dialogs["alice"].tiers] == [0, 1, 2, 3]


def test_dangling_clue_reference_reported(case_docs) -> None:
    case_docs["dialogs"][1]["tiers"][1]["unlocks_clues"] = ["papers", "ghost"]
    errors = _errors(case_docs)
    assert any("ghost" in e for e in errors)


def test_all_errors_reported_together(case_docs) -> None:
    case_docs["accusation"]["settings"]["culprit"] = "nobody"
    case_docs["accusation"]["confrontations"]["dave"]["statements"][0]["required_evidence"] = "missing-clue"
    case_docs["phase"]["incident"]["required_characters"].append("zed")
    errors = _errors(case_docs)
    joined = "\n".join(errors)
    assert "culprit nobody has no confrontation" in joined
    assert "missing-clue" in joined
    assert "zed" in joined
    assert len(errors) >= 3


def test_structural_errors_from_several_documents(case_docs) -> None:
    case_docs["phase"]["dialog_tiers"] = [0, 3, 2]
    case_docs["clues"]["clues"][0]["unlock"] = {"immediate": True, "character_id": "emma", "tier": 1}
    errors = _errors(case_docs)
    assert any(e.startswith("phase:") for e in errors)
    assert any(e.startswith("clues:") for e in errors)


def test_missing_tier_zero_rejected(case_docs) -> None:
    case_docs["dialogs"][3]["tiers"][0]["threshold"] = 2
    errors = _errors(case_docs)
    assert any("tier 0 with threshold 0" in e for e in errors)


def test_non_increasing_thresholds_rejected(case_docs) -> None:
    case_docs["dialogs"][2]["tiers"][2]["threshold"] = 1
    errors = _errors(case_docs)
    assert any("threshold must exceed" in e for e in errors)


def test_required_and_acceptable_evidence_are_exclusive(case_docs) -> None:
    statement = case_docs["accusation"]["confrontations"]["dave"]["statements"][0]
    statement["acceptable_evidence"] = ["plate"]
    errors = _errors(case_docs)
    assert any("both required_evidence and acceptable_evidence" in e for e in errors)


def test_unlock_condition_must_match_tier_unlock_list(case_docs) -> None:
    case_docs["clues"]["clues"][2]["unlock"] = {"character_id": "emma", "tier": 0}
    errors = _errors(case_docs)
    assert any("does not list it in unlocks_clues" in e for e in errors)


def test_minimum_clues_cannot_exceed_catalog(case_docs) -> None:
    case_docs["accusation"]["settings"]["minimum_clues"] = 9
    errors = _errors(case_docs)
    assert any("minimum_clues" in e for e in errors)


def test_unknown_fields_rejected(case_docs) -> None:
    case_docs["phase"]["incident"]["delay_seconds"] = 3
    errors = _errors(case_docs)
    assert any("delay_seconds" in e for e in errors)


def test_document_must_be_mapping(case_docs) -> None:
    case_docs["clues"] = ["not", "a", "mapping"]
    errors = _errors(case_docs)
    assert "clues: document must be a mapping" in errors


def _write_case(root: Path, case_docs) -> Path:
    case_path = root / "mini"
    (case_path / "dialogs").mkdir(parents=True)
    for key in ("phase", "clues", "accusation"):
        (case_path / f"{key}.yaml").write_text(yaml.safe_dump(case_docs[key]), encoding="utf-8")
    for tree in case_docs["dialogs"]:
        (case_path / "dialogs" / f"{tree['character_id']}.yaml").write_text(yaml.safe_dump(tree), encoding="utf-8")
    return case_path


def test_load_case_from_directory_and_cache(tmp_path, case_docs) -> None:
    _write_case(tmp_path, case_docs)
    first = load_case("mini", case_dir=tmp_path)
    second = load_case("mini", case_dir=tmp_path)
    assert first is second
    assert first.case_id == "mini"
    assert list_cases(tmp_path) == ["mini"]


def test_missing_documents_reported(tmp_path, case_docs) -> None:
    case_path = _write_case(tmp_path, case_docs)
    (case_path / "accusation.yaml").unlink()
    with pytest.raises(CaseValidationError) as exc:
        load_case_from_path(case_path)
    assert "missing document: accusation.yaml" in exc.value.errors


def test_yaml_syntax_error_reported(tmp_path, case_docs) -> None:
    case_path = _write_case(tmp_path, case_docs)
    (case_path / "clues.yaml").write_text("clues: [unclosed\n  - id: x: y\n", encoding="utf-8")
    (case_path / "accusation.yaml").unlink()
    with pytest.raises(CaseValidationError) as exc:
        load_case_from_path(case_path)
    errors = exc.value.errors
    assert len(errors) == 2
    assert errors[0].startswith("clues.yaml: ")
    assert "missing document: accusation.yaml" in errors


def test_undecodable_document_reported(tmp_path, case_docs) -> None:
    case_path = _write_case(tmp_path, case_docs)
    (case_path / "phase.yaml").write_bytes(b"version: \xff\xfe\n")
    (case_path / "dialogs" / "emma.yaml").write_bytes(b"\xff")
    with pytest.raises(CaseValidationError) as exc:
        load_case_from_path(case_path)
    errors = exc.value.errors
    assert [e.split(":", 1)[0] for e in errors] == ["phase.yaml", "emma.yaml"]
    assert "codec can't decode" in errors[0]


def test_bundled_library_case_is_valid() -> None:
    bundle = load_case("library", case_dir=REPO_CASES)
    assert bundle.accusation.settings.culprit == "klaus"
    assert len(bundle.phase.incident.required_characters) == 5
    assert bundle.clues.get("suspicious-napkin").unlock.character_id == "emma"
    assert bundle.clues.get("suspicious-napkin").unlock.tier == 1
