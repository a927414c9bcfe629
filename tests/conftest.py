"""Pytest setup: keep save databases out of the repo and provide small in-memory cases."""
from __future__ import annotations

import copy
import os
import tempfile
from pathlib import Path
from typing import Any

import pytest

REQUIRED = ["alice", "bob", "carol", "dave", "emma"]


def pytest_sessionstart(session) -> None:
    """Point the default save database at a throwaway path before the engine config is imported."""
    tmp_root = Path(tempfile.mkdtemp(prefix="casebook-tests-"))
    os.environ.setdefault("CASEBOOK_DB_PATH", str(tmp_root / "casebook.db"))


def _tree(character_id: str, tiers: list[dict[str, Any]], record_intro: bool = False) -> dict[str, Any]:
    intro: dict[str, Any] = {"lines": [f"Hello, I am {character_id}."]}
    if record_intro:
        intro.update(record_in_notebook=True, notebook_note=f"Met {character_id}.")
    return {
        "character_id": character_id,
        "name": character_id.title(),
        "introduction": intro,
        "tiers": tiers,
    }


def _tier(tier: int, threshold: int, *, repeats: int = 2, unlocks: list[str] | None = None, note: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "tier": tier,
        "threshold": threshold,
        "lines": [f"tier {tier} first"],
        "repeat_lines": [f"tier {tier} repeat {i}" for i in range(1, repeats + 1)],
    }
    if unlocks:
        data["unlocks_clues"] = list(unlocks)
    if note:
        data.update(record_in_notebook=True, notebook_note=note)
    return data


_CASE_DOCS: dict[str, Any] = {
    "phase": {
        "version": "1.0",
        "phases": {
            "introduction": {"name": "Intro", "clues_enabled": False, "notebook_enabled": True},
            "investigation": {"name": "Investigation", "clues_enabled": True, "notebook_enabled": True},
        },
        "incident": {
            "required_characters": list(REQUIRED),
            "delay": 2.0,
            "cutscene": {
                "entry_position": {"x": 0, "y": 0},
                "door_position": {"x": 10, "y": 0},
                "speech_lines": ["It's gone!"],
            },
        },
        "dialog_tiers": [0, 1, 3, 5],
    },
    "clues": {
        "clues": [
            {"id": "crumbs", "name": "Crumbs", "description": "d", "notebook_note": "Crumbs by the door.", "unlock": {"immediate": True}},
            {"id": "plate", "name": "Plate", "description": "d", "notebook_note": "Plate licked clean.", "unlock": {"immediate": True}},
            {"id": "C1", "name": "Napkin", "description": "d", "notebook_note": "Napkin behind couch.", "unlock": {"character_id": "emma", "tier": 1}},
            {"id": "papers", "name": "Papers", "description": "d", "notebook_note": "Signed papers.", "unlock": {"character_id": "bob", "tier": 1}},
            {"id": "hiding", "name": "Hiding Spot", "description": "d", "notebook_note": "Behind the books.", "unlock": {"character_id": "carol", "tier": 2}},
        ]
    },
    "dialogs": [
        _tree("alice", [_tier(0, 0, repeats=3), _tier(1, 1), _tier(2, 3), _tier(3, 5)], record_intro=True),
        _tree("bob", [_tier(0, 0), _tier(1, 1, unlocks=["papers"])]),
        _tree("carol", [_tier(0, 0), _tier(1, 1), _tier(2, 3, unlocks=["hiding"])]),
        _tree("dave", [_tier(0, 0)]),
        _tree("emma", [_tier(0, 0), _tier(1, 1, unlocks=["C1"], note="Emma saw the couch.")]),
    ],
    "accusation": {
        "settings": {"culprit": "dave", "minimum_clues": 2, "mistake_limit": 3, "failure_limit": 2},
        "confrontations": {
            "dave": {
                "motive": "He was hungry.",
                "confession": "I ate it.",
                "statements": [
                    {"id": "s1", "text": "I was outside.", "required_evidence": "crumbs",
                     "correct_response": "Crumbs!", "incorrect_response": "No."},
                    {"id": "s2", "text": "I hate strudel.", "acceptable_evidence": ["C1"], "bonus_evidence": "plate",
                     "correct_response": "Napkin!", "incorrect_response": "No.", "bonus_response": "A clean plate!"},
                    {"id": "s3", "text": "So what?", "requires_presentation": False},
                    {"id": "s4", "text": "I never came in.", "required_evidence": "papers",
                     "correct_response": "Signed!", "incorrect_response": "No."},
                ],
            },
            "alice": {
                "motive": "Jealousy.",
                "confession": "Not me.",
                "statements": [
                    {"id": "a1", "text": "I was reading.", "required_evidence": "crumbs",
                     "correct_response": "Hm.", "incorrect_response": "No."},
                ],
            },
        },
        "endings": {
            "victory": {"reactions": {"dave": "Dave sighs."}, "bonus_acknowledgment": "Thorough work!"},
            "bad_ending": {"despair_speech": "All is lost.", "failure_explanation": "It was Dave."},
        },
    },
}


@pytest.fixture(autouse=True)
def _clear_engine_caches():
    from investigation.cache import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def case_docs() -> dict[str, Any]:
    """Fresh, mutable copy of the small five-character case."""
    return copy.deepcopy(_CASE_DOCS)


@pytest.fixture
def bundle(case_docs):
    from investigation.content.loader import build_case

    return build_case(case_id="test_case", **case_docs)


@pytest.fixture
def store():
    from investigation.db.store import MemoryKeyValueStore

    return MemoryKeyValueStore()


@pytest.fixture
def session(bundle, store):
    from investigation.core.session import InvestigationSession

    return InvestigationSession(bundle, store=store, debounce_seconds=1.0)


@pytest.fixture
def events(session) -> list:
    """Every event published on the session bus, in order."""
    seen: list = []
    session.bus.subscribe_all(seen.append)
    return seen


@pytest.fixture
def investigating(session):
    """Session that has introduced everyone and passed the incident pause."""
    for cid in REQUIRED:
        session.phases.introduce_character(cid)
    session.scheduler.advance(2.0)
    assert session.phases.is_investigation()
    return session


@pytest.fixture
def solved_ready(investigating):
    """Investigation with every clue discovered (via the conversations that unlock them)."""
    s = investigating
    s.clues.discover("crumbs")
    s.clues.discover("plate")
    for cid in ("emma", "bob"):
        s.conversations.open_conversation(cid)
        s.conversations.close_conversation()
    s.clues.discover("C1")
    s.clues.discover("papers")
    s.conversations.open_conversation("carol")
    s.conversations.close_conversation()
    s.clues.discover("hiding")
    assert s.clues.all_discovered()
    return s
