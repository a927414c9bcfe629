"""Clue lifecycle: locked -> unlocked -> discovered, never backward, never skipping."""
from __future__ import annotations

from investigation.constants import CLUE_DISCOVERED, CLUE_LOCKED, CLUE_UNLOCKED


def test_immediate_clues_start_unlocked(session) -> None:
    assert session.clues.get_state("crumbs") == CLUE_UNLOCKED
    assert session.clues.get_state("plate") == CLUE_UNLOCKED
    assert session.clues.get_state("C1") == CLUE_LOCKED
    assert session.clues.get_state("nope") is None


def test_unlock_then_discover(session, events) -> None:
    assert session.clues.unlock("C1")
    assert session.clues.get_state("C1") == CLUE_UNLOCKED
    assert session.clues.discover("C1")
    assert session.clues.get_state("C1") == CLUE_DISCOVERED
    types = [e.event_type for e in events]
    assert "clue-unlocked" in types
    assert "clue-discovered" in types


def test_locked_clue_cannot_be_discovered(session) -> None:
    assert not session.clues.discover("papers")
    assert session.clues.get_state("papers") == CLUE_LOCKED


def test_no_backward_transitions(session) -> None:
    session.clues.discover("crumbs")
    assert not session.clues.unlock("crumbs")
    assert not session.clues.discover("crumbs")
    assert session.clues.get_state("crumbs") == CLUE_DISCOVERED


def test_unknown_clue_operations_are_no_ops(session, events) -> None:
    assert not session.clues.unlock("ghost")
    assert not session.clues.discover("ghost")
    assert not [e for e in events if e.event_type.startswith("clue-")]


def test_discovered_is_subset_of_unlocked(solved_ready) -> None:
    state = solved_ready.state
    assert state.discovered_clues <= state.unlocked_clues


def test_can_interact_requires_investigation_phase(session, investigating) -> None:
    assert investigating.clues.can_interact("crumbs")
    investigating.clues.discover("crumbs")
    assert not investigating.clues.can_interact("crumbs")


def test_cannot_interact_during_introduction(session) -> None:
    assert session.clues.get_state("crumbs") == CLUE_UNLOCKED
    assert not session.clues.can_interact("crumbs")


def test_discovery_records_notebook_note(investigating) -> None:
    investigating.clues.discover("plate")
    notes = [e["text"] for e in investigating.notebook.entries()]
    assert "Plate licked clean." in notes


def test_restore_applies_discovered_over_unlocked(session) -> None:
    session.clues.restore(unlocked_ids=["C1", "papers"], discovered_ids=["C1", "crumbs"])
    assert session.clues.get_state("C1") == CLUE_DISCOVERED
    assert session.clues.get_state("crumbs") == CLUE_DISCOVERED
    assert session.clues.get_state("papers") == CLUE_UNLOCKED
    assert session.clues.get_state("plate") == CLUE_UNLOCKED
    assert session.clues.get_state("hiding") == CLUE_LOCKED


def test_restore_skips_unknown_ids(session) -> None:
    session.clues.restore(unlocked_ids=["ghost"], discovered_ids=["phantom"])
    assert "ghost" not in session.state.unlocked_clues
    assert "phantom" not in session.state.discovered_clues


def test_unlock_request_event_unlocks(session) -> None:
    from investigation.models.events import ClueUnlockRequested

    session.bus.publish(ClueUnlockRequested(clue_id="papers", character_id="bob", tier=1))
    assert session.clues.get_state("papers") == CLUE_UNLOCKED
