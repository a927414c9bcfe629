from __future__ import annotations

from investigation.core.event_bus import EventBus
from investigation.core.notebook import CATEGORY_CHARACTER, CATEGORY_CLUE, Notebook
from investigation.models.state import InvestigationState


def _notebook(max_entries: int = 100) -> tuple[Notebook, list]:
    bus = EventBus()
    seen: list = []
    bus.subscribe("notebook-entry-added", seen.append)
    return Notebook(InvestigationState(), bus, max_entries=max_entries), seen


def test_duplicate_notes_ignored() -> None:
    notebook, seen = _notebook()
    assert notebook.record_clue("crumbs", "Crumbs", "Crumbs by the door.") is not None
    assert notebook.record_clue("crumbs", "Crumbs", "Crumbs by the door.") is None
    assert len(notebook) == 1
    assert len(seen) == 1


def test_blank_notes_ignored() -> None:
    notebook, _ = _notebook()
    assert notebook.record_character("emma", "Emma", "   ") is None
    assert len(notebook) == 0


def test_oldest_entries_trimmed() -> None:
    notebook, _ = _notebook(max_entries=3)
    for i in range(5):
        notebook.record_clue(f"c{i}", f"Clue {i}", f"note {i}")
    assert [e["source_id"] for e in notebook.entries()] == ["c2", "c3", "c4"]


def test_sections_group_characters_before_clues() -> None:
    notebook, _ = _notebook()
    notebook.record_clue("plate", "Plate", "Licked clean.")
    notebook.record_character("emma", "Emma", "Librarian.")
    notebook.record_character("bob", "Bob", "Gardener.")
    notebook.record_character("emma", "Emma", "Saw the couch.")
    sections = notebook.sections()
    assert [(s["category"], s["title"]) for s in sections] == [
        (CATEGORY_CHARACTER, "Bob"),
        (CATEGORY_CHARACTER, "Emma"),
        (CATEGORY_CLUE, "Plate"),
    ]
    assert sections[1]["notes"] == ["Librarian.", "Saw the couch."]
