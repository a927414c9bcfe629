"""Dialog selection: which lines a character says right now.

Introduction phase always shows the character's introduction block. In the
investigation phase the tier is the global tier (from the discovered-clue
count) clamped to the highest tier the character's own tree has reached;
first visits show the tier's lines and repeat visits rotate through its
repeat pool deterministically.
"""
from __future__ import annotations

import logging

from investigation.constants import FALLBACK_DIALOG_LINE, PHASE_INTRODUCTION
from investigation.content.models import CaseBundle, CharacterDialogTree, DialogTier
from investigation.models.outcomes import DialogSelection
from investigation.models.state import InvestigationState

logger = logging.getLogger(__name__)


def global_tier_for(discovered_count: int, thresholds: list[int]) -> int:
    """Highest tier index whose threshold <= discovered_count."""
    tier = 0
    for idx, threshold in enumerate(thresholds):
        if discovered_count >= threshold:
            tier = idx
    return tier


def available_tier_for(tree: CharacterDialogTree, discovered_count: int) -> int:
    """Highest authored tier of `tree` whose threshold <= discovered_count."""
    tier = 0
    for t in tree.tiers:
        if discovered_count >= t.threshold:
            tier = max(tier, t.tier)
    return tier


def repeat_line(pool: list[str], visit_count: int) -> str:
    """Line for the visit_count-th visit (visit_count >= 1): pool[(visit_count - 1) mod len]."""
    if not pool:
        return FALLBACK_DIALOG_LINE
    return pool[(visit_count - 1) % len(pool)]


class DialogSelector:
    def __init__(self, state: InvestigationState, bundle: CaseBundle) -> None:
        self._state = state
        self._bundle = bundle
        self._thresholds = list(bundle.phase.dialog_tiers)

    def global_tier(self, discovered_count: int | None = None) -> int:
        if discovered_count is None:
            discovered_count = len(self._state.discovered_clues)
        return global_tier_for(discovered_count, self._thresholds)

    def effective_tier(self, character_id: str, global_tier: int, discovered_count: int | None = None) -> int:
        tree = self._bundle.dialogs.get(character_id)
        if tree is None:
            return 0
        if discovered_count is None:
            discovered_count = len(self._state.discovered_clues)
        return min(global_tier, available_tier_for(tree, discovered_count))

    def select_dialog(self, character_id: str, phase: str, global_tier: int) -> DialogSelection:
        """Compute what `character_id` says and record the visit (investigation phase only)."""
        tree = self._bundle.dialogs.get(character_id)
        if tree is None:
            logger.error("No dialog tree for character %s", character_id)
            return DialogSelection(character_id=character_id, phase=phase, lines=[FALLBACK_DIALOG_LINE])

        if phase == PHASE_INTRODUCTION:
            intro = tree.introduction
            return DialogSelection(
                character_id=character_id,
                phase=phase,
                lines=_resolved(intro.lines),
                record_in_notebook=intro.record_in_notebook,
                notebook_note=intro.notebook_note,
            )

        tier_idx = self.effective_tier(character_id, global_tier)
        tier = self._tier_or_fallback(tree, tier_idx)
        if tier is None:
            return DialogSelection(character_id=character_id, phase=phase, lines=[FALLBACK_DIALOG_LINE])

        visits = self._state.visit_count(character_id, tier.tier)
        if visits == 0:
            lines = _resolved(tier.lines)
        else:
            lines = _resolved([repeat_line(tier.repeat_lines, visits)])
        self._state.visit_counts.setdefault(character_id, {})[tier.tier] = visits + 1

        return DialogSelection(
            character_id=character_id,
            phase=phase,
            tier=tier.tier,
            lines=lines,
            is_follow_up=visits > 0,
            record_in_notebook=tier.record_in_notebook and visits == 0,
            notebook_note=tier.notebook_note,
            unlocks_clues=list(tier.unlocks_clues),
        )

    def unlocks_for(self, character_id: str, tier: int | None) -> list[str]:
        """Clue ids released when a conversation shown at `tier` closes."""
        tree = self._bundle.dialogs.get(character_id)
        if tree is None or tier is None:
            return []
        found = tree.get_tier(tier)
        return list(found.unlocks_clues) if found else []

    def _tier_or_fallback(self, tree: CharacterDialogTree, tier_idx: int) -> DialogTier | None:
        tier = tree.get_tier(tier_idx)
        if tier is not None:
            return tier
        logger.warning(
            "Data integrity: %s has no tier %d; falling back to tier 0", tree.character_id, tier_idx
        )
        return tree.get_tier(0)


def _resolved(lines: list[str]) -> list[str]:
    out = [line for line in lines if isinstance(line, str) and line.strip()]
    return out or [FALLBACK_DIALOG_LINE]
