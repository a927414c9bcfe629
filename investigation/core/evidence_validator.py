"""Evidence validation for confrontations: deterministic, pure Python.

`validate_evidence` decides whether a presented clue contradicts the current
statement. It never mutates anything; the accusation engine applies the result.

Scoring:
- correct: the clue is the statement's required evidence or one of its acceptable ids
- bonus: the clue is the statement's bonus evidence (accepted, no mistake, no advance)
- anything else costs one mistake, including evidence that belongs to a later
  statement (out of order); that case also gets a guidance hint
"""
from __future__ import annotations

from typing import Iterable, Sequence

from investigation.constants import DEFAULT_MISTAKE_LIMIT
from investigation.content.models import Statement
from investigation.models.outcomes import EvidenceResult

OUT_OF_ORDER_GUIDANCE = (
    "Wait, that evidence is relevant, but we need to establish the basics first. "
    "Let's take this step by step."
)

_PENALTY_WARNINGS = (
    "Think carefully!",
    "You're running out of chances.",
    "One more wrong move and this accusation will fail!",
)


class EvidenceValidationError(ValueError):
    """Raised when evidence cannot be validated at all (e.g. the clue was never discovered)."""

    def __init__(self, message: str, statement_id: str | None = None, clue_id: str | None = None) -> None:
        self.statement_id = statement_id
        self.clue_id = clue_id
        super().__init__(message)


def penalty_message(mistake_count: int, base_message: str, mistake_limit: int = DEFAULT_MISTAKE_LIMIT) -> str:
    """Escalating warning appended to a statement's incorrect response."""
    severity = max(0, mistake_count - 1)
    warning = _PENALTY_WARNINGS[min(severity, len(_PENALTY_WARNINGS) - 1)]
    text = f"{warning} (Mistakes: {mistake_count}/{mistake_limit})"
    return f"{base_message}\n\n{text}" if base_message else text


def is_out_of_order(clue_id: str, statements: Sequence[Statement], current_index: int) -> bool:
    """True if the clue would contradict a later statement of the sequence."""
    for later in statements[current_index + 1:]:
        if clue_id in later.accepted_evidence():
            return True
    return False


def validate_evidence(
    statement: Statement,
    clue_id: str,
    mistake_count: int,
    discovered: Iterable[str],
    presented: Sequence[str],
    statements: Sequence[Statement],
    current_index: int,
    mistake_limit: int = DEFAULT_MISTAKE_LIMIT,
) -> EvidenceResult:
    """Score one presentation against `statement`.

    `presented` is the evidence already shown in this confrontation; a clue
    already used to satisfy an earlier statement is scored like any other.
    """
    if clue_id not in set(discovered):
        raise EvidenceValidationError(
            f"Clue {clue_id} has not been discovered",
            statement_id=statement.id,
            clue_id=clue_id,
        )

    correct = clue_id in statement.accepted_evidence()
    is_bonus = not correct and statement.bonus_evidence == clue_id
    if correct or is_bonus:
        response = statement.correct_response
        if is_bonus and statement.bonus_response:
            response = statement.bonus_response
        return EvidenceResult(
            correct=correct,
            is_bonus=is_bonus,
            mistake_count=mistake_count,
            confrontation_failed=False,
            response=response,
        )

    out_of_order = is_out_of_order(clue_id, statements, current_index) and clue_id not in presented
    new_count = mistake_count + 1
    base = OUT_OF_ORDER_GUIDANCE if out_of_order else statement.incorrect_response
    return EvidenceResult(
        correct=False,
        is_bonus=False,
        out_of_order=out_of_order,
        mistake_count=new_count,
        confrontation_failed=new_count >= mistake_limit,
        response=penalty_message(new_count, base, mistake_limit),
    )
