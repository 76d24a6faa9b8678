from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .models import NO_SELECTION, CriterionRow


NOT_APPLICABLE = "no"


def _normalise(text: object) -> str:
    return str(text if text is not None else "").strip().lower()


def is_rankable_option(text: object) -> bool:
    """True for options that count as a maturity level (not empty, not "no")."""
    value = _normalise(text)
    return value != "" and value != NOT_APPLICABLE


def resolve_maturity_score(options: Sequence[object], clicked_index: int) -> float:
    """Score a clicked option as its ordinal position among the row's real levels.

    "no" scores 0. Otherwise the score is rank / number of rankable options, where
    rank counts rankable options up to and including the clicked one.
    """
    if not 0 <= clicked_index < len(options):
        raise IndexError(f"Maturity option {clicked_index} out of range for {len(options)} options.")
    if _normalise(options[clicked_index]) == NOT_APPLICABLE:
        return 0.0
    valid_count = sum(1 for option in options if is_rankable_option(option))
    rank = sum(1 for option in options[: clicked_index + 1] if is_rankable_option(option))
    if valid_count > 0:
        return rank / valid_count
    return 0.0


def apply_maturity_click(row: CriterionRow, clicked_index: int) -> CriterionRow:
    """Return a copy of ``row`` with the click applied.

    Clicking the selected option again clears both the selection and the score.
    """
    if row.children:
        raise ValueError(f"Row {row.id!r} is scored from its children and cannot take a maturity level.")
    options = row.maturity_options
    if not 0 <= clicked_index < len(options):
        raise ValueError(f"Row {row.id!r} has no maturity option {clicked_index}.")
    if _normalise(options[clicked_index]) == "":
        raise ValueError(f"Maturity option {clicked_index} of row {row.id!r} is empty.")

    if row.selected_option_index == clicked_index:
        return replace(row, selected_option_index=NO_SELECTION, score=None)
    return replace(
        row,
        selected_option_index=clicked_index,
        score=resolve_maturity_score(options, clicked_index),
    )
