"""Prize category assignment for scored participations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..errors import InputValidationError
from .scoring import ScoreEntry


class Category(str, Enum):
    """Prize tier of a participation at one evaluation point."""

    TOP = "TOP"
    SECOND = "SECOND"
    LOWEST = "LOWEST"
    NONE = "NONE"

    @property
    def is_winning(self) -> bool:
        return self is not Category.NONE


WINNING_CATEGORIES: tuple[Category, ...] = (
    Category.TOP,
    Category.SECOND,
    Category.LOWEST,
)


def _exact_target(entry: ScoreEntry, exact_match_size: int) -> int:
    if entry.pick_size is not None and entry.pick_size > 0:
        return entry.pick_size
    return exact_match_size


def categorize(
    entries: Sequence[ScoreEntry], exact_match_size: int
) -> dict[Any, Category]:
    """Assign every entry to exactly one category.

    Rules are applied in priority order, each one on the entries left
    over by the previous rules:

    1. ``TOP``: the score equals the number of picks of the participation
       (``exact_match_size`` when the entry does not carry its own size).
    2. ``SECOND``: the score is one less than that target. A target of
       zero never qualifies.
    3. ``LOWEST``: the smallest strictly positive score among the rest.
    4. ``NONE``: everything else, including every score of ``0``.

    Empty tiers stay empty; nothing is promoted into them.

    Parameters
    ----------
    entries : Sequence[ScoreEntry]
        Scores for a single evaluation point.
    exact_match_size : int
        Default number of picks per participation for the contest.

    Returns
    -------
    dict[Any, Category]
        Mapping of participation id to category, in ``entries`` order.

    Raises
    ------
    InputValidationError
        If ``exact_match_size`` is not positive or a participation id
        appears twice.
    """

    if exact_match_size <= 0:
        raise InputValidationError("exact_match_size must be a positive integer")

    assigned: dict[Any, Category] = {}
    for entry in entries:
        if entry.participation_id in assigned:
            raise InputValidationError(
                "Participation scored twice in the same evaluation",
                record_id=entry.participation_id,
            )
        assigned[entry.participation_id] = Category.NONE

    remaining: list[ScoreEntry] = []
    for entry in entries:
        if entry.score > 0 and entry.score == _exact_target(entry, exact_match_size):
            assigned[entry.participation_id] = Category.TOP
        else:
            remaining.append(entry)

    leftover: list[ScoreEntry] = []
    for entry in remaining:
        near = _exact_target(entry, exact_match_size) - 1
        if near > 0 and entry.score == near:
            assigned[entry.participation_id] = Category.SECOND
        else:
            leftover.append(entry)

    lowest = min((entry.score for entry in leftover if entry.score > 0), default=None)
    if lowest is not None:
        for entry in leftover:
            if entry.score == lowest:
                assigned[entry.participation_id] = Category.LOWEST

    return assigned


def group_by_category(
    entries: Iterable[ScoreEntry],
    categories: Mapping[Any, Category],
) -> dict[Category, list[ScoreEntry]]:
    """Bucket ``entries`` by their assigned category, keeping input order.

    Entries missing from ``categories`` land in ``NONE``.
    """

    grouped: dict[Category, list[ScoreEntry]] = {category: [] for category in Category}
    for entry in entries:
        grouped[categories.get(entry.participation_id, Category.NONE)].append(entry)
    return grouped


def lowest_winning_score(
    entries: Iterable[ScoreEntry], categories: Mapping[Any, Category]
) -> Optional[int]:
    """Return the score shared by the ``LOWEST`` winners, if there are any."""

    scores = [
        entry.score
        for entry in entries
        if categories.get(entry.participation_id) is Category.LOWEST
    ]
    return min(scores) if scores else None


__all__ = [
    "Category",
    "WINNING_CATEGORIES",
    "categorize",
    "group_by_category",
    "lowest_winning_score",
]
