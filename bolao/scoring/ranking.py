"""Ordered ranking views built on top of scores, categories and payouts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from .categories import Category, lowest_winning_score
from .payouts import ZERO, DistributionResult
from .scoring import ContestScores, ScoreEntry, id_sort_key

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class RankedEntry:
    """One row of a ranking table."""

    position: int
    entry: ScoreEntry
    category: Category
    prize_amount: Decimal

    @property
    def participation_id(self) -> Any:
        return self.entry.participation_id

    @property
    def score(self) -> int:
        return self.entry.score

    @property
    def is_winner(self) -> bool:
        return self.category.is_winning


@dataclass(frozen=True)
class RankingSummary:
    top_winners_count: int
    second_winners_count: int
    lowest_winners_count: int
    max_score: int
    lowest_winning_score: Optional[int]
    excluded_count: int

    @property
    def has_any_winner(self) -> bool:
        return (
            self.top_winners_count + self.second_winners_count + self.lowest_winners_count
        ) > 0


def rank_entries(
    entries: Sequence[ScoreEntry],
    categories: Mapping[Any, Category],
    distribution: Optional[DistributionResult] = None,
    *,
    limit: Optional[int] = None,
) -> list[RankedEntry]:
    """Return ``entries`` ranked by score, including ties at the cutoff.

    Entries are ordered by score (highest first), then by creation time
    (earliest first) and finally by participation id. Equal scores share a
    position and the next distinct score skips ahead, so scores
    ``[3, 2, 2, 1]`` get positions ``[1, 2, 2, 4]``.

    Parameters
    ----------
    entries : Sequence[ScoreEntry]
        Scores of one evaluation point.
    categories : Mapping[Any, Category]
        Output of :func:`~bolao.scoring.categories.categorize`.
    distribution : Optional[DistributionResult], default: None
        When given, prize amounts are copied from its payout records.
    limit : Optional[int], default: None
        Keep only the first ``limit`` rows plus any row tied with the last
        one kept.

    Raises
    ------
    ValueError
        If ``limit`` is negative.
    """

    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative when provided")

    amounts: dict[Any, Decimal] = {}
    if distribution is not None:
        amounts = {
            record.participation_id: record.amount_won for record in distribution.payouts
        }

    ordered = sorted(
        entries,
        key=lambda e: (-e.score, e.created_at or _EPOCH, id_sort_key(e.participation_id)),
    )

    ranked: list[RankedEntry] = []
    position = 0
    previous_score: Optional[int] = None
    for index, entry in enumerate(ordered):
        if entry.score != previous_score:
            if limit is not None and index >= limit:
                break
            position = index + 1
            previous_score = entry.score
        ranked.append(
            RankedEntry(
                position=position,
                entry=entry,
                category=categories.get(entry.participation_id, Category.NONE),
                prize_amount=amounts.get(entry.participation_id, ZERO),
            )
        )
    return ranked


def summarize_ranking(
    scores: ContestScores, categories: Mapping[Any, Category]
) -> RankingSummary:
    """Count winners per category for one evaluation point."""

    counts = {category: 0 for category in Category}
    for category in categories.values():
        counts[category] += 1
    return RankingSummary(
        top_winners_count=counts[Category.TOP],
        second_winners_count=counts[Category.SECOND],
        lowest_winners_count=counts[Category.LOWEST],
        max_score=scores.max_score,
        lowest_winning_score=lowest_winning_score(scores.entries, categories),
        excluded_count=scores.excluded_count,
    )


__all__ = ["RankedEntry", "RankingSummary", "rank_entries", "summarize_ranking"]
