"""Per-participation scoring across the draws of a contest."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Iterable, Optional, Sequence

from .matching import count_hits, hit_numbers

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are assumed UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class DrawInput:
    """A recorded drawing as seen by the scoring core.

    Attributes
    ----------
    id : Any
        Identifier of the draw.
    numbers : tuple[int, ...]
        Winning numbers, stored sorted ascending.
    draw_date : datetime
        When the drawing happened. Normalized to UTC.
    numbers_count : Optional[int]
        Explicit cardinality configured for this draw, if any.
    """

    id: Any
    numbers: tuple[int, ...]
    draw_date: datetime
    numbers_count: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "numbers", tuple(sorted(self.numbers)))
        object.__setattr__(self, "draw_date", as_utc(self.draw_date))


@dataclass(frozen=True)
class ParticipationInput:
    """A purchased entry as seen by the scoring core."""

    id: Any
    user_id: Any
    numbers: tuple[int, ...]
    created_at: datetime
    ticket_code: Optional[str] = None
    status: str = "active"

    def __post_init__(self) -> None:
        object.__setattr__(self, "numbers", tuple(sorted(self.numbers)))
        object.__setattr__(self, "created_at", as_utc(self.created_at))


@dataclass(frozen=True)
class ScoreResult:
    """Best single-draw hit count plus every number ever hit."""

    score: int
    all_hit_numbers: tuple[int, ...]


@dataclass(frozen=True)
class ScoreEntry:
    """Score of one participation at one evaluation point.

    Attributes
    ----------
    participation_id : Any
        Identifier of the scored participation.
    score : int
        Best single-draw match count over the valid draws.
    hit_numbers : tuple[int, ...]
        Union of hit numbers across the valid draws (display only).
    user_id : Any
        Owner of the participation.
    pick_size : Optional[int]
        How many numbers the participation picked. ``None`` means the
        contest default applies.
    created_at : Optional[datetime]
        Creation timestamp, used for ranking tie-breaks.
    ticket_code : Optional[str]
        Ticket code shown to the participant.
    """

    participation_id: Any
    score: int
    hit_numbers: tuple[int, ...] = ()
    user_id: Any = None
    pick_size: Optional[int] = None
    created_at: Optional[datetime] = None
    ticket_code: Optional[str] = None


@dataclass(frozen=True)
class ContestScores:
    """Scores for every eligible participation at one evaluation point.

    Attributes
    ----------
    entries : tuple[ScoreEntry, ...]
        One entry per participation created on or before ``cutoff``.
    excluded_ids : tuple[Any, ...]
        Participations created after ``cutoff``; kept for auditing.
    cutoff : Optional[datetime]
        Date of the evaluation draw, or ``None`` when no draw exists.
    draws_used : tuple[Any, ...]
        Identifiers of the draws taken into account, in replay order.
    """

    entries: tuple[ScoreEntry, ...]
    excluded_ids: tuple[Any, ...] = ()
    cutoff: Optional[datetime] = None
    draws_used: tuple[Any, ...] = field(default=())

    @property
    def excluded_count(self) -> int:
        return len(self.excluded_ids)

    @property
    def max_score(self) -> int:
        return max((entry.score for entry in self.entries), default=0)


def score(participant_numbers: Iterable[int], valid_draws: Iterable[DrawInput]) -> ScoreResult:
    """Score ``participant_numbers`` against ``valid_draws``.

    The score is the best match count achieved in any single draw; hits
    are never summed across draws. ``all_hit_numbers`` is the union of
    the numbers hit in each draw.

    Parameters
    ----------
    participant_numbers : Iterable[int]
        Numbers chosen by the participant.
    valid_draws : Iterable[DrawInput]
        Draws already filtered for this participation, see
        :func:`valid_draws_for`.

    Returns
    -------
    ScoreResult
        ``score`` is ``0`` when ``valid_draws`` is empty.
    """

    picks = frozenset(participant_numbers)
    best = 0
    union: set[int] = set()
    for draw in valid_draws:
        best = max(best, count_hits(draw.numbers, picks))
        union.update(hit_numbers(draw.numbers, picks))
    return ScoreResult(score=best, all_hit_numbers=tuple(sorted(union)))


def id_sort_key(value: Any) -> tuple[int, Any]:
    """Sort key ordering integer ids numerically and any other id as text."""

    if isinstance(value, int):
        return (0, value)
    return (1, str(value))


def sort_draws(draws: Iterable[DrawInput]) -> list[DrawInput]:
    """Return ``draws`` in replay order: by date, then by id for equal dates."""

    return sorted(draws, key=lambda d: (d.draw_date, id_sort_key(d.id)))


def valid_draws_for(
    draws: Iterable[DrawInput],
    created_at: datetime,
    *,
    until: Optional[datetime] = None,
) -> list[DrawInput]:
    """Return the draws a participation created at ``created_at`` may score on.

    A draw counts only when it happened at or after the participation was
    created. ``until`` additionally drops draws dated after it.
    """

    created = as_utc(created_at)
    limit = as_utc(until) if until is not None else None
    return [
        draw
        for draw in draws
        if draw.draw_date >= created and (limit is None or draw.draw_date <= limit)
    ]


def score_contest(
    participations: Sequence[ParticipationInput],
    draws: Sequence[DrawInput],
    *,
    evaluation_draw_id: Optional[Any] = None,
) -> ContestScores:
    """Score every participation at one point of the draw history.

    When ``evaluation_draw_id`` is given only the draws up to and including
    that draw (in replay order) are used; otherwise the whole history is.
    Participations created after the evaluation cutoff are excluded from
    the entries and listed in ``excluded_ids`` instead.

    Raises
    ------
    ValueError
        If ``evaluation_draw_id`` does not match any draw.
    """

    ordered = sort_draws(draws)
    if evaluation_draw_id is not None:
        position = next(
            (idx for idx, draw in enumerate(ordered) if draw.id == evaluation_draw_id),
            None,
        )
        if position is None:
            raise ValueError(f"Unknown evaluation draw {evaluation_draw_id!r}")
        ordered = ordered[: position + 1]

    cutoff = ordered[-1].draw_date if ordered else None

    entries: list[ScoreEntry] = []
    excluded: list[Any] = []
    for participation in participations:
        if cutoff is not None and participation.created_at > cutoff:
            excluded.append(participation.id)
            continue
        result = score(
            participation.numbers,
            valid_draws_for(ordered, participation.created_at),
        )
        entries.append(
            ScoreEntry(
                participation_id=participation.id,
                score=result.score,
                hit_numbers=result.all_hit_numbers,
                user_id=participation.user_id,
                pick_size=len(participation.numbers),
                created_at=participation.created_at,
                ticket_code=participation.ticket_code,
            )
        )

    if excluded:
        logger.debug(
            "Excluded %d participation(s) created after %s", len(excluded), cutoff
        )
    return ContestScores(
        entries=tuple(entries),
        excluded_ids=tuple(excluded),
        cutoff=cutoff,
        draws_used=tuple(draw.id for draw in ordered),
    )


__all__ = [
    "ContestScores",
    "DrawInput",
    "ParticipationInput",
    "ScoreEntry",
    "ScoreResult",
    "as_utc",
    "id_sort_key",
    "score",
    "score_contest",
    "sort_draws",
    "valid_draws_for",
]
