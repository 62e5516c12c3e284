"""Point-in-time replay of a contest's draw history."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Optional, Sequence

from ..errors import DrawProcessingError, InputValidationError
from .categories import Category, categorize, group_by_category
from .payouts import DistributionResult, Number, PercentConfig, distribute, to_decimal
from .scoring import (
    ContestScores,
    DrawInput,
    ParticipationInput,
    score_contest,
    sort_draws,
)
from .validation import NumberRules, validate_draw, validate_participation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContestRules:
    """Everything about a contest the computation depends on."""

    numbers: NumberRules
    percent_config: PercentConfig

    @property
    def numbers_per_participation(self) -> int:
        return self.numbers.numbers_per_participation


@dataclass(frozen=True)
class ContestSnapshot:
    """Inputs of one reprocessing pass, read from persistence.

    Attributes
    ----------
    contest_id : Any
        Identifier of the contest.
    rules : ContestRules
        Number range and percentage configuration.
    participations : tuple[ParticipationInput, ...]
        Participations of the contest. Only ``active`` ones are scored.
    draws : tuple[DrawInput, ...]
        Draws of the contest in any order.
    total_revenue : Decimal
        Paid revenue of the contest.
    """

    contest_id: Any
    rules: ContestRules
    participations: tuple[ParticipationInput, ...]
    draws: tuple[DrawInput, ...]
    total_revenue: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "participations", tuple(self.participations))
        object.__setattr__(self, "draws", tuple(self.draws))
        object.__setattr__(self, "total_revenue", to_decimal(self.total_revenue))


@dataclass(frozen=True)
class DrawEvaluation:
    """State of the contest right after one draw."""

    draw_id: Any
    scores: ContestScores
    categories: dict[Any, Category]
    distribution: DistributionResult


@dataclass(frozen=True)
class RejectedRecord:
    kind: str
    record_id: Any
    reason: str


@dataclass(frozen=True)
class ReprocessPlan:
    """Desired state computed from a :class:`ContestSnapshot`.

    Attributes
    ----------
    contest_id : Any
        Contest the plan belongs to.
    participation_scores : dict[Any, int]
        Latest score of every valid active participation. Participations
        created after the last draw score ``0``.
    evaluations : tuple[DrawEvaluation, ...]
        One evaluation per successfully processed draw, in replay order.
    failures : tuple[DrawProcessingError, ...]
        Draws whose computation failed; other draws were still processed.
    rejected : tuple[RejectedRecord, ...]
        Malformed participations and draws that were skipped.
    final_scores : Optional[ContestScores]
        Scores over the whole history, ``None`` when there are no draws.
    """

    contest_id: Any
    participation_scores: dict[Any, int]
    evaluations: tuple[DrawEvaluation, ...] = ()
    failures: tuple[DrawProcessingError, ...] = ()
    rejected: tuple[RejectedRecord, ...] = ()
    final_scores: Optional[ContestScores] = None

    @property
    def latest_evaluation(self) -> Optional[DrawEvaluation]:
        return self.evaluations[-1] if self.evaluations else None

    @property
    def rejected_draw_ids(self) -> tuple[Any, ...]:
        return tuple(r.record_id for r in self.rejected if r.kind == "draw")

    def payout_table(self) -> dict[Any, list[tuple[Any, str, int, Decimal]]]:
        """Return ``draw_id -> [(participation_id, category, score, amount)]``.

        Useful to compare two plans structurally.
        """
        return {
            evaluation.draw_id: [
                (r.participation_id, r.category.value, r.score, r.amount_won)
                for r in evaluation.distribution.payouts
            ]
            for evaluation in self.evaluations
        }


def evaluate_draw(
    participations: Sequence[ParticipationInput],
    draws: Sequence[DrawInput],
    draw_id: Any,
    total_revenue: Number,
    rules: ContestRules,
) -> DrawEvaluation:
    """Score, categorize and pay out the contest as of ``draw_id``.

    Only draws up to and including ``draw_id`` in replay order are used,
    and participations created after that draw are left out.
    """

    scores = score_contest(participations, draws, evaluation_draw_id=draw_id)
    categories = categorize(scores.entries, rules.numbers_per_participation)
    distribution = distribute(
        group_by_category(scores.entries, categories),
        total_revenue,
        rules.percent_config,
    )
    logger.debug(
        "Draw %r evaluated: %d entries, %d excluded, max score %d",
        draw_id,
        len(scores.entries),
        scores.excluded_count,
        scores.max_score,
    )
    return DrawEvaluation(
        draw_id=draw_id,
        scores=scores,
        categories=categories,
        distribution=distribution,
    )


def _valid_inputs(
    snapshot: ContestSnapshot,
) -> tuple[list[ParticipationInput], list[DrawInput], list[RejectedRecord]]:
    rejected: list[RejectedRecord] = []

    participations: list[ParticipationInput] = []
    for participation in snapshot.participations:
        if participation.status != "active":
            continue
        try:
            participations.append(
                validate_participation(participation, snapshot.rules.numbers)
            )
        except InputValidationError as exc:
            logger.warning(
                "Skipping participation %r of contest %r: %s",
                participation.id,
                snapshot.contest_id,
                exc.message,
            )
            rejected.append(RejectedRecord("participation", participation.id, exc.message))

    draws: list[DrawInput] = []
    for draw in snapshot.draws:
        try:
            draws.append(validate_draw(draw, snapshot.rules.numbers))
        except InputValidationError as exc:
            logger.warning(
                "Skipping draw %r of contest %r: %s",
                draw.id,
                snapshot.contest_id,
                exc.message,
            )
            rejected.append(RejectedRecord("draw", draw.id, exc.message))

    return participations, sort_draws(draws), rejected


def reprocess(snapshot: ContestSnapshot) -> ReprocessPlan:
    """Compute the complete desired state of a contest.

    The draws are replayed in chronological order and every draw is
    evaluated with only the draws up to it, producing a payout history
    rather than a single final snapshot. The function is pure: the same
    snapshot always yields an equal plan.

    Malformed records are skipped and reported in ``rejected``. A failure
    while evaluating one draw is reported in ``failures`` and does not stop
    the other draws.
    """

    participations, draws, rejected = _valid_inputs(snapshot)

    if not draws:
        logger.info(
            "Contest %r has no draws; resetting %d score(s)",
            snapshot.contest_id,
            len(participations),
        )
        return ReprocessPlan(
            contest_id=snapshot.contest_id,
            participation_scores={p.id: 0 for p in participations},
            rejected=tuple(rejected),
        )

    evaluations: list[DrawEvaluation] = []
    failures: list[DrawProcessingError] = []
    for draw in draws:
        try:
            evaluations.append(
                evaluate_draw(
                    participations,
                    draws,
                    draw.id,
                    snapshot.total_revenue,
                    snapshot.rules,
                )
            )
        except (ValueError, ArithmeticError) as exc:
            logger.warning(
                "Evaluation of draw %r in contest %r failed: %s",
                draw.id,
                snapshot.contest_id,
                exc,
            )
            failures.append(DrawProcessingError(draw.id, str(exc)))

    final_scores = score_contest(participations, draws)
    participation_scores = {p.id: 0 for p in participations}
    participation_scores.update(
        {entry.participation_id: entry.score for entry in final_scores.entries}
    )

    return ReprocessPlan(
        contest_id=snapshot.contest_id,
        participation_scores=participation_scores,
        evaluations=tuple(evaluations),
        failures=tuple(failures),
        rejected=tuple(rejected),
        final_scores=final_scores,
    )


__all__ = [
    "ContestRules",
    "ContestSnapshot",
    "DrawEvaluation",
    "RejectedRecord",
    "ReprocessPlan",
    "evaluate_draw",
    "reprocess",
]
