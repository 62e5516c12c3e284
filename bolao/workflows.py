import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import default_percent_config
from .errors import DrawProcessingError, InputValidationError, ReprocessError
from .models import (
    Contest,
    Draw,
    DrawPayout,
    Participation,
    Payment,
    RateioSnapshot,
    User,
)
from .models.utils import generate_ticket_code
from .scoring import (
    WINNING_CATEGORIES,
    Category,
    ContestSnapshot,
    DrawEvaluation,
    PercentConfig,
    RejectedRecord,
    ReprocessPlan,
    reprocess,
)
from .scoring.payouts import ZERO, to_decimal
from .scoring.scoring import as_utc
from .scoring.validation import validate_draw_numbers, validate_participation_numbers

logger = logging.getLogger(__name__)

PAYMENT_STATUSES = ("pending", "paid", "cancelled", "refunded")


@dataclass(frozen=True)
class ReprocessReport:
    """Outcome of :func:`reprocess_contest`.

    Attributes
    ----------
    contest_id : int
        Reprocessed contest.
    plan : ReprocessPlan
        Desired state computed by the pure engine.
    draws_written : tuple[int, ...]
        Draws whose payout rows were replaced successfully.
    failures : tuple[DrawProcessingError, ...]
        Draws whose computation or payout write failed.
    snapshot_id : Optional[int]
        Rateio snapshot appended by the pass, if any.
    """

    contest_id: int
    plan: ReprocessPlan
    draws_written: tuple[int, ...] = ()
    failures: tuple[DrawProcessingError, ...] = ()
    snapshot_id: Optional[int] = None

    @property
    def rejected(self) -> tuple[RejectedRecord, ...]:
        return self.plan.rejected

    @property
    def ok(self) -> bool:
        return not self.failures


def register_participation(
    session: Session,
    contest: Contest,
    user: User,
    numbers: Iterable[int],
    *,
    created_at: Optional[datetime] = None,
) -> Participation:
    """Create a ``pending`` participation with a fresh ticket code.

    The participation becomes ``active`` (and starts being scored) once a
    payment is recorded for it with :func:`record_payment`.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session used for persistence.
    contest : Contest
        Persisted contest that must still accept participations.
    user : User
        Persisted owner of the participation.
    numbers : Iterable[int]
        Chosen numbers; stored sorted.
    created_at : Optional[datetime], default: None
        Creation timestamp. Defaults to now.

    Returns
    -------
    Participation
        Newly persisted participation.

    Raises
    ------
    ValueError
        If the contest or user is not persisted, or the contest no longer
        accepts participations.
    InputValidationError
        If ``numbers`` do not satisfy the contest rules.
    """

    if contest.id is None:
        raise ValueError("Contest must be persisted before registering participations")
    if user.id is None:
        raise ValueError("User must be persisted before registering participations")

    created = created_at or datetime.now(timezone.utc)
    if not contest.accepts_participations(session, now=created):
        raise ValueError(
            f"Contest {contest.id} is not accepting participations "
            f"(status={contest.status!r})"
        )

    checked = validate_participation_numbers(numbers, contest.number_rules())

    participation = Participation(
        contest_id=contest.id,
        user_id=user.id,
        numbers=list(checked),
        status="pending",
        ticket_code=generate_ticket_code(session),
        created_at=created,
    )
    session.add(participation)
    session.flush()
    logger.info(
        "Registered participation %s (%s) in contest %s",
        participation.id,
        participation.ticket_code,
        contest.id,
    )
    return participation


def record_payment(
    session: Session,
    participation: Participation,
    amount: Any,
    *,
    status: str = "paid",
    payment_method: Optional[str] = None,
) -> Payment:
    """Attach a payment to ``participation``.

    A ``paid`` payment activates a pending participation. When the contest
    already has draws, it is reprocessed because its revenue changed.

    Raises
    ------
    ValueError
        If the participation is not persisted or ``status`` is unknown.
    InputValidationError
        If ``amount`` is not a non-negative number.
    """

    if participation.id is None:
        raise ValueError("Participation must be persisted before recording payments")
    if status not in PAYMENT_STATUSES:
        raise ValueError(f"Unknown payment status {status!r}")
    try:
        value = to_decimal(amount)
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise InputValidationError(
            f"Invalid payment amount {amount!r}", record_id=participation.id
        ) from exc
    if value < 0:
        raise InputValidationError(
            f"Payment amount must not be negative, got {value}",
            record_id=participation.id,
        )

    payment = Payment(
        participation_id=participation.id,
        amount=value,
        status=status,
        payment_method=payment_method,
    )
    if status == "paid":
        payment.paid_at = datetime.now(timezone.utc)
        if participation.status == "pending":
            participation.status = "active"
    session.add(payment)
    session.flush()

    contest = session.get(Contest, participation.contest_id)
    if contest is not None and contest.has_draws(session):
        reprocess_contest(session, contest)
    return payment


def record_draw(
    session: Session,
    contest: Contest,
    numbers: Iterable[int],
    *,
    draw_date: datetime,
    numbers_count: Optional[int] = None,
    code: Optional[str] = None,
    defaults: Optional[PercentConfig] = None,
) -> Draw:
    """Persist a new draw for ``contest`` and reprocess the contest.

    An ``active`` contest is marked ``finished`` by its first draw, which
    also closes it for new participations.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session used for persistence.
    contest : Contest
        Persisted contest the draw belongs to.
    numbers : Iterable[int]
        Drawn numbers; stored sorted.
    draw_date : datetime
        When the draw happened.
    numbers_count : Optional[int], default: None
        Expected amount of numbers, checked against ``numbers``.
    code : Optional[str], default: None
        External draw reference.
    defaults : Optional[PercentConfig], default: None
        Fallback percentages for NULL contest columns.

    Returns
    -------
    Draw
        Newly persisted draw.

    Raises
    ------
    ValueError
        If the contest is not persisted.
    InputValidationError
        If the numbers do not satisfy the contest rules.
    """

    if contest.id is None:
        raise ValueError("Contest must be persisted before recording draws")

    checked = validate_draw_numbers(
        numbers, contest.number_rules(), numbers_count=numbers_count
    )
    draw = Draw(
        contest_id=contest.id,
        numbers=list(checked),
        draw_date=draw_date,
        numbers_count=numbers_count,
        code=code,
    )
    session.add(draw)
    if contest.status == "active":
        contest.status = "finished"
    session.flush()
    logger.info("Recorded draw %s for contest %s", draw.id, contest.id)

    reprocess_contest(session, contest, defaults=defaults)
    return draw


def update_draw(
    session: Session,
    draw: Draw,
    *,
    numbers: Optional[Iterable[int]] = None,
    draw_date: Optional[datetime] = None,
    numbers_count: Optional[int] = None,
    defaults: Optional[PercentConfig] = None,
) -> Draw:
    """Change a recorded draw and reprocess its contest.

    Raises
    ------
    ValueError
        If the draw is not persisted.
    InputValidationError
        If the new numbers do not satisfy the contest rules.
    """

    if draw.id is None:
        raise ValueError("Draw must be persisted before it can be updated")
    contest = session.get(Contest, draw.contest_id)
    if contest is None:
        raise ReprocessError(f"Contest {draw.contest_id} of draw {draw.id} not found")

    expected = numbers_count if numbers_count is not None else draw.numbers_count
    new_numbers = draw.numbers if numbers is None else numbers
    checked = validate_draw_numbers(
        new_numbers, contest.number_rules(), numbers_count=expected, record_id=draw.id
    )

    draw.numbers = list(checked)
    draw.numbers_count = expected
    if draw_date is not None:
        draw.draw_date = as_utc(draw_date)
    session.flush()
    logger.info("Updated draw %s of contest %s", draw.id, contest.id)

    reprocess_contest(session, contest, defaults=defaults)
    return draw


def delete_draw(
    session: Session,
    draw: Draw,
    *,
    defaults: Optional[PercentConfig] = None,
) -> ReprocessReport:
    """Delete a draw with its payout rows and reprocess its contest.

    When the last draw is removed every score of the contest is reset to 0.
    """

    if draw.id is None:
        raise ValueError("Draw must be persisted before it can be deleted")
    contest = session.get(Contest, draw.contest_id)
    if contest is None:
        raise ReprocessError(f"Contest {draw.contest_id} of draw {draw.id} not found")

    draw_id = draw.id
    session.execute(
        delete(DrawPayout).where(DrawPayout.draw_id == draw_id)
    )
    session.execute(
        update(RateioSnapshot)
        .where(RateioSnapshot.draw_id == draw_id)
        .values(draw_id=None)
    )
    session.expire(draw, ["payouts"])
    session.delete(draw)
    session.flush()
    session.expire(contest, ["draws"])
    logger.info("Deleted draw %s of contest %s", draw_id, contest.id)

    return reprocess_contest(session, contest, defaults=defaults)


def _paid_revenue(session: Session, contest_id: int) -> Decimal:
    stmt = (
        select(Payment.amount)
        .join(Participation, Payment.participation_id == Participation.id)
        .where(
            Participation.contest_id == contest_id,
            Participation.status == "active",
            Payment.status == "paid",
        )
    )
    return sum((to_decimal(amount) for amount in session.scalars(stmt)), ZERO)


def _active_participations(session: Session, contest_id: int) -> list[Participation]:
    stmt = (
        select(Participation)
        .where(
            Participation.contest_id == contest_id,
            Participation.status == "active",
        )
        .order_by(Participation.id.asc())
    )
    return list(session.scalars(stmt))


def _read_inputs(
    session: Session, contest_id: int
) -> tuple[list[Participation], list[Draw], Decimal]:
    try:
        participations = _active_participations(session, contest_id)
        draws = Draw.for_contest(session, contest_id)
        revenue = _paid_revenue(session, contest_id)
    except SQLAlchemyError as exc:
        raise ReprocessError(
            f"Could not read the inputs of contest {contest_id}: {exc}"
        ) from exc
    return participations, draws, revenue


def _build_snapshot(
    contest: Contest,
    participations: Sequence[Participation],
    draws: Sequence[Draw],
    total_revenue: Decimal,
    defaults: Optional[PercentConfig],
) -> ContestSnapshot:
    return ContestSnapshot(
        contest_id=contest.id,
        rules=contest.rules(defaults or default_percent_config()),
        participations=tuple(p.to_input() for p in participations),
        draws=tuple(d.to_input() for d in draws),
        total_revenue=total_revenue,
    )


def load_contest_snapshot(
    session: Session,
    contest: Contest,
    *,
    defaults: Optional[PercentConfig] = None,
) -> ContestSnapshot:
    """Read the inputs of a reprocessing pass for ``contest``.

    The snapshot holds the active participations, the draws in
    chronological order and the paid revenue of the contest.

    Raises
    ------
    ReprocessError
        If the contest is not persisted or the reads fail.
    ConfigurationError
        If the contest's percentages are invalid.
    """

    if contest.id is None:
        raise ReprocessError("Contest must be persisted before it can be reprocessed")
    participations, draws, revenue = _read_inputs(session, contest.id)
    return _build_snapshot(contest, participations, draws, revenue, defaults)


def _replace_draw_payouts(
    session: Session,
    draw_id: int,
    evaluation: Optional[DrawEvaluation],
    processed_at: datetime,
) -> None:
    """Swap the payout rows of one draw inside a SAVEPOINT."""

    with session.begin_nested():
        session.execute(
            delete(DrawPayout).where(DrawPayout.draw_id == draw_id)
        )
        if evaluation is not None:
            session.add_all(
                DrawPayout(
                    draw_id=draw_id,
                    participation_id=record.participation_id,
                    category=record.category.value,
                    score=record.score,
                    amount_won=record.amount_won,
                    processed_at=processed_at,
                )
                for record in evaluation.distribution.payouts
            )
        session.flush()


def _rateio_snapshot(contest_id: int, evaluation: DrawEvaluation) -> RateioSnapshot:
    distribution = evaluation.distribution
    config = distribution.config
    return RateioSnapshot(
        contest_id=contest_id,
        draw_id=evaluation.draw_id,
        total_revenue=distribution.total_revenue,
        admin_fee_amount=distribution.admin_fee_amount,
        prize_pool_amount=distribution.prize_pool_amount,
        first_place_pct=config.top_pct,
        second_place_pct=config.second_pct,
        lowest_place_pct=config.lowest_pct,
        admin_fee_pct=config.admin_fee_pct,
        distribution=[
            payout.to_json()
            for payout in distribution.per_category.values()
            if payout is not None
        ],
        winners=[
            {
                "participation_id": record.participation_id,
                "user_id": record.user_id,
                "ticket_code": record.ticket_code,
                "score": record.score,
                "category": record.category.value,
                "amount": str(record.amount_won),
            }
            for record in distribution.winners()
        ],
    )


def reprocess_contest(
    session: Session,
    contest: Contest,
    *,
    defaults: Optional[PercentConfig] = None,
) -> ReprocessReport:
    """Recompute and store scores and payouts of ``contest``.

    The pure :func:`~bolao.scoring.engine.reprocess` computes the desired
    state; this function writes it:

    * ``current_score`` of every active participation is overwritten.
    * The payout rows of every evaluated draw are deleted and re-inserted
      inside a SAVEPOINT, so reprocessing twice leaves the same rows.
    * Payout rows of draws rejected as malformed are cleared.
    * One :class:`RateioSnapshot` is appended for the last evaluated draw.

    A failure while computing or writing one draw is logged and reported in
    :attr:`ReprocessReport.failures`; the other draws are still written.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session. The caller owns the commit.
    contest : Contest
        Persisted contest to reprocess.
    defaults : Optional[PercentConfig], default: None
        Fallback percentages for NULL contest columns. Read from the
        environment when omitted.

    Returns
    -------
    ReprocessReport
        Plan, written draws, failures and the appended snapshot id.

    Raises
    ------
    ReprocessError
        If the contest inputs cannot be read.
    ConfigurationError
        If the contest's percentages are invalid.
    """

    if contest.id is None:
        raise ReprocessError("Contest must be persisted before it can be reprocessed")

    logger.info("Reprocessing contest %s", contest.id)
    participations, draws, revenue = _read_inputs(session, contest.id)

    plan = reprocess(_build_snapshot(contest, participations, draws, revenue, defaults))

    for participation in participations:
        participation.current_score = plan.participation_scores.get(participation.id, 0)
    session.flush()

    processed_at = datetime.now(timezone.utc)
    failures = list(plan.failures)
    written: list[int] = []

    for evaluation in plan.evaluations:
        try:
            _replace_draw_payouts(session, evaluation.draw_id, evaluation, processed_at)
        except SQLAlchemyError as exc:
            logger.error(
                "Writing payouts of draw %s in contest %s failed: %s",
                evaluation.draw_id,
                contest.id,
                exc,
            )
            failures.append(DrawProcessingError(evaluation.draw_id, str(exc)))
            continue
        written.append(evaluation.draw_id)

    for draw_id in plan.rejected_draw_ids:
        try:
            _replace_draw_payouts(session, draw_id, None, processed_at)
        except SQLAlchemyError as exc:
            logger.error("Clearing payouts of rejected draw %s failed: %s", draw_id, exc)
            failures.append(DrawProcessingError(draw_id, str(exc)))

    snapshot_id = None
    latest = plan.latest_evaluation
    if latest is not None:
        snapshot = _rateio_snapshot(contest.id, latest)
        session.add(snapshot)
        session.flush()
        snapshot_id = snapshot.id

    # payout rows were swapped with bulk statements; reload stale collections
    for obj in (*draws, *participations):
        session.expire(obj, ["payouts"])

    logger.info(
        "Contest %s reprocessed: %d draw(s) written, %d failure(s), %d rejected record(s)",
        contest.id,
        len(written),
        len(failures),
        len(plan.rejected),
    )
    return ReprocessReport(
        contest_id=contest.id,
        plan=plan,
        draws_written=tuple(written),
        failures=tuple(failures),
        snapshot_id=snapshot_id,
    )


def select_draw_payouts(
    session: Session,
    draw: Draw,
    *,
    winners_only: bool = False,
    limit: Optional[int] = None,
) -> list[DrawPayout]:
    """Return the stored payout rows of ``draw``, highest amount first.

    Ties are ordered by score (highest first) and then participation id.

    Raises
    ------
    ValueError
        If the draw is not persisted or ``limit`` is not positive.
    """

    if draw.id is None:
        raise ValueError("Draw must be persisted before selecting payouts")
    if limit is not None and limit <= 0:
        raise ValueError("limit must be a positive integer")

    stmt = select(DrawPayout).where(DrawPayout.draw_id == draw.id)
    if winners_only:
        stmt = stmt.where(DrawPayout.category != Category.NONE.value)
    stmt = stmt.order_by(
        DrawPayout.amount_won.desc(),
        DrawPayout.score.desc(),
        DrawPayout.participation_id.asc(),
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt).all())


def summarize_draw_payouts(session: Session, draw: Draw) -> dict[str, Any]:
    """Summarize the stored payout rows of ``draw`` per category.

    Returns
    -------
    dict[str, Any]
        ``{"draw_id", "evaluated_count", "total_distributed", "categories"}``
        where ``categories`` maps ``TOP``/``SECOND``/``LOWEST`` to
        ``{"score", "winners_count", "amount_per_winner", "total_amount"}``
        or ``None`` for a category without winners. Amounts are
        :class:`~decimal.Decimal`.
    """

    rows = select_draw_payouts(session, draw)
    categories: dict[str, Optional[dict[str, Any]]] = {}
    for category in WINNING_CATEGORIES:
        winners = [row for row in rows if row.category == category.value]
        if not winners:
            categories[category.value] = None
            continue
        amounts = [to_decimal(row.amount_won) for row in winners]
        categories[category.value] = {
            "score": max(row.score for row in winners),
            "winners_count": len(winners),
            "amount_per_winner": max(amounts),
            "total_amount": sum(amounts, ZERO),
        }

    return {
        "draw_id": draw.id,
        "evaluated_count": len(rows),
        "total_distributed": sum((to_decimal(row.amount_won) for row in rows), ZERO),
        "categories": categories,
    }


__all__ = [
    "ReprocessReport",
    "delete_draw",
    "load_contest_snapshot",
    "record_draw",
    "record_payment",
    "register_participation",
    "reprocess_contest",
    "select_draw_payouts",
    "summarize_draw_payouts",
]
