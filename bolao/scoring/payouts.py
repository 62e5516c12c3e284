"""Revenue split ("rateio") across prize categories."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
import logging
from typing import Any, Mapping, Optional, Sequence, Union

from ..errors import ConfigurationError, InputValidationError
from .categories import WINNING_CATEGORIES, Category
from .scoring import ScoreEntry

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
PERCENT_TOLERANCE = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` to :class:`~decimal.Decimal` without float artifacts."""

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise TypeError("booleans are not numbers here")
    elif isinstance(value, (int, str)):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")
    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Truncate ``amount`` to cents. This is the only rounding step applied."""

    return amount.quantize(CENT, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class PercentConfig:
    """Percentages used to split a contest's revenue.

    All four values are converted to :class:`~decimal.Decimal` and
    validated on construction: each must be non-negative and together they
    must sum to 100 (within 0.01).

    Raises
    ------
    ConfigurationError
        If any value is not numeric, is negative, or the sum is off.
    """

    top_pct: Decimal = Decimal("65")
    second_pct: Decimal = Decimal("10")
    lowest_pct: Decimal = Decimal("7")
    admin_fee_pct: Decimal = Decimal("18")

    def __post_init__(self) -> None:
        for name in ("top_pct", "second_pct", "lowest_pct", "admin_fee_pct"):
            raw = getattr(self, name)
            try:
                value = to_decimal(raw)
            except (TypeError, ValueError, InvalidOperation) as exc:
                raise ConfigurationError(f"{name} is not a number: {raw!r}") from exc
            if value < 0:
                raise ConfigurationError(f"{name} must not be negative, got {value}")
            object.__setattr__(self, name, value)

        total = self.total
        if abs(total - HUNDRED) > PERCENT_TOLERANCE:
            raise ConfigurationError(
                f"Prize and admin fee percentages must sum to 100, got {total}"
            )

    @property
    def total(self) -> Decimal:
        return self.top_pct + self.second_pct + self.lowest_pct + self.admin_fee_pct

    def pct_for(self, category: Category) -> Decimal:
        """Return the prize percentage assigned to ``category``."""
        if category is Category.TOP:
            return self.top_pct
        if category is Category.SECOND:
            return self.second_pct
        if category is Category.LOWEST:
            return self.lowest_pct
        return Decimal("0")

    def as_dict(self) -> dict[str, str]:
        return {
            "top_pct": str(self.top_pct),
            "second_pct": str(self.second_pct),
            "lowest_pct": str(self.lowest_pct),
            "admin_fee_pct": str(self.admin_fee_pct),
        }


@dataclass(frozen=True)
class CategoryPayout:
    """Money assigned to one winning category."""

    category: Category
    score: int
    winners_count: int
    percent: Decimal
    total_amount: Decimal
    amount_per_winner: Decimal

    @property
    def distributed_amount(self) -> Decimal:
        return self.amount_per_winner * self.winners_count

    def to_json(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "score": self.score,
            "winners_count": self.winners_count,
            "percent": str(self.percent),
            "total_amount": str(self.total_amount),
            "amount_per_winner": str(self.amount_per_winner),
        }


@dataclass(frozen=True)
class PayoutRecord:
    """Outcome of one participation for one evaluated draw."""

    participation_id: Any
    user_id: Any
    category: Category
    score: int
    amount_won: Decimal
    ticket_code: Optional[str] = None


@dataclass(frozen=True)
class DistributionResult:
    """Full result of splitting the revenue of one evaluation.

    Attributes
    ----------
    total_revenue : Decimal
        Revenue the split was computed from.
    admin_fee_amount : Decimal
        ``total_revenue * admin_fee_pct / 100`` (not rounded).
    prize_pool_amount : Decimal
        ``total_revenue - admin_fee_amount``.
    per_category : dict[Category, Optional[CategoryPayout]]
        One key per winning category; ``None`` when it has no winners.
    payouts : tuple[PayoutRecord, ...]
        One record per participation, zero amounts included.
    max_score : int
        Highest score among all participations; ``0`` means no winners.
    config : PercentConfig
        Percentages used.
    """

    total_revenue: Decimal
    admin_fee_amount: Decimal
    prize_pool_amount: Decimal
    per_category: dict[Category, Optional[CategoryPayout]]
    payouts: tuple[PayoutRecord, ...]
    max_score: int
    config: PercentConfig

    @property
    def distributed_amount(self) -> Decimal:
        return sum((record.amount_won for record in self.payouts), ZERO)

    @property
    def unallocated_amount(self) -> Decimal:
        """Prize pool money not paid out (empty tiers plus truncation)."""
        return self.prize_pool_amount - self.distributed_amount

    @property
    def has_winners(self) -> bool:
        return any(payout is not None for payout in self.per_category.values())

    def winners(self) -> list[PayoutRecord]:
        return [record for record in self.payouts if record.category.is_winning]


def distribute(
    category_winners: Mapping[Category, Sequence[ScoreEntry]],
    total_revenue: Number,
    config: PercentConfig,
) -> DistributionResult:
    """Split ``total_revenue`` between the winners of each category.

    The admin fee is taken from the revenue first; each category then
    receives its percentage of the remaining prize pool, split equally
    between its winners and truncated to cents. A category without
    winners pays nothing and its share is not handed to the others.
    Entries under :attr:`Category.NONE` receive explicit zero records.

    Parameters
    ----------
    category_winners : Mapping[Category, Sequence[ScoreEntry]]
        Entries grouped by category, see
        :func:`~bolao.scoring.categories.group_by_category`.
    total_revenue : Number
        Collected revenue; must not be negative.
    config : PercentConfig
        Validated percentage configuration.

    Returns
    -------
    DistributionResult
        Amounts per category and one payout record per entry.

    Raises
    ------
    ConfigurationError
        If ``config`` is not a :class:`PercentConfig`.
    InputValidationError
        If ``total_revenue`` is negative or not a number.
    """

    if not isinstance(config, PercentConfig):
        raise ConfigurationError("config must be a validated PercentConfig")
    try:
        revenue = to_decimal(total_revenue)
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise InputValidationError(f"Invalid total revenue {total_revenue!r}") from exc
    if revenue < 0:
        raise InputValidationError(f"Total revenue must not be negative, got {revenue}")

    admin_fee = revenue * config.admin_fee_pct / HUNDRED
    prize_pool = revenue - admin_fee

    per_category: dict[Category, Optional[CategoryPayout]] = {}
    payouts: list[PayoutRecord] = []
    all_scores: list[int] = []

    for category in WINNING_CATEGORIES:
        winners = list(category_winners.get(category, ()))
        all_scores.extend(entry.score for entry in winners)
        if not winners:
            per_category[category] = None
            continue

        percent = config.pct_for(category)
        category_total = prize_pool * percent / HUNDRED
        per_winner = quantize_money(category_total / len(winners))
        per_category[category] = CategoryPayout(
            category=category,
            score=max(entry.score for entry in winners),
            winners_count=len(winners),
            percent=percent,
            total_amount=category_total,
            amount_per_winner=per_winner,
        )
        payouts.extend(
            PayoutRecord(
                participation_id=entry.participation_id,
                user_id=entry.user_id,
                category=category,
                score=entry.score,
                amount_won=per_winner,
                ticket_code=entry.ticket_code,
            )
            for entry in winners
        )

    for entry in category_winners.get(Category.NONE, ()):
        all_scores.append(entry.score)
        payouts.append(
            PayoutRecord(
                participation_id=entry.participation_id,
                user_id=entry.user_id,
                category=Category.NONE,
                score=entry.score,
                amount_won=ZERO,
                ticket_code=entry.ticket_code,
            )
        )

    result = DistributionResult(
        total_revenue=revenue,
        admin_fee_amount=admin_fee,
        prize_pool_amount=prize_pool,
        per_category=per_category,
        payouts=tuple(payouts),
        max_score=max(all_scores, default=0),
        config=config,
    )
    logger.debug(
        "Distributed %s of %s prize pool across %d winner(s)",
        result.distributed_amount,
        prize_pool,
        len(result.winners()),
    )
    return result


__all__ = [
    "CENT",
    "CategoryPayout",
    "DistributionResult",
    "PayoutRecord",
    "PercentConfig",
    "distribute",
    "quantize_money",
    "to_decimal",
]
