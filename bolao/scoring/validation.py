"""Structural checks for participations and draws before they are scored."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..errors import InputValidationError
from .scoring import DrawInput, ParticipationInput


@dataclass(frozen=True)
class NumberRules:
    """Numeric rules of a contest."""

    min_number: int
    max_number: int
    numbers_per_participation: int

    def __post_init__(self) -> None:
        if self.min_number < 1:
            raise InputValidationError("min_number must be a positive integer")
        if self.max_number < self.min_number:
            raise InputValidationError("max_number must not be below min_number")
        span = self.max_number - self.min_number + 1
        if not 0 < self.numbers_per_participation <= span:
            raise InputValidationError(
                "numbers_per_participation must fit inside the number range"
            )


def _check_numbers(
    numbers: Iterable[Any],
    rules: NumberRules,
    *,
    what: str,
    record_id: Any,
) -> tuple[int, ...]:
    values = list(numbers)
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InputValidationError(
                f"{what} numbers must be integers, got {value!r}", record_id=record_id
            )
        if not rules.min_number <= value <= rules.max_number:
            raise InputValidationError(
                f"{what} number {value} is outside "
                f"[{rules.min_number}, {rules.max_number}]",
                record_id=record_id,
            )
    if len(set(values)) != len(values):
        raise InputValidationError(f"{what} numbers must be unique", record_id=record_id)
    return tuple(sorted(values))


def validate_participation_numbers(
    numbers: Iterable[Any], rules: NumberRules, *, record_id: Optional[Any] = None
) -> tuple[int, ...]:
    """Return ``numbers`` sorted after checking them against ``rules``.

    Raises
    ------
    InputValidationError
        If a number is not an integer, is out of range, is repeated, or the
        count differs from ``rules.numbers_per_participation``.
    """

    checked = _check_numbers(numbers, rules, what="Participation", record_id=record_id)
    if len(checked) != rules.numbers_per_participation:
        raise InputValidationError(
            f"Participation must pick exactly {rules.numbers_per_participation} "
            f"numbers, got {len(checked)}",
            record_id=record_id,
        )
    return checked


def validate_draw_numbers(
    numbers: Iterable[Any],
    rules: NumberRules,
    *,
    numbers_count: Optional[int] = None,
    record_id: Optional[Any] = None,
) -> tuple[int, ...]:
    """Return the draw ``numbers`` sorted after checking them against ``rules``.

    Raises
    ------
    InputValidationError
        If the draw has no numbers, a number is invalid or repeated, or the
        count differs from an explicit ``numbers_count``.
    """

    checked = _check_numbers(numbers, rules, what="Draw", record_id=record_id)
    if not checked:
        raise InputValidationError("Draw must have at least one number", record_id=record_id)
    if numbers_count is not None and len(checked) != numbers_count:
        raise InputValidationError(
            f"Draw is configured for {numbers_count} numbers, got {len(checked)}",
            record_id=record_id,
        )
    return checked


def validate_participation(
    participation: ParticipationInput, rules: NumberRules
) -> ParticipationInput:
    """Check a participation; returns it unchanged when valid."""

    validate_participation_numbers(
        participation.numbers, rules, record_id=participation.id
    )
    return participation


def validate_draw(draw: DrawInput, rules: NumberRules) -> DrawInput:
    """Check a draw; returns it unchanged when valid."""

    validate_draw_numbers(
        draw.numbers, rules, numbers_count=draw.numbers_count, record_id=draw.id
    )
    return draw


__all__ = [
    "NumberRules",
    "validate_draw",
    "validate_draw_numbers",
    "validate_participation",
    "validate_participation_numbers",
]
