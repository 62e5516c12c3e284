"""Intersection helpers comparing a participant's picks with a draw."""

from __future__ import annotations

from typing import Iterable


def count_hits(draw_numbers: Iterable[int], participant_numbers: Iterable[int]) -> int:
    """Return how many of ``participant_numbers`` appear in ``draw_numbers``.

    Both inputs are treated as sets, so the result is symmetric in its
    arguments. No range validation is performed.
    """

    return len(set(draw_numbers) & set(participant_numbers))


def hit_numbers(
    draw_numbers: Iterable[int], participant_numbers: Iterable[int]
) -> tuple[int, ...]:
    """Return the numbers shared by both inputs, sorted ascending."""

    return tuple(sorted(set(draw_numbers) & set(participant_numbers)))


__all__ = ["count_hits", "hit_numbers"]
