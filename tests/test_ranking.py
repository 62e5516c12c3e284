from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bolao.scoring import (
    Category,
    ContestScores,
    PercentConfig,
    ScoreEntry,
    categorize,
    distribute,
    group_by_category,
    rank_entries,
    summarize_ranking,
)

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)


def _entry(pid: int, score: int, minutes: int = 0) -> ScoreEntry:
    return ScoreEntry(
        participation_id=pid,
        score=score,
        created_at=T0 + timedelta(minutes=minutes),
    )


class RankEntriesTests(unittest.TestCase):
    def test_competition_positions(self) -> None:
        entries = [_entry(1, 3), _entry(2, 2), _entry(3, 2), _entry(4, 1), _entry(5, 0)]
        ranked = rank_entries(entries, categorize(entries, 6))
        self.assertEqual([r.position for r in ranked], [1, 2, 2, 4, 5])

    def test_ties_ordered_by_creation_then_id(self) -> None:
        entries = [_entry(9, 4, minutes=5), _entry(7, 4, minutes=1), _entry(3, 4, minutes=1)]
        ranked = rank_entries(entries, {})
        self.assertEqual([r.participation_id for r in ranked], [3, 7, 9])
        self.assertEqual({r.position for r in ranked}, {1})

    def test_limit_keeps_ties_at_cutoff(self) -> None:
        entries = [_entry(1, 5), _entry(2, 4), _entry(3, 4), _entry(4, 4), _entry(5, 1)]
        ranked = rank_entries(entries, {}, limit=2)
        self.assertEqual([r.participation_id for r in ranked], [1, 2, 3, 4])

    def test_limit_zero_returns_nothing(self) -> None:
        self.assertEqual(rank_entries([_entry(1, 2)], {}, limit=0), [])

    def test_negative_limit_raises(self) -> None:
        with self.assertRaises(ValueError):
            rank_entries([], {}, limit=-1)

    def test_prize_amounts_and_winner_flag(self) -> None:
        entries = [_entry(1, 6), _entry(2, 5), _entry(3, 0)]
        categories = categorize(entries, 6)
        distribution = distribute(
            group_by_category(entries, categories), Decimal("1000"), PercentConfig()
        )
        ranked = rank_entries(entries, categories, distribution)
        self.assertEqual(
            [(r.category, r.prize_amount, r.is_winner) for r in ranked],
            [
                (Category.TOP, Decimal("533.00"), True),
                (Category.SECOND, Decimal("82.00"), True),
                (Category.NONE, Decimal("0.00"), False),
            ],
        )

    def test_missing_category_defaults_to_none(self) -> None:
        ranked = rank_entries([_entry(1, 3)], {})
        self.assertEqual(ranked[0].category, Category.NONE)
        self.assertEqual(ranked[0].prize_amount, Decimal("0"))


class SummarizeRankingTests(unittest.TestCase):
    def test_counts_per_category(self) -> None:
        entries = (_entry(1, 6), _entry(2, 5), _entry(3, 2), _entry(4, 2), _entry(5, 0))
        scores = ContestScores(entries=entries, excluded_ids=(9,))
        summary = summarize_ranking(scores, categorize(entries, 6))
        self.assertEqual(summary.top_winners_count, 1)
        self.assertEqual(summary.second_winners_count, 1)
        self.assertEqual(summary.lowest_winners_count, 2)
        self.assertEqual(summary.max_score, 6)
        self.assertEqual(summary.lowest_winning_score, 2)
        self.assertEqual(summary.excluded_count, 1)
        self.assertTrue(summary.has_any_winner)

    def test_no_winners(self) -> None:
        entries = (_entry(1, 0),)
        summary = summarize_ranking(ContestScores(entries=entries), categorize(entries, 6))
        self.assertFalse(summary.has_any_winner)
        self.assertIsNone(summary.lowest_winning_score)
        self.assertEqual(summary.max_score, 0)


if __name__ == "__main__":
    unittest.main()
