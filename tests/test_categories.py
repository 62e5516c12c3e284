from __future__ import annotations

import unittest

from bolao.errors import InputValidationError
from bolao.scoring import Category, ScoreEntry, categorize, group_by_category
from bolao.scoring.categories import lowest_winning_score


def _entries(*scores: int, pick_size=None) -> list[ScoreEntry]:
    return [
        ScoreEntry(participation_id=index, score=value, pick_size=pick_size)
        for index, value in enumerate(scores)
    ]


class CategorizeTests(unittest.TestCase):
    def test_top_second_lowest_none(self) -> None:
        entries = _entries(6, 5, 3, 3, 0)
        categories = categorize(entries, 6)
        self.assertEqual(
            [categories[e.participation_id] for e in entries],
            [
                Category.TOP,
                Category.SECOND,
                Category.LOWEST,
                Category.LOWEST,
                Category.NONE,
            ],
        )

    def test_all_zero_scores_are_none(self) -> None:
        categories = categorize(_entries(0, 0, 0), 6)
        self.assertTrue(all(c is Category.NONE for c in categories.values()))

    def test_empty_top_is_not_filled_by_highest_score(self) -> None:
        categories = categorize(_entries(4, 4, 2), 6)
        self.assertEqual(categories[0], Category.NONE)
        self.assertEqual(categories[1], Category.NONE)
        self.assertNotIn(Category.TOP, categories.values())
        self.assertNotIn(Category.SECOND, categories.values())
        self.assertEqual(categories[2], Category.LOWEST)

    def test_two_participants_tied_at_three_share_lowest(self) -> None:
        categories = categorize(_entries(3, 3), 6)
        self.assertEqual(list(categories.values()), [Category.LOWEST, Category.LOWEST])

    def test_lowest_is_minimum_positive_of_remaining(self) -> None:
        categories = categorize(_entries(6, 4, 2, 1, 0), 6)
        self.assertEqual(categories[3], Category.LOWEST)
        self.assertEqual(categories[1], Category.NONE)
        self.assertEqual(categories[2], Category.NONE)

    def test_single_pick_contest_has_no_second_tier(self) -> None:
        categories = categorize(_entries(1, 0), 1)
        self.assertEqual(categories[0], Category.TOP)
        self.assertEqual(categories[1], Category.NONE)

    def test_entry_pick_size_overrides_contest_default(self) -> None:
        entries = _entries(3, 2, pick_size=3)
        categories = categorize(entries, 6)
        self.assertEqual(categories[0], Category.TOP)
        self.assertEqual(categories[1], Category.SECOND)

    def test_categories_partition_entries(self) -> None:
        entries = _entries(6, 6, 5, 4, 4, 1, 0, 0)
        categories = categorize(entries, 6)
        grouped = group_by_category(entries, categories)
        ids = [e.participation_id for bucket in grouped.values() for e in bucket]
        self.assertEqual(sorted(ids), [e.participation_id for e in entries])
        self.assertEqual(len(ids), len(set(ids)))

    def test_empty_entries(self) -> None:
        self.assertEqual(categorize([], 6), {})

    def test_invalid_exact_match_size(self) -> None:
        with self.assertRaises(InputValidationError):
            categorize(_entries(1), 0)

    def test_duplicate_participation_raises(self) -> None:
        entries = [ScoreEntry(participation_id=1, score=2)] * 2
        with self.assertRaises(InputValidationError) as ctx:
            categorize(entries, 6)
        self.assertEqual(ctx.exception.record_id, 1)


class GroupByCategoryTests(unittest.TestCase):
    def test_every_category_key_present(self) -> None:
        grouped = group_by_category([], {})
        self.assertEqual(set(grouped), set(Category))

    def test_lowest_winning_score(self) -> None:
        entries = _entries(6, 2, 2, 0)
        categories = categorize(entries, 6)
        self.assertEqual(lowest_winning_score(entries, categories), 2)
        self.assertIsNone(lowest_winning_score(_entries(0), {0: Category.NONE}))


if __name__ == "__main__":
    unittest.main()
