"""Pure scoring and payout distribution for number pool contests."""

from .categories import WINNING_CATEGORIES, Category, categorize, group_by_category
from .engine import (
    ContestRules,
    ContestSnapshot,
    DrawEvaluation,
    RejectedRecord,
    ReprocessPlan,
    evaluate_draw,
    reprocess,
)
from .matching import count_hits, hit_numbers
from .payouts import (
    CategoryPayout,
    DistributionResult,
    PayoutRecord,
    PercentConfig,
    distribute,
)
from .ranking import RankedEntry, RankingSummary, rank_entries, summarize_ranking
from .scoring import (
    ContestScores,
    DrawInput,
    ParticipationInput,
    ScoreEntry,
    ScoreResult,
    score,
    score_contest,
    valid_draws_for,
)
from .validation import NumberRules

__all__ = [
    "Category",
    "CategoryPayout",
    "ContestRules",
    "ContestScores",
    "ContestSnapshot",
    "DistributionResult",
    "DrawEvaluation",
    "DrawInput",
    "NumberRules",
    "ParticipationInput",
    "PayoutRecord",
    "PercentConfig",
    "RankedEntry",
    "RankingSummary",
    "RejectedRecord",
    "ReprocessPlan",
    "ScoreEntry",
    "ScoreResult",
    "WINNING_CATEGORIES",
    "categorize",
    "count_hits",
    "distribute",
    "evaluate_draw",
    "group_by_category",
    "hit_numbers",
    "rank_entries",
    "reprocess",
    "score",
    "score_contest",
    "summarize_ranking",
    "valid_draws_for",
]
