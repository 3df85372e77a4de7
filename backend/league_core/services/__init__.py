"""League services: results, ratings, best-N and standings."""

from .validation import validate_set_scores
from .points import calculate_match_points
from .results import materialize_match_results
from .dmr import DMRRatingService, adjust_for_inactivity, rate_match, reverse_match_ratings
from .best_n import apply_best_n, select_best_n
from .standings import recalculate_all_standings, recalculate_division_standings
from .match_events import on_match_completed, on_match_voided

__all__ = [
    "validate_set_scores",
    "calculate_match_points",
    "materialize_match_results",
    "DMRRatingService",
    "adjust_for_inactivity",
    "rate_match",
    "reverse_match_ratings",
    "apply_best_n",
    "select_best_n",
    "recalculate_all_standings",
    "recalculate_division_standings",
    "on_match_completed",
    "on_match_voided",
]
