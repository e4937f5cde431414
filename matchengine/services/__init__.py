"""Services package for the match engine."""

from matchengine.services.candidate_filter import filter_candidates, passes_hard_filters
from matchengine.services.elo import clamp_rating, dynamic_k_factor, expected_outcome, update_rating
from matchengine.services.matchmaking_service import MatchmakingService
from matchengine.services.rating_service import parse_action, process_match_action
from matchengine.services.scoring import calculate_match_score, rank_candidates

__all__ = [
    "MatchmakingService",
    "calculate_match_score",
    "clamp_rating",
    "dynamic_k_factor",
    "expected_outcome",
    "filter_candidates",
    "parse_action",
    "passes_hard_filters",
    "process_match_action",
    "rank_candidates",
    "update_rating",
]
