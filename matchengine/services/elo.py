"""Elo rating engine for profile desirability."""

import math
from typing import Optional

from matchengine.models.rating import DEFAULT_RATING_CONFIG, RatingConfig

# K-factor tiers: (rating threshold, match count threshold, k)
K_FACTOR_TIERS = (
    (2400, 100, 16),
    (2000, 50, 24),
)
DEFAULT_K_FACTOR = 32


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def expected_outcome(rating_a: float, rating_b: float) -> float:
    """
    Calculate the probability that A "wins" against B.

    Args:
        rating_a (float): Rating of the first profile.
        rating_b (float): Rating of the second profile.

    Returns:
        float: Value in (0, 1); expected_outcome(a, b) + expected_outcome(b, a) == 1.
    """
    return 1.0 / (1.0 + math.pow(10.0, (rating_b - rating_a) / 400.0))


def dynamic_k_factor(rating: int, match_count: int) -> int:
    """
    Pick the K-factor for a profile.

    Established or highly rated profiles move more slowly.

    Args:
        rating (int): Current rating.
        match_count (int): Number of rated interactions so far.

    Returns:
        int: 16, 24 or 32.
    """
    for rating_threshold, count_threshold, k_factor in K_FACTOR_TIERS:
        if rating > rating_threshold or match_count > count_threshold:
            return k_factor
    return DEFAULT_K_FACTOR


def clamp_rating(value: int, config: Optional[RatingConfig] = None) -> int:
    """Clamp a rating into the configured bounds."""
    config = config or DEFAULT_RATING_CONFIG
    return max(config.min_rating, min(config.max_rating, value))


def update_rating(
    current_rating: int,
    expected: float,
    actual: float,
    config: Optional[RatingConfig] = None,
) -> int:
    """
    Apply one Elo update.

    Args:
        current_rating (int): Rating before the interaction.
        expected (float): Expected outcome for this profile.
        actual (float): Actual outcome (1.0 win, 0.0 loss).
        config (Optional[RatingConfig]): Rating parameters. None uses the
            default configuration.

    Returns:
        int: The new rating, clamped to [min_rating, max_rating].
    """
    if config is None or config.k_factor <= 0:
        config = DEFAULT_RATING_CONFIG

    delta = round_half_away_from_zero(config.k_factor * (actual - expected))
    return clamp_rating(current_rating + delta, config)
