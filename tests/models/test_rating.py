"""Tests for rating models."""

import pytest

from matchengine.models.rating import DEFAULT_RATING_CONFIG, Rating, RatingConfig
from matchengine.utils.errors import ValidationError


class TestRatingConfig:
    """Tests for RatingConfig."""

    def test_defaults(self):
        assert DEFAULT_RATING_CONFIG.initial_rating == 1500
        assert DEFAULT_RATING_CONFIG.k_factor == 32
        assert DEFAULT_RATING_CONFIG.min_rating == 1000
        assert DEFAULT_RATING_CONFIG.max_rating == 3000

    @pytest.mark.parametrize("k_factor", [0, -8])
    def test_non_positive_k_factor_rejected(self, k_factor):
        with pytest.raises(ValidationError):
            RatingConfig(k_factor=k_factor)

    def test_negative_min_rating_rejected(self):
        with pytest.raises(ValidationError):
            RatingConfig(min_rating=-1, initial_rating=0)

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            RatingConfig(min_rating=2000, max_rating=1000)
        assert "min_rating" in exc_info.value.details

    def test_initial_outside_bounds_rejected(self):
        with pytest.raises(ValidationError):
            RatingConfig(initial_rating=900)

    def test_with_k_factor_returns_copy(self):
        config = RatingConfig(initial_rating=1200, min_rating=100, max_rating=2000)
        changed = config.with_k_factor(16)
        assert changed.k_factor == 16
        assert changed.initial_rating == 1200
        assert config.k_factor == 32


class TestRating:
    """Tests for Rating."""

    def test_initial_uses_config(self):
        rating = Rating.initial("p-1", RatingConfig(initial_rating=1200))
        assert rating.rating == 1200
        assert rating.match_count == 0

    def test_negative_match_count_rejected(self):
        with pytest.raises(Exception):
            Rating(profile_id="p-1", match_count=-1)
