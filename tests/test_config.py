import pytest

from matchengine.config import HardFiltersConfig, Settings
from matchengine.utils.errors import ValidationError


def test_defaults():
    settings = Settings()
    assert settings.RECOMMENDATION_DEFAULT_LIMIT == 10
    assert settings.HISTORY_DEFAULT_LIMIT == 20
    assert settings.MAX_PAGE_LIMIT == 50
    assert settings.ACTION_MAX_RETRIES == 3


def test_rating_config_property():
    settings = Settings(RATING_INITIAL=1400, RATING_K_FACTOR=20, RATING_MIN=900, RATING_MAX=2500)
    config = settings.rating_config
    assert (config.initial_rating, config.k_factor, config.min_rating, config.max_rating) == (1400, 20, 900, 2500)


def test_invalid_rating_config_rejected():
    with pytest.raises(ValidationError):
        Settings(RATING_K_FACTOR=0).rating_config


def test_hard_filters_property():
    settings = Settings(HARD_FILTERS_ENABLED=False, HARD_FILTERS_AGE=False)
    assert settings.hard_filters == HardFiltersConfig(enabled=False, apply_age_filter=False)


def test_match_weights_property():
    weights = Settings(MATCH_WEIGHT_COMMUNITY=0.5).match_weights
    assert weights.community == 0.5
    assert weights.recency == 0.1


@pytest.mark.parametrize("value, expected", [("true", True), ("0", False), ("yes", True), (True, True)])
def test_debug_parsing(value, expected):
    assert Settings(DEBUG=value).DEBUG is expected


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("MAX_PAGE_LIMIT", "25")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
    settings = Settings()
    assert settings.MAX_PAGE_LIMIT == 25
    assert settings.REDIS_URL == "redis://cache:6379/1"
