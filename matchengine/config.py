"""Configuration management for the match engine."""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from matchengine.models.rating import RatingConfig


class HardFiltersConfig(BaseModel):
    """Per-filter switches for candidate generation."""

    enabled: bool = True
    apply_age_filter: bool = True
    apply_height_filter: bool = True
    apply_marital_status_filter: bool = True
    apply_physically_challenged_filter: bool = True
    apply_education_filter: bool = True


class MatchWeights(BaseModel):
    """Relative axis weights.

    Reserved: the compatibility scorer uses a fixed point table and does not
    read these yet.
    """

    community: float = 0.4
    profession: float = 0.3
    location: float = 0.2
    recency: float = 0.1


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./matchengine.db"

    # Redis Configuration
    REDIS_URL: str | None = None

    # Sentry Configuration
    SENTRY_DSN: str | None = None

    # Application Configuration
    APP_NAME: str = "MatchEngine"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = Field(default=False)

    # Rating Configuration
    RATING_INITIAL: int = 1500
    RATING_K_FACTOR: int = 32
    RATING_MIN: int = 1000
    RATING_MAX: int = 3000

    # Hard Filter Configuration
    HARD_FILTERS_ENABLED: bool = True
    HARD_FILTERS_AGE: bool = True
    HARD_FILTERS_HEIGHT: bool = True
    HARD_FILTERS_MARITAL_STATUS: bool = True
    HARD_FILTERS_PHYSICALLY_CHALLENGED: bool = True
    HARD_FILTERS_EDUCATION: bool = True

    # Matching Weights (reserved)
    MATCH_WEIGHT_COMMUNITY: float = 0.4
    MATCH_WEIGHT_PROFESSION: float = 0.3
    MATCH_WEIGHT_LOCATION: float = 0.2
    MATCH_WEIGHT_RECENCY: float = 0.1

    # Pagination
    RECOMMENDATION_DEFAULT_LIMIT: int = 10
    HISTORY_DEFAULT_LIMIT: int = 20
    MAX_PAGE_LIMIT: int = 50

    # Caching and retries
    RECOMMENDATION_CACHE_TTL: int = 60
    ACTION_MAX_RETRIES: int = 3
    ACTION_RETRY_BACKOFF: float = 0.05

    @field_validator("DEBUG", mode="before")
    @classmethod
    def set_debug(cls, v: Any, info: ValidationInfo) -> bool:
        """Enable debug mode if ENVIRONMENT is development."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip():
            return v.strip().lower() in {"1", "true", "yes", "on"}
        return bool(info.data.get("ENVIRONMENT", "").lower() == "development")

    @property
    def rating_config(self) -> "RatingConfig":
        """Rating parameters as a validated RatingConfig."""
        from matchengine.models.rating import RatingConfig

        return RatingConfig(
            initial_rating=self.RATING_INITIAL,
            k_factor=self.RATING_K_FACTOR,
            min_rating=self.RATING_MIN,
            max_rating=self.RATING_MAX,
        )

    @property
    def hard_filters(self) -> HardFiltersConfig:
        return HardFiltersConfig(
            enabled=self.HARD_FILTERS_ENABLED,
            apply_age_filter=self.HARD_FILTERS_AGE,
            apply_height_filter=self.HARD_FILTERS_HEIGHT,
            apply_marital_status_filter=self.HARD_FILTERS_MARITAL_STATUS,
            apply_physically_challenged_filter=self.HARD_FILTERS_PHYSICALLY_CHALLENGED,
            apply_education_filter=self.HARD_FILTERS_EDUCATION,
        )

    @property
    def match_weights(self) -> MatchWeights:
        return MatchWeights(
            community=self.MATCH_WEIGHT_COMMUNITY,
            profession=self.MATCH_WEIGHT_PROFESSION,
            location=self.MATCH_WEIGHT_LOCATION,
            recency=self.MATCH_WEIGHT_RECENCY,
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")


# Create a global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the settings instance."""
    return settings
