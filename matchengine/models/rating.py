"""Rating models for the Elo-style desirability score."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from matchengine.utils.errors import ValidationError


class RatingConfig(BaseModel):
    """
    Rating configuration.

    Parameters of the Elo update: the starting rating for new profiles, the
    default K-factor and the bounds every stored rating is clamped to.
    """

    initial_rating: int = 1500
    k_factor: int = 32
    min_rating: int = 1000
    max_rating: int = 3000

    @model_validator(mode="after")
    def validate_bounds(self) -> "RatingConfig":
        """
        Validate the configuration.

        Raises:
            ValidationError: If the K-factor is not positive, a bound is
                negative, or the bounds are inverted around the initial rating.
        """
        if self.k_factor <= 0:
            raise ValidationError("k_factor must be positive", details={"k_factor": self.k_factor})
        if self.min_rating < 0:
            raise ValidationError("min_rating must not be negative", details={"min_rating": self.min_rating})
        if not self.min_rating <= self.initial_rating <= self.max_rating:
            raise ValidationError(
                "Rating bounds must satisfy min_rating <= initial_rating <= max_rating",
                details={
                    "min_rating": self.min_rating,
                    "initial_rating": self.initial_rating,
                    "max_rating": self.max_rating,
                },
            )
        return self

    def with_k_factor(self, k_factor: int) -> "RatingConfig":
        """Return a copy of this config using a different K-factor."""
        return RatingConfig(
            initial_rating=self.initial_rating,
            k_factor=k_factor,
            min_rating=self.min_rating,
            max_rating=self.max_rating,
        )

    model_config = ConfigDict(frozen=True)


DEFAULT_RATING_CONFIG = RatingConfig()


class Rating(BaseModel):
    """
    Rating model.

    The stored desirability rating of a profile and the number of rated
    interactions it has taken part in.
    """

    profile_id: str
    rating: int = DEFAULT_RATING_CONFIG.initial_rating
    match_count: int = Field(default=0, ge=0)

    @classmethod
    def initial(cls, profile_id: str, config: RatingConfig = DEFAULT_RATING_CONFIG) -> "Rating":
        """Create the rating a profile starts with on its first interaction."""
        return cls(profile_id=profile_id, rating=config.initial_rating, match_count=0)
