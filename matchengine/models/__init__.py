"""Models package for the match engine."""

from matchengine.models.match import (
    ActionResult,
    MatchAction,
    MatchActionRecord,
    MatchHistoryItem,
    MatchScore,
    MutualMatch,
    MutualMatchItem,
    PaginationData,
    RecommendedProfile,
)
from matchengine.models.profile import (
    NOT_MENTIONED,
    Community,
    EducationLevel,
    HomeDistrict,
    MaritalStatus,
    PreferenceData,
    Profession,
    ProfessionType,
    ProfileData,
    build_preference_data,
    build_profile_data,
    calculate_age,
)
from matchengine.models.rating import DEFAULT_RATING_CONFIG, Rating, RatingConfig

__all__ = [
    "DEFAULT_RATING_CONFIG",
    "NOT_MENTIONED",
    "ActionResult",
    "Community",
    "EducationLevel",
    "HomeDistrict",
    "MaritalStatus",
    "MatchAction",
    "MatchActionRecord",
    "MatchHistoryItem",
    "MatchScore",
    "MutualMatch",
    "MutualMatchItem",
    "PaginationData",
    "PreferenceData",
    "Profession",
    "ProfessionType",
    "ProfileData",
    "Rating",
    "RatingConfig",
    "RecommendedProfile",
    "build_preference_data",
    "build_profile_data",
    "calculate_age",
]
