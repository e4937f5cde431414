"""Compatibility scoring between a profile and a viewer's preferences."""

from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Tuple

from matchengine.models.match import MatchScore, RecommendedProfile
from matchengine.models.profile import PreferenceData, ProfileData

AGE_MATCH_POINTS = 15
AGE_CLOSE_POINTS = 5
AGE_CLOSE_TOLERANCE = 2
HEIGHT_MATCH_POINTS = 10
COMMUNITY_POINTS = 20
MARITAL_STATUS_POINTS = 15
EDUCATION_POINTS = 10
PROFESSION_POINTS = 10
PROFESSION_TYPE_POINTS = 5
HOME_DISTRICT_POINTS = 10
PHYSICALLY_CHALLENGED_PENALTY = 40

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def _bounded(low: Optional[int], high: Optional[int]) -> bool:
    return low is not None and high is not None and low <= high


def _set_points(value: str, accepted: FrozenSet[str], points: int, reason: str) -> Tuple[int, Optional[str]]:
    if accepted and value in accepted:
        return points, reason
    return 0, None


def calculate_match_score(profile: ProfileData, preferences: PreferenceData) -> MatchScore:
    """
    Calculate how well a profile fits a viewer's preferences.

    Each preference axis awards a fixed number of points when satisfied, and
    a reason is recorded for it. Unconstrained axes (missing bounds or empty
    sets) contribute nothing. A physically challenged profile costs 40
    points when the viewer does not accept it. The total is clamped to
    [0, 100].

    Args:
        profile (ProfileData): Candidate profile.
        preferences (PreferenceData): Viewer's partner preferences.

    Returns:
        MatchScore: Score and the reasons, in evaluation order.
    """
    score = 0
    reasons: List[str] = []

    # Age: full points in range, partial when just outside
    if _bounded(preferences.min_age_years, preferences.max_age_years):
        min_age = preferences.min_age_years
        max_age = preferences.max_age_years
        if min_age <= profile.age <= max_age:  # type: ignore[operator]
            score += AGE_MATCH_POINTS
            reasons.append("Age matches preferences")
        elif min_age - AGE_CLOSE_TOLERANCE <= profile.age <= max_age + AGE_CLOSE_TOLERANCE:  # type: ignore[operator]
            score += AGE_CLOSE_POINTS
            reasons.append("Age close to preferences")

    # Height: only when the profile declared one
    if _bounded(preferences.min_height_cm, preferences.max_height_cm) and profile.height_cm > 0:
        if preferences.min_height_cm <= profile.height_cm <= preferences.max_height_cm:  # type: ignore[operator]
            score += HEIGHT_MATCH_POINTS
            reasons.append("Height matches preferences")

    set_axes = (
        (profile.community, preferences.preferred_communities, COMMUNITY_POINTS, "Community matches preference"),
        (
            profile.marital_status,
            preferences.preferred_marital_status,
            MARITAL_STATUS_POINTS,
            "Marital status matches preference",
        ),
        (
            profile.highest_education_level,
            preferences.preferred_education_levels,
            EDUCATION_POINTS,
            "Education level matches preference",
        ),
        (profile.profession, preferences.preferred_professions, PROFESSION_POINTS, "Profession matches preference"),
        (
            profile.profession_type,
            preferences.preferred_profession_types,
            PROFESSION_TYPE_POINTS,
            "Profession type matches preference",
        ),
        (
            profile.home_district,
            preferences.preferred_home_districts,
            HOME_DISTRICT_POINTS,
            "Home district matches preference",
        ),
    )
    for value, accepted, points, reason in set_axes:
        earned, earned_reason = _set_points(value, accepted, points, reason)
        score += earned
        if earned_reason:
            reasons.append(earned_reason)

    if profile.physically_challenged and not preferences.accept_physically_challenged:
        score -= PHYSICALLY_CHALLENGED_PENALTY

    total = max(MIN_SCORE, min(MAX_SCORE, float(score)))
    return MatchScore(score=total, reasons=reasons)


def rank_candidates(
    profiles: Iterable[ProfileData],
    preferences: PreferenceData,
    tie_breaker: Optional[Callable[[ProfileData], Any]] = None,
) -> List[RecommendedProfile]:
    """
    Score profiles and order them best first.

    Args:
        profiles (Iterable[ProfileData]): Candidate profiles.
        preferences (PreferenceData): Viewer's partner preferences.
        tie_breaker (Optional[Callable]): Key for profiles with equal scores;
            a larger key ranks first. Without one, equal scores keep input order.

    Returns:
        List[RecommendedProfile]: Annotated candidates, highest score first.
    """
    scored = []
    for profile in profiles:
        match_score = calculate_match_score(profile, preferences)
        scored.append(RecommendedProfile(profile=profile, score=match_score.score, reasons=match_score.reasons))

    if tie_breaker is not None:
        scored.sort(key=lambda item: tie_breaker(item.profile), reverse=True)
    # Stable sort keeps the tie-break order within equal scores
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored
