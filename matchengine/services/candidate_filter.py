"""Hard filters applied to candidate profiles before scoring."""

from typing import Iterable, List, Optional

from matchengine.config import HardFiltersConfig
from matchengine.models.profile import NOT_MENTIONED, PreferenceData, ProfileData


def _within(value: int, low: Optional[int], high: Optional[int]) -> bool:
    # Unknown values are never filtered out
    if value <= 0:
        return True
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _accepted(value: str, accepted: Iterable[str]) -> bool:
    accepted = frozenset(accepted)
    if not accepted:
        return True
    return value == NOT_MENTIONED or value in accepted


def passes_hard_filters(
    profile: ProfileData,
    preferences: Optional[PreferenceData],
    filters: Optional[HardFiltersConfig] = None,
) -> bool:
    """
    Check a candidate against the viewer's hard constraints.

    Each age and height bound is applied on its own and an inverted range is
    ignored. Profiles with an unknown age or height pass. Marital status and
    education accept any preferred value plus "not_mentioned".

    Args:
        profile (ProfileData): Candidate profile.
        preferences (Optional[PreferenceData]): Viewer preferences; None passes everything.
        filters (Optional[HardFiltersConfig]): Which filters apply; None enables all.

    Returns:
        bool: True if the candidate may be shown.
    """
    filters = filters or HardFiltersConfig()
    if not filters.enabled or preferences is None:
        return True

    if filters.apply_age_filter and not _within(profile.age, *preferences.age_range):
        return False

    if filters.apply_height_filter and not _within(profile.height_cm, *preferences.height_range):
        return False

    if filters.apply_physically_challenged_filter:
        if profile.physically_challenged and not preferences.accept_physically_challenged:
            return False

    if filters.apply_marital_status_filter and not _accepted(
        profile.marital_status, preferences.preferred_marital_status
    ):
        return False

    if filters.apply_education_filter and not _accepted(
        profile.highest_education_level, preferences.preferred_education_levels
    ):
        return False

    return True


def is_eligible_candidate(
    viewer_id: str,
    viewer_is_bride: Optional[bool],
    candidate: ProfileData,
    exclude_ids: Iterable[str],
) -> bool:
    """Check the structural exclusions: self, same side and already actioned profiles."""
    if candidate.profile_id == viewer_id:
        return False
    if viewer_is_bride is not None and candidate.is_bride == viewer_is_bride:
        return False
    return candidate.profile_id not in set(exclude_ids)


def filter_candidates(
    viewer_id: str,
    viewer_is_bride: Optional[bool],
    candidates: Iterable[ProfileData],
    exclude_ids: Iterable[str],
    preferences: Optional[PreferenceData],
    filters: Optional[HardFiltersConfig] = None,
) -> List[ProfileData]:
    """Apply the structural exclusions and the hard filters to a candidate pool."""
    excluded = set(exclude_ids)
    return [
        candidate
        for candidate in candidates
        if is_eligible_candidate(viewer_id, viewer_is_bride, candidate, excluded)
        and passes_hard_filters(candidate, preferences, filters)
    ]
