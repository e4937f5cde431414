"""Matchmaking service: recommendations, match actions and mutual matches."""

import asyncio
import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple, TypeVar, Union

import sentry_sdk
from pydantic import BaseModel

from matchengine.config import Settings, get_settings
from matchengine.models.match import (
    ActionResult,
    MatchAction,
    MatchHistoryItem,
    MutualMatchItem,
    PaginationData,
    RecommendedProfile,
)
from matchengine.models.profile import PreferenceData, ProfileData
from matchengine.models.rating import Rating, RatingConfig
from matchengine.repositories.base import MatchRepository
from matchengine.services.elo import clamp_rating
from matchengine.services.rating_service import parse_action, process_match_action
from matchengine.services.scoring import rank_candidates
from matchengine.utils.cache import delete_cache, get_cache_model, set_cache
from matchengine.utils.errors import (
    ActionError,
    ConcurrencyError,
    DatabaseError,
    NotFoundError,
    SelfMatchError,
    ValidationError,
)
from matchengine.utils.logging import get_logger, log_context, log_error
from matchengine.utils.pagination import normalize_pagination

logger = get_logger(__name__)

T = TypeVar("T")

# Cache keys
RECOMMENDATIONS_CACHE_KEY = "recommendations:{viewer_id}"

HISTORY_STATUS_ALL = "all"


class CachedRecommendations(BaseModel):
    """Ranked candidate list cached per viewer, tagged with the preferences it was built for."""

    fingerprint: str
    profiles: List[RecommendedProfile]


def preferences_fingerprint(preferences: Optional[PreferenceData]) -> str:
    """Stable hash of a preference set, independent of set iteration order."""
    if preferences is None:
        return "none"
    data = {
        key: sorted(value) if isinstance(value, frozenset) else value
        for key, value in preferences.model_dump().items()
    }
    return hashlib.sha256(json.dumps(data, sort_keys=True).encode()).hexdigest()


def parse_status_filter(status_filter: Union[MatchAction, str, None]) -> Optional[MatchAction]:
    """
    Convert a history status filter into a MatchAction.

    None, "" and "all" mean no filtering.

    Raises:
        ValidationError: If the filter is not liked, disliked, passed or all.
    """
    if isinstance(status_filter, MatchAction):
        return status_filter
    if status_filter is None or status_filter in ("", HISTORY_STATUS_ALL):
        return None
    try:
        return MatchAction(status_filter)
    except ValueError as e:
        raise ValidationError(
            "status must be one of: liked, disliked, passed, all",
            details={"status": status_filter},
        ) from e


def _last_login_key(profile: ProfileData) -> Tuple[bool, datetime]:
    # Aware and naive timestamps compare as UTC; missing logins sort last
    last_login = profile.last_login
    if last_login is None:
        return False, datetime.min
    if last_login.tzinfo is not None:
        last_login = last_login.astimezone(timezone.utc).replace(tzinfo=None)
    return True, last_login


class MatchmakingService:
    """
    Orchestrates scoring, ratings and the mutual-match lifecycle.

    Repository calls are blocking and run in worker threads. Every match
    action runs in one repository unit of work, so the action row, both
    ratings and the mutual match change together or not at all.
    """

    def __init__(self, repository: MatchRepository, settings: Optional[Settings] = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()
        self.rating_config: RatingConfig = self.settings.rating_config

    async def _run(self, func: Callable[..., T], *args: Any, timeout: Optional[float] = None) -> T:
        call = asyncio.to_thread(func, *args)
        if timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout)

    def _load_rating(self, repository: MatchRepository, profile_id: str) -> Rating:
        stored = repository.get_rating(profile_id)
        if stored is None:
            return Rating.initial(profile_id, self.rating_config)
        return stored.model_copy(update={"rating": clamp_rating(stored.rating, self.rating_config)})

    async def get_recommended_matches(
        self,
        viewer_id: str,
        preferences: Optional[PreferenceData] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[List[RecommendedProfile], PaginationData]:
        """
        Get ranked candidate profiles for a viewer.

        Candidates exclude the viewer, profiles on the viewer's own side and
        profiles the viewer already acted on, and must pass the hard filters.
        They are ordered by compatibility score, then by most recent login.

        Args:
            viewer_id (str): Profile asking for recommendations.
            preferences (Optional[PreferenceData]): Viewer's partner preferences.
            limit (Optional[int]): Page size; defaults to 10, capped at 50.
            offset (Optional[int]): Page start; negative values become 0.
            timeout (Optional[float]): Seconds allowed for each repository read.

        Returns:
            Tuple[List[RecommendedProfile], PaginationData]: One page and its metadata.

        Raises:
            NotFoundError: If the viewer has no profile.
            DatabaseError: If the candidate pool cannot be read.
        """
        limit, offset = normalize_pagination(
            limit, offset, self.settings.RECOMMENDATION_DEFAULT_LIMIT, self.settings.MAX_PAGE_LIMIT
        )

        with sentry_sdk.start_span(op="match.recommendations", name=viewer_id) as span:
            viewer = await self._run(self.repository.get_profile, viewer_id, timeout=timeout)
            if viewer is None:
                raise NotFoundError("Profile not found", details={"profile_id": viewer_id})

            ranked = await self._get_cached_recommendations(viewer_id, preferences)
            if ranked is not None:
                span.set_data("source", "cache")
            else:
                span.set_data("source", "repository")
                ranked = await self._build_recommendations(viewer_id, preferences, timeout)
                await self._cache_recommendations(viewer_id, preferences, ranked)

            page = ranked[offset : offset + limit]
            pagination = PaginationData.build(len(ranked), limit, offset)

            span.set_data("count", len(page))
            span.set_data("total", len(ranked))
            logger.info("Recommended matches retrieved", viewer_id=viewer_id, count=len(page), total=len(ranked))
            return page, pagination

    async def _build_recommendations(
        self, viewer_id: str, preferences: Optional[PreferenceData], timeout: Optional[float]
    ) -> List[RecommendedProfile]:
        try:
            exclude_ids = await self._run(self.repository.get_matched_profile_ids, viewer_id, timeout=timeout)
        except DatabaseError as e:
            # A missing exclusion list only means some seen profiles may reappear
            logger.warning("Failed to get matched profile IDs, continuing without exclusions", viewer_id=viewer_id, error=str(e))
            exclude_ids = []

        try:
            candidates = await self._run(
                self.repository.get_potential_profiles, viewer_id, exclude_ids, preferences, timeout=timeout
            )
        except DatabaseError as e:
            log_error(logger, e, "Failed to get potential profiles", {"viewer_id": viewer_id})
            raise

        return rank_candidates(candidates, preferences or PreferenceData(), tie_breaker=_last_login_key)

    async def _get_cached_recommendations(
        self, viewer_id: str, preferences: Optional[PreferenceData]
    ) -> Optional[List[RecommendedProfile]]:
        if self.settings.RECOMMENDATION_CACHE_TTL <= 0:
            return None

        cache_key = RECOMMENDATIONS_CACHE_KEY.format(viewer_id=viewer_id)
        cached = await asyncio.to_thread(get_cache_model, cache_key, CachedRecommendations)
        if cached is None or cached.fingerprint != preferences_fingerprint(preferences):
            return None
        logger.debug("Recommendations retrieved from cache", viewer_id=viewer_id)
        return cached.profiles

    async def _cache_recommendations(
        self, viewer_id: str, preferences: Optional[PreferenceData], ranked: List[RecommendedProfile]
    ) -> None:
        if self.settings.RECOMMENDATION_CACHE_TTL <= 0:
            return

        entry = CachedRecommendations(fingerprint=preferences_fingerprint(preferences), profiles=ranked)
        cache_key = RECOMMENDATIONS_CACHE_KEY.format(viewer_id=viewer_id)
        await asyncio.to_thread(set_cache, cache_key, entry, self.settings.RECOMMENDATION_CACHE_TTL)

    async def record_match_action(
        self, viewer_id: str, target_id: str, action: Union[MatchAction, str]
    ) -> ActionResult:
        """
        Record a viewer's action towards a target profile.

        A like answered by a like creates (or reactivates) the mutual match; a
        dislike or pass deactivates an active one. Likes and dislikes update
        both profiles' ratings. Repeating the current action changes nothing.

        Args:
            viewer_id (str): Profile performing the action.
            target_id (str): Profile being acted on.
            action (Union[MatchAction, str]): liked, disliked or passed.

        Returns:
            ActionResult: What changed.

        Raises:
            InvalidActionError: If the action is unknown.
            SelfMatchError: If the viewer acts on itself.
            NotFoundError: If the target profile does not exist.
            ActionError: If the action could not be persisted.
        """
        return await self._handle_action(viewer_id, target_id, action, require_existing=False)

    async def update_match_action(
        self, viewer_id: str, target_id: str, action: Union[MatchAction, str]
    ) -> ActionResult:
        """
        Change a decision the viewer already made.

        Same rules as `record_match_action`, but the viewer must have acted on
        the target before. `was_mutual_match_broken` tells whether an active
        mutual match was deactivated.

        Raises:
            NotFoundError: If there is no earlier action, or no target profile.
        """
        return await self._handle_action(viewer_id, target_id, action, require_existing=True)

    async def _handle_action(
        self, viewer_id: str, target_id: str, action: Union[MatchAction, str], require_existing: bool
    ) -> ActionResult:
        match_action = parse_action(action)
        if not viewer_id or not target_id:
            raise ValidationError("Profile IDs cannot be empty", details={"viewer_id": viewer_id, "target_id": target_id})
        if viewer_id == target_id:
            raise SelfMatchError("Cannot act on your own profile", details={"profile_id": viewer_id})

        with log_context(viewer_id=viewer_id, target_id=target_id), sentry_sdk.start_span(
            op="match.action", name=f"{viewer_id} -> {target_id}"
        ) as span:
            span.set_data("action", match_action.value)

            target = await self._run(self.repository.get_profile, target_id)
            if target is None:
                raise NotFoundError("Target profile not found", details={"profile_id": target_id})

            result = await self._apply_with_retries(viewer_id, target_id, match_action, require_existing)

            span.set_data("changed", result.changed)
            span.set_data("is_mutual_match", result.is_mutual_match)

            if result.changed:
                await asyncio.to_thread(delete_cache, RECOMMENDATIONS_CACHE_KEY.format(viewer_id=viewer_id))
                logger.info(
                    "Match action recorded",
                    viewer_id=viewer_id,
                    target_id=target_id,
                    action=match_action.value,
                    previous_action=result.previous_action.value if result.previous_action else None,
                    is_mutual_match=result.is_mutual_match,
                    was_mutual_match_broken=result.was_mutual_match_broken,
                )
            else:
                logger.debug("Duplicate match action ignored", viewer_id=viewer_id, target_id=target_id)
            return result

    async def _apply_with_retries(
        self, viewer_id: str, target_id: str, action: MatchAction, require_existing: bool
    ) -> ActionResult:
        details = {"viewer_id": viewer_id, "target_id": target_id, "action": action.value}
        attempts = max(1, self.settings.ACTION_MAX_RETRIES)

        last_error: Optional[ConcurrencyError] = None
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.to_thread(self._apply_action, viewer_id, target_id, action, require_existing)
            except ConcurrencyError as e:
                last_error = e
                logger.warning("Concurrent update on match action", attempt=attempt, attempts=attempts, **details)
                if attempt < attempts:
                    await asyncio.sleep(self.settings.ACTION_RETRY_BACKOFF * 2 ** (attempt - 1))
            except DatabaseError as e:
                log_error(logger, e, "Failed to record match action", dict(details))
                raise ActionError("Failed to record match action", details={**details, "error": str(e)}) from e

        error = ActionError(
            "Failed to record match action after retries",
            details={**details, "attempts": attempts, "error": str(last_error)},
        )
        log_error(logger, error, extra=dict(details))
        raise error from last_error

    def _apply_action(self, viewer_id: str, target_id: str, action: MatchAction, require_existing: bool) -> ActionResult:
        with self.repository.atomic(viewer_id, target_id) as repo:
            previous = repo.get_match_action(viewer_id, target_id)
            if require_existing and previous is None:
                raise NotFoundError(
                    "No previous action to update",
                    details={"viewer_id": viewer_id, "target_id": target_id},
                )

            viewer_rating = self._load_rating(repo, viewer_id)
            target_rating = self._load_rating(repo, target_id)

            if previous == action:
                return ActionResult(
                    viewer_id=viewer_id,
                    target_id=target_id,
                    action=action,
                    previous_action=previous,
                    changed=False,
                    is_mutual_match=repo.is_mutual_match_active(viewer_id, target_id),
                    viewer_rating=viewer_rating.rating,
                    target_rating=target_rating.rating,
                )

            repo.record_match_action(viewer_id, target_id, action)

            is_mutual_match = False
            was_mutual_match_broken = False
            if action == MatchAction.LIKED:
                if repo.check_for_mutual_match(viewer_id, target_id):
                    repo.create_mutual_match(viewer_id, target_id)
                    is_mutual_match = True
            else:
                was_mutual_match_broken = repo.deactivate_mutual_match(viewer_id, target_id)

            if action != MatchAction.PASSED:
                new_viewer_rating, new_target_rating = process_match_action(
                    viewer_rating.rating,
                    target_rating.rating,
                    viewer_rating.match_count,
                    target_rating.match_count,
                    action,
                    self.rating_config,
                )
                viewer_rating = Rating(
                    profile_id=viewer_id, rating=new_viewer_rating, match_count=viewer_rating.match_count + 1
                )
                target_rating = Rating(
                    profile_id=target_id, rating=new_target_rating, match_count=target_rating.match_count + 1
                )
                repo.save_rating(viewer_rating)
                repo.save_rating(target_rating)

            return ActionResult(
                viewer_id=viewer_id,
                target_id=target_id,
                action=action,
                previous_action=previous,
                changed=True,
                is_mutual_match=is_mutual_match,
                was_mutual_match_broken=was_mutual_match_broken,
                viewer_rating=viewer_rating.rating,
                target_rating=target_rating.rating,
            )

    async def get_match_history(
        self,
        viewer_id: str,
        status_filter: Union[MatchAction, str, None] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[List[MatchHistoryItem], PaginationData]:
        """
        Get the viewer's past actions, newest first.

        Raises:
            ValidationError: If `status_filter` is not liked, disliked, passed or all.
        """
        status = parse_status_filter(status_filter)
        limit, offset = normalize_pagination(
            limit, offset, self.settings.HISTORY_DEFAULT_LIMIT, self.settings.MAX_PAGE_LIMIT
        )

        with sentry_sdk.start_span(op="match.history", name=viewer_id) as span:
            try:
                items, total = await self._run(
                    self.repository.get_match_history, viewer_id, status, limit, offset, timeout=timeout
                )
            except DatabaseError as e:
                log_error(logger, e, "Failed to get match history", {"viewer_id": viewer_id})
                raise

            span.set_data("count", len(items))
            return items, PaginationData.build(total, limit, offset)

    async def get_mutual_matches(
        self,
        viewer_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[List[MutualMatchItem], PaginationData]:
        """Get the viewer's active mutual matches, most recent first."""
        limit, offset = normalize_pagination(
            limit, offset, self.settings.HISTORY_DEFAULT_LIMIT, self.settings.MAX_PAGE_LIMIT
        )

        with sentry_sdk.start_span(op="match.mutual", name=viewer_id) as span:
            try:
                items, total = await self._run(
                    self.repository.get_mutual_matches, viewer_id, limit, offset, timeout=timeout
                )
            except DatabaseError as e:
                log_error(logger, e, "Failed to get mutual matches", {"viewer_id": viewer_id})
                raise

            span.set_data("count", len(items))
            return items, PaginationData.build(total, limit, offset)

    async def get_rating(self, profile_id: str, timeout: Optional[float] = None) -> Rating:
        """Get a profile's rating, or the initial rating if it was never rated."""
        return await self._run(self._load_rating, self.repository, profile_id, timeout=timeout)
