"""In-memory match repository.

Useful for tests and for embedding the engine without a database. All state
lives in plain dicts guarded by one re-entrant lock.
"""

import copy
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from matchengine.config import HardFiltersConfig, get_settings
from matchengine.models.match import (
    MatchAction,
    MatchActionRecord,
    MatchHistoryItem,
    MutualMatch,
    MutualMatchItem,
)
from matchengine.models.profile import PreferenceData, ProfileData
from matchengine.models.rating import Rating
from matchengine.repositories.base import MatchRepository
from matchengine.services.candidate_filter import filter_candidates
from matchengine.utils.database import utcnow
from matchengine.utils.logging import get_logger

logger = get_logger(__name__)


class InMemoryMatchRepository(MatchRepository):
    """Match repository backed by process memory."""

    def __init__(self, hard_filters: Optional[HardFiltersConfig] = None) -> None:
        self.hard_filters = hard_filters or get_settings().hard_filters
        self._lock = threading.RLock()
        self._profiles: Dict[str, ProfileData] = {}
        self._actions: Dict[Tuple[str, str], MatchActionRecord] = {}
        self._mutual_matches: Dict[Tuple[str, str], MutualMatch] = {}
        self._ratings: Dict[str, Rating] = {}

    def add_profile(self, profile: ProfileData) -> None:
        """Store a profile so it can be offered as a candidate."""
        if not profile.profile_id:
            raise ValueError("Stored profiles need a profile_id")
        with self._lock:
            self._profiles[profile.profile_id] = profile

    def get_profile(self, profile_id: str) -> Optional[ProfileData]:
        return self._profiles.get(profile_id)

    def get_matched_profile_ids(self, viewer_id: str) -> List[str]:
        with self._lock:
            return [target_id for (user_id, target_id) in self._actions if user_id == viewer_id]

    def get_potential_profiles(
        self,
        viewer_id: str,
        exclude_ids: Sequence[str],
        preferences: Optional[PreferenceData],
    ) -> List[ProfileData]:
        with self._lock:
            viewer = self._profiles.get(viewer_id)
            candidates = list(self._profiles.values())

        viewer_is_bride = viewer.is_bride if viewer else None
        return filter_candidates(viewer_id, viewer_is_bride, candidates, exclude_ids, preferences, self.hard_filters)

    def record_match_action(self, viewer_id: str, target_id: str, action: MatchAction) -> None:
        with self._lock:
            key = (viewer_id, target_id)
            now = utcnow()
            # Re-insert so dict order tracks recency
            existing = self._actions.pop(key, None)
            created_at = existing.created_at if existing else now
            self._actions[key] = MatchActionRecord(
                viewer_id=viewer_id,
                target_id=target_id,
                action=action,
                created_at=created_at,
                updated_at=now,
            )

    def get_match_action(self, viewer_id: str, target_id: str) -> Optional[MatchAction]:
        record = self._actions.get((viewer_id, target_id))
        return record.action if record else None

    def check_for_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._lock:
            return (
                self.get_match_action(id_a, id_b) == MatchAction.LIKED
                and self.get_match_action(id_b, id_a) == MatchAction.LIKED
            )

    def is_mutual_match_active(self, id_a: str, id_b: str) -> bool:
        match = self._mutual_matches.get(MutualMatch.pair(id_a, id_b))
        return bool(match and match.is_active)

    def create_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._lock:
            key = MutualMatch.pair(id_a, id_b)
            existing = self._mutual_matches.get(key)
            if existing and existing.is_active:
                return False

            now = utcnow()
            self._mutual_matches.pop(key, None)
            self._mutual_matches[key] = MutualMatch(
                user_id_1=key[0], user_id_2=key[1], matched_at=now, is_active=True, updated_at=now
            )
            logger.debug("Mutual match stored", user_id_1=key[0], user_id_2=key[1], reactivated=bool(existing))
            return True

    def deactivate_mutual_match(self, id_a: str, id_b: str) -> bool:
        with self._lock:
            key = MutualMatch.pair(id_a, id_b)
            existing = self._mutual_matches.get(key)
            if not existing or not existing.is_active:
                return False
            self._mutual_matches[key] = existing.model_copy(update={"is_active": False, "updated_at": utcnow()})
            return True

    def get_match_history(
        self, viewer_id: str, status: Optional[MatchAction], limit: int, offset: int
    ) -> Tuple[List[MatchHistoryItem], int]:
        with self._lock:
            records = [
                record
                for (user_id, _), record in reversed(self._actions.items())
                if user_id == viewer_id and (status is None or record.action == status)
            ]
        records.sort(key=lambda record: record.updated_at, reverse=True)
        items = [
            MatchHistoryItem(target_profile_id=record.target_id, action=record.action, timestamp=record.updated_at)
            for record in records[offset : offset + limit]
        ]
        return items, len(records)

    def get_mutual_matches(self, viewer_id: str, limit: int, offset: int) -> Tuple[List[MutualMatchItem], int]:
        with self._lock:
            matches = [
                match
                for match in reversed(self._mutual_matches.values())
                if match.is_active and viewer_id in (match.user_id_1, match.user_id_2)
            ]
        matches.sort(key=lambda match: match.matched_at, reverse=True)
        items = [
            MutualMatchItem(profile_id=match.other(viewer_id), matched_at=match.matched_at)
            for match in matches[offset : offset + limit]
        ]
        return items, len(matches)

    def get_rating(self, profile_id: str) -> Optional[Rating]:
        return self._ratings.get(profile_id)

    def save_rating(self, rating: Rating) -> None:
        with self._lock:
            self._ratings[rating.profile_id] = rating

    @contextmanager
    def atomic(self, viewer_id: str, target_id: str) -> Iterator["InMemoryMatchRepository"]:
        """Serialize the unit of work and roll state back if it raises."""
        with self._lock:
            snapshot = (
                copy.copy(self._actions),
                copy.copy(self._mutual_matches),
                copy.copy(self._ratings),
            )
            try:
                yield self
            except BaseException:
                self._actions, self._mutual_matches, self._ratings = snapshot
                logger.debug("In-memory unit of work rolled back", viewer_id=viewer_id, target_id=target_id)
                raise
