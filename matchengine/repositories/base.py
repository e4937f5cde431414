"""Storage contract for the matchmaking service."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional, Sequence, Tuple

from matchengine.models.match import MatchAction, MatchHistoryItem, MutualMatchItem
from matchengine.models.profile import PreferenceData, ProfileData
from matchengine.models.rating import Rating


class MatchRepository(ABC):
    """
    Persistence operations the matchmaking service depends on.

    Implementations are synchronous; the service runs them in worker threads.
    Mutual-match methods accept the two profile IDs in any order.
    """

    @abstractmethod
    def get_matched_profile_ids(self, viewer_id: str) -> List[str]:
        """Return IDs of every profile the viewer has already acted on."""

    @abstractmethod
    def get_profile(self, profile_id: str) -> Optional[ProfileData]:
        """Return a stored profile, or None if it does not exist."""

    @abstractmethod
    def get_potential_profiles(
        self,
        viewer_id: str,
        exclude_ids: Sequence[str],
        preferences: Optional[PreferenceData],
    ) -> List[ProfileData]:
        """
        Return candidate profiles for a viewer.

        Excludes the viewer, profiles on the viewer's own side, `exclude_ids`
        and profiles failing the configured hard filters.
        """

    @abstractmethod
    def record_match_action(self, viewer_id: str, target_id: str, action: MatchAction) -> None:
        """Insert or overwrite the viewer's action towards the target."""

    @abstractmethod
    def get_match_action(self, viewer_id: str, target_id: str) -> Optional[MatchAction]:
        """Return the viewer's current action towards the target, if any."""

    @abstractmethod
    def check_for_mutual_match(self, id_a: str, id_b: str) -> bool:
        """Return True if both directed actions between the profiles are likes."""

    @abstractmethod
    def is_mutual_match_active(self, id_a: str, id_b: str) -> bool:
        """Return True if an active mutual match exists between the profiles."""

    @abstractmethod
    def create_mutual_match(self, id_a: str, id_b: str) -> bool:
        """
        Create or reactivate the mutual match.

        Returns:
            bool: False if an active match already existed.
        """

    @abstractmethod
    def deactivate_mutual_match(self, id_a: str, id_b: str) -> bool:
        """
        Deactivate the mutual match.

        Returns:
            bool: True if an active match was deactivated.
        """

    @abstractmethod
    def get_match_history(
        self, viewer_id: str, status: Optional[MatchAction], limit: int, offset: int
    ) -> Tuple[List[MatchHistoryItem], int]:
        """Return one page of the viewer's actions, newest first, and the total count."""

    @abstractmethod
    def get_mutual_matches(self, viewer_id: str, limit: int, offset: int) -> Tuple[List[MutualMatchItem], int]:
        """Return one page of the viewer's active mutual matches, newest first, and the total count."""

    @abstractmethod
    def get_rating(self, profile_id: str) -> Optional[Rating]:
        """Return the stored rating, or None if the profile has never been rated."""

    @abstractmethod
    def save_rating(self, rating: Rating) -> None:
        """Insert or update a stored rating."""

    @abstractmethod
    def atomic(self, viewer_id: str, target_id: str) -> AbstractContextManager["MatchRepository"]:
        """
        Open a unit of work covering both profiles.

        Everything done through the yielded repository is committed together
        or not at all. Conflicting concurrent writers raise ConcurrencyError.
        """
