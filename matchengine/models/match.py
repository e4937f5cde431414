"""Match models for the match engine."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from matchengine.models.profile import ProfileData
from matchengine.utils.database import utcnow


class MatchAction(str, Enum):
    """
    Match action enumeration.

    The unilateral decision a viewer records about a target profile.
    """

    LIKED = "liked"
    DISLIKED = "disliked"
    PASSED = "passed"


class MatchScore(BaseModel):
    """
    Match score model.

    Compatibility score in [0, 100] and the reasons that earned it, in the
    order the axes were evaluated.
    """

    score: float = Field(ge=0.0, le=100.0)
    reasons: List[str] = Field(default_factory=list)


class MatchActionRecord(BaseModel):
    """Represents the latest action one profile recorded towards another."""

    viewer_id: str = Field(..., description="ID of the profile performing the action.")
    target_id: str = Field(..., description="ID of the profile being acted on.")
    action: MatchAction
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="before")
    @classmethod
    def check_self_action(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        viewer_id = values.get("viewer_id")
        target_id = values.get("target_id")
        if viewer_id and target_id and viewer_id == target_id:
            raise ValueError("Viewer and target profile cannot be the same.")
        return values

    @field_validator("viewer_id", "target_id")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Profile IDs cannot be empty")
        return v


class MutualMatch(BaseModel):
    """
    Mutual match model.

    A symmetric relationship between two profiles that liked each other.
    IDs are stored in canonical order (`user_id_1 < user_id_2`).
    """

    user_id_1: str
    user_id_2: str
    matched_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True
    updated_at: datetime = Field(default_factory=utcnow)

    @staticmethod
    def pair(id_a: str, id_b: str) -> Tuple[str, str]:
        """Return the two IDs in canonical storage order."""
        return (id_a, id_b) if id_a < id_b else (id_b, id_a)

    def other(self, profile_id: str) -> str:
        """Return the ID on the other side of the match."""
        return self.user_id_2 if profile_id == self.user_id_1 else self.user_id_1


class MatchHistoryItem(BaseModel):
    """A viewer's past action towards a target profile."""

    target_profile_id: str
    action: MatchAction
    timestamp: datetime


class MutualMatchItem(BaseModel):
    """An active mutual match as seen by one of its two profiles."""

    profile_id: str
    matched_at: datetime


class RecommendedProfile(BaseModel):
    """A candidate profile annotated with its compatibility score."""

    profile: ProfileData
    score: float
    reasons: List[str] = Field(default_factory=list)


class PaginationData(BaseModel):
    """Pagination metadata returned alongside every listing."""

    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def build(cls, total: int, limit: int, offset: int) -> "PaginationData":
        return cls(total=total, limit=limit, offset=offset, has_more=offset + limit < total)


class ActionResult(BaseModel):
    """
    Outcome of recording a match action.

    `changed` is False when the viewer repeated its current action; nothing
    was written in that case.
    """

    viewer_id: str
    target_id: str
    action: MatchAction
    previous_action: Optional[MatchAction] = None
    changed: bool = True
    is_mutual_match: bool = False
    was_mutual_match_broken: bool = False
    viewer_rating: int
    target_rating: int

    model_config = ConfigDict(frozen=True)
