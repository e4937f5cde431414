"""Profile and preference models consumed by the scorer."""

from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


NOT_MENTIONED = "not_mentioned"


class Community(str, Enum):
    """Community values a profile can declare."""

    SUNNI = "sunni"
    MUJAHID = "mujahid"
    TABLIGH = "tabligh"
    JAMATE_ISLAMI = "jamate_islami"
    SHIA = "shia"
    MUSLIM = "muslim"
    NOT_MENTIONED = NOT_MENTIONED


class MaritalStatus(str, Enum):
    """Marital status values."""

    NEVER_MARRIED = "never_married"
    DIVORCED = "divorced"
    NIKKAH_DIVORCE = "nikkah_divorce"
    WIDOWED = "widowed"
    NOT_MENTIONED = NOT_MENTIONED


class Profession(str, Enum):
    STUDENT = "student"
    DOCTOR = "doctor"
    ENGINEER = "engineer"
    FARMER = "farmer"
    TEACHER = "teacher"
    NOT_MENTIONED = NOT_MENTIONED


class ProfessionType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    FREELANCE = "freelance"
    SELF_EMPLOYED = "self_employed"
    NOT_WORKING = "not_working"
    NOT_MENTIONED = NOT_MENTIONED


class EducationLevel(str, Enum):
    LESS_THAN_HIGH_SCHOOL = "less_than_high_school"
    HIGH_SCHOOL = "high_school"
    HIGHER_SECONDARY = "higher_secondary"
    UNDER_GRADUATION = "under_graduation"
    POST_GRADUATION = "post_graduation"
    NOT_MENTIONED = NOT_MENTIONED


class HomeDistrict(str, Enum):
    THIRUVANANTHAPURAM = "thiruvananthapuram"
    KOLLAM = "kollam"
    PATHANAMTHITTA = "pathanamthitta"
    ALAPPUZHA = "alappuzha"
    KOTTAYAM = "kottayam"
    ERNAKULAM = "ernakulam"
    THRISSUR = "thrissur"
    PALAKKAD = "palakkad"
    MALAPPURAM = "malappuram"
    KOZHIKODE = "kozhikode"
    WAYANAD = "wayanad"
    KANNUR = "kannur"
    KASARAGOD = "kasaragod"
    IDUKKI = "idukki"
    NOT_MENTIONED = NOT_MENTIONED


def _ordered_range(low: Optional[int], high: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    # An inverted range constrains nothing
    if low is not None and high is not None and low > high:
        return None, None
    return low, high


def _enum_value(value: object) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class ProfileData(BaseModel):
    """
    Profile data model.

    The minimal view of a stored profile needed for matchmaking. Built fresh
    per request; `age` and `height_cm` are 0 when unknown.
    """

    profile_id: Optional[str] = None
    is_bride: bool = False
    age: int = 0
    height_cm: int = 0
    physically_challenged: bool = False
    community: str = NOT_MENTIONED
    marital_status: str = NOT_MENTIONED
    profession: str = NOT_MENTIONED
    profession_type: str = NOT_MENTIONED
    highest_education_level: str = NOT_MENTIONED
    home_district: str = NOT_MENTIONED
    last_login: Optional[datetime] = None

    @field_validator(
        "community",
        "marital_status",
        "profession",
        "profession_type",
        "highest_education_level",
        "home_district",
        mode="before",
    )
    @classmethod
    def normalize_attribute(cls, v: object) -> str:
        """Store enum members by value; empty values become not_mentioned."""
        if v is None or v == "":
            return NOT_MENTIONED
        return _enum_value(v)

    model_config = ConfigDict(frozen=True)


class PreferenceData(BaseModel):
    """
    Partner preference model.

    Optional numeric bounds and sets of acceptable values per axis. An empty
    set, or a missing bound, leaves that axis unconstrained. Stored values
    out of range are kept as "no constraint": negative bounds become None,
    and `age_range`/`height_range` report an inverted pair as (None, None).
    """

    min_age_years: Optional[int] = None
    max_age_years: Optional[int] = None
    min_height_cm: Optional[int] = None
    max_height_cm: Optional[int] = None
    accept_physically_challenged: bool = False
    preferred_communities: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_marital_status: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_professions: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_profession_types: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_education_levels: FrozenSet[str] = Field(default_factory=frozenset)
    preferred_home_districts: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator(
        "preferred_communities",
        "preferred_marital_status",
        "preferred_professions",
        "preferred_profession_types",
        "preferred_education_levels",
        "preferred_home_districts",
        mode="before",
    )
    @classmethod
    def normalize_values(cls, v: Optional[Iterable[object]]) -> FrozenSet[str]:
        """Accept any iterable of strings or enum members."""
        if v is None:
            return frozenset()
        if isinstance(v, (str, Enum)):
            v = [v]
        return frozenset(_enum_value(item) for item in v if item is not None and item != "")

    @field_validator("min_age_years", "max_age_years", "min_height_cm", "max_height_cm")
    @classmethod
    def drop_negative_bound(cls, v: Optional[int]) -> Optional[int]:
        """A negative bound is stored as missing, leaving that side unconstrained."""
        if v is not None and v < 0:
            return None
        return v

    @property
    def age_range(self) -> Tuple[Optional[int], Optional[int]]:
        return _ordered_range(self.min_age_years, self.max_age_years)

    @property
    def height_range(self) -> Tuple[Optional[int], Optional[int]]:
        return _ordered_range(self.min_height_cm, self.max_height_cm)

    model_config = ConfigDict(frozen=True)


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """
    Compute age in whole years at `today` (defaults to the current date).

    The year is not counted until the birthday has passed.
    """
    if isinstance(date_of_birth, datetime):
        date_of_birth = date_of_birth.date()
    today = today or date.today()
    if isinstance(today, datetime):
        today = today.date()

    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def build_profile_data(
    is_bride: bool,
    date_of_birth: Optional[date] = None,
    height_cm: Optional[int] = None,
    physically_challenged: bool = False,
    community: Optional[str] = None,
    marital_status: Optional[str] = None,
    profession: Optional[str] = None,
    profession_type: Optional[str] = None,
    education_level: Optional[str] = None,
    home_district: Optional[str] = None,
    profile_id: Optional[str] = None,
    last_login: Optional[datetime] = None,
    today: Optional[date] = None,
) -> ProfileData:
    """
    Convert raw stored profile attributes into a ProfileData.

    Age is derived from the date of birth at evaluation time; missing date of
    birth or height leave the value at 0.
    """
    return ProfileData(
        profile_id=profile_id,
        is_bride=is_bride,
        age=calculate_age(date_of_birth, today) if date_of_birth else 0,
        height_cm=height_cm or 0,
        physically_challenged=physically_challenged,
        community=community,
        marital_status=marital_status,
        profession=profession,
        profession_type=profession_type,
        highest_education_level=education_level,
        home_district=home_district,
        last_login=last_login,
    )


def build_preference_data(
    min_age_years: Optional[int] = None,
    max_age_years: Optional[int] = None,
    min_height_cm: Optional[int] = None,
    max_height_cm: Optional[int] = None,
    accept_physically_challenged: bool = False,
    preferred_communities: Optional[Iterable[str]] = None,
    preferred_marital_status: Optional[Iterable[str]] = None,
    preferred_professions: Optional[Iterable[str]] = None,
    preferred_profession_types: Optional[Iterable[str]] = None,
    preferred_education_levels: Optional[Iterable[str]] = None,
    preferred_home_districts: Optional[Iterable[str]] = None,
) -> PreferenceData:
    """Convert raw stored partner preferences into a PreferenceData."""
    return PreferenceData(
        min_age_years=min_age_years,
        max_age_years=max_age_years,
        min_height_cm=min_height_cm,
        max_height_cm=max_height_cm,
        accept_physically_challenged=accept_physically_challenged,
        preferred_communities=preferred_communities,
        preferred_marital_status=preferred_marital_status,
        preferred_professions=preferred_professions,
        preferred_profession_types=preferred_profession_types,
        preferred_education_levels=preferred_education_levels,
        preferred_home_districts=preferred_home_districts,
    )
