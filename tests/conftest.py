"""pytest configuration and fixtures."""

from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from matchengine.config import Settings, settings
from matchengine.models.profile import ProfileData
from matchengine.repositories.memory import InMemoryMatchRepository
from matchengine.repositories.sql import SQLAlchemyMatchRepository
from matchengine.services.matchmaking_service import MatchmakingService
from matchengine.utils.cache import RedisClient
from matchengine.utils.database import Base, ProfileDB

pytest_plugins = ["pytest_asyncio"]

GROOM_ID = "groom-1"
BRIDE_1 = "bride-1"
BRIDE_2 = "bride-2"
BRIDE_3 = "bride-3"
OTHER_GROOM_ID = "groom-2"

BASE_LOGIN = datetime(2024, 6, 1, 12, 0, 0)


def date_of_birth_for_age(age: int, today: Optional[date] = None) -> date:
    """A January 1st birthday gives exactly `age` for any later day of the year."""
    today = today or date.today()
    return date(today.year - age, 1, 1)


@pytest.fixture(autouse=True)
def disable_redis(monkeypatch):
    """Run every test without Redis unless a test wires a client itself."""
    monkeypatch.setattr(settings, "REDIS_URL", None)
    RedisClient.reset()
    yield
    RedisClient.reset()


@pytest.fixture
def make_profile() -> Callable[..., ProfileData]:
    """Factory for ProfileData with sensible defaults."""

    def _make(profile_id: str, is_bride: bool = True, **overrides: Any) -> ProfileData:
        values = {
            "profile_id": profile_id,
            "is_bride": is_bride,
            "age": 28,
            "height_cm": 165,
            "community": "sunni",
            "marital_status": "never_married",
            "profession": "engineer",
            "profession_type": "full_time",
            "highest_education_level": "post_graduation",
            "home_district": "kozhikode",
            "last_login": BASE_LOGIN,
        }
        values.update(overrides)
        return ProfileData(**values)

    return _make


@pytest.fixture
def test_settings() -> Settings:
    """Settings with caching off and no retry delay."""
    return Settings(RECOMMENDATION_CACHE_TTL=0, ACTION_RETRY_BACKOFF=0.0, ACTION_MAX_RETRIES=3)


@pytest.fixture
def memory_repository(make_profile) -> InMemoryMatchRepository:
    """In-memory repository holding one groom, three brides and a second groom."""
    repository = InMemoryMatchRepository()
    repository.add_profile(make_profile(GROOM_ID, is_bride=False, age=30, height_cm=175))
    repository.add_profile(make_profile(BRIDE_1, last_login=BASE_LOGIN))
    repository.add_profile(make_profile(BRIDE_2, community="shia", last_login=BASE_LOGIN + timedelta(hours=1)))
    repository.add_profile(make_profile(BRIDE_3, last_login=BASE_LOGIN + timedelta(hours=2)))
    repository.add_profile(make_profile(OTHER_GROOM_ID, is_bride=False, age=31))
    return repository


@pytest.fixture
def memory_service(memory_repository, test_settings) -> MatchmakingService:
    return MatchmakingService(memory_repository, test_settings)


@pytest.fixture
def sql_engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return sessionmaker(bind=sql_engine, expire_on_commit=False)


@pytest.fixture
def sql_repository(session_factory) -> SQLAlchemyMatchRepository:
    """SQL repository with the same profiles as the in-memory fixture."""
    today = date.today()
    rows = [
        ProfileDB(id=GROOM_ID, is_bride=False, date_of_birth=date_of_birth_for_age(30, today), height_cm=175),
        ProfileDB(
            id=BRIDE_1,
            is_bride=True,
            date_of_birth=date_of_birth_for_age(28, today),
            height_cm=165,
            community="sunni",
            marital_status="never_married",
            highest_education_level="post_graduation",
            last_login=BASE_LOGIN,
        ),
        ProfileDB(
            id=BRIDE_2,
            is_bride=True,
            date_of_birth=date_of_birth_for_age(28, today),
            height_cm=165,
            community="shia",
            marital_status="never_married",
            highest_education_level="post_graduation",
            last_login=BASE_LOGIN + timedelta(hours=1),
        ),
        ProfileDB(
            id=BRIDE_3,
            is_bride=True,
            date_of_birth=date_of_birth_for_age(28, today),
            height_cm=165,
            community="sunni",
            marital_status="never_married",
            highest_education_level="post_graduation",
            last_login=BASE_LOGIN + timedelta(hours=2),
        ),
        ProfileDB(id=OTHER_GROOM_ID, is_bride=False, date_of_birth=date_of_birth_for_age(31, today), height_cm=180),
    ]
    with session_factory() as session, session.begin():
        session.add_all(rows)
    return SQLAlchemyMatchRepository(session_factory)


@pytest.fixture
def sql_service(sql_repository, test_settings) -> MatchmakingService:
    return MatchmakingService(sql_repository, test_settings)
