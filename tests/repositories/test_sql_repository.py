"""Tests for the SQLAlchemy match repository."""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from matchengine.config import HardFiltersConfig, Settings
from matchengine.models.match import MatchAction
from matchengine.models.profile import PreferenceData
from matchengine.models.rating import Rating
from matchengine.repositories.sql import SQLAlchemyMatchRepository, _translate_error
from matchengine.utils.database import MutualMatchDB, ProfileDB, ProfileRatingDB
from matchengine.utils.errors import ConcurrencyError, DatabaseError
from tests.conftest import BRIDE_1, BRIDE_2, BRIDE_3, GROOM_ID, OTHER_GROOM_ID


class TestSQLAlchemyMatchRepository:
    """Tests for SQLAlchemyMatchRepository."""

    def test_get_profile(self, sql_repository):
        profile = sql_repository.get_profile(BRIDE_2)
        assert profile.profile_id == BRIDE_2
        assert profile.age == 28
        assert profile.community == "shia"
        assert sql_repository.get_profile("missing") is None

    def test_record_is_an_upsert(self, sql_repository):
        sql_repository.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
        sql_repository.record_match_action(GROOM_ID, BRIDE_1, MatchAction.DISLIKED)

        assert sql_repository.get_match_action(GROOM_ID, BRIDE_1) == MatchAction.DISLIKED
        assert sql_repository.get_matched_profile_ids(GROOM_ID) == [BRIDE_1]

    def test_check_for_mutual_match(self, sql_repository):
        sql_repository.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
        assert sql_repository.check_for_mutual_match(GROOM_ID, BRIDE_1) is False

        sql_repository.record_match_action(BRIDE_1, GROOM_ID, MatchAction.LIKED)
        assert sql_repository.check_for_mutual_match(GROOM_ID, BRIDE_1) is True

    def test_mutual_match_lifecycle(self, sql_repository, session_factory):
        assert sql_repository.create_mutual_match(GROOM_ID, BRIDE_1) is True
        assert sql_repository.create_mutual_match(BRIDE_1, GROOM_ID) is False
        assert sql_repository.deactivate_mutual_match(GROOM_ID, BRIDE_1) is True
        assert sql_repository.deactivate_mutual_match(GROOM_ID, BRIDE_1) is False
        assert sql_repository.create_mutual_match(GROOM_ID, BRIDE_1) is True

        with session_factory() as session:
            rows = session.scalars(select(MutualMatchDB)).all()
        assert len(rows) == 1
        assert (rows[0].user_id_1, rows[0].user_id_2) == (BRIDE_1, GROOM_ID)
        assert rows[0].is_active is True

    def test_mutual_matches_listing(self, sql_repository):
        sql_repository.create_mutual_match(GROOM_ID, BRIDE_1)
        sql_repository.create_mutual_match(GROOM_ID, BRIDE_2)
        sql_repository.deactivate_mutual_match(GROOM_ID, BRIDE_2)

        items, total = sql_repository.get_mutual_matches(GROOM_ID, 10, 0)
        assert total == 1
        assert [item.profile_id for item in items] == [BRIDE_1]

        items, total = sql_repository.get_mutual_matches(BRIDE_1, 10, 0)
        assert [item.profile_id for item in items] == [GROOM_ID]

    def test_history(self, sql_repository):
        sql_repository.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
        sql_repository.record_match_action(GROOM_ID, BRIDE_2, MatchAction.PASSED)
        sql_repository.record_match_action(GROOM_ID, BRIDE_3, MatchAction.LIKED)

        items, total = sql_repository.get_match_history(GROOM_ID, None, 2, 0)
        assert total == 3
        assert [item.target_profile_id for item in items] == [BRIDE_3, BRIDE_2]

        liked, liked_total = sql_repository.get_match_history(GROOM_ID, MatchAction.LIKED, 10, 0)
        assert liked_total == 2
        assert {item.target_profile_id for item in liked} == {BRIDE_1, BRIDE_3}

    def test_potential_profiles_exclusions(self, sql_repository):
        profiles = sql_repository.get_potential_profiles(GROOM_ID, [BRIDE_3], None)
        assert [profile.profile_id for profile in profiles] == [BRIDE_2, BRIDE_1]
        assert OTHER_GROOM_ID not in {profile.profile_id for profile in profiles}

    def test_potential_profiles_hard_filters(self, sql_repository, session_factory):
        with session_factory() as session, session.begin():
            session.add(ProfileDB(id="bride-divorced", is_bride=True, marital_status="divorced", height_cm=150))
            session.add(ProfileDB(id="bride-pc", is_bride=True, physically_challenged=True))

        prefs = PreferenceData(preferred_marital_status={"never_married"})
        ids = {profile.profile_id for profile in sql_repository.get_potential_profiles(GROOM_ID, [], prefs)}
        assert ids == {BRIDE_1, BRIDE_2, BRIDE_3}

        prefs = PreferenceData(accept_physically_challenged=True, min_height_cm=160)
        ids = {profile.profile_id for profile in sql_repository.get_potential_profiles(GROOM_ID, [], prefs)}
        assert ids == {BRIDE_1, BRIDE_2, BRIDE_3, "bride-pc"}

        prefs = PreferenceData(min_age_years=35)
        ids = {profile.profile_id for profile in sql_repository.get_potential_profiles(GROOM_ID, [], prefs)}
        assert ids == {"bride-divorced"}

    def test_hard_filters_can_be_disabled(self, session_factory, sql_repository):
        repository = SQLAlchemyMatchRepository(session_factory, HardFiltersConfig(enabled=False))
        prefs = PreferenceData(min_age_years=40, max_age_years=45)
        assert len(repository.get_potential_profiles(GROOM_ID, [], prefs)) == 3

    def test_hard_filters_default_to_settings(self, session_factory, sql_repository):
        with patch(
            "matchengine.repositories.sql.get_settings",
            return_value=Settings(HARD_FILTERS_ENABLED=False),
        ):
            repository = SQLAlchemyMatchRepository(session_factory)
        prefs = PreferenceData(min_age_years=40, max_age_years=45)
        assert repository.hard_filters.enabled is False
        assert len(repository.get_potential_profiles(GROOM_ID, [], prefs)) == 3

    def test_inverted_ranges_do_not_filter(self, sql_repository):
        prefs = PreferenceData(min_height_cm=180, max_height_cm=150, min_age_years=35, max_age_years=25)
        ids = {profile.profile_id for profile in sql_repository.get_potential_profiles(GROOM_ID, [], prefs)}
        assert ids == {BRIDE_1, BRIDE_2, BRIDE_3}

    def test_rating_versioning(self, sql_repository, session_factory):
        assert sql_repository.get_rating(GROOM_ID) is None

        sql_repository.save_rating(Rating(profile_id=GROOM_ID, rating=1516, match_count=1))
        sql_repository.save_rating(Rating(profile_id=GROOM_ID, rating=1499, match_count=2))

        rating = sql_repository.get_rating(GROOM_ID)
        assert (rating.rating, rating.match_count) == (1499, 2)
        with session_factory() as session:
            assert session.get(ProfileRatingDB, GROOM_ID).version == 2

    def test_atomic_commits_together(self, sql_repository):
        with sql_repository.atomic(GROOM_ID, BRIDE_1) as repo:
            repo.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
            repo.save_rating(Rating(profile_id=GROOM_ID, rating=1516, match_count=1))
            repo.save_rating(Rating(profile_id=BRIDE_1, rating=1484, match_count=1))

        assert sql_repository.get_match_action(GROOM_ID, BRIDE_1) == MatchAction.LIKED
        assert sql_repository.get_rating(BRIDE_1).rating == 1484

    def test_atomic_rolls_back(self, sql_repository):
        with pytest.raises(RuntimeError):
            with sql_repository.atomic(GROOM_ID, BRIDE_1) as repo:
                repo.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
                repo.save_rating(Rating(profile_id=GROOM_ID, rating=1516, match_count=1))
                raise RuntimeError("boom")

        assert sql_repository.get_match_action(GROOM_ID, BRIDE_1) is None
        assert sql_repository.get_rating(GROOM_ID) is None

    def test_duplicate_mutual_insert_is_a_conflict(self, sql_repository, session_factory):
        sql_repository.create_mutual_match(GROOM_ID, BRIDE_1)
        with pytest.raises(ConcurrencyError):
            with sql_repository.atomic(GROOM_ID, BRIDE_1) as repo:
                repo._session.add(MutualMatchDB(user_id_1=BRIDE_1, user_id_2=GROOM_ID))


@pytest.mark.parametrize(
    "error",
    [
        StaleDataError("stale"),
        IntegrityError("INSERT", {}, Exception("duplicate")),
        OperationalError("UPDATE", {}, Exception("deadlock detected")),
    ],
)
def test_conflicts_translate_to_concurrency_error(error):
    translated = _translate_error(error, "match_action")
    assert isinstance(translated, ConcurrencyError)
    assert translated.status_code == 409
    assert translated.details["operation"] == "match_action"


def test_other_errors_translate_to_database_error():
    translated = _translate_error(SQLAlchemyError("boom"), "get_rating")
    assert type(translated) is DatabaseError
    assert translated.status_code == 500


class TestMatchmakingOverSQL:
    """The service behaves the same over the SQL repository."""

    async def test_mutual_match_flow(self, sql_service):
        first = await sql_service.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
        second = await sql_service.record_match_action(BRIDE_1, GROOM_ID, MatchAction.LIKED)

        assert first.is_mutual_match is False
        assert second.is_mutual_match is True
        assert (second.viewer_rating, second.target_rating) == (1501, 1499)

        matches, pagination = await sql_service.get_mutual_matches(BRIDE_1)
        assert [item.profile_id for item in matches] == [GROOM_ID]
        assert pagination.total == 1

        broken = await sql_service.update_match_action(GROOM_ID, BRIDE_1, MatchAction.DISLIKED)
        assert broken.was_mutual_match_broken is True
        matches, _ = await sql_service.get_mutual_matches(GROOM_ID)
        assert matches == []

    async def test_duplicate_action_leaves_ratings(self, sql_service):
        await sql_service.record_match_action(GROOM_ID, BRIDE_2, MatchAction.DISLIKED)
        duplicate = await sql_service.record_match_action(GROOM_ID, BRIDE_2, MatchAction.DISLIKED)

        assert duplicate.changed is False
        rating = await sql_service.get_rating(GROOM_ID)
        assert (rating.rating, rating.match_count) == (1484, 1)

    async def test_recommendations_exclude_actioned(self, sql_service):
        await sql_service.record_match_action(GROOM_ID, BRIDE_1, MatchAction.PASSED)

        profiles, pagination = await sql_service.get_recommended_matches(
            GROOM_ID, PreferenceData(preferred_communities={"sunni"})
        )

        assert [item.profile.profile_id for item in profiles] == [BRIDE_3, BRIDE_2]
        assert pagination.total == 2

    async def test_history(self, sql_service):
        await sql_service.record_match_action(GROOM_ID, BRIDE_1, MatchAction.LIKED)
        await sql_service.record_match_action(GROOM_ID, BRIDE_2, MatchAction.PASSED)

        items, pagination = await sql_service.get_match_history(GROOM_ID, "passed")
        assert [item.target_profile_id for item in items] == [BRIDE_2]
        assert pagination.total == 1
