"""Tests for profile and preference models."""

from datetime import date, datetime

import pytest

from matchengine.models.profile import (
    NOT_MENTIONED,
    Community,
    MaritalStatus,
    PreferenceData,
    ProfileData,
    build_preference_data,
    build_profile_data,
    calculate_age,
)


class TestCalculateAge:
    """Tests for calculate_age."""

    def test_birthday_already_passed(self):
        assert calculate_age(date(1990, 3, 15), today=date(2024, 6, 1)) == 34

    def test_birthday_not_yet_reached(self):
        assert calculate_age(date(1990, 8, 15), today=date(2024, 6, 1)) == 33

    def test_birthday_today(self):
        assert calculate_age(date(1990, 6, 1), today=date(2024, 6, 1)) == 34

    def test_accepts_datetimes(self):
        assert calculate_age(datetime(1990, 6, 2, 10, 0), today=datetime(2024, 6, 1, 9, 0)) == 33


class TestProfileData:
    """Tests for ProfileData."""

    def test_defaults(self):
        profile = ProfileData()
        assert profile.age == 0
        assert profile.height_cm == 0
        assert profile.community == NOT_MENTIONED
        assert profile.home_district == NOT_MENTIONED

    def test_enum_values_are_stored_as_strings(self):
        profile = ProfileData(community=Community.SUNNI, marital_status=MaritalStatus.DIVORCED)
        assert profile.community == "sunni"
        assert profile.marital_status == "divorced"

    def test_empty_attribute_becomes_not_mentioned(self):
        profile = ProfileData(profession="", profession_type=None)
        assert profile.profession == NOT_MENTIONED
        assert profile.profession_type == NOT_MENTIONED

    def test_is_immutable(self):
        profile = ProfileData(age=30)
        with pytest.raises(Exception):
            profile.age = 31  # type: ignore[misc]


class TestPreferenceData:
    """Tests for PreferenceData."""

    def test_empty_preferences_are_unconstrained(self):
        prefs = PreferenceData()
        assert prefs.min_age_years is None
        assert prefs.preferred_communities == frozenset()
        assert prefs.accept_physically_challenged is False

    def test_sets_accept_lists_and_enums(self):
        prefs = PreferenceData(
            preferred_communities=[Community.SUNNI, "shia"],
            preferred_marital_status=MaritalStatus.NEVER_MARRIED,
        )
        assert prefs.preferred_communities == frozenset({"sunni", "shia"})
        assert prefs.preferred_marital_status == frozenset({"never_married"})

    def test_empty_values_are_dropped(self):
        prefs = PreferenceData(preferred_professions=["", "doctor", None])
        assert prefs.preferred_professions == frozenset({"doctor"})

    def test_negative_bound_is_unconstrained(self):
        prefs = PreferenceData(min_height_cm=-5, max_height_cm=170)
        assert prefs.min_height_cm is None
        assert prefs.height_range == (None, 170)

    def test_inverted_age_bounds_are_unconstrained(self):
        prefs = PreferenceData(min_age_years=35, max_age_years=25)
        assert (prefs.min_age_years, prefs.max_age_years) == (35, 25)
        assert prefs.age_range == (None, None)

    def test_inverted_height_bounds_are_unconstrained(self):
        prefs = PreferenceData(min_height_cm=180, max_height_cm=150)
        assert prefs.height_range == (None, None)

    def test_single_bound_range(self):
        assert PreferenceData(min_age_years=30).age_range == (30, None)

    def test_equal_bounds_allowed(self):
        prefs = PreferenceData(min_age_years=30, max_age_years=30)
        assert prefs.min_age_years == prefs.max_age_years == 30


class TestBuilders:
    """Tests for the raw-attribute builders."""

    def test_build_profile_data_derives_age(self):
        profile = build_profile_data(
            is_bride=True,
            date_of_birth=date(1995, 1, 10),
            height_cm=160,
            community="mujahid",
            education_level="under_graduation",
            profile_id="p-1",
            today=date(2024, 6, 1),
        )
        assert profile.age == 29
        assert profile.height_cm == 160
        assert profile.community == "mujahid"
        assert profile.highest_education_level == "under_graduation"
        assert profile.marital_status == NOT_MENTIONED

    def test_build_profile_data_unknown_values(self):
        profile = build_profile_data(is_bride=False)
        assert profile.age == 0
        assert profile.height_cm == 0

    def test_build_preference_data(self):
        prefs = build_preference_data(
            min_age_years=25,
            max_age_years=32,
            preferred_home_districts=["kozhikode", "malappuram"],
        )
        assert prefs.max_age_years == 32
        assert prefs.preferred_home_districts == frozenset({"kozhikode", "malappuram"})
        assert prefs.preferred_communities == frozenset()
