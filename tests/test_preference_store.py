"""Tests for preference stores and the preference manager."""

from __future__ import annotations

import json

import pytest
from sqlalchemy.orm import sessionmaker

from core.db import build_engine, create_schema
from core.services.preference_profile import (
    PreferenceProfile,
    PreferredTime,
    create_default_profile,
    profile_from_document,
    profile_to_document,
)
from core.services.preference_store import (
    InMemoryIntensityCounterStore,
    InMemoryPreferenceStore,
    PreferenceManager,
    SqlIntensityCounterStore,
    SqlPreferenceStore,
)
from core.services.workout_catalog import WorkoutType


@pytest.fixture
def sql_factory():
    engine = build_engine("sqlite:///:memory:")
    create_schema(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def manager(request, sql_factory):
    if request.param == "memory":
        return PreferenceManager(InMemoryPreferenceStore(), InMemoryIntensityCounterStore())
    return PreferenceManager(SqlPreferenceStore(sql_factory), SqlIntensityCounterStore(sql_factory))


def _profile(user_id="u1"):
    profile = create_default_profile(user_id)
    profile.default_duration[WorkoutType.STRENGTH] = 70
    profile.default_intensity[WorkoutType.HYBRID] = "high"
    profile.preferred_times = [PreferredTime(1, "07:15", WorkoutType.STRENGTH), PreferredTime(3, "18:00")]
    profile.preferred_equipment = ["bench", "barbell"]
    profile.recent_teams = ["t2", "t1"]
    profile.recent_workout_types = [WorkoutType.HYBRID, WorkoutType.STRENGTH]
    profile.auto_select_players = False
    profile.workout_counts = {WorkoutType.STRENGTH: 4, WorkoutType.HYBRID: 4, WorkoutType.AGILITY: 1}
    return profile


class TestProfileDocument:
    def test_document_round_trip_is_lossless(self):
        profile = _profile()
        doc = profile_to_document(profile)
        assert json.loads(json.dumps(doc)) == doc
        assert profile_from_document(doc) == profile

    def test_default_profile(self):
        profile = create_default_profile("u1")
        assert profile.default_duration[WorkoutType.HYBRID] == 75
        assert set(profile.default_intensity.values()) == {"medium"}
        assert profile.auto_select_team is True
        assert profile.recent_teams == []

    @pytest.mark.parametrize(
        "patch",
        [
            {"default_intensity": {"strength": "extreme"}},
            {"default_duration": {"strength": 0}},
            {"recent_teams": ["a", "b", "c", "d", "e", "f"]},
            {"preferred_equipment": ["bench", "bench"]},
            {"preferred_times": [{"day_of_week": 7, "start_time": "07:00"}]},
            {"preferred_times": [{"day_of_week": 1, "start_time": "7am"}]},
            {"unexpected": True},
        ],
    )
    def test_invalid_documents_rejected(self, patch):
        doc = profile_to_document(_profile())
        doc.update(patch)
        with pytest.raises(ValueError):
            profile_from_document(doc)


class TestPreferenceManager:
    def test_missing_profile(self, manager):
        assert manager.get_preferences("nobody") is None
        assert manager.export_preferences("nobody") is None

    def test_save_and_get(self, manager):
        profile = _profile()
        manager.save_preferences("u1", profile)
        assert manager.get_preferences("u1") == profile

    def test_save_overwrites(self, manager):
        manager.save_preferences("u1", _profile())
        replacement = create_default_profile("u1")
        manager.save_preferences("u1", replacement)
        assert manager.get_preferences("u1") == replacement

    def test_get_or_create_persists_defaults(self, manager):
        profile = manager.get_or_create_preferences("u1")
        assert profile == create_default_profile("u1")
        assert manager.get_preferences("u1") == profile

    def test_malformed_stored_profile_is_absent(self, manager):
        manager.store.set("u1", {"user_id": "u1", "default_intensity": {"strength": "extreme"}})
        assert manager.get_preferences("u1") is None

    def test_reset_clears_profile_and_counters(self, manager):
        manager.save_preferences("u1", _profile())
        manager.counters.set("u1", "strength", "high", 2)
        manager.counters.set("u2", "strength", "high", 1)
        manager.reset_preferences("u1")
        assert manager.get_preferences("u1") is None
        assert manager.counters.get("u1", "strength", "high") == 0
        assert manager.counters.get("u2", "strength", "high") == 1

    def test_export_import_round_trip(self, manager):
        manager.save_preferences("u1", _profile())
        exported = manager.export_preferences("u1")
        assert json.loads(exported)["user_id"] == "u1"
        assert manager.import_preferences("u2", exported) is True
        imported = manager.get_preferences("u2")
        assert imported.user_id == "u2"
        assert imported.recent_teams == ["t2", "t1"]
        assert imported.auto_select_players is False

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "[]",
            json.dumps({"user_id": "u1", "recent_workout_types": ["yoga"]}),
        ],
    )
    def test_invalid_import_leaves_profile_untouched(self, manager, payload):
        original = _profile()
        manager.save_preferences("u1", original)
        assert manager.import_preferences("u1", payload) is False
        assert manager.get_preferences("u1") == original

    def test_counters(self, manager):
        assert manager.counters.get("u1", "strength", "high") == 0
        manager.counters.set("u1", "strength", "high", 2)
        manager.counters.set("u1", "strength", "high", 3)
        assert manager.counters.get("u1", "strength", "high") == 3
        assert manager.counters.get("u1", "strength", "low") == 0


class TestPreferenceStats:
    def test_stats_for_unknown_user(self, manager):
        stats = manager.preference_stats("nobody")
        assert stats.total_workouts == 0
        assert stats.average_duration == 53  # mean(60, 45, 75, 30) = 52.5
        assert stats.favorite_workout_type is None
        assert stats.preferred_intensity == "medium"

    def test_stats_break_ties_by_recency(self, manager):
        manager.save_preferences("u1", _profile())
        stats = manager.preference_stats("u1")
        assert stats.total_workouts == 9
        assert stats.favorite_workout_type == WorkoutType.HYBRID
        assert stats.average_duration == 55  # mean(70, 45, 75, 30)
        assert stats.preferred_intensity == "medium"
