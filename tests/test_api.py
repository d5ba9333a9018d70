"""HTTP contract tests for the smart defaults API."""

from __future__ import annotations

import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from api.deps import get_clock, get_preference_manager
from api.main import create_app
from core.services.defaults_context import FixedClock
from core.services.preference_store import (
    InMemoryIntensityCounterStore,
    InMemoryPreferenceStore,
    PreferenceManager,
)

SLOT = {"selected_time_slot": {"start": "14:00", "end": "15:00", "duration": 60}}


@pytest.fixture
def manager():
    return PreferenceManager(InMemoryPreferenceStore(), InMemoryIntensityCounterStore())


@pytest.fixture
def client(manager, monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    app = create_app()
    app.dependency_overrides[get_preference_manager] = lambda: manager
    app.dependency_overrides[get_clock] = lambda: FixedClock(datetime(2026, 1, 6, 9, 30))
    return TestClient(app)


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    generated = client.get("/api/v1/health").headers["X-Request-ID"]
    assert len(generated) == 32


class TestSmartDefaults:
    def test_empty_request(self, client):
        resp = client.post("/api/v1/smart-defaults", json={})
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "strength"
        assert body["date"] == "2026-01-06"
        assert body["time"] == "09:30"
        assert body["confidence"] == 50
        assert body["reasoning"] == []
        assert body["name"] == "Team Strength Training - Jan 6"

    def test_calendar_slot(self, client):
        body = client.post("/api/v1/smart-defaults", json={"calendar": SLOT}).json()
        assert body["time"] == "14:00"
        assert body["duration"] == 60
        assert body["confidence"] == 93
        assert [r["source"] for r in body["top_reasons"]] == ["calendar", "calendar"]

    def test_stored_profile_is_used(self, client, manager):
        client.post("/api/v1/preferences/coach-1/learn", json={"type": "agility", "duration": 60, "team_id": "t9"})
        body = client.post(
            "/api/v1/smart-defaults",
            json={
                "user_id": "coach-1",
                "workout_type": "agility",
                "teams": [{"id": "t9", "name": "Juniors", "player_ids": ["p1", "p2"]}],
                "players": [{"id": "p1"}, {"id": "p2", "unavailable": True}],
            },
        ).json()
        assert body["duration"] == 39  # round(30 * 0.7 + 60 * 0.3)
        assert body["assigned_team_ids"] == ["t9"]
        assert body["assigned_player_ids"] == ["p1"]
        assert body["name"] == "Juniors Agility Drills - Jan 6"

    def test_invalid_workout_type_rejected(self, client):
        assert client.post("/api/v1/smart-defaults", json={"workout_type": "yoga"}).status_code == 422

    def test_apply_defaults(self, client):
        resp = client.post(
            "/api/v1/smart-defaults/apply",
            json={"context": {"calendar": SLOT}, "form": {"name": "Custom", "duration": None, "notes": "x"}},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Custom"
        assert body["duration"] == 60
        assert body["time"] == "14:00"
        assert body["notes"] == "x"


class TestPreferences:
    def test_get_creates_defaults(self, client, manager):
        body = client.get("/api/v1/preferences/u1").json()
        assert body["user_id"] == "u1"
        assert body["default_duration"] == {"strength": 60, "conditioning": 45, "hybrid": 75, "agility": 30}
        assert manager.get_preferences("u1") is not None

    def test_put_and_get(self, client):
        doc = {"user_id": "ignored", "recent_teams": ["t1"], "default_intensity": {"hybrid": "high"}}
        resp = client.put("/api/v1/preferences/u1", json=doc)
        assert resp.status_code == 200
        body = client.get("/api/v1/preferences/u1").json()
        assert body["user_id"] == "u1"
        assert body["recent_teams"] == ["t1"]
        assert body["default_intensity"] == {"hybrid": "high"}

    def test_put_invalid_document(self, client):
        resp = client.put("/api/v1/preferences/u1", json={"user_id": "u1", "recent_teams": ["a"] * 6})
        assert resp.status_code == 422

    def test_learn(self, client):
        resp = client.post("/api/v1/preferences/u1/learn", json={"type": "strength", "duration": 90, "equipment": ["bench"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["default_duration"]["strength"] == 69
        assert body["recent_workout_types"] == ["strength"]
        assert body["preferred_equipment"] == ["bench"]

    def test_learn_invalid_payload(self, client):
        assert client.post("/api/v1/preferences/u1/learn", json={"type": "strength", "time": "25:00"}).status_code == 422

    def test_export_missing_profile(self, client):
        resp = client.get("/api/v1/preferences/nobody/export")
        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "NOT_FOUND"

    def test_export_then_import(self, client):
        client.post("/api/v1/preferences/u1/learn", json={"type": "hybrid", "team_id": "t1"})
        exported = client.get("/api/v1/preferences/u1/export")
        assert exported.status_code == 200
        assert json.loads(exported.text)["recent_teams"] == ["t1"]

        resp = client.post("/api/v1/preferences/u2/import", content=exported.text)
        assert resp.status_code == 200
        assert resp.json() == {"imported": True}
        assert client.get("/api/v1/preferences/u2").json()["recent_teams"] == ["t1"]

    def test_import_invalid(self, client, manager):
        client.put("/api/v1/preferences/u1", json={"user_id": "u1", "recent_teams": ["t1"]})
        resp = client.post("/api/v1/preferences/u1/import", content='{"user_id": "u1", "auto_select_team": "maybe"}')
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "INVALID_PREFERENCES"
        assert manager.get_preferences("u1").recent_teams == ["t1"]

    def test_stats(self, client):
        for _ in range(2):
            client.post("/api/v1/preferences/u1/learn", json={"type": "conditioning"})
        client.post("/api/v1/preferences/u1/learn", json={"type": "strength"})
        body = client.get("/api/v1/preferences/u1/stats").json()
        assert body["total_workouts"] == 3
        assert body["favorite_workout_type"] == "conditioning"
        assert body["preferred_intensity"] == "medium"

    def test_reset(self, client, manager):
        client.post("/api/v1/preferences/u1/learn", json={"type": "strength"})
        assert client.delete("/api/v1/preferences/u1").status_code == 204
        assert manager.get_preferences("u1") is None
        assert client.get("/api/v1/preferences/u1/export").status_code == 404


def test_unpadded_facility_slot_rejected(client):
    facility = {
        "facility_id": "f1",
        "date": "2026-01-06",
        "equipment": ["bench"],
        "time_slots": [{"start": "9:00", "end": "11:00", "available": True}],
    }
    resp = client.post("/api/v1/smart-defaults", json={"facilities": [facility]})
    assert resp.status_code == 422


def test_docs_hidden_in_production(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    client = TestClient(create_app())
    assert client.get("/docs").status_code == 404
    assert client.get("/openapi.json").status_code == 404
    assert client.get("/api/v1/health").status_code == 200


def test_docs_served_outside_production(client):
    assert client.get("/openapi.json").status_code == 200
