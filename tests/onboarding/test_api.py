"""
Tests for the onboarding HTTP API.

Auth and service wiring are overridden so requests run against the
in-memory fakes; state persists across requests through the shared store.
"""

import pytest
from fastapi.testclient import TestClient

from onboarding.api import (
    MAX_SESSION_FLAG_USERS,
    get_onboarding_service,
    get_session_flags,
    to_http_exception,
)
from onboarding.errors import CompletionError, InvalidStepError, NotInitializedError, PersistenceError
from onboarding.service import OnboardingService
from trvl.web.app import app
from trvl.web.auth import AuthenticatedUser, get_current_user


@pytest.fixture
def client(store, profile, sink, reminder, clock, user_id):
    def _current_user():
        return AuthenticatedUser(id=user_id, email="traveler@example.com", access_token="token")

    def _service():
        return OnboardingService(
            store=store,
            profile=profile,
            analytics=sink,
            reminder=reminder,
            clock=clock,
        )

    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_onboarding_service] = _service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestProgressEndpoints:

    def test_state_before_start(self, client):
        response = client.get("/api/onboarding/state")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "NOT_INITIALIZED"

    def test_start(self, client, user_id):
        response = client.post("/api/onboarding/start")

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == user_id
        assert body["current_step"] == "welcome"
        assert body["is_complete"] is False

        state = client.get("/api/onboarding/state").json()
        assert state["current_step"] == "welcome"

    def test_first_time(self, client):
        assert client.get("/api/onboarding/first-time").json() == {"first_time_user": True}

    def test_invalid_step(self, client):
        client.post("/api/onboarding/start")

        response = client.post("/api/onboarding/step", json={"step": "checkout"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_STEP"
        assert response.json()["detail"]["retryable"] is False

    def test_step_before_start(self, client):
        response = client.post("/api/onboarding/step", json={"step": "welcome"})
        assert response.status_code == 409

    def test_full_flow(self, client, profile, sink, adventurer_answers, user_id):
        client.post("/api/onboarding/start")
        client.post("/api/onboarding/step", json={"step": "welcome", "data": {"source": "ad"}})

        quiz = client.post("/api/onboarding/quiz", json={"answers": adventurer_answers})
        assert quiz.status_code == 200
        assert quiz.json()["assessment"]["personality_type"] == "The Adventurer"
        assert quiz.json()["progress"]["current_step"] == "quiz_results"

        personalized = client.get("/api/onboarding/personalized").json()["personalized"]
        assert personalized["personality_type"] == "The Adventurer"

        client.post("/api/onboarding/step", json={"step": "quiz_results"})
        done = client.post("/api/onboarding/step", json={"step": "welcome_personalized"})

        assert done.status_code == 200
        assert done.json()["is_complete"] is True
        assert done.json()["completed_at"] is not None
        assert len(profile.completion_writes) == 1
        assert "onboarding_completed" in sink.names

        # completed users resume into COMPLETE
        state = client.get("/api/onboarding/state").json()
        assert state["current_step"] == "complete"
        assert state["is_complete"] is True

    def test_quiz_accepts_camel_case_answers(self, client):
        client.post("/api/onboarding/start")

        response = client.post("/api/onboarding/quiz", json={"answers": [
            {"questionId": 1, "traitScores": {"socialPreference": 5, "energyLevel": 3}},
        ]})

        assert response.json()["assessment"]["personality_type"] == "The Group Planner"

    def test_empty_quiz(self, client):
        client.post("/api/onboarding/start")

        response = client.post("/api/onboarding/quiz", json={"answers": []})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "EMPTY_ASSESSMENT"

    def test_completion_failure_is_retryable(self, client, profile):
        client.post("/api/onboarding/start")
        for step in ("welcome", "personality_quiz", "quiz_results"):
            client.post("/api/onboarding/step", json={"step": step})
        profile.fail_completion_write = True

        response = client.post("/api/onboarding/step", json={"step": "welcome_personalized"})

        assert response.status_code == 503
        assert response.json()["detail"]["retryable"] is True
        assert client.get("/api/onboarding/state").json()["current_step"] == "welcome_personalized"

    def test_replayed_final_step_after_clear_failure(self, client, cache, profile, sink):
        client.post("/api/onboarding/start")
        for step in ("welcome", "personality_quiz", "quiz_results"):
            client.post("/api/onboarding/step", json={"step": step})
        cache.fail_clear = True

        client.post("/api/onboarding/step", json={"step": "welcome_personalized"})

        assert client.get("/api/onboarding/state").json()["is_complete"] is True

        replay = client.post("/api/onboarding/step", json={"step": "welcome_personalized"})

        assert replay.status_code == 200
        assert replay.json()["is_complete"] is True
        assert len(profile.completion_writes) == 1
        assert sink.names.count("onboarding_completed") == 1

    def test_abandon(self, client, sink):
        client.post("/api/onboarding/start")

        response = client.post("/api/onboarding/abandon", json={"reason": "later"})

        assert response.json() == {"success": True}
        assert sink.last("onboarding_abandoned")["reason"] == "later"


class TestReminderEndpoints:

    def test_skip_then_reminder(self, client):
        client.post("/api/onboarding/start")
        client.post("/api/onboarding/step", json={"step": "welcome"})

        skipped = client.post("/api/onboarding/quiz/skip").json()
        assert skipped["current_step"] == "complete"
        assert skipped["data"]["quiz_skipped"] is True

        assert client.get("/api/onboarding/reminder").json()["show"] is True

        client.post("/api/onboarding/reminder/dismiss")
        assert client.get("/api/onboarding/reminder").json()["show"] is False

    def test_snooze(self, client, clock):
        client.post("/api/onboarding/start")
        client.post("/api/onboarding/quiz/skip")

        response = client.post("/api/onboarding/reminder/snooze", json={"hours": 2})

        assert response.json()["show"] is False
        assert response.json()["snoozed_until"].startswith("2026-03-01T11:00:00")
        assert client.get("/api/onboarding/reminder").json()["show"] is False

    def test_snooze_hours_validated(self, client):
        response = client.post("/api/onboarding/reminder/snooze", json={"hours": 0})
        assert response.status_code == 422


class TestSessionFlags:

    @pytest.fixture(autouse=True)
    def _fresh_flags(self):
        get_session_flags.cache_clear()
        yield
        get_session_flags.cache_clear()

    def test_same_user_shares_flags(self):
        assert get_session_flags("user-1") is get_session_flags("user-1")
        assert get_session_flags("user-1") is not get_session_flags("user-2")

    def test_bounded(self):
        first = get_session_flags("user-0")
        first.save("quiz_skipped", {"skipped_at": "2026-03-01T09:00:00+00:00"})

        for i in range(1, MAX_SESSION_FLAG_USERS + 1):
            get_session_flags(f"user-{i}")

        assert get_session_flags.cache_info().currsize == MAX_SESSION_FLAG_USERS
        assert get_session_flags("user-0") is not first
        assert get_session_flags("user-0").load("quiz_skipped") is None


class TestAuth:

    def test_missing_authorization(self):
        response = TestClient(app).get("/api/onboarding/state")
        assert response.status_code == 401

    def test_invalid_authorization_format(self):
        response = TestClient(app).get(
            "/api/onboarding/state",
            headers={"Authorization": "Token abc"},
        )
        assert response.status_code == 401


class TestErrorMapping:

    @pytest.mark.parametrize("error, status", [
        (InvalidStepError("bad"), 400),
        (NotInitializedError("missing"), 409),
        (PersistenceError("down"), 503),
        (CompletionError("down"), 503),
    ])
    def test_status_codes(self, error, status):
        assert to_http_exception(error).status_code == status
