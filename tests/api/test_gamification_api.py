import pytest
from fastapi import status
from unittest.mock import patch

from nightowl.core.exceptions import TransactionFailureException

TEST_USER_ID = 42
BASE_URL = f"/api/v1/users/{TEST_USER_ID}/gamification"


class TestProfileAPI:
    def test_unknown_user_is_404(self, client):
        response = client.get(f"{BASE_URL}/profile")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["error"] == "resource_not_found"
        assert body["details"] == {"user_id": TEST_USER_ID}

    def test_profile_after_check_in(self, client):
        client.post(f"{BASE_URL}/check-in")

        response = client.get(f"{BASE_URL}/profile")

        assert response.status_code == status.HTTP_200_OK
        profile = response.json()
        assert profile["user_id"] == TEST_USER_ID
        assert profile["total_xp"] == 15
        assert profile["level"] == 1
        assert profile["evolution"]["stage_id"] == "owlet"

    def test_request_id_is_echoed(self, client):
        response = client.get(f"{BASE_URL}/profile", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"


class TestActionsAPI:
    def test_record_action(self, client):
        response = client.post(f"{BASE_URL}/actions", json={"action": "diary_entry"})

        assert response.status_code == status.HTTP_200_OK
        result = response.json()
        assert result["xp_earned"] == 15
        assert result["total_xp"] == 15
        assert result["streak_updates"][0]["type"] == "sleep_diary"

    def test_unknown_action_is_rejected(self, client):
        response = client.post(f"{BASE_URL}/actions", json={"action": "sleepwalking"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

    def test_malformed_metadata_is_422(self, client):
        response = client.post(
            f"{BASE_URL}/actions",
            json={"action": "custom", "metadata": {"xp": "ten"}},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"] == {"xp": "ten"}

    def test_check_in_action_twice_earns_once(self, client):
        first = client.post(f"{BASE_URL}/actions", json={"action": "daily_check_in"}).json()
        second = client.post(f"{BASE_URL}/actions", json={"action": "daily_check_in"}).json()

        assert first["xp_earned"] > 0
        assert second["xp_earned"] == 0
        assert second["total_xp"] == first["total_xp"]

    def test_store_failure_is_500(self, client, engine):
        failure = TransactionFailureException("The gamification store failed")
        with patch.object(engine, "record_action", side_effect=failure):
            response = client.post(f"{BASE_URL}/actions", json={"action": "diary_entry"})
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "transaction_failure"

    def test_check_in_is_deduplicated(self, client):
        first = client.post(f"{BASE_URL}/check-in").json()
        second = client.post(f"{BASE_URL}/check-in").json()

        assert first["xp_earned"] == 15
        assert first["already_checked_in"] is False
        assert second["xp_earned"] == 0
        assert second["already_checked_in"] is True


class TestQuestsAPI:
    def test_start_quest(self, client):
        response = client.post(f"{BASE_URL}/quests", json={"quest_id": "diary_streak_7"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["status"] == "active"

        active = client.get(f"{BASE_URL}/quests").json()
        assert [q["quest"]["id"] for q in active] == ["diary_streak_7"]
        assert active[0]["days_remaining"] == 7

    def test_start_twice_is_refused(self, client):
        client.post(f"{BASE_URL}/quests", json={"quest_id": "diary_streak_7"})
        response = client.post(f"{BASE_URL}/quests", json={"quest_id": "diary_streak_7"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "quest_unavailable"

    def test_unknown_quest_is_refused(self, client):
        response = client.post(f"{BASE_URL}/quests", json={"quest_id": "climb_everest"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_fourth_quest_is_conflict(self, client):
        for quest_id in ("diary_streak_7", "voice_diary_5", "sleep_7h_5d"):
            assert client.post(f"{BASE_URL}/quests", json={"quest_id": quest_id}).status_code == 201

        response = client.post(f"{BASE_URL}/quests", json={"quest_id": "breathing_master"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "capacity_exceeded"
        assert len(client.get(f"{BASE_URL}/quests").json()) == 3

    def test_available_quests(self, client):
        client.post(f"{BASE_URL}/quests", json={"quest_id": "diary_streak_7"})
        available = client.get(f"{BASE_URL}/quests/available").json()
        assert "diary_streak_7" not in [quest["id"] for quest in available]


class TestStreaksAPI:
    def test_freeze_streak(self, client):
        response = client.post(f"{BASE_URL}/streaks/daily_login/freeze", json={"days": 3})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["frozen"] is True

        streaks = client.get(f"{BASE_URL}/streaks").json()
        assert [s["type"] for s in streaks] == ["daily_login"]

    @pytest.mark.parametrize("days", [0, 30])
    def test_freeze_length_is_bounded(self, client, days):
        response = client.post(f"{BASE_URL}/streaks/daily_login/freeze", json={"days": days})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_streak_type(self, client):
        response = client.post(f"{BASE_URL}/streaks/weekly_yoga/freeze", json={"days": 1})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestSettingsAPI:
    def test_defaults(self, client):
        response = client.get(f"{BASE_URL}/settings")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["preserve_percentage"] == 0.5

    def test_update(self, client):
        response = client.put(f"{BASE_URL}/settings", json={"preserve_percentage": 0.7})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["preserve_percentage"] == 0.7
        assert client.get(f"{BASE_URL}/settings").json()["preserve_percentage"] == 0.7

    def test_invalid_percentage(self, client):
        response = client.put(f"{BASE_URL}/settings", json={"preserve_percentage": 1.5})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "preserve_percentage" in response.json()["details"]


class TestUserDataAPI:
    def test_export(self, client):
        client.post(f"{BASE_URL}/check-in")

        export = client.get(f"{BASE_URL}/export").json()

        assert export["user_id"] == TEST_USER_ID
        assert export["state"]["total_xp"] == 15
        assert len(export["xp_transactions"]) == 1
        assert export["streaks"][0]["current_count"] == 1

    def test_delete(self, client):
        client.post(f"{BASE_URL}/check-in")

        response = client.delete(BASE_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"user_id": TEST_USER_ID, "deleted": True}
        assert client.get(f"{BASE_URL}/profile").status_code == status.HTTP_404_NOT_FOUND

    def test_anonymize(self, client):
        client.post(f"{BASE_URL}/check-in")

        response = client.post(f"{BASE_URL}/anonymize")

        assert response.json() == {"user_id": TEST_USER_ID, "anonymized": True}
        assert client.get(f"{BASE_URL}/profile").status_code == status.HTTP_404_NOT_FOUND
        assert len(client.get(f"{BASE_URL}/export").json()["xp_transactions"]) == 1
