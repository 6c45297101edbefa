"""
Integration tests for export, erasure and anonymization of user data.
"""
from datetime import datetime, timedelta

from nightowl.core.constants import StreakType, XPSource
from nightowl.rules.anonymization import REDACTED

NOW = datetime(2026, 3, 10, 12, 0)
OTHER_USER_ID = 7


def populate(repository, user_id):
    repository.save_state(user_id)
    repository.add_xp(
        user_id, 40, XPSource.SLEEP_DIARY, {"metric": "diary_entries", "note": "slept badly"}
    )
    repository.unlock_achievement(user_id, "first_diary")
    repository.increment_streak(user_id, StreakType.SLEEP_DIARY)
    repository.start_quest(user_id, "diary_streak_7", {"currentValue": 1})
    repository.add_to_inventory(user_id, "streak_freeze")
    repository.equip_item(user_id, "theme", "midnight_sky")
    repository.save_settings(user_id, {"compassion_enabled": False})
    repository.start_session(user_id, NOW)
    repository.end_session(user_id, ended_at=NOW + timedelta(minutes=12))


class TestExport:
    def test_export_contains_every_aggregate(self, repository, user_id):
        populate(repository, user_id)

        export = repository.export_user_data(user_id)

        assert export.user_id == user_id
        assert export.state.total_xp == 40
        assert export.settings.compassion_enabled is False
        assert export.equipped_items.equipped_theme == "midnight_sky"
        assert len(export.xp_transactions) == 1
        assert [a.achievement_id for a in export.achievements] == ["first_diary"]
        assert [s.type for s in export.streaks] == [StreakType.SLEEP_DIARY]
        assert [q.quest_id for q in export.quests] == ["diary_streak_7"]
        assert [i.reward_id for i in export.inventory] == ["streak_freeze"]
        assert len(export.sessions) == 1
        assert export.daily_summaries[0].total_minutes == 12
        assert export.exported_at is not None

    def test_export_of_unknown_user_is_empty(self, repository):
        export = repository.export_user_data(999)
        assert export.state is None
        assert export.settings is None
        assert export.xp_transactions == []
        assert export.quests == []

    def test_export_respects_ledger_limit(self, repository, user_with_state):
        for _ in range(4):
            repository.add_xp(user_with_state, 5, XPSource.EMOTION_LOG)
        assert len(repository.export_user_data(user_with_state, xp_limit=3).xp_transactions) == 3


class TestDelete:
    def test_delete_removes_everything(self, repository, user_id):
        populate(repository, user_id)

        assert repository.delete_user_data(user_id) is True

        export = repository.export_user_data(user_id)
        assert export.state is None
        assert export.settings is None
        assert export.equipped_items is None
        assert export.xp_transactions == []
        assert export.achievements == []
        assert export.streaks == []
        assert export.quests == []
        assert export.inventory == []
        assert export.sessions == []
        assert export.daily_summaries == []

    def test_delete_is_idempotent(self, repository, user_id):
        populate(repository, user_id)
        repository.delete_user_data(user_id)
        assert repository.delete_user_data(user_id) is True

    def test_delete_leaves_other_users_alone(self, repository, user_id):
        populate(repository, user_id)
        populate(repository, OTHER_USER_ID)

        repository.delete_user_data(user_id)

        assert repository.get_state(OTHER_USER_ID).total_xp == 40
        assert len(repository.get_xp_transactions(OTHER_USER_ID)) == 1


class TestAnonymize:
    def test_anonymize_hides_state_and_drops_sessions(self, repository, user_id):
        populate(repository, user_id)

        assert repository.anonymize_user_data(user_id) is True

        assert repository.get_state(user_id) is None
        export = repository.export_user_data(user_id)
        assert export.sessions == []
        assert export.daily_summaries == []

    def test_ledger_is_kept_but_redacted(self, repository, user_id):
        populate(repository, user_id)

        repository.anonymize_user_data(user_id)

        [transaction] = repository.get_xp_transactions(user_id)
        assert transaction.amount == 40
        assert transaction.metadata_json == {"metric": "diary_entries", "note": REDACTED}
        assert repository.has_achievement(user_id, "first_diary")

    def test_anonymize_is_idempotent(self, repository, user_id):
        populate(repository, user_id)
        repository.anonymize_user_data(user_id)
        assert repository.anonymize_user_data(user_id) is True
        assert repository.get_state(user_id) is None

    def test_save_state_reactivates(self, repository, user_id):
        populate(repository, user_id)
        repository.anonymize_user_data(user_id)

        state = repository.save_state(user_id)

        assert state.deleted_at is None
        assert state.total_xp == 40
        assert repository.get_state(user_id) is not None
