"""
Integration tests for the gamification engine: actions, check-ins, quests,
badges, streaks, evolution, wellbeing and events.
"""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from nightowl.core.constants import (
    EventType,
    GamificationAction,
    QuestStatus,
    StreakType,
    XPSource,
)
from nightowl.core.exceptions import (
    ResourceNotFoundException,
    TransactionFailureException,
    ValidationException,
)
from nightowl.repositories.xp_transaction_repository import XPTransactionRepository

NOW = datetime(2026, 3, 10, 12, 0)


def day(offset, hour=12):
    return NOW.replace(hour=hour) + timedelta(days=offset)


def event_types(events):
    return [event.type for event in events]


def badge_ids(achievements):
    return {achievement.achievement_id for achievement in achievements}


class TestRecordAction:
    def test_first_diary_entry(self, engine, user_id, recorded_events):
        result = engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)

        assert result.xp_earned == 15
        assert result.total_xp == 15
        assert result.level == 1
        assert result.leveled_up is False
        assert result.evolution is None
        assert [(u.type, u.current_count) for u in result.streak_updates] == [
            (StreakType.SLEEP_DIARY, 1)
        ]
        assert "first_diary" in badge_ids(result.awarded_badges)
        assert event_types(recorded_events)[:2] == [
            EventType.XP_EARNED,
            EventType.STREAK_UPDATED,
        ]
        assert EventType.ACHIEVEMENT_UNLOCKED in event_types(recorded_events)

    def test_action_as_string(self, engine, user_id):
        assert engine.record_action(user_id, "emotion_logged", now=NOW).xp_earned == 10

    def test_unknown_action(self, engine, user_id):
        with pytest.raises(ValidationException):
            engine.record_action(user_id, "sleepwalking", now=NOW)

    def test_custom_action_uses_metadata(self, engine, repository, user_id):
        result = engine.record_action(
            user_id, GamificationAction.CUSTOM, {"xp": 12, "metric": "stretching"}, now=NOW
        )
        assert result.xp_earned == 12
        [transaction] = repository.get_xp_transactions(user_id)
        assert transaction.metadata_json["metric"] == "stretching"
        assert transaction.metadata_json["action"] == "custom"

    def test_custom_action_without_xp(self, engine, repository, user_id):
        result = engine.record_action(user_id, GamificationAction.CUSTOM, now=NOW)
        assert result.xp_earned == 0
        assert repository.get_xp_transactions(user_id) == []
        assert repository.get_state(user_id).total_days_active == 1

    def test_invalid_progress_value_is_rejected(self, engine, repository, user_id):
        with pytest.raises(ValidationException):
            engine.record_action(
                user_id, GamificationAction.DIARY_ENTRY, {"value": "lots"}, now=NOW
            )
        assert repository.get_state(user_id) is None
        assert repository.get_xp_transactions(user_id) == []

    @pytest.mark.parametrize("xp", ["ten", -5, None, True])
    def test_invalid_custom_xp_is_rejected(self, engine, repository, user_id, xp):
        with pytest.raises(ValidationException):
            engine.record_action(user_id, GamificationAction.CUSTOM, {"xp": xp}, now=NOW)
        assert repository.get_xp_transactions(user_id) == []

    def test_check_in_action_counts_once_per_day(self, engine, repository, user_id):
        first = engine.record_action(user_id, GamificationAction.DAILY_CHECK_IN, now=NOW)
        second = engine.record_action(
            user_id, GamificationAction.DAILY_CHECK_IN, now=NOW + timedelta(minutes=5)
        )

        assert first.xp_earned > 0
        assert second.xp_earned == 0
        assert second.total_xp == first.total_xp
        assert second.streak_updates == []
        assert len(repository.get_xp_transactions(user_id)) == 1
        assert repository.get_streak(user_id, StreakType.DAILY_LOGIN).current_count == 1

    def test_check_in_action_after_check_in_awards_nothing(self, engine, repository, user_id):
        engine.record_daily_check_in(user_id, now=NOW)
        for minutes in (5, 10):
            result = engine.record_action(
                user_id, "daily_check_in", now=NOW + timedelta(minutes=minutes)
            )
            assert result.xp_earned == 0

        assert repository.get_state(user_id).total_xp == 15

    def test_check_in_action_next_day_counts(self, engine, repository, user_id):
        engine.record_daily_check_in(user_id, now=day(0))
        result = engine.record_action(user_id, GamificationAction.DAILY_CHECK_IN, now=day(1))
        assert result.xp_earned > 0
        assert repository.get_streak(user_id, StreakType.DAILY_LOGIN).current_count == 2

    def test_streak_advances_once_per_day(self, engine, repository, user_id):
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)
        second = engine.record_action(
            user_id, GamificationAction.DIARY_ENTRY, now=NOW + timedelta(hours=2)
        )

        assert second.streak_updates == []
        assert second.total_xp == 30
        assert repository.get_streak(user_id, StreakType.SLEEP_DIARY).current_count == 1

    def test_consecutive_days_extend_streak(self, engine, repository, user_id):
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(0))
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(1))
        assert repository.get_streak(user_id, StreakType.SLEEP_DIARY).current_count == 2

    def test_late_night_use_earns_hidden_badge(self, engine, user_id):
        result = engine.record_action(
            user_id, GamificationAction.DIARY_ENTRY, now=day(0, hour=2)
        )
        assert "night_owl" in badge_ids(result.awarded_badges)

    def test_comeback_earns_hidden_badge(self, engine, user_id):
        engine.record_action(user_id, GamificationAction.EMOTION_LOGGED, now=day(0))
        result = engine.record_action(user_id, GamificationAction.EMOTION_LOGGED, now=day(10))
        assert "comeback" in badge_ids(result.awarded_badges)

    def test_referral(self, engine, user_id):
        result = engine.record_action(user_id, GamificationAction.REFERRAL, now=NOW)
        assert result.xp_earned == 50
        assert "helper" in badge_ids(result.awarded_badges)

    def test_complete_diary_entry(self, engine, user_id):
        result = engine.record_action(
            user_id, GamificationAction.DIARY_ENTRY, {"complete": True}, now=NOW
        )
        assert "perfectionist" in badge_ids(result.awarded_badges)


class TestStreakBreaks:
    def _diary_days(self, engine, user_id, days):
        for offset in days:
            engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(offset))

    def test_missed_day_soft_resets(self, engine, repository, user_id, recorded_events):
        self._diary_days(engine, user_id, range(10))

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(12))

        streak = repository.get_streak(user_id, StreakType.SLEEP_DIARY)
        assert streak.current_count == 6
        assert streak.longest_count == 10
        broken = [e for e in recorded_events if e.type == EventType.STREAK_BROKEN]
        assert broken[0].payload["previous_count"] == 10
        assert broken[0].payload["current_count"] == 5

    def test_hard_reset_when_soft_reset_disabled(self, engine, repository, user_id):
        engine.update_settings(user_id, {"soft_reset_enabled": False})
        self._diary_days(engine, user_id, range(5))

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(8))

        assert repository.get_streak(user_id, StreakType.SLEEP_DIARY).current_count == 1

    def test_freeze_covers_the_gap(self, engine, repository, user_id):
        self._diary_days(engine, user_id, range(5))
        engine.freeze_streak(user_id, StreakType.SLEEP_DIARY, day(9), now=day(4))

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(7))

        assert repository.get_streak(user_id, StreakType.SLEEP_DIARY).current_count == 6

    def test_expired_freeze_does_not_protect(self, engine, repository, user_id):
        self._diary_days(engine, user_id, range(5))
        engine.freeze_streak(user_id, StreakType.SLEEP_DIARY, day(5), now=day(4))

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(8))

        streak = repository.get_streak(user_id, StreakType.SLEEP_DIARY)
        assert streak.current_count == 3
        assert streak.frozen is False

    def test_freeze_must_end_in_future(self, engine, user_id):
        with pytest.raises(ValidationException):
            engine.freeze_streak(user_id, StreakType.DAILY_LOGIN, day(-1), now=NOW)

    def test_manual_reset_emits_broken(self, engine, user_id, recorded_events):
        for _ in range(4):
            engine.increment_streak(user_id, StreakType.THERAPY_SESSION)

        streak = engine.reset_streak(user_id, StreakType.THERAPY_SESSION)

        assert streak.current_count == 2
        assert event_types(recorded_events)[-1] == EventType.STREAK_BROKEN

    def test_increment_reports_new_record(self, engine, user_id):
        update = engine.increment_streak(user_id, StreakType.DAILY_LOGIN)
        assert update.previous_count == 0
        assert update.current_count == 1
        assert update.is_new_record is True


class TestDailyCheckIn:
    def test_first_check_in(self, engine, user_id, recorded_events):
        result = engine.record_daily_check_in(user_id, now=NOW)

        assert result.xp_earned == 15
        assert result.streak.current_count == 1
        assert event_types(recorded_events) == [
            EventType.STREAK_UPDATED,
            EventType.XP_EARNED,
            EventType.DAILY_CHECK_IN,
        ]

    def test_second_check_in_same_day(self, engine, user_id, recorded_events):
        engine.record_daily_check_in(user_id, now=NOW)
        published = len(recorded_events)

        again = engine.record_daily_check_in(user_id, now=NOW + timedelta(hours=1))

        assert again.already_checked_in is True
        assert again.xp_earned == 0
        assert len(recorded_events) == published

    def test_missed_day_breaks_check_in_streak(self, engine, user_id, recorded_events):
        for offset in range(10):
            engine.record_daily_check_in(user_id, now=day(offset))

        result = engine.record_daily_check_in(user_id, now=day(12))

        assert result.streak.current_count == 6
        assert EventType.STREAK_BROKEN in event_types(recorded_events)

    def test_a_week_of_check_ins_evolves_the_owl(self, engine, user_id, recorded_events):
        for offset in range(7):
            result = engine.record_daily_check_in(user_id, now=day(offset))

        assert "streak_7" in badge_ids(result.awarded_badges)
        evolutions = [e for e in recorded_events if e.type == EventType.EVOLUTION_STAGE_CHANGED]
        assert len(evolutions) == 1
        assert evolutions[0].payload["new_stage"] == "young_owl"


class TestXP:
    def test_level_up_event(self, engine, user_with_state, recorded_events):
        award = engine.add_xp(user_with_state, 100, XPSource.MILESTONE_REACHED)

        assert award.leveled_up is True
        assert event_types(recorded_events) == [EventType.XP_EARNED, EventType.LEVEL_UP]
        assert recorded_events[1].payload["new_level"] == 2

    def test_xp_status(self, engine, user_with_state):
        engine.add_xp(user_with_state, 150, XPSource.MILESTONE_REACHED)
        status = engine.get_xp_status(user_with_state)
        assert status.level == 2
        assert status.xp_into_level == 50
        assert status.xp_to_next_level == 132
        assert status.xp_earned_today == 150


class TestEvents:
    def test_listeners_see_committed_state(self, engine, repository, user_id):
        seen = []
        engine.on(
            EventType.XP_EARNED,
            lambda event: seen.append(repository.get_state(event.user_id).total_xp),
        )

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)

        assert seen == [15]

    def test_failed_operation_publishes_nothing(self, engine, repository, user_id, recorded_events):
        with patch.object(
            XPTransactionRepository, "append", side_effect=SQLAlchemyError("disk I/O error")
        ):
            with pytest.raises(TransactionFailureException):
                engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)

        assert recorded_events == []
        assert repository.get_state(user_id) is None

    def test_broken_listener_does_not_fail_the_action(self, engine, user_id):
        def broken(event):
            raise RuntimeError("push service down")

        engine.on(EventType.XP_EARNED, broken)
        result = engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)
        assert result.xp_earned == 15

    def test_off_unsubscribes(self, engine, user_id):
        seen = []
        engine.on(EventType.XP_EARNED, seen.append)
        assert engine.off(EventType.XP_EARNED, seen.append) is True
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)
        assert seen == []


class TestQuests:
    def test_start_quest(self, engine, user_id, recorded_events):
        quest = engine.start_quest(user_id, "diary_streak_7", now=NOW)

        assert quest.status == QuestStatus.ACTIVE
        assert quest.expires_at == NOW + timedelta(days=7)
        assert quest.objectives_json == {"currentValue": 0, "targetValue": 7}
        assert event_types(recorded_events) == [EventType.QUEST_STARTED]

    def test_unknown_quest(self, engine, user_id):
        assert engine.start_quest(user_id, "climb_everest", now=NOW) is None

    def test_capacity(self, engine, user_id):
        for quest_id in ("diary_streak_7", "voice_diary_5", "sleep_7h_5d"):
            assert engine.start_quest(user_id, quest_id, now=NOW) is not None
        assert engine.start_quest(user_id, "breathing_master", now=NOW) is None

    def test_available_quests_exclude_started(self, engine, user_id):
        engine.start_quest(user_id, "diary_streak_7", now=NOW)
        available = [quest.id for quest in engine.get_available_quests(user_id)]
        assert "diary_streak_7" not in available
        assert len(available) == 9

    def test_active_quest_view(self, engine, user_id):
        engine.start_quest(user_id, "diary_streak_7", now=NOW)
        [active] = engine.get_active_quests(user_id, now=NOW + timedelta(days=2))
        assert active.quest.id == "diary_streak_7"
        assert active.progress_percent == 0
        assert active.days_remaining == 5

    def test_cumulative_progress_uses_value(self, engine, repository, user_id):
        engine.start_quest(user_id, "breathing_master", now=NOW)
        engine.record_action(
            user_id, GamificationAction.BREATHING_EXERCISE, {"value": 5}, now=NOW
        )
        quest = repository.get_user_quest(user_id, "breathing_master")
        assert quest.objectives_json["currentValue"] == 5

    def test_diary_week_completes_quest(self, engine, repository, user_id, recorded_events):
        engine.start_quest(user_id, "diary_streak_7", now=NOW)

        for offset in range(7):
            result = engine.record_action(
                user_id, GamificationAction.DIARY_ENTRY, now=day(offset)
            )

        assert [quest.quest_id for quest in result.completed_quests] == ["diary_streak_7"]
        assert result.xp_earned == 15 + 75
        assert result.total_xp == 7 * 15 + 75
        assert {"diary_starter", "first_quest", "owl_awakened"} <= badge_ids(result.awarded_badges)
        assert result.evolution.new_stage == "young_owl"
        assert repository.get_user_quest(user_id, "diary_streak_7").status == QuestStatus.COMPLETED
        assert EventType.QUEST_COMPLETED in event_types(recorded_events)

    def test_overdue_quest_expires_instead_of_progressing(
        self, engine, repository, user_id, recorded_events
    ):
        engine.start_quest(user_id, "diary_streak_7", now=NOW)

        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=day(8))

        quest = repository.get_user_quest(user_id, "diary_streak_7")
        assert quest.status == QuestStatus.EXPIRED
        assert quest.objectives_json["currentValue"] == 0
        assert EventType.QUEST_EXPIRED in event_types(recorded_events)

    def test_award_unknown_quest(self, engine, user_with_state):
        with pytest.raises(ResourceNotFoundException):
            engine.award_quest_completion(user_with_state, "climb_everest")

    def test_award_twice(self, engine, repository, user_id):
        engine.start_quest(user_id, "digital_detox_3d", now=NOW)
        first = engine.award_quest_completion(user_id, "digital_detox_3d")
        second = engine.award_quest_completion(user_id, "digital_detox_3d")
        assert first.new_total_xp == 50
        assert second.already_completed is True
        assert repository.get_state(user_id).total_xp == 50
        assert engine.get_completed_quest_count(user_id) == 1


class TestBadges:
    def test_badges_start_new_and_can_be_marked_seen(self, engine, user_id):
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)

        [badge] = engine.get_user_badges(user_id)
        assert badge.badge.id == "first_diary"
        assert badge.is_new is True

        assert engine.mark_badges_seen(user_id) == 1
        assert engine.get_user_badges(user_id)[0].is_new is False
        assert engine.mark_badges_seen(user_id) == 0

    def test_locked_badges_track_progress(self, engine, repository, user_id):
        engine.record_action(user_id, GamificationAction.DIARY_ENTRY, now=NOW)
        progress = {a.achievement_id: a.progress for a in repository.get_achievements(user_id)}
        assert progress["diary_50"] == 2
        assert not engine.has_badge(user_id, "diary_50")

    def test_catalogue_hides_secret_badges(self, engine):
        visible = {badge.id for badge in engine.get_all_badges()}
        everything = {badge.id for badge in engine.get_all_badges(include_hidden=True)}
        assert "night_owl" not in visible
        assert "night_owl" in everything
        assert "streak_7" in visible


class TestEvolution:
    def test_status(self, engine, repository, user_id):
        repository.save_state(user_id, {"total_days_active": 10})
        status = engine.get_evolution_status(user_id)
        assert status.stage_id == "young_owl"
        assert status.next_stage_id == "wise_owl"
        assert status.days_to_next == 20
        assert "Relaxation techniques" in status.unlocked_abilities
        assert "Expert analysis" in status.locked_abilities

    def test_check_evolution(self, engine, repository, user_id, recorded_events):
        repository.save_state(user_id, {"total_days_active": 7})

        change = engine.check_evolution(user_id, previous_days_active=6)

        assert change.previous_stage == "owlet"
        assert change.new_stage == "young_owl"
        assert event_types(recorded_events) == [EventType.EVOLUTION_STAGE_CHANGED]
        assert engine.check_evolution(user_id, previous_days_active=7) is None


class TestProfile:
    def test_unknown_user(self, engine):
        assert engine.get_player_profile(999) is None

    def test_profile_after_check_in(self, engine, user_id):
        engine.record_daily_check_in(user_id, now=NOW)

        profile = engine.get_player_profile(user_id)

        assert profile.level == 1
        assert profile.total_xp == 15
        assert profile.total_days_active == 1
        assert profile.xp_to_next_level == 85
        assert [streak.type for streak in profile.streaks] == [StreakType.DAILY_LOGIN]
        assert profile.evolution.stage_id == "owlet"


class TestWellbeing:
    def test_break_suggested(self, engine, user_id):
        engine.start_session(user_id, now=NOW)
        status = engine.check_wellbeing_limits(user_id, now=NOW + timedelta(minutes=35))
        assert status.session_minutes == 35
        assert status.should_suggest_break is True
        assert status.should_end_session is False
        assert status.alerts == ["How about a 15 minute break?"]

    def test_hard_limit(self, engine, user_id):
        engine.start_session(user_id, now=NOW)
        status = engine.check_wellbeing_limits(user_id, now=NOW + timedelta(minutes=65))
        assert status.should_end_session is True
        assert "65 minutes" in status.alerts[0]

    def test_alerts_off_without_compassion(self, engine, user_id):
        engine.update_settings(user_id, {"compassion_enabled": False})
        engine.start_session(user_id, now=NOW)
        status = engine.check_wellbeing_limits(user_id, now=NOW + timedelta(minutes=65))
        assert status.should_end_session is True
        assert status.alerts == []

    def test_daily_limit(self, engine, user_id, recorded_events):
        engine.start_session(user_id, now=NOW - timedelta(hours=3))
        ended = engine.end_session(user_id, now=NOW - timedelta(hours=1))

        status = engine.check_wellbeing_limits(user_id, now=NOW)

        assert ended.duration_minutes == 120
        assert status.session_minutes == 0
        assert status.today_minutes == 120
        assert status.daily_limit_reached is True
        assert event_types(recorded_events) == [EventType.SESSION_STARTED, EventType.SESSION_ENDED]


class TestInventory:
    def test_grant_and_consume(self, engine, user_id):
        engine.grant_reward(user_id, "streak_freeze", 2)
        assert engine.consume_reward(user_id, "streak_freeze").quantity == 1

    def test_consume_missing_reward(self, engine, user_id):
        with pytest.raises(ResourceNotFoundException):
            engine.consume_reward(user_id, "streak_freeze")

    def test_equip_requires_ownership(self, engine, user_id):
        with pytest.raises(ValidationException) as exc_info:
            engine.equip_item(user_id, "badge", "streak_7")
        assert exc_info.value.code == "item_not_owned"

    def test_equip_unlocked_badge(self, engine, repository, user_id):
        repository.unlock_achievement(user_id, "streak_7")
        assert engine.equip_item(user_id, "badge", "streak_7").equipped_badge == "streak_7"

    def test_equip_badge_title(self, engine, repository, user_id):
        repository.unlock_achievement(user_id, "sleep_improver")
        equipped = engine.equip_item(user_id, "title", "Sleep improver")
        assert equipped.equipped_title == "Sleep improver"

    def test_equip_owned_theme(self, engine, user_id):
        engine.grant_reward(user_id, "midnight_sky")
        assert engine.equip_item(user_id, "theme", "midnight_sky").equipped_theme == "midnight_sky"
        assert engine.unequip_item(user_id, "theme").equipped_theme is None


class TestSettingsAndData:
    def test_settings_round_trip(self, engine, user_id):
        assert engine.get_settings(user_id).soft_reset_enabled is True
        engine.update_settings(user_id, {"soft_reset_enabled": False})
        assert engine.get_settings(user_id).soft_reset_enabled is False

    def test_export_then_delete(self, engine, user_id):
        engine.record_daily_check_in(user_id, now=NOW)

        export = engine.export_user_data(user_id)
        assert export.state.total_xp == 15
        assert len(export.xp_transactions) == 1

        assert engine.delete_user_data(user_id) is True
        assert engine.get_player_profile(user_id) is None

    def test_anonymize(self, engine, user_id):
        engine.record_daily_check_in(user_id, now=NOW)
        assert engine.anonymize_user_data(user_id) is True
        assert engine.get_player_profile(user_id) is None

    def test_action_after_anonymize_reactivates_state(self, engine, user_id):
        engine.record_daily_check_in(user_id, now=day(0))
        engine.anonymize_user_data(user_id)

        result = engine.record_action(user_id, GamificationAction.EMOTION_LOGGED, now=day(1))

        assert result.total_xp == 25
        assert engine.get_player_profile(user_id).total_xp == 25

    def test_action_after_delete_starts_over(self, engine, user_id):
        engine.record_daily_check_in(user_id, now=day(0))
        engine.delete_user_data(user_id)

        result = engine.record_action(user_id, GamificationAction.EMOTION_LOGGED, now=day(1))

        assert result.total_xp == 10
