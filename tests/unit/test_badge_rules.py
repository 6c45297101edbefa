from nightowl.rules.badges import (
    BADGE_CATALOGUE,
    BadgeProfile,
    badge_progress,
    catalogue_by_id,
    evaluate_badges,
)
from nightowl.rules.quests import QUEST_CATALOGUE


def earned_ids(profile, owned=(), triggers=()):
    return {badge.id for badge in evaluate_badges(profile, owned, triggers)}


class TestCatalogue:
    def test_ids_are_unique(self):
        ids = [badge.id for badge in BADGE_CATALOGUE]
        assert len(ids) == len(set(ids))

    def test_every_quest_reward_badge_exists(self):
        badges = catalogue_by_id()
        for quest in QUEST_CATALOGUE:
            assert quest.reward_badge in badges


class TestEvaluateBadges:
    def test_empty_profile_earns_nothing(self):
        assert earned_ids(BadgeProfile()) == set()

    def test_streak_badges(self):
        earned = earned_ids(BadgeProfile(streaks={"daily_login": 7}))
        assert "streak_7" in earned
        assert "streak_21" not in earned

    def test_first_and_count_badges(self):
        profile = BadgeProfile(metrics={"diary_entries": 1, "quests_completed": 5})
        earned = earned_ids(profile)
        assert {"first_diary", "first_quest", "quests_5"} <= earned
        assert "quests_10" not in earned
        assert "diary_50" not in earned

    def test_evolution_badges(self):
        earned = earned_ids(BadgeProfile(evolution_stage=2))
        assert {"owl_awakened", "owl_growing"} <= earned
        assert "owl_master" not in earned

    def test_owned_badges_are_skipped(self):
        profile = BadgeProfile(streaks={"daily_login": 30})
        earned = earned_ids(profile, owned=["streak_7", "streak_21"])
        assert earned == {"streak_30"}

    def test_hidden_badges_need_their_trigger(self):
        assert "night_owl" not in earned_ids(BadgeProfile())
        assert earned_ids(BadgeProfile(), triggers={"late_night_use"}) == {"night_owl"}

    def test_quest_badges_are_never_evaluated(self):
        profile = BadgeProfile(
            streaks={"daily_login": 100},
            metrics={"diary_entries": 100, "quests_completed": 100},
            evolution_stage=3,
        )
        earned = earned_ids(profile)
        assert "diary_starter" not in earned
        assert "breathing_master" not in earned


class TestBadgeProgress:
    def test_partial_streak_progress(self):
        badge = catalogue_by_id()["streak_21"]
        assert badge_progress(badge, BadgeProfile(streaks={"daily_login": 7})) == 33

    def test_progress_is_capped(self):
        badge = catalogue_by_id()["streak_7"]
        assert badge_progress(badge, BadgeProfile(streaks={"daily_login": 70})) == 100

    def test_hidden_badges_have_no_progress(self):
        badge = catalogue_by_id()["night_owl"]
        assert badge_progress(badge, BadgeProfile()) == 0
