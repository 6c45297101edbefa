"""
Badge catalogue and criteria evaluation.

Criteria kinds:
    quest    awarded only when the named quest completes
    streak   a streak type reached a count
    count    a metric counter reached a value
    first    a metric counter reached one
    special  hidden surprise badges, checked only for their own trigger,
             or evolution badges checked against the stage index
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple


class BadgeCategory(str, enum.Enum):
    ACHIEVEMENT = "achievement"
    STREAK = "streak"
    MILESTONE = "milestone"
    EVOLUTION = "evolution"
    SPECIAL = "special"


class BadgeRarity(str, enum.Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class CriteriaType(str, enum.Enum):
    QUEST = "quest"
    STREAK = "streak"
    COUNT = "count"
    FIRST = "first"
    SPECIAL = "special"


EVOLUTION_STAGE_METRIC = "evolution_stage"


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    category: BadgeCategory
    rarity: BadgeRarity
    criteria_type: CriteriaType
    metric: Optional[str] = None
    value: Optional[int] = None
    quest_id: Optional[str] = None
    reward_xp: int = 0
    reward_title: Optional[str] = None
    unlocks: Tuple[str, ...] = ()
    hidden: bool = False


@dataclass
class BadgeProfile:
    """Snapshot of the counters badge criteria are evaluated against."""

    streaks: Dict[str, int] = field(default_factory=dict)
    metrics: Dict[str, int] = field(default_factory=dict)
    evolution_stage: int = 0


def _quest_badge(badge_id, name, description, quest_id, rarity, xp, title=None, unlocks=()):
    return BadgeDefinition(
        id=badge_id,
        name=name,
        description=description,
        category=BadgeCategory.ACHIEVEMENT,
        rarity=rarity,
        criteria_type=CriteriaType.QUEST,
        quest_id=quest_id,
        reward_xp=xp,
        reward_title=title,
        unlocks=unlocks,
    )


BADGE_CATALOGUE: Tuple[BadgeDefinition, ...] = (
    # Quest completion
    _quest_badge("diary_starter", "Budding writer", "Kept a sleep diary 7 days in a row",
                 "diary_streak_7", BadgeRarity.COMMON, 25),
    _quest_badge("digital_detox_beginner", "Digital hygiene", "Finished a digital detox",
                 "digital_detox_3d", BadgeRarity.COMMON, 20),
    _quest_badge("voice_journaler", "Voice of the heart", "Recorded 5 voice entries",
                 "voice_diary_5", BadgeRarity.COMMON, 25),
    _quest_badge("consistent_sleeper", "Sound sleeper", "Slept 7 hours for 5 nights",
                 "sleep_7h_5d", BadgeRarity.RARE, 40),
    _quest_badge("routine_builder", "Routine builder", "Kept a bedtime routine for 5 days",
                 "bedtime_routine_5d", BadgeRarity.RARE, 35),
    _quest_badge("mindful_explorer", "Mindful explorer", "Completed 10 relaxation sessions",
                 "mindful_10_sessions", BadgeRarity.RARE, 50),
    _quest_badge("emotion_aware", "Emotionally aware", "Tracked mood for 14 days",
                 "emotion_tracking_14d", BadgeRarity.RARE, 40),
    _quest_badge("sleep_improver", "Sleep improver", "Improved sleep quality",
                 "sleep_quality_improve", BadgeRarity.EPIC, 75, title="Sleep improver"),
    _quest_badge("weekend_warrior", "Weekend warrior", "Kept the routine on 4 weekends",
                 "weekend_warrior", BadgeRarity.EPIC, 60),
    _quest_badge("breathing_master", "Breathing master", "Completed 20 breathing exercises",
                 "breathing_master", BadgeRarity.LEGENDARY, 100, title="Breathing master",
                 unlocks=("advanced_breathing",)),
    # Streaks
    BadgeDefinition(
        id="streak_7",
        name="First week",
        description="Checked in 7 days in a row",
        category=BadgeCategory.STREAK,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.STREAK,
        metric="daily_login",
        value=7,
        reward_xp=30,
    ),
    BadgeDefinition(
        id="streak_21",
        name="Habit",
        description="Checked in 21 days in a row",
        category=BadgeCategory.STREAK,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.STREAK,
        metric="daily_login",
        value=21,
        reward_xp=75,
        reward_title="Steady",
    ),
    BadgeDefinition(
        id="streak_30",
        name="A month together",
        description="Checked in 30 days in a row",
        category=BadgeCategory.STREAK,
        rarity=BadgeRarity.EPIC,
        criteria_type=CriteriaType.STREAK,
        metric="daily_login",
        value=30,
        reward_xp=100,
    ),
    BadgeDefinition(
        id="streak_66",
        name="New way of life",
        description="Checked in 66 days in a row",
        category=BadgeCategory.STREAK,
        rarity=BadgeRarity.LEGENDARY,
        criteria_type=CriteriaType.STREAK,
        metric="daily_login",
        value=66,
        reward_xp=250,
        reward_title="Legend",
    ),
    # Firsts and milestones
    BadgeDefinition(
        id="first_diary",
        name="First entry",
        description="Wrote the first sleep diary entry",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.FIRST,
        metric="diary_entries",
        reward_xp=10,
    ),
    BadgeDefinition(
        id="first_voice",
        name="First voice",
        description="Recorded the first voice entry",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.FIRST,
        metric="voice_entries",
        reward_xp=15,
    ),
    BadgeDefinition(
        id="first_quest",
        name="First quest",
        description="Completed the first quest",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.FIRST,
        metric="quests_completed",
        reward_xp=20,
    ),
    BadgeDefinition(
        id="first_relax",
        name="Moment of calm",
        description="Finished the first relaxation session",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.FIRST,
        metric="relax_sessions",
        reward_xp=10,
    ),
    BadgeDefinition(
        id="quests_5",
        name="Seeker",
        description="Completed 5 quests",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.COUNT,
        metric="quests_completed",
        value=5,
        reward_xp=50,
        reward_title="Seeker",
    ),
    BadgeDefinition(
        id="quests_10",
        name="Traveller",
        description="Completed 10 quests",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.EPIC,
        criteria_type=CriteriaType.COUNT,
        metric="quests_completed",
        value=10,
        reward_xp=100,
        reward_title="Traveller",
    ),
    BadgeDefinition(
        id="diary_50",
        name="Chronicler",
        description="Wrote 50 diary entries",
        category=BadgeCategory.MILESTONE,
        rarity=BadgeRarity.EPIC,
        criteria_type=CriteriaType.COUNT,
        metric="diary_entries",
        value=50,
        reward_xp=100,
    ),
    # Evolution
    BadgeDefinition(
        id="owl_awakened",
        name="Owl awakened",
        description="Your owl grew into a young owl",
        category=BadgeCategory.EVOLUTION,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.SPECIAL,
        metric=EVOLUTION_STAGE_METRIC,
        value=1,
        reward_xp=50,
    ),
    BadgeDefinition(
        id="owl_growing",
        name="Owl growing",
        description="Your owl became wise",
        category=BadgeCategory.EVOLUTION,
        rarity=BadgeRarity.EPIC,
        criteria_type=CriteriaType.SPECIAL,
        metric=EVOLUTION_STAGE_METRIC,
        value=2,
        reward_xp=100,
        unlocks=("owl_advanced",),
    ),
    BadgeDefinition(
        id="owl_master",
        name="Master and owl",
        description="Your owl reached its final form",
        category=BadgeCategory.EVOLUTION,
        rarity=BadgeRarity.LEGENDARY,
        criteria_type=CriteriaType.SPECIAL,
        metric=EVOLUTION_STAGE_METRIC,
        value=3,
        reward_xp=200,
        reward_title="Owl's friend",
        unlocks=("owl_secret",),
    ),
    # Hidden surprises
    BadgeDefinition(
        id="night_owl",
        name="Night owl",
        description="Used the bot after midnight",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.SPECIAL,
        metric="late_night_use",
        reward_xp=15,
        hidden=True,
    ),
    BadgeDefinition(
        id="early_bird",
        name="Early bird",
        description="Made an entry before 6 am",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.COMMON,
        criteria_type=CriteriaType.SPECIAL,
        metric="early_morning_use",
        reward_xp=15,
        hidden=True,
    ),
    BadgeDefinition(
        id="comeback",
        name="Comeback",
        description="Came back after a long break",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.SPECIAL,
        metric="comeback_after_break",
        reward_xp=30,
        hidden=True,
    ),
    BadgeDefinition(
        id="helper",
        name="Helper",
        description="Shared the bot with a friend",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.SPECIAL,
        metric="referral",
        reward_xp=50,
        hidden=True,
    ),
    BadgeDefinition(
        id="perfectionist",
        name="Perfectionist",
        description="Filled in every diary field for a day",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.RARE,
        criteria_type=CriteriaType.SPECIAL,
        metric="complete_diary_entry",
        reward_xp=25,
        hidden=True,
    ),
)


def catalogue_by_id(catalogue=BADGE_CATALOGUE) -> Dict[str, BadgeDefinition]:
    return {badge.id: badge for badge in catalogue}


def criteria_met(
    badge: BadgeDefinition, profile: BadgeProfile, triggers: Set[str] = frozenset()
) -> bool:
    if badge.criteria_type == CriteriaType.QUEST:
        return False
    if badge.criteria_type == CriteriaType.STREAK:
        return profile.streaks.get(badge.metric, 0) >= (badge.value or 0)
    if badge.criteria_type == CriteriaType.COUNT:
        return profile.metrics.get(badge.metric, 0) >= (badge.value or 0)
    if badge.criteria_type == CriteriaType.FIRST:
        return profile.metrics.get(badge.metric, 0) >= 1
    if badge.metric == EVOLUTION_STAGE_METRIC:
        return profile.evolution_stage >= (badge.value or 0)
    return badge.metric in triggers


def evaluate_badges(
    profile: BadgeProfile,
    already_unlocked: Iterable[str],
    triggers: Iterable[str] = (),
    catalogue: Iterable[BadgeDefinition] = BADGE_CATALOGUE,
) -> List[BadgeDefinition]:
    """Badges whose criteria are now met and that the user does not hold yet."""
    owned = set(already_unlocked)
    fired = set(triggers)
    earned = []
    for badge in catalogue:
        if badge.id in owned:
            continue
        if badge.hidden and badge.metric not in fired:
            continue
        if criteria_met(badge, profile, fired):
            earned.append(badge)
    return earned


def badge_progress(badge: BadgeDefinition, profile: BadgeProfile) -> int:
    """Percentage towards a badge, used for the progress column."""
    if badge.criteria_type == CriteriaType.STREAK:
        current, target = profile.streaks.get(badge.metric, 0), badge.value or 1
    elif badge.criteria_type in (CriteriaType.COUNT, CriteriaType.FIRST):
        current, target = profile.metrics.get(badge.metric, 0), badge.value or 1
    elif badge.metric == EVOLUTION_STAGE_METRIC:
        current, target = profile.evolution_stage, badge.value or 1
    else:
        return 0
    return min(100, round(current * 100 / target))
