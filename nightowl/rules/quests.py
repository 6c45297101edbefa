"""
Quest catalogue and progress rules.
"""

import enum
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional, Tuple

MAX_ACTIVE_QUESTS = 3


class QuestDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ProgressType(str, enum.Enum):
    STREAK = "streak"  # consecutive days, broken by a missed day
    CUMULATIVE = "cumulative"  # running total
    IMPROVEMENT = "improvement"  # latest reported delta


@dataclass(frozen=True)
class QuestDefinition:
    id: str
    title: str
    description: str
    category: str
    difficulty: QuestDifficulty
    duration_days: int
    target_metric: str
    target_value: int
    progress_type: ProgressType
    reward_xp: int
    reward_badge: Optional[str] = None


QUEST_CATALOGUE: Tuple[QuestDefinition, ...] = (
    QuestDefinition(
        id="diary_streak_7",
        title="A week of diary",
        description="Keep your sleep diary 7 days in a row",
        category="diary",
        difficulty=QuestDifficulty.EASY,
        duration_days=7,
        target_metric="diary_entries",
        target_value=7,
        progress_type=ProgressType.STREAK,
        reward_xp=75,
        reward_badge="diary_starter",
    ),
    QuestDefinition(
        id="digital_detox_3d",
        title="Digital detox",
        description="No phone in the hour before bed, 3 days in a row",
        category="digital_detox",
        difficulty=QuestDifficulty.EASY,
        duration_days=5,
        target_metric="no_phone_before_bed",
        target_value=3,
        progress_type=ProgressType.STREAK,
        reward_xp=50,
        reward_badge="digital_detox_beginner",
    ),
    QuestDefinition(
        id="voice_diary_5",
        title="Voice diary",
        description="Record 5 voice diary entries",
        category="diary",
        difficulty=QuestDifficulty.EASY,
        duration_days=10,
        target_metric="voice_entries",
        target_value=5,
        progress_type=ProgressType.CUMULATIVE,
        reward_xp=60,
        reward_badge="voice_journaler",
    ),
    QuestDefinition(
        id="sleep_7h_5d",
        title="Seven hours of sleep",
        description="Sleep at least 7 hours a night for 5 days",
        category="sleep",
        difficulty=QuestDifficulty.MEDIUM,
        duration_days=7,
        target_metric="sleep_hours_7",
        target_value=5,
        progress_type=ProgressType.STREAK,
        reward_xp=100,
        reward_badge="consistent_sleeper",
    ),
    QuestDefinition(
        id="bedtime_routine_5d",
        title="Bedtime routine",
        description="Go to bed at the same time (within 30 minutes) 5 days in a row",
        category="routine",
        difficulty=QuestDifficulty.MEDIUM,
        duration_days=7,
        target_metric="consistent_bedtime",
        target_value=5,
        progress_type=ProgressType.STREAK,
        reward_xp=80,
        reward_badge="routine_builder",
    ),
    QuestDefinition(
        id="mindful_10_sessions",
        title="Path of mindfulness",
        description="Complete 10 relaxation sessions",
        category="mindfulness",
        difficulty=QuestDifficulty.MEDIUM,
        duration_days=14,
        target_metric="relax_sessions",
        target_value=10,
        progress_type=ProgressType.CUMULATIVE,
        reward_xp=120,
        reward_badge="mindful_explorer",
    ),
    QuestDefinition(
        id="emotion_tracking_14d",
        title="Mood tracker",
        description="Track your mood for 14 days",
        category="diary",
        difficulty=QuestDifficulty.MEDIUM,
        duration_days=21,
        target_metric="emotion_logs",
        target_value=14,
        progress_type=ProgressType.CUMULATIVE,
        reward_xp=100,
        reward_badge="emotion_aware",
    ),
    QuestDefinition(
        id="sleep_quality_improve",
        title="Better sleep quality",
        description="Improve your sleep quality score by 1 point within 2 weeks",
        category="sleep",
        difficulty=QuestDifficulty.HARD,
        duration_days=14,
        target_metric="sleep_quality_delta",
        target_value=1,
        progress_type=ProgressType.IMPROVEMENT,
        reward_xp=150,
        reward_badge="sleep_improver",
    ),
    QuestDefinition(
        id="weekend_warrior",
        title="Weekend routine",
        description="Keep your sleep schedule on 4 weekends",
        category="routine",
        difficulty=QuestDifficulty.HARD,
        duration_days=14,
        target_metric="weekend_routine_kept",
        target_value=4,
        progress_type=ProgressType.CUMULATIVE,
        reward_xp=130,
        reward_badge="weekend_warrior",
    ),
    QuestDefinition(
        id="breathing_master",
        title="Breathing master",
        description="Complete 20 breathing exercises",
        category="mindfulness",
        difficulty=QuestDifficulty.HARD,
        duration_days=30,
        target_metric="breathing_sessions",
        target_value=20,
        progress_type=ProgressType.CUMULATIVE,
        reward_xp=200,
        reward_badge="breathing_master",
    ),
)


def catalogue_by_id(catalogue=QUEST_CATALOGUE) -> Dict[str, QuestDefinition]:
    return {quest.id: quest for quest in catalogue}


def initial_objectives(quest: QuestDefinition) -> Dict:
    return {"currentValue": 0, "targetValue": quest.target_value}


def advance_objectives(
    quest: QuestDefinition, objectives: Dict, value: int, today: date
) -> Optional[Dict]:
    """
    Apply one reported value to a quest's objectives.

    Returns the partial update to merge, or None when nothing changes (a streak
    quest already counted today).
    """
    current = objectives.get("currentValue", 0)
    last_update = objectives.get("lastUpdateDate")
    today_str = today.isoformat()

    if quest.progress_type == ProgressType.STREAK:
        if last_update == today_str:
            return None
        yesterday = (today - timedelta(days=1)).isoformat()
        if last_update in (None, yesterday):
            current += 1
        else:
            current = 1
    elif quest.progress_type == ProgressType.CUMULATIVE:
        current += value
    else:
        current = value

    return {"currentValue": current, "lastUpdateDate": today_str}


def is_complete(objectives: Dict) -> bool:
    target = objectives.get("targetValue")
    return target is not None and objectives.get("currentValue", 0) >= target


def progress_percent(objectives: Dict) -> int:
    target = objectives.get("targetValue") or 0
    if target <= 0:
        return 0
    return min(100, round(objectives.get("currentValue", 0) * 100 / target))
