# nightowl/core/constants.py
import enum


class EngagementLevel(str, enum.Enum):
    NEW_USER = "new_user"
    EXPLORING = "exploring"
    COMMITTED = "committed"
    HABITUATED = "habituated"
    VETERAN = "veteran"


class XPSource(str, enum.Enum):
    SLEEP_DIARY = "sleep_diary"
    EMOTION_LOG = "emotion_log"
    AI_INTERACTION = "ai_interaction"
    FIRST_ACTION = "first_action"
    QUEST_COMPLETE = "quest_complete"
    DAILY_CHECK_IN = "daily_check_in"
    HELPING_OTHERS = "helping_others"
    STREAK_BONUS = "streak_bonus"
    MILESTONE_REACHED = "milestone_reached"
    ACHIEVEMENT_UNLOCK = "achievement_unlock"


class StreakType(str, enum.Enum):
    DAILY_LOGIN = "daily_login"
    SLEEP_DIARY = "sleep_diary"
    EMOTION_LOG = "emotion_log"
    CHALLENGE_COMPLETE = "challenge_complete"
    THERAPY_SESSION = "therapy_session"


class QuestStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


class EquipSlot(str, enum.Enum):
    BADGE = "badge"
    TITLE = "title"
    THEME = "theme"
    FRAME = "frame"


class GamificationAction(str, enum.Enum):
    DIARY_ENTRY = "diary_entry"
    VOICE_DIARY = "voice_diary"
    SLEEP_LOGGED = "sleep_logged"
    EMOTION_LOGGED = "emotion_logged"
    RELAX_SESSION = "relax_session"
    BREATHING_EXERCISE = "breathing_exercise"
    MINDFUL_SESSION = "mindful_session"
    QUEST_STARTED = "quest_started"
    QUEST_COMPLETED = "quest_completed"
    DAILY_CHECK_IN = "daily_check_in"
    REFERRAL = "referral"
    STREAK_MAINTAINED = "streak_maintained"
    GOAL_ACHIEVED = "goal_achieved"
    CUSTOM = "custom"


class EventType(str, enum.Enum):
    XP_EARNED = "xp:earned"
    LEVEL_UP = "level:up"
    QUEST_STARTED = "quest:started"
    QUEST_PROGRESS = "quest:progress"
    QUEST_COMPLETED = "quest:completed"
    QUEST_EXPIRED = "quest:expired"
    ACHIEVEMENT_UNLOCKED = "achievement:unlocked"
    STREAK_UPDATED = "streak:updated"
    STREAK_FROZEN = "streak:frozen"
    STREAK_BROKEN = "streak:broken"
    EVOLUTION_STAGE_CHANGED = "evolution:stage_changed"
    DAILY_CHECK_IN = "daily:check_in"
    SESSION_STARTED = "session:started"
    SESSION_ENDED = "session:ended"


# Base XP per action
XP_REWARDS = {
    GamificationAction.DIARY_ENTRY: 15,
    GamificationAction.VOICE_DIARY: 20,
    GamificationAction.SLEEP_LOGGED: 10,
    GamificationAction.EMOTION_LOGGED: 10,
    GamificationAction.RELAX_SESSION: 15,
    GamificationAction.BREATHING_EXERCISE: 10,
    GamificationAction.MINDFUL_SESSION: 15,
    GamificationAction.QUEST_STARTED: 5,
    GamificationAction.QUEST_COMPLETED: 0,  # quest reward is awarded on completion
    GamificationAction.DAILY_CHECK_IN: 25,
    GamificationAction.REFERRAL: 50,
    GamificationAction.STREAK_MAINTAINED: 5,
    GamificationAction.GOAL_ACHIEVED: 30,
    GamificationAction.CUSTOM: 0,
}

ACTION_TO_XP_SOURCE = {
    GamificationAction.DIARY_ENTRY: XPSource.SLEEP_DIARY,
    GamificationAction.VOICE_DIARY: XPSource.SLEEP_DIARY,
    GamificationAction.SLEEP_LOGGED: XPSource.SLEEP_DIARY,
    GamificationAction.EMOTION_LOGGED: XPSource.EMOTION_LOG,
    GamificationAction.RELAX_SESSION: XPSource.AI_INTERACTION,
    GamificationAction.BREATHING_EXERCISE: XPSource.AI_INTERACTION,
    GamificationAction.MINDFUL_SESSION: XPSource.AI_INTERACTION,
    GamificationAction.QUEST_STARTED: XPSource.FIRST_ACTION,
    GamificationAction.QUEST_COMPLETED: XPSource.QUEST_COMPLETE,
    GamificationAction.DAILY_CHECK_IN: XPSource.DAILY_CHECK_IN,
    GamificationAction.REFERRAL: XPSource.HELPING_OTHERS,
    GamificationAction.STREAK_MAINTAINED: XPSource.STREAK_BONUS,
    GamificationAction.GOAL_ACHIEVED: XPSource.MILESTONE_REACHED,
    GamificationAction.CUSTOM: XPSource.AI_INTERACTION,
}

# Counter each action feeds for quests and badges
ACTION_TO_METRIC = {
    GamificationAction.DIARY_ENTRY: "diary_entries",
    GamificationAction.VOICE_DIARY: "voice_entries",
    GamificationAction.SLEEP_LOGGED: "sleep_hours_7",
    GamificationAction.EMOTION_LOGGED: "emotion_logs",
    GamificationAction.RELAX_SESSION: "relax_sessions",
    GamificationAction.BREATHING_EXERCISE: "breathing_sessions",
    GamificationAction.MINDFUL_SESSION: "relax_sessions",
    GamificationAction.QUEST_STARTED: "quests_started",
    GamificationAction.QUEST_COMPLETED: "quests_completed",
    GamificationAction.DAILY_CHECK_IN: "daily_check_in",
    GamificationAction.REFERRAL: "referral",
    GamificationAction.STREAK_MAINTAINED: "streak_days",
    GamificationAction.GOAL_ACHIEVED: "goals_achieved",
    GamificationAction.CUSTOM: "custom",
}

ACTION_TO_STREAK = {
    GamificationAction.DIARY_ENTRY: StreakType.SLEEP_DIARY,
    GamificationAction.DAILY_CHECK_IN: StreakType.DAILY_LOGIN,
    GamificationAction.EMOTION_LOGGED: StreakType.EMOTION_LOG,
}

# Default per-user settings applied when no settings row exists
DEFAULT_SETTINGS = {
    "compassion_enabled": True,
    "soft_reset_enabled": True,
    "preserve_percentage": 0.5,
    "soft_limit_minutes": 30,
    "hard_limit_minutes": 60,
    "daily_limit_minutes": 120,
    "break_duration_minutes": 15,
}
