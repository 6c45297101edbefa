# nightowl/schemas/__init__.py
from nightowl.schemas.state import GamificationState, GamificationStateUpdate
from nightowl.schemas.xp import XPTransaction, XPAwardResult, XPStatus
from nightowl.schemas.achievement import Achievement, Badge, UserBadge
from nightowl.schemas.streak import Streak, StreakFreezeRequest, StreakUpdate
from nightowl.schemas.quest import UserQuest, Quest, ActiveQuest, QuestStartRequest
from nightowl.schemas.inventory import InventoryItem, EquippedItems
from nightowl.schemas.settings import (
    GamificationSettings,
    GamificationSettingsBase,
    GamificationSettingsUpdate,
)
from nightowl.schemas.session import SessionTracking, DailySessionSummary, WellbeingStatus
from nightowl.schemas.event import GamificationEvent
from nightowl.schemas.action import ActionRequest
from nightowl.schemas.results import (
    QuestCompletionAward,
    DailyCheckInResult,
    EvolutionChange,
    EvolutionStatus,
    GamificationResult,
    PlayerProfile,
    UserDataExport,
)
