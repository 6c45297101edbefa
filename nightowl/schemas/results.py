# nightowl/schemas/results.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from nightowl.core.constants import EngagementLevel
from nightowl.schemas.achievement import Achievement
from nightowl.schemas.inventory import EquippedItems, InventoryItem
from nightowl.schemas.quest import UserQuest
from nightowl.schemas.session import DailySessionSummary, SessionTracking
from nightowl.schemas.settings import GamificationSettings
from nightowl.schemas.state import GamificationState
from nightowl.schemas.streak import Streak, StreakUpdate
from nightowl.schemas.xp import XPTransaction


class QuestCompletionAward(BaseModel):
    quest: UserQuest
    xp_transaction: Optional[XPTransaction] = None
    leveled_up: bool = False
    previous_level: int
    new_level: int
    new_total_xp: int
    badge: Optional[Achievement] = None
    badge_newly_unlocked: bool = False
    already_completed: bool = False


class DailyCheckInResult(BaseModel):
    streak: Streak
    xp_earned: int
    total_xp: int
    previous_level: int
    new_level: int
    leveled_up: bool
    awarded_badges: List[Achievement] = []
    already_checked_in: bool = False
    days_active: int = 0
    previous_days_active: int = 0


class EvolutionChange(BaseModel):
    previous_stage: str
    new_stage: str
    days_active: int


class EvolutionStatus(BaseModel):
    stage_id: str
    stage_name: str
    greeting: str
    days_active: int
    next_stage_id: Optional[str] = None
    days_to_next: int = 0
    progress_percent: int = 0
    unlocked_abilities: List[str] = []
    locked_abilities: List[str] = []


class GamificationResult(BaseModel):
    xp_earned: int
    total_xp: int
    level: int
    previous_level: int
    leveled_up: bool
    completed_quests: List[UserQuest] = []
    awarded_badges: List[Achievement] = []
    streak_updates: List[StreakUpdate] = []
    evolution: Optional[EvolutionChange] = None
    timestamp: datetime


class PlayerProfile(BaseModel):
    user_id: int
    level: int
    total_xp: int
    xp_into_level: int
    xp_to_next_level: int
    level_progress_percent: int
    engagement_level: EngagementLevel
    total_days_active: int
    streaks: List[Streak] = []
    active_quests: int = 0
    completed_quests: int = 0
    badges_earned: int = 0
    evolution: EvolutionStatus
    equipped: Optional[EquippedItems] = None


class UserDataExport(BaseModel):
    user_id: int
    state: Optional[GamificationState] = None
    settings: Optional[GamificationSettings] = None
    equipped_items: Optional[EquippedItems] = None
    xp_transactions: List[XPTransaction] = []
    achievements: List[Achievement] = []
    streaks: List[Streak] = []
    quests: List[UserQuest] = []
    inventory: List[InventoryItem] = []
    sessions: List[SessionTracking] = []
    daily_summaries: List[DailySessionSummary] = []
    exported_at: datetime
