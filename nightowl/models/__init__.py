from nightowl.models.state import GamificationState
from nightowl.models.xp_transaction import XPTransaction
from nightowl.models.achievement import Achievement
from nightowl.models.streak import Streak
from nightowl.models.quest import UserQuest
from nightowl.models.inventory import InventoryItem, EquippedItems
from nightowl.models.settings import GamificationSettings
from nightowl.models.session_tracking import SessionTracking, DailySessionSummary
