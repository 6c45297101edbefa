from nightowl.services.events import EventBus
from nightowl.services.gamification_engine import GamificationEngine
