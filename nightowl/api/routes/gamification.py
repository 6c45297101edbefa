# nightowl/api/routes/gamification.py
from datetime import timedelta
from typing import Any, List
import logging

from fastapi import APIRouter, Depends, status

from nightowl import schemas
from nightowl.api import deps
from nightowl.core.constants import StreakType
from nightowl.core.exceptions import BusinessException, ResourceNotFoundException
from nightowl.core.logging import log_context
from nightowl.services.gamification_engine import GamificationEngine
from nightowl.utils.time import utcnow

# Set up logger
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profile", response_model=schemas.PlayerProfile)
def read_profile(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Level, XP, streaks, quests, badges and evolution at a glance.
    """
    profile = engine.get_player_profile(user_id)
    if profile is None:
        raise ResourceNotFoundException(
            f"No gamification profile for user {user_id}",
            details={"user_id": user_id},
        )
    return profile


@router.post("/actions", response_model=schemas.GamificationResult)
def record_action(
    user_id: int,
    action_in: schemas.ActionRequest,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Record a user action and return everything it earned.
    """
    with log_context(user_id=user_id, action=action_in.action.value):
        logger.info(f"User {user_id} recording action {action_in.action.value}")
        return engine.record_action(user_id, action_in.action, action_in.metadata)


@router.post("/check-in", response_model=schemas.DailyCheckInResult)
def daily_check_in(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    return engine.record_daily_check_in(user_id)


@router.get("/quests", response_model=List[schemas.ActiveQuest])
def read_active_quests(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Active quests with their progress and days remaining.
    """
    engine.expire_overdue_quests(user_id)
    return engine.get_active_quests(user_id)


@router.get("/quests/available", response_model=List[schemas.Quest])
def read_available_quests(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    return engine.get_available_quests(user_id)


@router.post(
    "/quests", response_model=schemas.UserQuest, status_code=status.HTTP_201_CREATED
)
def start_quest(
    user_id: int,
    quest_in: schemas.QuestStartRequest,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Start a catalogue quest. At most three quests can be active at once.
    """
    with log_context(user_id=user_id, action="start_quest", quest_id=quest_in.quest_id):
        logger.info(f"User {user_id} starting quest {quest_in.quest_id}")
        quest = engine.start_quest(user_id, quest_in.quest_id)
        if quest is None:
            # Surfaces a full quest log as 409 before the generic refusal
            engine.require_quest_capacity(user_id)
            raise BusinessException(
                f"Quest {quest_in.quest_id} cannot be started",
                code="quest_unavailable",
                details={"quest_id": quest_in.quest_id},
            )
        return quest


@router.get("/badges", response_model=List[schemas.UserBadge])
def read_badges(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Retrieve user's unlocked badges.
    """
    return engine.get_user_badges(user_id)


@router.get("/streaks", response_model=List[schemas.Streak])
def read_streaks(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    return engine.get_streaks(user_id)


@router.post("/streaks/{streak_type}/freeze", response_model=schemas.Streak)
def freeze_streak(
    user_id: int,
    streak_type: StreakType,
    freeze_in: schemas.StreakFreezeRequest,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Protect a streak from breaking for the next few days.
    """
    with log_context(user_id=user_id, action="freeze_streak", streak_type=streak_type.value):
        until = utcnow() + timedelta(days=freeze_in.days)
        logger.info(f"User {user_id} freezing {streak_type.value} until {until}")
        return engine.freeze_streak(user_id, streak_type, until)


@router.get("/settings", response_model=schemas.GamificationSettings)
def read_settings(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    return engine.get_settings(user_id)


@router.put("/settings", response_model=schemas.GamificationSettings)
def update_settings(
    user_id: int,
    settings_in: schemas.GamificationSettingsUpdate,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    with log_context(user_id=user_id, action="update_settings"):
        logger.info(f"User {user_id} updating gamification settings")
        return engine.update_settings(user_id, settings_in)


@router.get("/export", response_model=schemas.UserDataExport)
def export_user_data(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Everything stored about the user (GDPR access request).
    """
    return engine.export_user_data(user_id)


@router.delete("")
def delete_user_data(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    """
    Erase every gamification row of the user (GDPR erasure request).
    """
    engine.delete_user_data(user_id)
    return {"user_id": user_id, "deleted": True}


@router.post("/anonymize")
def anonymize_user_data(
    user_id: int,
    engine: GamificationEngine = Depends(deps.get_engine),
) -> Any:
    engine.anonymize_user_data(user_id)
    return {"user_id": user_id, "anonymized": True}
