# nightowl/repositories/gamification_repository.py
"""
Typed facade over the gamification tables.

Every public method runs inside a unit of work. Calls made while a unit of work
is already open in the current context join it, so composite operations commit
once, at the outermost level, or not at all.
"""

import contextlib
import contextvars
import logging
import math
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nightowl import schemas
from nightowl.core.constants import (
    DEFAULT_SETTINGS,
    EngagementLevel,
    EquipSlot,
    QuestStatus,
    StreakType,
    XPSource,
)
from nightowl.core.exceptions import (
    CapacityExceededException,
    ResourceNotFoundException,
    TransactionFailureException,
    ValidationException,
)
from nightowl.repositories.achievement_repository import AchievementRepository
from nightowl.repositories.inventory_repository import (
    EquippedItemsRepository,
    InventoryRepository,
)
from nightowl.repositories.quest_repository import QuestRepository
from nightowl.repositories.session_repository import (
    DailySummaryRepository,
    SessionTrackingRepository,
)
from nightowl.repositories.settings_repository import SettingsRepository
from nightowl.repositories.state_repository import StateRepository
from nightowl.repositories.streak_repository import StreakRepository
from nightowl.repositories.xp_transaction_repository import XPTransactionRepository
from nightowl.rules import streaks as streak_rules
from nightowl.rules.anonymization import redact_metadata
from nightowl.rules.badges import BadgeProfile, evaluate_badges
from nightowl.rules.evolution import (
    engagement_level_for_days,
    stage_for_days,
    stage_index,
)
from nightowl.rules.leveling import derive_level
from nightowl.rules.quests import MAX_ACTIVE_QUESTS
from nightowl.utils.time import utcnow

logger = logging.getLogger(__name__)

# Evaluates a badge profile against the badges a user already holds and
# returns the ids to unlock
BadgeEvaluator = Callable[[BadgeProfile, List[str]], Iterable[str]]

# Every per-user table, in deletion order
USER_DATA_REPOSITORIES = (
    XPTransactionRepository,
    AchievementRepository,
    StreakRepository,
    QuestRepository,
    InventoryRepository,
    EquippedItemsRepository,
    SettingsRepository,
    SessionTrackingRepository,
    DailySummaryRepository,
    StateRepository,
)

EQUIP_SLOT_COLUMNS = {
    EquipSlot.BADGE: "equipped_badge",
    EquipSlot.TITLE: "equipped_title",
    EquipSlot.THEME: "equipped_theme",
    EquipSlot.FRAME: "equipped_frame",
}


def default_badge_evaluator(profile: BadgeProfile, owned: List[str]) -> List[str]:
    return [badge.id for badge in evaluate_badges(profile, owned)]


class GamificationRepository:
    """Transaction boundary for every gamification read and write."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_active_quests: int = MAX_ACTIVE_QUESTS,
    ):
        self.session_factory = session_factory
        self.max_active_quests = max_active_quests
        self._current_session: contextvars.ContextVar[Optional[Session]] = (
            contextvars.ContextVar(f"nightowl_uow_{id(self)}", default=None)
        )

    # ==================== UNIT OF WORK ====================

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """
        Open, or join, the unit of work for the current context.

        The outermost unit of work commits on success and rolls back on any
        error. Store errors are raised as TransactionFailureException.
        """
        session = self._current_session.get()
        if session is not None:
            yield session
            return

        session = self.session_factory()
        token = self._current_session.set(session)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"Unit of work rolled back: {exc}", exc_info=True)
            raise TransactionFailureException(
                "The gamification store failed; no changes were applied",
                details={"error": exc.__class__.__name__},
            ) from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            self._current_session.reset(token)
            session.close()

    # ==================== STATE ====================

    def get_state(self, user_id: int) -> Optional[schemas.GamificationState]:
        """Current state, or None when missing or anonymized."""
        with self.unit_of_work() as db:
            state = StateRepository(db).get_for_user(user_id)
            return schemas.GamificationState.model_validate(state) if state else None

    def save_state(
        self,
        user_id: int,
        update: Optional[Union[schemas.GamificationStateUpdate, Dict[str, Any]]] = None,
    ) -> schemas.GamificationState:
        """
        Explicit upsert of the state row.

        A missing row is created at level 1 with no XP. An anonymized row is
        reactivated with its counters intact. XP is never written here; it only
        changes through add_xp so the ledger and the total stay equal.
        """
        if isinstance(update, dict):
            update = schemas.GamificationStateUpdate(**update)
        with self.unit_of_work() as db:
            repo = StateRepository(db)
            state = repo.get_for_user(user_id, include_deleted=True)
            if state is None:
                state = repo.create_default(user_id)
                logger.info(f"Created gamification state for user {user_id}")
            elif state.deleted_at is not None:
                state.deleted_at = None
                logger.info(f"Reactivated anonymized state for user {user_id}")
            if update is not None:
                repo.update(state, update.model_dump(exclude_none=True))
            repo.save(state)
            return schemas.GamificationState.model_validate(state)

    def ensure_state(self, user_id: int) -> schemas.GamificationState:
        with self.unit_of_work():
            state = self.get_state(user_id)
            return state if state is not None else self.save_state(user_id)

    def add_xp(
        self,
        user_id: int,
        amount: int,
        source: Union[XPSource, str],
        metadata: Optional[Dict[str, Any]] = None,
        multiplier: float = 1.0,
    ) -> schemas.XPAwardResult:
        """
        Append an XP transaction and move the total and level with it.

        Raises:
            ValidationException: amount is not a positive integer or the
                source is unknown
            ResourceNotFoundException: the user has no state
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationException(
                "XP amount must be a positive integer", details={"amount": amount}
            )
        xp_source = self._coerce_source(source)

        with self.unit_of_work() as db:
            state_repo = StateRepository(db)
            state = state_repo.get_for_user(user_id)
            if state is None:
                raise ResourceNotFoundException(
                    f"No gamification state for user {user_id}",
                    details={"user_id": user_id},
                )

            previous_level = derive_level(state.total_xp)
            new_total = state.total_xp + amount
            new_level = derive_level(new_total)

            transaction = XPTransactionRepository(db).append(
                user_id, amount, xp_source, metadata, multiplier
            )
            state_repo.update(
                state, {"total_xp": new_total, "current_level": new_level}
            )

            if new_level > previous_level:
                logger.info(
                    f"User {user_id} leveled up from {previous_level} to {new_level}"
                )
            return schemas.XPAwardResult(
                new_total_xp=new_total,
                previous_level=previous_level,
                new_level=new_level,
                leveled_up=new_level > previous_level,
                transaction=schemas.XPTransaction.model_validate(transaction),
            )

    def record_active_day(
        self, user_id: int, when: Optional[datetime] = None
    ) -> schemas.GamificationState:
        """Count ``when`` as an active day once per calendar day."""
        when = when or utcnow()
        with self.unit_of_work() as db:
            repo = StateRepository(db)
            state = repo.get_for_user(user_id)
            if state is None:
                raise ResourceNotFoundException(
                    f"No gamification state for user {user_id}",
                    details={"user_id": user_id},
                )
            changes = {"last_active_at": when}
            if state.last_active_at is None or state.last_active_at.date() < when.date():
                days = state.total_days_active + 1
                changes["total_days_active"] = days
                changes["engagement_level"] = EngagementLevel(
                    engagement_level_for_days(days)
                )
            repo.update(state, changes)
            return schemas.GamificationState.model_validate(state)

    # ==================== XP LEDGER ====================

    def get_xp_transactions(
        self, user_id: int, limit: Optional[int] = None
    ) -> List[schemas.XPTransaction]:
        with self.unit_of_work() as db:
            rows = XPTransactionRepository(db).list_for_user(user_id, limit)
            return [schemas.XPTransaction.model_validate(row) for row in rows]

    def get_total_xp_from_transactions(self, user_id: int) -> int:
        with self.unit_of_work() as db:
            return XPTransactionRepository(db).total_for_user(user_id)

    def get_xp_earned_today(self, user_id: int, today: Optional[date] = None) -> int:
        start = datetime.combine(today or utcnow().date(), time.min)
        with self.unit_of_work() as db:
            return XPTransactionRepository(db).earned_since(user_id, start)

    def get_metric_counts(self, user_id: int) -> Dict[str, int]:
        with self.unit_of_work() as db:
            counts = XPTransactionRepository(db).metric_counts(user_id)
            counts["quests_completed"] = QuestRepository(db).count_with_status(
                user_id, QuestStatus.COMPLETED
            )
            return counts

    # ==================== ACHIEVEMENTS ====================

    def get_achievements(self, user_id: int) -> List[schemas.Achievement]:
        with self.unit_of_work() as db:
            rows = AchievementRepository(db).get_user_achievements(user_id)
            return [schemas.Achievement.model_validate(row) for row in rows]

    def get_unlocked_achievements(self, user_id: int) -> List[schemas.Achievement]:
        with self.unit_of_work() as db:
            rows = AchievementRepository(db).get_unlocked(user_id)
            return [schemas.Achievement.model_validate(row) for row in rows]

    def get_unnotified_achievements(self, user_id: int) -> List[schemas.Achievement]:
        with self.unit_of_work() as db:
            rows = AchievementRepository(db).get_unnotified(user_id)
            return [schemas.Achievement.model_validate(row) for row in rows]

    def has_achievement(self, user_id: int, achievement_id: str) -> bool:
        with self.unit_of_work() as db:
            row = AchievementRepository(db).get_user_achievement(user_id, achievement_id)
            return row is not None and row.unlocked_at is not None

    def unlock_achievement(
        self, user_id: int, achievement_id: str
    ) -> schemas.Achievement:
        """Unlock a badge. Repeat calls return the first unlock untouched."""
        with self.unit_of_work() as db:
            repo = AchievementRepository(db)
            achievement = repo.get_or_create(user_id, achievement_id)
            if achievement.unlocked_at is None:
                repo.update(achievement, {"progress": 100, "unlocked_at": utcnow()})
                logger.info(f"User {user_id} unlocked achievement {achievement_id}")
            return schemas.Achievement.model_validate(achievement)

    def update_achievement_progress(
        self, user_id: int, achievement_id: str, progress: Union[int, float]
    ) -> schemas.Achievement:
        """
        Upsert progress clamped to [0, 100].

        Reaching 100 unlocks the badge. Once unlocked, progress stays at 100
        and the unlock time is never cleared.
        """
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            raise ValidationException(
                "Achievement progress must be a number", details={"progress": progress}
            )
        if isinstance(progress, float) and math.isnan(progress):
            raise ValidationException(
                "Achievement progress must be a number", details={"progress": progress}
            )
        clamped = int(min(100, max(0, progress)))

        with self.unit_of_work() as db:
            repo = AchievementRepository(db)
            achievement = repo.get_or_create(user_id, achievement_id)
            if achievement.unlocked_at is not None:
                return schemas.Achievement.model_validate(achievement)
            changes = {"progress": clamped}
            if clamped >= 100:
                changes["unlocked_at"] = utcnow()
                logger.info(
                    f"User {user_id} unlocked achievement {achievement_id} by progress"
                )
            repo.update(achievement, changes)
            return schemas.Achievement.model_validate(achievement)

    def mark_achievement_notified(
        self, user_id: int, achievement_id: str
    ) -> Optional[schemas.Achievement]:
        with self.unit_of_work() as db:
            repo = AchievementRepository(db)
            achievement = repo.get_user_achievement(user_id, achievement_id)
            if achievement is None:
                return None
            repo.update(achievement, {"notified": True})
            return schemas.Achievement.model_validate(achievement)

    def build_badge_profile(self, user_id: int) -> BadgeProfile:
        with self.unit_of_work() as db:
            state = StateRepository(db).get_for_user(user_id)
            days_active = state.total_days_active if state else 0
            streaks = {
                streak.type.value: streak.longest_count
                for streak in StreakRepository(db).get_user_streaks(user_id)
            }
            return BadgeProfile(
                streaks=streaks,
                metrics=self.get_metric_counts(user_id),
                evolution_stage=stage_index(stage_for_days(days_active).id),
            )

    def award_badges(
        self, user_id: int, badge_evaluator: Optional[BadgeEvaluator] = None
    ) -> List[schemas.Achievement]:
        """Evaluate badge criteria against the user's profile and unlock the winners."""
        evaluator = badge_evaluator or default_badge_evaluator
        with self.unit_of_work():
            profile = self.build_badge_profile(user_id)
            owned = [a.achievement_id for a in self.get_unlocked_achievements(user_id)]
            return [
                self.unlock_achievement(user_id, badge_id)
                for badge_id in evaluator(profile, owned)
                if badge_id not in owned
            ]

    # ==================== STREAKS ====================

    def get_streaks(self, user_id: int) -> List[schemas.Streak]:
        with self.unit_of_work() as db:
            rows = StreakRepository(db).get_user_streaks(user_id)
            return [schemas.Streak.model_validate(row) for row in rows]

    def get_streak(
        self, user_id: int, streak_type: Union[StreakType, str]
    ) -> Optional[schemas.Streak]:
        streak_type = self._coerce_streak_type(streak_type)
        with self.unit_of_work() as db:
            row = StreakRepository(db).get_user_streak(user_id, streak_type)
            return schemas.Streak.model_validate(row) if row else None

    def increment_streak(
        self,
        user_id: int,
        streak_type: Union[StreakType, str],
        when: Optional[datetime] = None,
    ) -> schemas.Streak:
        streak_type = self._coerce_streak_type(streak_type)
        with self.unit_of_work() as db:
            repo = StreakRepository(db)
            streak = repo.get_or_create(user_id, streak_type)
            current, longest = streak_rules.increment(
                streak.current_count, streak.longest_count
            )
            repo.update(
                streak,
                {
                    "current_count": current,
                    "longest_count": longest,
                    "multiplier": streak_rules.multiplier_for(current),
                    "last_activity_at": when or utcnow(),
                },
            )
            return schemas.Streak.model_validate(streak)

    def reset_streak(
        self, user_id: int, streak_type: Union[StreakType, str], soft: bool = False
    ) -> schemas.Streak:
        """
        Hard reset zeroes the count. Soft reset keeps a share of it, taken from
        the user's preserve_percentage. The longest count is never touched.
        """
        streak_type = self._coerce_streak_type(streak_type)
        with self.unit_of_work() as db:
            repo = StreakRepository(db)
            streak = repo.get_or_create(user_id, streak_type)
            if soft:
                preserve = self.get_effective_settings(user_id).preserve_percentage
                new_count = streak_rules.soft_reset(streak.current_count, preserve)
            else:
                new_count = streak_rules.hard_reset(streak.current_count)
            logger.info(
                f"Reset {streak_type.value} streak for user {user_id}: "
                f"{streak.current_count} -> {new_count} ({'soft' if soft else 'hard'})"
            )
            repo.update(
                streak,
                {
                    "current_count": new_count,
                    "multiplier": streak_rules.multiplier_for(new_count),
                },
            )
            return schemas.Streak.model_validate(streak)

    def freeze_streak(
        self, user_id: int, streak_type: Union[StreakType, str], until: datetime
    ) -> schemas.Streak:
        if until is None:
            raise ValidationException("A freeze needs an end time")
        streak_type = self._coerce_streak_type(streak_type)
        with self.unit_of_work() as db:
            repo = StreakRepository(db)
            streak = repo.get_or_create(user_id, streak_type)
            repo.update(streak, {"frozen": True, "frozen_until": until})
            return schemas.Streak.model_validate(streak)

    def unfreeze_streak(
        self, user_id: int, streak_type: Union[StreakType, str]
    ) -> schemas.Streak:
        streak_type = self._coerce_streak_type(streak_type)
        with self.unit_of_work() as db:
            repo = StreakRepository(db)
            streak = repo.get_or_create(user_id, streak_type)
            repo.update(streak, {"frozen": False, "frozen_until": None})
            return schemas.Streak.model_validate(streak)

    # ==================== QUESTS ====================

    def get_active_quests(self, user_id: int) -> List[schemas.UserQuest]:
        return self.get_user_quests(user_id, QuestStatus.ACTIVE)

    def get_user_quests(
        self, user_id: int, status: Optional[QuestStatus] = None
    ) -> List[schemas.UserQuest]:
        with self.unit_of_work() as db:
            rows = QuestRepository(db).get_user_quests(user_id, status)
            return [schemas.UserQuest.model_validate(row) for row in rows]

    def get_user_quest(self, user_id: int, quest_id: str) -> Optional[schemas.UserQuest]:
        with self.unit_of_work() as db:
            row = QuestRepository(db).get_user_quest(user_id, quest_id)
            return schemas.UserQuest.model_validate(row) if row else None

    def get_completed_quest_count(self, user_id: int) -> int:
        with self.unit_of_work() as db:
            return QuestRepository(db).count_with_status(user_id, QuestStatus.COMPLETED)

    def require_quest_capacity(self, user_id: int) -> None:
        """Raises CapacityExceededException when no more quests may be started."""
        with self.unit_of_work() as db:
            active = QuestRepository(db).count_with_status(user_id, QuestStatus.ACTIVE)
            if active >= self.max_active_quests:
                raise CapacityExceededException(
                    f"At most {self.max_active_quests} quests can be active",
                    details={"user_id": user_id, "active_quests": active},
                )

    def start_quest(
        self,
        user_id: int,
        quest_id: str,
        objectives: Optional[Dict[str, Any]] = None,
        expires_at: Optional[datetime] = None,
    ) -> Optional[schemas.UserQuest]:
        """
        Start a quest, or return None when the user is at capacity or the
        quest is already active or completed. An expired quest can be retried.
        """
        with self.unit_of_work() as db:
            repo = QuestRepository(db)
            existing = repo.get_user_quest(user_id, quest_id)
            if existing is not None and existing.status != QuestStatus.EXPIRED:
                logger.warning(
                    f"User {user_id} cannot start quest {quest_id}: already {existing.status.value}"
                )
                return None
            try:
                self.require_quest_capacity(user_id)
            except CapacityExceededException as exc:
                logger.warning(f"User {user_id} cannot start quest {quest_id}: {exc.message}")
                return None

            values = {
                "status": QuestStatus.ACTIVE,
                "started_at": utcnow(),
                "expires_at": expires_at,
                "completed_at": None,
                "objectives_json": dict(objectives or {}),
            }
            if existing is None:
                quest = repo.create({"user_id": user_id, "quest_id": quest_id, **values})
            else:
                quest = repo.update(existing, values)
            logger.info(f"User {user_id} started quest {quest_id}")
            return schemas.UserQuest.model_validate(quest)

    def update_quest_progress(
        self, user_id: int, quest_id: str, progress: Dict[str, Any]
    ) -> Optional[schemas.UserQuest]:
        """Merge partial objectives into an active quest. Status is unchanged."""
        with self.unit_of_work() as db:
            repo = QuestRepository(db)
            quest = repo.get_user_quest(user_id, quest_id)
            if quest is None:
                return None
            if quest.status == QuestStatus.ACTIVE:
                # Reassign so the JSON column registers the change
                repo.update(quest, {"objectives_json": {**(quest.objectives_json or {}), **progress}})
            return schemas.UserQuest.model_validate(quest)

    def complete_quest(self, user_id: int, quest_id: str) -> Optional[schemas.UserQuest]:
        return self._finish_quest(user_id, quest_id, QuestStatus.COMPLETED)

    def expire_quest(self, user_id: int, quest_id: str) -> Optional[schemas.UserQuest]:
        return self._finish_quest(user_id, quest_id, QuestStatus.EXPIRED)

    def _finish_quest(
        self, user_id: int, quest_id: str, status: QuestStatus
    ) -> Optional[schemas.UserQuest]:
        """Move an active quest to a terminal status. Terminal quests are returned as-is."""
        with self.unit_of_work() as db:
            repo = QuestRepository(db)
            quest = repo.get_user_quest(user_id, quest_id)
            if quest is None:
                return None
            if quest.status == QuestStatus.ACTIVE:
                changes = {"status": status}
                if status == QuestStatus.COMPLETED:
                    changes["completed_at"] = utcnow()
                repo.update(quest, changes)
                logger.info(f"Quest {quest_id} for user {user_id} is now {status.value}")
            return schemas.UserQuest.model_validate(quest)

    # ==================== INVENTORY ====================

    def get_inventory(self, user_id: int) -> List[schemas.InventoryItem]:
        with self.unit_of_work() as db:
            rows = InventoryRepository(db).get_items(user_id)
            return [schemas.InventoryItem.model_validate(row) for row in rows]

    def has_item(self, user_id: int, reward_id: str) -> bool:
        with self.unit_of_work() as db:
            return InventoryRepository(db).get_item(user_id, reward_id) is not None

    def add_to_inventory(
        self,
        user_id: int,
        reward_id: str,
        quantity: int = 1,
        expires_at: Optional[datetime] = None,
    ) -> schemas.InventoryItem:
        if quantity <= 0:
            raise ValidationException(
                "Quantity must be positive", details={"quantity": quantity}
            )
        with self.unit_of_work() as db:
            repo = InventoryRepository(db)
            item = repo.get_item(user_id, reward_id)
            if item is None:
                item = repo.create(
                    {
                        "user_id": user_id,
                        "reward_id": reward_id,
                        "quantity": quantity,
                        "acquired_at": utcnow(),
                        "expires_at": expires_at,
                    }
                )
            else:
                changes = {"quantity": item.quantity + quantity}
                if expires_at is not None:
                    changes["expires_at"] = expires_at
                repo.update(item, changes)
            return schemas.InventoryItem.model_validate(item)

    def remove_from_inventory(
        self, user_id: int, reward_id: str, quantity: int = 1
    ) -> Optional[schemas.InventoryItem]:
        """Decrease a stack. Returns None once the row is gone."""
        if quantity <= 0:
            raise ValidationException(
                "Quantity must be positive", details={"quantity": quantity}
            )
        with self.unit_of_work() as db:
            repo = InventoryRepository(db)
            item = repo.get_item(user_id, reward_id)
            if item is None:
                return None
            remaining = item.quantity - quantity
            if remaining <= 0:
                repo.delete(item)
                return None
            repo.update(item, {"quantity": remaining})
            return schemas.InventoryItem.model_validate(item)

    # ==================== EQUIPPED ITEMS ====================

    def get_equipped_items(self, user_id: int) -> Optional[schemas.EquippedItems]:
        with self.unit_of_work() as db:
            row = EquippedItemsRepository(db).get_for_user(user_id)
            return schemas.EquippedItems.model_validate(row) if row else None

    def equip_item(
        self, user_id: int, slot: Union[EquipSlot, str], item_id: str
    ) -> schemas.EquippedItems:
        column = EQUIP_SLOT_COLUMNS[self._coerce_slot(slot)]
        with self.unit_of_work() as db:
            repo = EquippedItemsRepository(db)
            equipped = repo.update(repo.get_or_create(user_id), {column: item_id})
            return schemas.EquippedItems.model_validate(equipped)

    def unequip_item(
        self, user_id: int, slot: Union[EquipSlot, str]
    ) -> schemas.EquippedItems:
        column = EQUIP_SLOT_COLUMNS[self._coerce_slot(slot)]
        with self.unit_of_work() as db:
            repo = EquippedItemsRepository(db)
            equipped = repo.update(repo.get_or_create(user_id), {column: None})
            return schemas.EquippedItems.model_validate(equipped)

    # ==================== SETTINGS ====================

    @staticmethod
    def get_default_settings() -> schemas.GamificationSettingsBase:
        return schemas.GamificationSettingsBase(**DEFAULT_SETTINGS)

    def get_settings(self, user_id: int) -> Optional[schemas.GamificationSettings]:
        with self.unit_of_work() as db:
            row = SettingsRepository(db).get_for_user(user_id)
            return schemas.GamificationSettings.model_validate(row) if row else None

    def get_effective_settings(self, user_id: int) -> schemas.GamificationSettings:
        """Stored settings, or the defaults when the user never saved any."""
        stored = self.get_settings(user_id)
        if stored is not None:
            return stored
        return schemas.GamificationSettings(user_id=user_id, **DEFAULT_SETTINGS)

    def save_settings(
        self,
        user_id: int,
        update: Union[schemas.GamificationSettingsUpdate, Dict[str, Any]],
    ) -> schemas.GamificationSettings:
        """Explicit upsert; a new row starts from the defaults."""
        if isinstance(update, dict):
            update = schemas.GamificationSettingsUpdate(**update)
        with self.unit_of_work() as db:
            repo = SettingsRepository(db)
            row = repo.get_for_user(user_id)
            if row is None:
                row = repo.create({"user_id": user_id, **DEFAULT_SETTINGS})
            repo.update(row, update.model_dump(exclude_none=True))
            return schemas.GamificationSettings.model_validate(row)

    # ==================== SESSIONS ====================

    def get_current_session(self, user_id: int) -> Optional[schemas.SessionTracking]:
        with self.unit_of_work() as db:
            row = SessionTrackingRepository(db).get_open_session(user_id)
            return schemas.SessionTracking.model_validate(row) if row else None

    def start_session(
        self, user_id: int, started_at: Optional[datetime] = None
    ) -> schemas.SessionTracking:
        """Open a session, closing any session left open before it."""
        started_at = started_at or utcnow()
        with self.unit_of_work() as db:
            if SessionTrackingRepository(db).get_open_session(user_id) is not None:
                logger.warning(f"Closing dangling session for user {user_id}")
                self.end_session(user_id, ended_at=started_at)
            session = SessionTrackingRepository(db).create(
                {"user_id": user_id, "session_start": started_at, "breaks_taken": 0}
            )
            return schemas.SessionTracking.model_validate(session)

    def end_session(
        self,
        user_id: int,
        breaks_taken: Optional[int] = None,
        ended_at: Optional[datetime] = None,
    ) -> Optional[schemas.SessionTracking]:
        """Close the open session and roll it into that day's summary."""
        ended_at = ended_at or utcnow()
        with self.unit_of_work() as db:
            repo = SessionTrackingRepository(db)
            session = repo.get_open_session(user_id)
            if session is None:
                return None
            minutes = max(0, int((ended_at - session.session_start).total_seconds() // 60))
            breaks = session.breaks_taken if breaks_taken is None else breaks_taken
            repo.update(
                session,
                {
                    "session_end": ended_at,
                    "duration_minutes": minutes,
                    "breaks_taken": breaks,
                },
            )

            summaries = DailySummaryRepository(db)
            summary = summaries.get_or_create(user_id, session.session_start.date())
            summaries.update(
                summary,
                {
                    "total_sessions": summary.total_sessions + 1,
                    "total_minutes": summary.total_minutes + minutes,
                    "breaks_taken": summary.breaks_taken + breaks,
                },
            )
            return schemas.SessionTracking.model_validate(session)

    def get_daily_summary(
        self, user_id: int, day: Optional[date] = None
    ) -> Optional[schemas.DailySessionSummary]:
        with self.unit_of_work() as db:
            row = DailySummaryRepository(db).get_for_date(user_id, day or utcnow().date())
            return schemas.DailySessionSummary.model_validate(row) if row else None

    # ==================== COMPOSITE OPERATIONS ====================

    def award_quest_completion(
        self,
        user_id: int,
        quest_id: str,
        xp_amount: int,
        badge_id: Optional[str] = None,
    ) -> schemas.QuestCompletionAward:
        """
        Complete a quest, award its XP and unlock its badge as one transaction.

        A quest that is already completed or expired is returned untouched with
        no XP awarded.

        Raises:
            ResourceNotFoundException: the user never started the quest, or
                has no state
            TransactionFailureException: any store failure; nothing is applied
        """
        with self.unit_of_work():
            quest = self.get_user_quest(user_id, quest_id)
            if quest is None:
                raise ResourceNotFoundException(
                    f"User {user_id} has no quest {quest_id}",
                    details={"user_id": user_id, "quest_id": quest_id},
                )
            if quest.status != QuestStatus.ACTIVE:
                state = self.get_state(user_id)
                level = state.current_level if state else 1
                return schemas.QuestCompletionAward(
                    quest=quest,
                    previous_level=level,
                    new_level=level,
                    new_total_xp=state.total_xp if state else 0,
                    already_completed=True,
                )

            completed = self.complete_quest(user_id, quest_id)
            award = self.add_xp(
                user_id, xp_amount, XPSource.QUEST_COMPLETE, {"questId": quest_id}
            )

            badge = None
            newly_unlocked = False
            if badge_id:
                newly_unlocked = not self.has_achievement(user_id, badge_id)
                badge = self.unlock_achievement(user_id, badge_id)

            return schemas.QuestCompletionAward(
                quest=completed,
                xp_transaction=award.transaction,
                leveled_up=award.leveled_up,
                previous_level=award.previous_level,
                new_level=award.new_level,
                new_total_xp=award.new_total_xp,
                badge=badge,
                badge_newly_unlocked=newly_unlocked,
            )

    def record_daily_check_in(
        self,
        user_id: int,
        base_xp: int = 10,
        badge_evaluator: Optional[BadgeEvaluator] = None,
        deduplicate: bool = True,
        now: Optional[datetime] = None,
    ) -> schemas.DailyCheckInResult:
        """
        Increment the daily_login streak, award check-in XP and evaluate badges
        as one transaction.

        XP is ``base_xp`` plus a bonus growing with the streak for a week. With
        ``deduplicate`` a second call on the same calendar day changes nothing
        and reports already_checked_in.
        """
        now = now or utcnow()
        with self.unit_of_work():
            state = self.ensure_state(user_id)
            previous_days = state.total_days_active
            streak = self.get_streak(user_id, StreakType.DAILY_LOGIN)

            if (
                deduplicate
                and streak is not None
                and streak.last_activity_at is not None
                and streak.last_activity_at.date() == now.date()
            ):
                logger.info(f"User {user_id} already checked in today")
                return schemas.DailyCheckInResult(
                    streak=streak,
                    xp_earned=0,
                    total_xp=state.total_xp,
                    previous_level=state.current_level,
                    new_level=state.current_level,
                    leveled_up=False,
                    already_checked_in=True,
                    days_active=previous_days,
                    previous_days_active=previous_days,
                )

            streak = self.increment_streak(user_id, StreakType.DAILY_LOGIN, when=now)
            state = self.record_active_day(user_id, when=now)

            bonus = streak_rules.check_in_bonus(streak.current_count)
            award = self.add_xp(
                user_id,
                base_xp + bonus,
                XPSource.DAILY_CHECK_IN,
                {
                    "metric": "daily_check_in",
                    "streakDay": streak.current_count,
                    "bonus": bonus,
                },
            )
            badges = self.award_badges(user_id, badge_evaluator)

            return schemas.DailyCheckInResult(
                streak=streak,
                xp_earned=base_xp + bonus,
                total_xp=award.new_total_xp,
                previous_level=award.previous_level,
                new_level=award.new_level,
                leveled_up=award.leveled_up,
                awarded_badges=badges,
                days_active=state.total_days_active,
                previous_days_active=previous_days,
            )

    # ==================== GDPR ====================

    def export_user_data(
        self, user_id: int, xp_limit: Optional[int] = None
    ) -> schemas.UserDataExport:
        """Everything held for a user. Missing aggregates are empty or None."""
        with self.unit_of_work() as db:
            return schemas.UserDataExport(
                user_id=user_id,
                state=self.get_state(user_id),
                settings=self.get_settings(user_id),
                equipped_items=self.get_equipped_items(user_id),
                xp_transactions=self.get_xp_transactions(user_id, xp_limit),
                achievements=self.get_achievements(user_id),
                streaks=self.get_streaks(user_id),
                quests=self.get_user_quests(user_id),
                inventory=self.get_inventory(user_id),
                sessions=[
                    schemas.SessionTracking.model_validate(row)
                    for row in SessionTrackingRepository(db).get_user_sessions(user_id)
                ],
                daily_summaries=[
                    schemas.DailySessionSummary.model_validate(row)
                    for row in DailySummaryRepository(db).get_user_summaries(user_id)
                ],
                exported_at=utcnow(),
            )

    def delete_user_data(self, user_id: int) -> bool:
        """Hard delete across every table. Idempotent."""
        with self.unit_of_work() as db:
            removed = {
                repo_cls.__name__: repo_cls(db).delete_for_user(user_id)
                for repo_cls in USER_DATA_REPOSITORIES
            }
            db.expire_all()
        logger.info(f"Deleted gamification data for user {user_id}: {removed}")
        return True

    def anonymize_user_data(self, user_id: int) -> bool:
        """
        Soft-delete the state, drop session telemetry and redact personal
        fields from the XP ledger. The ledger and achievements are kept.
        Idempotent.

        Anonymization is not erasure: the next write for the same user
        (`save_state`, and so any action or check-in) reactivates the row
        with its previous counters. Use `delete_user_data` to start over.
        """
        with self.unit_of_work() as db:
            state_repo = StateRepository(db)
            state = state_repo.get_for_user(user_id, include_deleted=True)
            if state is not None and state.deleted_at is None:
                state_repo.update(state, {"deleted_at": utcnow()})

            SessionTrackingRepository(db).delete_for_user(user_id)
            DailySummaryRepository(db).delete_for_user(user_id)

            xp_repo = XPTransactionRepository(db)
            for transaction in xp_repo.list_for_user(user_id):
                redacted = redact_metadata(transaction.metadata_json)
                if redacted != transaction.metadata_json:
                    xp_repo.update(transaction, {"metadata_json": redacted})
        logger.info(f"Anonymized gamification data for user {user_id}")
        return True

    # ==================== HELPERS ====================

    @staticmethod
    def _coerce_source(source: Union[XPSource, str]) -> XPSource:
        try:
            return XPSource(source)
        except ValueError:
            raise ValidationException(
                f"Unknown XP source: {source}", details={"source": source}
            )

    @staticmethod
    def _coerce_streak_type(streak_type: Union[StreakType, str]) -> StreakType:
        try:
            return StreakType(streak_type)
        except ValueError:
            raise ValidationException(
                f"Unknown streak type: {streak_type}",
                details={"streak_type": streak_type},
            )

    @staticmethod
    def _coerce_slot(slot: Union[EquipSlot, str]) -> EquipSlot:
        try:
            return EquipSlot(slot)
        except ValueError:
            raise ValidationException(
                f"Unknown equipment slot: {slot}", details={"slot": slot}
            )
