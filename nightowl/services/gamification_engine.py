# nightowl/services/gamification_engine.py
"""
Gamification engine.

Orchestrates the repository, the pure rules in ``nightowl.rules`` and the event
bus. Every public write runs inside one unit of work; the events it produced
are published only after that unit of work commits.
"""

import contextlib
import contextvars
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from nightowl import schemas
from nightowl.core.config import Settings, settings
from nightowl.core.constants import (
    ACTION_TO_METRIC,
    ACTION_TO_STREAK,
    ACTION_TO_XP_SOURCE,
    XP_REWARDS,
    EquipSlot,
    EventType,
    GamificationAction,
    QuestStatus,
    StreakType,
    XPSource,
)
from nightowl.core.exceptions import ResourceNotFoundException, ValidationException
from nightowl.core.logging import log_context
from nightowl.repositories import GamificationRepository
from nightowl.rules.badges import (
    BADGE_CATALOGUE,
    BadgeDefinition,
    CriteriaType,
    badge_progress,
    evaluate_badges,
)
from nightowl.rules.evolution import (
    evolution_progress,
    locked_abilities,
    stage_for_days,
    unlocked_abilities,
)
from nightowl.rules.leveling import level_progress
from nightowl.rules.quests import (
    QUEST_CATALOGUE,
    QuestDefinition,
    advance_objectives,
    initial_objectives,
    is_complete,
    progress_percent,
)
from nightowl.services.events import EventBus, Listener
from nightowl.utils.time import utcnow

logger = logging.getLogger(__name__)

# Hours (UTC) that fire the hidden time-of-day badges
LATE_NIGHT_HOURS = range(0, 4)
EARLY_MORNING_HOURS = range(4, 6)


def quest_schema(definition: QuestDefinition) -> schemas.Quest:
    return schemas.Quest(
        id=definition.id,
        title=definition.title,
        description=definition.description,
        category=definition.category,
        difficulty=definition.difficulty.value,
        duration_days=definition.duration_days,
        target_metric=definition.target_metric,
        target_value=definition.target_value,
        reward_xp=definition.reward_xp,
        reward_badge=definition.reward_badge,
    )


def badge_schema(definition: BadgeDefinition) -> schemas.Badge:
    return schemas.Badge(
        id=definition.id,
        name=definition.name,
        description=definition.description,
        category=definition.category.value,
        rarity=definition.rarity.value,
        reward_xp=definition.reward_xp,
        reward_title=definition.reward_title,
        unlocks=list(definition.unlocks),
        hidden=definition.hidden,
    )


class GamificationEngine:
    """
    Entry point for every gamification use case.

    Construct it once at process start with its repository and share it; it
    holds no per-user state of its own.
    """

    def __init__(
        self,
        repository: GamificationRepository,
        events: Optional[EventBus] = None,
        quest_catalogue: Iterable[QuestDefinition] = QUEST_CATALOGUE,
        badge_catalogue: Iterable[BadgeDefinition] = BADGE_CATALOGUE,
        config: Optional[Settings] = None,
    ):
        self.repository = repository
        self.events = events or EventBus()
        self.quest_catalogue: Dict[str, QuestDefinition] = {
            quest.id: quest for quest in quest_catalogue
        }
        self.badge_catalogue: Dict[str, BadgeDefinition] = {
            badge.id: badge for badge in badge_catalogue
        }
        self.config = config or settings
        self._pending_events: contextvars.ContextVar[
            Optional[List[schemas.GamificationEvent]]
        ] = contextvars.ContextVar(f"nightowl_events_{id(self)}", default=None)

    # ==================== TRANSACTIONS & EVENTS ====================

    @contextlib.contextmanager
    def _transaction(self):
        """
        Run the block in one repository unit of work and publish the queued
        events once it has committed. Nested calls share the outer buffer.
        """
        pending = self._pending_events.get()
        if pending is not None:
            yield pending
            return

        pending = []
        token = self._pending_events.set(pending)
        try:
            with self.repository.unit_of_work():
                yield pending
        finally:
            self._pending_events.reset(token)

        for event in pending:
            self.events.emit(event)

    def _queue(self, event_type: EventType, user_id: int, **payload: Any) -> None:
        pending = self._pending_events.get()
        event = schemas.GamificationEvent(type=event_type, user_id=user_id, payload=payload)
        if pending is None:
            self.events.emit(event)
        else:
            pending.append(event)

    def on(self, event_type: Union[EventType, str], listener: Listener):
        return self.events.on(event_type, listener)

    def off(self, event_type: Union[EventType, str], listener: Listener) -> bool:
        return self.events.off(event_type, listener)

    # ==================== CORE ====================

    def record_action(
        self,
        user_id: int,
        action: Union[GamificationAction, str],
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> schemas.GamificationResult:
        """
        Record one user action and apply everything it earns.

        Awards the action's XP, advances its streak once per day, progresses
        matching quests (completing them when their target is reached),
        evaluates badges and checks the evolution stage.
        """
        try:
            action = GamificationAction(action)
        except ValueError:
            raise ValidationException(
                f"Unknown action: {action}", details={"action": action}
            )
        metadata = dict(metadata or {})
        amount = self._action_xp(action, metadata)
        progress = self._metadata_int(metadata, "value", 1)
        now = now or utcnow()

        with log_context(user_id=user_id, operation="record_action", action=action.value):
            with self._transaction():
                state = self.repository.ensure_state(user_id)
                previous_level = state.current_level
                previous_days = state.total_days_active
                if self._checked_in_today(user_id, action, now):
                    logger.info(f"User {user_id} already checked in today")
                    return schemas.GamificationResult(
                        xp_earned=0,
                        total_xp=state.total_xp,
                        level=state.current_level,
                        previous_level=previous_level,
                        leveled_up=False,
                        timestamp=now,
                    )
                triggers = self._triggers(action, metadata, now, state.last_active_at)

                self.repository.record_active_day(user_id, now)
                evolution = self.check_evolution(user_id, previous_days)

                xp_earned = 0
                metric = self._action_metric(action, metadata)
                if amount > 0:
                    self.add_xp(
                        user_id,
                        amount,
                        ACTION_TO_XP_SOURCE[action],
                        {**metadata, "action": action.value, "metric": metric},
                    )
                    xp_earned += amount

                streak_updates = []
                streak_type = ACTION_TO_STREAK.get(action)
                if streak_type is not None:
                    update = self._advance_streak(user_id, streak_type, now)
                    if update is not None:
                        streak_updates.append(update)

                awards = self.update_quest_progress(user_id, metric, progress, now)
                xp_earned += sum(
                    award.xp_transaction.amount
                    for award in awards
                    if award.xp_transaction is not None
                )

                awarded_badges = [
                    award.badge for award in awards if award.badge_newly_unlocked
                ]
                awarded_badges.extend(self.check_and_award_badges(user_id, triggers))

                final_state = self.repository.get_state(user_id)
                logger.info(
                    f"Recorded {action.value} for user {user_id}: {xp_earned} XP, "
                    f"{len(awards)} quests completed, {len(awarded_badges)} badges"
                )
                return schemas.GamificationResult(
                    xp_earned=xp_earned,
                    total_xp=final_state.total_xp,
                    level=final_state.current_level,
                    previous_level=previous_level,
                    leveled_up=final_state.current_level > previous_level,
                    completed_quests=[award.quest for award in awards],
                    awarded_badges=awarded_badges,
                    streak_updates=streak_updates,
                    evolution=evolution,
                    timestamp=now,
                )

    def record_daily_check_in(
        self, user_id: int, now: Optional[datetime] = None
    ) -> schemas.DailyCheckInResult:
        """Daily check-in: streak, XP with the streak bonus, badges."""
        now = now or utcnow()
        with log_context(user_id=user_id, operation="daily_check_in"):
            with self._transaction():
                state = self.repository.ensure_state(user_id)
                triggers = self._triggers(
                    GamificationAction.DAILY_CHECK_IN, {}, now, state.last_active_at
                )
                streak = self.repository.get_streak(user_id, StreakType.DAILY_LOGIN)
                self._break_if_stale(user_id, streak, now)
                before = self.repository.get_streak(user_id, StreakType.DAILY_LOGIN)

                result = self.repository.record_daily_check_in(
                    user_id,
                    base_xp=self.config.DAILY_CHECK_IN_BASE_XP,
                    badge_evaluator=self._badge_evaluator(triggers),
                    deduplicate=self.config.DEDUPLICATE_DAILY_CHECK_IN,
                    now=now,
                )
                if result.already_checked_in:
                    return result

                previous_count = before.current_count if before else 0
                previous_longest = before.longest_count if before else 0
                self._queue(
                    EventType.STREAK_UPDATED,
                    user_id,
                    type=StreakType.DAILY_LOGIN.value,
                    current_count=result.streak.current_count,
                    previous_count=previous_count,
                    is_new_record=result.streak.current_count > previous_longest,
                )
                self._queue(
                    EventType.XP_EARNED,
                    user_id,
                    amount=result.xp_earned,
                    source=XPSource.DAILY_CHECK_IN.value,
                    new_total=result.total_xp,
                    multiplier=1.0,
                )
                if result.leveled_up:
                    self._queue_level_up(
                        user_id, result.previous_level, result.new_level, result.total_xp
                    )
                for badge in result.awarded_badges:
                    self._queue_badge(user_id, badge)
                self._queue(
                    EventType.DAILY_CHECK_IN,
                    user_id,
                    streak=result.streak.current_count,
                    xp_earned=result.xp_earned,
                )
                self.check_evolution(user_id, result.previous_days_active)
                logger.info(
                    f"User {user_id} checked in: day {result.streak.current_count}, "
                    f"{result.xp_earned} XP"
                )
                return result

    # ==================== XP ====================

    def add_xp(
        self,
        user_id: int,
        amount: int,
        source: Union[XPSource, str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> schemas.XPAwardResult:
        with self._transaction():
            award = self.repository.add_xp(user_id, amount, source, metadata)
            self._queue(
                EventType.XP_EARNED,
                user_id,
                amount=amount,
                source=award.transaction.source.value,
                new_total=award.new_total_xp,
                multiplier=award.transaction.multiplier,
            )
            if award.leveled_up:
                self._queue_level_up(
                    user_id, award.previous_level, award.new_level, award.new_total_xp
                )
            return award

    def get_xp_status(self, user_id: int) -> schemas.XPStatus:
        state = self.repository.get_state(user_id)
        progress = level_progress(state.total_xp if state else 0)
        return schemas.XPStatus(
            total_xp=state.total_xp if state else 0,
            level=progress["level"],
            xp_into_level=progress["xp_into_level"],
            xp_to_next_level=progress["xp_to_next_level"],
            progress_percent=progress["progress_percent"],
            xp_earned_today=self.repository.get_xp_earned_today(user_id),
        )

    # ==================== QUESTS ====================

    def start_quest(
        self, user_id: int, quest_id: str, now: Optional[datetime] = None
    ) -> Optional[schemas.UserQuest]:
        """
        Start a catalogue quest. Returns None for an unknown quest, a full
        quest log or a quest that is already active or completed.
        """
        definition = self.quest_catalogue.get(quest_id)
        if definition is None:
            logger.warning(f"User {user_id} asked for unknown quest {quest_id}")
            return None

        now = now or utcnow()
        duration = definition.duration_days or self.config.DEFAULT_QUEST_DURATION_DAYS
        with self._transaction():
            self.repository.ensure_state(user_id)
            quest = self.repository.start_quest(
                user_id,
                quest_id,
                initial_objectives(definition),
                now + timedelta(days=duration),
            )
            if quest is not None:
                self._queue(
                    EventType.QUEST_STARTED,
                    user_id,
                    quest_id=quest_id,
                    expires_at=quest.expires_at.isoformat() if quest.expires_at else None,
                )
            return quest

    def require_quest_capacity(self, user_id: int) -> None:
        self.repository.require_quest_capacity(user_id)

    def get_active_quests(
        self, user_id: int, now: Optional[datetime] = None
    ) -> List[schemas.ActiveQuest]:
        now = now or utcnow()
        active = []
        for user_quest in self.repository.get_active_quests(user_id):
            definition = self.quest_catalogue.get(user_quest.quest_id)
            if definition is None:
                continue
            days_remaining = None
            if user_quest.expires_at is not None:
                seconds = (user_quest.expires_at - now).total_seconds()
                days_remaining = max(0, math.ceil(seconds / 86400))
            active.append(
                schemas.ActiveQuest(
                    quest=quest_schema(definition),
                    progress=user_quest,
                    progress_percent=progress_percent(user_quest.objectives_json),
                    days_remaining=days_remaining,
                )
            )
        return active

    def get_available_quests(self, user_id: int) -> List[schemas.Quest]:
        """Catalogue quests the user could start now."""
        taken = {
            quest.quest_id
            for quest in self.repository.get_user_quests(user_id)
            if quest.status != QuestStatus.EXPIRED
        }
        return [
            quest_schema(definition)
            for quest_id, definition in self.quest_catalogue.items()
            if quest_id not in taken
        ]

    def update_quest_progress(
        self,
        user_id: int,
        metric: str,
        value: int = 1,
        now: Optional[datetime] = None,
    ) -> List[schemas.QuestCompletionAward]:
        """
        Feed a metric value to every active quest that tracks it. Quests that
        reach their target are completed and rewarded. Overdue quests are
        expired first and never progress.
        """
        now = now or utcnow()
        awards = []
        with self._transaction():
            self.expire_overdue_quests(user_id, now)
            for user_quest in self.repository.get_active_quests(user_id):
                definition = self.quest_catalogue.get(user_quest.quest_id)
                if definition is None or definition.target_metric != metric:
                    continue

                changes = advance_objectives(
                    definition, user_quest.objectives_json, value, now.date()
                )
                if changes is None:
                    continue
                updated = self.repository.update_quest_progress(
                    user_id, definition.id, changes
                )
                self._queue(
                    EventType.QUEST_PROGRESS,
                    user_id,
                    quest_id=definition.id,
                    current_value=updated.objectives_json.get("currentValue", 0),
                    target_value=definition.target_value,
                )
                if is_complete(updated.objectives_json):
                    awards.append(self.award_quest_completion(user_id, definition.id))
        return awards

    def award_quest_completion(
        self, user_id: int, quest_id: str
    ) -> schemas.QuestCompletionAward:
        """Complete a quest with its catalogue reward, atomically."""
        definition = self.quest_catalogue.get(quest_id)
        if definition is None:
            raise ResourceNotFoundException(
                f"Unknown quest {quest_id}", details={"quest_id": quest_id}
            )

        with self._transaction():
            award = self.repository.award_quest_completion(
                user_id, quest_id, definition.reward_xp, definition.reward_badge
            )
            if award.already_completed:
                return award

            self._queue(
                EventType.QUEST_COMPLETED,
                user_id,
                quest_id=quest_id,
                reward_xp=definition.reward_xp,
                reward_badge=definition.reward_badge,
            )
            self._queue(
                EventType.XP_EARNED,
                user_id,
                amount=definition.reward_xp,
                source=XPSource.QUEST_COMPLETE.value,
                new_total=award.new_total_xp,
                multiplier=1.0,
            )
            if award.leveled_up:
                self._queue_level_up(
                    user_id, award.previous_level, award.new_level, award.new_total_xp
                )
            if award.badge is not None and award.badge_newly_unlocked:
                self._queue_badge(user_id, award.badge)
            logger.info(f"User {user_id} completed quest {quest_id}")
            return award

    def expire_overdue_quests(
        self, user_id: int, now: Optional[datetime] = None
    ) -> List[schemas.UserQuest]:
        now = now or utcnow()
        expired = []
        with self._transaction():
            for user_quest in self.repository.get_active_quests(user_id):
                if user_quest.expires_at is None or user_quest.expires_at > now:
                    continue
                quest = self.repository.expire_quest(user_id, user_quest.quest_id)
                self._queue(EventType.QUEST_EXPIRED, user_id, quest_id=quest.quest_id)
                expired.append(quest)
        return expired

    def get_completed_quest_count(self, user_id: int) -> int:
        return self.repository.get_completed_quest_count(user_id)

    # ==================== BADGES ====================

    def check_and_award_badges(
        self, user_id: int, triggers: Iterable[str] = ()
    ) -> List[schemas.Achievement]:
        """
        Unlock every badge whose criteria are now met and refresh the progress
        of the ones still locked. Hidden badges need their trigger.
        """
        with self._transaction():
            unlocked = self.repository.award_badges(
                user_id, self._badge_evaluator(triggers)
            )
            for badge in unlocked:
                self._queue_badge(user_id, badge)
            self._track_badge_progress(user_id)
            return unlocked

    def get_user_badges(self, user_id: int) -> List[schemas.UserBadge]:
        badges = []
        for achievement in self.repository.get_unlocked_achievements(user_id):
            definition = self.badge_catalogue.get(achievement.achievement_id)
            if definition is None:
                continue
            badges.append(
                schemas.UserBadge(
                    badge=badge_schema(definition),
                    earned_at=achievement.unlocked_at,
                    is_new=not achievement.notified,
                )
            )
        return badges

    def get_all_badges(self, include_hidden: bool = False) -> List[schemas.Badge]:
        return [
            badge_schema(definition)
            for definition in self.badge_catalogue.values()
            if include_hidden or not definition.hidden
        ]

    def has_badge(self, user_id: int, badge_id: str) -> bool:
        return self.repository.has_achievement(user_id, badge_id)

    def mark_badges_seen(
        self, user_id: int, badge_ids: Optional[Iterable[str]] = None
    ) -> int:
        """Mark unlocked badges as notified. Returns how many changed."""
        with self._transaction():
            pending = self.repository.get_unnotified_achievements(user_id)
            wanted = set(badge_ids) if badge_ids is not None else None
            marked = 0
            for achievement in pending:
                if wanted is None or achievement.achievement_id in wanted:
                    self.repository.mark_achievement_notified(
                        user_id, achievement.achievement_id
                    )
                    marked += 1
            return marked

    def _badge_evaluator(self, triggers: Iterable[str]):
        fired = set(triggers)
        catalogue = list(self.badge_catalogue.values())

        def evaluator(profile, owned):
            return [
                badge.id for badge in evaluate_badges(profile, owned, fired, catalogue)
            ]

        return evaluator

    def _track_badge_progress(self, user_id: int) -> None:
        profile = self.repository.build_badge_profile(user_id)
        owned = {a.achievement_id for a in self.repository.get_unlocked_achievements(user_id)}
        for definition in self.badge_catalogue.values():
            if definition.id in owned or definition.hidden:
                continue
            if definition.criteria_type == CriteriaType.QUEST:
                continue
            progress = badge_progress(definition, profile)
            if 0 < progress < 100:
                self.repository.update_achievement_progress(
                    user_id, definition.id, progress
                )

    # ==================== STREAKS ====================

    def get_streaks(self, user_id: int) -> List[schemas.Streak]:
        return self.repository.get_streaks(user_id)

    def increment_streak(
        self,
        user_id: int,
        streak_type: Union[StreakType, str],
        now: Optional[datetime] = None,
    ) -> schemas.StreakUpdate:
        with self._transaction():
            before = self.repository.get_streak(user_id, streak_type)
            after = self.repository.increment_streak(user_id, streak_type, when=now)
            update = schemas.StreakUpdate(
                type=after.type,
                current_count=after.current_count,
                previous_count=before.current_count if before else 0,
                is_frozen=after.frozen,
                is_new_record=after.current_count > (before.longest_count if before else 0),
            )
            self._queue(
                EventType.STREAK_UPDATED, user_id, **update.model_dump(mode="json")
            )
            return update

    def freeze_streak(
        self,
        user_id: int,
        streak_type: Union[StreakType, str],
        until: datetime,
        now: Optional[datetime] = None,
    ) -> schemas.Streak:
        if until is None or until <= (now or utcnow()):
            raise ValidationException(
                "A streak can only be frozen until a future time",
                details={"until": until.isoformat() if until else None},
            )
        with self._transaction():
            streak = self.repository.freeze_streak(user_id, streak_type, until)
            self._queue(
                EventType.STREAK_FROZEN,
                user_id,
                type=streak.type.value,
                until=until.isoformat(),
            )
            return streak

    def unfreeze_streak(
        self, user_id: int, streak_type: Union[StreakType, str]
    ) -> schemas.Streak:
        return self.repository.unfreeze_streak(user_id, streak_type)

    def reset_streak(
        self, user_id: int, streak_type: Union[StreakType, str], soft: bool = True
    ) -> schemas.Streak:
        """
        Break a streak. A soft reset is applied only while the user keeps
        soft resets enabled; otherwise the streak drops to zero.
        """
        with self._transaction():
            before = self.repository.get_streak(user_id, streak_type)
            soft = soft and self.repository.get_effective_settings(user_id).soft_reset_enabled
            after = self.repository.reset_streak(user_id, streak_type, soft=soft)
            previous = before.current_count if before else 0
            if after.current_count < previous:
                self._queue(
                    EventType.STREAK_BROKEN,
                    user_id,
                    type=after.type.value,
                    previous_count=previous,
                    current_count=after.current_count,
                    soft=soft,
                )
            return after

    def soft_reset_streak(
        self, user_id: int, streak_type: Union[StreakType, str]
    ) -> schemas.Streak:
        return self.reset_streak(user_id, streak_type, soft=True)

    def _advance_streak(
        self, user_id: int, streak_type: StreakType, now: datetime
    ) -> Optional[schemas.StreakUpdate]:
        """Count today towards a streak, once per calendar day."""
        streak = self.repository.get_streak(user_id, streak_type)
        if (
            streak is not None
            and streak.last_activity_at is not None
            and streak.last_activity_at.date() == now.date()
        ):
            return None
        self._break_if_stale(user_id, streak, now)
        return self.increment_streak(user_id, streak_type, now)

    def _break_if_stale(
        self, user_id: int, streak: Optional[schemas.Streak], now: datetime
    ) -> None:
        """Reset a streak that missed a day, unless a freeze covers the gap."""
        if streak is None or streak.last_activity_at is None or streak.current_count == 0:
            return
        if (now.date() - streak.last_activity_at.date()).days <= 1:
            return
        if streak.frozen:
            missed_day = now.date() - timedelta(days=1)
            if streak.frozen_until is None or streak.frozen_until.date() >= missed_day:
                return
            self.repository.unfreeze_streak(user_id, streak.type)
        self.reset_streak(user_id, streak.type, soft=True)

    # ==================== EVOLUTION ====================

    def check_evolution(
        self, user_id: int, previous_days_active: int
    ) -> Optional[schemas.EvolutionChange]:
        """Compare the stage at ``previous_days_active`` with the current one."""
        state = self.repository.get_state(user_id)
        days_active = state.total_days_active if state else 0
        previous = stage_for_days(previous_days_active)
        current = stage_for_days(days_active)
        if previous.id == current.id:
            return None

        logger.info(f"User {user_id} evolved from {previous.id} to {current.id}")
        self._queue(
            EventType.EVOLUTION_STAGE_CHANGED,
            user_id,
            previous_stage=previous.id,
            new_stage=current.id,
            days_active=days_active,
        )
        return schemas.EvolutionChange(
            previous_stage=previous.id, new_stage=current.id, days_active=days_active
        )

    def get_evolution_status(self, user_id: int) -> schemas.EvolutionStatus:
        state = self.repository.get_state(user_id)
        days_active = state.total_days_active if state else 0
        progress = evolution_progress(days_active)
        stage = progress["stage"]
        upcoming = progress["next_stage"]
        return schemas.EvolutionStatus(
            stage_id=stage.id,
            stage_name=stage.name,
            greeting=stage.greeting,
            days_active=days_active,
            next_stage_id=upcoming.id if upcoming else None,
            days_to_next=progress["days_to_next"],
            progress_percent=progress["progress_percent"],
            unlocked_abilities=unlocked_abilities(days_active),
            locked_abilities=locked_abilities(days_active),
        )

    # ==================== PROFILE ====================

    def get_player_profile(self, user_id: int) -> Optional[schemas.PlayerProfile]:
        with self.repository.unit_of_work():
            state = self.repository.get_state(user_id)
            if state is None:
                return None
            progress = level_progress(state.total_xp)
            return schemas.PlayerProfile(
                user_id=user_id,
                level=state.current_level,
                total_xp=state.total_xp,
                xp_into_level=progress["xp_into_level"],
                xp_to_next_level=progress["xp_to_next_level"],
                level_progress_percent=progress["progress_percent"],
                engagement_level=state.engagement_level,
                total_days_active=state.total_days_active,
                streaks=self.repository.get_streaks(user_id),
                active_quests=len(self.repository.get_active_quests(user_id)),
                completed_quests=self.repository.get_completed_quest_count(user_id),
                badges_earned=len(self.repository.get_unlocked_achievements(user_id)),
                evolution=self.get_evolution_status(user_id),
                equipped=self.repository.get_equipped_items(user_id),
            )

    # ==================== SESSIONS ====================

    def start_session(
        self, user_id: int, now: Optional[datetime] = None
    ) -> schemas.SessionTracking:
        with self._transaction():
            session = self.repository.start_session(user_id, now)
            self._queue(EventType.SESSION_STARTED, user_id, session_id=session.id)
            return session

    def end_session(
        self,
        user_id: int,
        breaks_taken: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[schemas.SessionTracking]:
        with self._transaction():
            session = self.repository.end_session(user_id, breaks_taken, now)
            if session is not None:
                self._queue(
                    EventType.SESSION_ENDED,
                    user_id,
                    session_id=session.id,
                    duration_minutes=session.duration_minutes,
                )
            return session

    def get_today_session_duration(self, user_id: int) -> int:
        summary = self.repository.get_daily_summary(user_id)
        return summary.total_minutes if summary else 0

    def check_wellbeing_limits(
        self, user_id: int, now: Optional[datetime] = None
    ) -> schemas.WellbeingStatus:
        """Compare the open session and today's usage with the user's limits."""
        now = now or utcnow()
        limits = self.repository.get_effective_settings(user_id)
        current = self.repository.get_current_session(user_id)
        session_minutes = 0
        if current is not None:
            session_minutes = max(0, int((now - current.session_start).total_seconds() // 60))
        summary = self.repository.get_daily_summary(user_id, now.date())
        today_minutes = (summary.total_minutes if summary else 0) + session_minutes

        suggest_break = session_minutes >= limits.soft_limit_minutes
        end_session = session_minutes >= limits.hard_limit_minutes
        daily_reached = today_minutes >= limits.daily_limit_minutes

        alerts = []
        if limits.compassion_enabled:
            if end_session:
                alerts.append(
                    f"You've been here for {session_minutes} minutes. "
                    "Time to rest your eyes and wind down."
                )
            elif suggest_break:
                alerts.append(
                    f"How about a {limits.break_duration_minutes} minute break?"
                )
            if daily_reached:
                alerts.append("That's plenty of screen time for today. See you tomorrow.")

        return schemas.WellbeingStatus(
            session_minutes=session_minutes,
            today_minutes=today_minutes,
            should_suggest_break=suggest_break,
            should_end_session=end_session,
            daily_limit_reached=daily_reached,
            alerts=alerts,
        )

    # ==================== INVENTORY ====================

    def grant_reward(
        self,
        user_id: int,
        reward_id: str,
        quantity: int = 1,
        expires_at: Optional[datetime] = None,
    ) -> schemas.InventoryItem:
        return self.repository.add_to_inventory(user_id, reward_id, quantity, expires_at)

    def consume_reward(
        self, user_id: int, reward_id: str, quantity: int = 1
    ) -> Optional[schemas.InventoryItem]:
        with self._transaction():
            if not self.repository.has_item(user_id, reward_id):
                raise ResourceNotFoundException(
                    f"User {user_id} does not own {reward_id}",
                    details={"reward_id": reward_id},
                )
            return self.repository.remove_from_inventory(user_id, reward_id, quantity)

    def equip_item(
        self, user_id: int, slot: Union[EquipSlot, str], item_id: str
    ) -> schemas.EquippedItems:
        """
        Equip something the user owns: an unlocked badge in the badge slot, a
        badge reward title or owned item in the title slot, an owned item
        elsewhere.
        """
        try:
            slot = EquipSlot(slot)
        except ValueError:
            raise ValidationException(f"Unknown equipment slot: {slot}", details={"slot": slot})

        with self._transaction():
            if not self._owns(user_id, slot, item_id):
                raise ValidationException(
                    f"User {user_id} cannot equip {item_id}",
                    code="item_not_owned",
                    details={"slot": slot.value, "item_id": item_id},
                )
            return self.repository.equip_item(user_id, slot, item_id)

    def unequip_item(
        self, user_id: int, slot: Union[EquipSlot, str]
    ) -> schemas.EquippedItems:
        return self.repository.unequip_item(user_id, slot)

    def _owns(self, user_id: int, slot: EquipSlot, item_id: str) -> bool:
        if slot == EquipSlot.BADGE:
            return self.repository.has_achievement(user_id, item_id)
        if slot == EquipSlot.TITLE:
            titles = {
                self.badge_catalogue[a.achievement_id].reward_title
                for a in self.repository.get_unlocked_achievements(user_id)
                if a.achievement_id in self.badge_catalogue
            }
            if item_id in titles:
                return True
        return self.repository.has_item(user_id, item_id)

    # ==================== SETTINGS ====================

    def get_settings(self, user_id: int) -> schemas.GamificationSettings:
        return self.repository.get_effective_settings(user_id)

    def update_settings(
        self,
        user_id: int,
        update: Union[schemas.GamificationSettingsUpdate, Dict[str, Any]],
    ) -> schemas.GamificationSettings:
        return self.repository.save_settings(user_id, update)

    # ==================== GDPR ====================

    def export_user_data(self, user_id: int) -> schemas.UserDataExport:
        with log_context(user_id=user_id, operation="export_user_data"):
            export = self.repository.export_user_data(
                user_id, self.config.XP_TRANSACTION_EXPORT_LIMIT
            )
            logger.info(f"Exported gamification data for user {user_id}")
            return export

    def delete_user_data(self, user_id: int) -> bool:
        with log_context(user_id=user_id, operation="delete_user_data"):
            return self.repository.delete_user_data(user_id)

    def anonymize_user_data(self, user_id: int) -> bool:
        """Hide the user's state, keeping aggregates. A later action reactivates it."""
        with log_context(user_id=user_id, operation="anonymize_user_data"):
            return self.repository.anonymize_user_data(user_id)

    # ==================== HELPERS ====================

    def _queue_level_up(
        self, user_id: int, previous_level: int, new_level: int, total_xp: int
    ) -> None:
        self._queue(
            EventType.LEVEL_UP,
            user_id,
            previous_level=previous_level,
            new_level=new_level,
            total_xp=total_xp,
        )

    def _queue_badge(self, user_id: int, achievement: schemas.Achievement) -> None:
        definition = self.badge_catalogue.get(achievement.achievement_id)
        self._queue(
            EventType.ACHIEVEMENT_UNLOCKED,
            user_id,
            badge_id=achievement.achievement_id,
            name=definition.name if definition else achievement.achievement_id,
            rarity=definition.rarity.value if definition else None,
        )

    @staticmethod
    def _action_xp(action: GamificationAction, metadata: Dict[str, Any]) -> int:
        if action == GamificationAction.CUSTOM:
            return GamificationEngine._metadata_int(metadata, "xp", 0)
        return XP_REWARDS[action]

    @staticmethod
    def _metadata_int(metadata: Dict[str, Any], key: str, default: int) -> int:
        """A non-negative whole number supplied in action metadata."""
        value = metadata.get(key, default)
        try:
            if isinstance(value, bool):
                raise TypeError(key)
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationException(
                f"Metadata {key} must be a whole number", details={key: value}
            )
        if number < 0:
            raise ValidationException(
                f"Metadata {key} must not be negative", details={key: value}
            )
        return number

    def _checked_in_today(
        self, user_id: int, action: GamificationAction, now: datetime
    ) -> bool:
        if (
            action != GamificationAction.DAILY_CHECK_IN
            or not self.config.DEDUPLICATE_DAILY_CHECK_IN
        ):
            return False
        streak = self.repository.get_streak(user_id, StreakType.DAILY_LOGIN)
        return (
            streak is not None
            and streak.last_activity_at is not None
            and streak.last_activity_at.date() == now.date()
        )

    @staticmethod
    def _action_metric(action: GamificationAction, metadata: Dict[str, Any]) -> str:
        if action == GamificationAction.CUSTOM and metadata.get("metric"):
            return str(metadata["metric"])
        return ACTION_TO_METRIC[action]

    def _triggers(
        self,
        action: GamificationAction,
        metadata: Dict[str, Any],
        now: datetime,
        last_active_at: Optional[datetime],
    ) -> Set[str]:
        """Hidden-badge triggers fired by this action."""
        triggers = set()
        if now.hour in LATE_NIGHT_HOURS:
            triggers.add("late_night_use")
        if now.hour in EARLY_MORNING_HOURS:
            triggers.add("early_morning_use")
        if (
            last_active_at is not None
            and (now.date() - last_active_at.date()).days >= self.config.COMEBACK_AFTER_DAYS
        ):
            triggers.add("comeback_after_break")
        if action == GamificationAction.REFERRAL:
            triggers.add("referral")
        if action == GamificationAction.DIARY_ENTRY and metadata.get("complete"):
            triggers.add("complete_diary_entry")
        return triggers
