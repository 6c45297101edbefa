# nightowl/repositories/streak_repository.py
from typing import List, Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.core.constants import StreakType
from nightowl.repositories.base_repository import BaseRepository


class StreakRepository(BaseRepository[models.Streak]):
    def __init__(self, db: Session):
        super().__init__(models.Streak, db)

    def get_user_streak(
        self, user_id: int, streak_type: StreakType
    ) -> Optional[models.Streak]:
        return (
            self.db.query(models.Streak)
            .filter(models.Streak.user_id == user_id, models.Streak.type == streak_type)
            .first()
        )

    def get_user_streaks(self, user_id: int) -> List[models.Streak]:
        return (
            self.db.query(models.Streak)
            .filter(models.Streak.user_id == user_id)
            .order_by(models.Streak.id)
            .all()
        )

    def get_or_create(self, user_id: int, streak_type: StreakType) -> models.Streak:
        """Creation default: zero count, multiplier 1.0, not frozen."""
        streak = self.get_user_streak(user_id, streak_type)
        if streak is None:
            streak = self.create(
                {
                    "user_id": user_id,
                    "type": streak_type,
                    "current_count": 0,
                    "longest_count": 0,
                    "multiplier": 1.0,
                    "frozen": False,
                }
            )
        return streak
