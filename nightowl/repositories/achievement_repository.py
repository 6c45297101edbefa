# nightowl/repositories/achievement_repository.py
from typing import List, Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.repositories.base_repository import BaseRepository


class AchievementRepository(BaseRepository[models.Achievement]):
    """Repository for per-user badge progress and unlocks."""

    def __init__(self, db: Session):
        super().__init__(models.Achievement, db)

    def get_user_achievement(
        self, user_id: int, achievement_id: str
    ) -> Optional[models.Achievement]:
        """Get specific user achievement."""
        return (
            self.db.query(models.Achievement)
            .filter(
                models.Achievement.user_id == user_id,
                models.Achievement.achievement_id == achievement_id,
            )
            .first()
        )

    def get_user_achievements(self, user_id: int) -> List[models.Achievement]:
        return (
            self.db.query(models.Achievement)
            .filter(models.Achievement.user_id == user_id)
            .order_by(models.Achievement.id)
            .all()
        )

    def get_unlocked(self, user_id: int) -> List[models.Achievement]:
        return (
            self.db.query(models.Achievement)
            .filter(
                models.Achievement.user_id == user_id,
                models.Achievement.unlocked_at.isnot(None),
            )
            .order_by(models.Achievement.unlocked_at, models.Achievement.id)
            .all()
        )

    def get_unnotified(self, user_id: int) -> List[models.Achievement]:
        return (
            self.db.query(models.Achievement)
            .filter(
                models.Achievement.user_id == user_id,
                models.Achievement.unlocked_at.isnot(None),
                models.Achievement.notified.is_(False),
            )
            .order_by(models.Achievement.unlocked_at, models.Achievement.id)
            .all()
        )

    def get_or_create(self, user_id: int, achievement_id: str) -> models.Achievement:
        """Creation default: no progress, locked, not notified."""
        achievement = self.get_user_achievement(user_id, achievement_id)
        if achievement is None:
            achievement = self.create(
                {
                    "user_id": user_id,
                    "achievement_id": achievement_id,
                    "progress": 0,
                    "notified": False,
                }
            )
        return achievement
