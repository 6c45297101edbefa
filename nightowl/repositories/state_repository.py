# nightowl/repositories/state_repository.py
from typing import Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.core.constants import EngagementLevel
from nightowl.repositories.base_repository import BaseRepository


class StateRepository(BaseRepository[models.GamificationState]):
    """Repository for the per-user gamification state row."""

    def __init__(self, db: Session):
        super().__init__(models.GamificationState, db)

    def get_for_user(
        self, user_id: int, include_deleted: bool = False
    ) -> Optional[models.GamificationState]:
        query = self.db.query(models.GamificationState).filter(
            models.GamificationState.user_id == user_id
        )
        if not include_deleted:
            query = query.filter(models.GamificationState.deleted_at.is_(None))
        return query.first()

    def create_default(self, user_id: int) -> models.GamificationState:
        """Creation default: level 1, no XP, new user."""
        return self.create(
            {
                "user_id": user_id,
                "total_xp": 0,
                "current_level": 1,
                "engagement_level": EngagementLevel.NEW_USER,
                "total_days_active": 0,
            }
        )
