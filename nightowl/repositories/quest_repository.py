# nightowl/repositories/quest_repository.py
from typing import List, Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.core.constants import QuestStatus
from nightowl.repositories.base_repository import BaseRepository


class QuestRepository(BaseRepository[models.UserQuest]):
    """Repository for per-user quest instances."""

    def __init__(self, db: Session):
        super().__init__(models.UserQuest, db)

    def get_user_quest(self, user_id: int, quest_id: str) -> Optional[models.UserQuest]:
        return (
            self.db.query(models.UserQuest)
            .filter(
                models.UserQuest.user_id == user_id,
                models.UserQuest.quest_id == quest_id,
            )
            .first()
        )

    def get_user_quests(
        self, user_id: int, status: Optional[QuestStatus] = None
    ) -> List[models.UserQuest]:
        query = self.db.query(models.UserQuest).filter(
            models.UserQuest.user_id == user_id
        )
        if status is not None:
            query = query.filter(models.UserQuest.status == status)
        return query.order_by(models.UserQuest.started_at, models.UserQuest.id).all()

    def count_with_status(self, user_id: int, status: QuestStatus) -> int:
        return (
            self.db.query(models.UserQuest)
            .filter(
                models.UserQuest.user_id == user_id,
                models.UserQuest.status == status,
            )
            .count()
        )
