# nightowl/repositories/session_repository.py
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.repositories.base_repository import BaseRepository


class SessionTrackingRepository(BaseRepository[models.SessionTracking]):
    def __init__(self, db: Session):
        super().__init__(models.SessionTracking, db)

    def get_open_session(self, user_id: int) -> Optional[models.SessionTracking]:
        return (
            self.db.query(models.SessionTracking)
            .filter(
                models.SessionTracking.user_id == user_id,
                models.SessionTracking.session_end.is_(None),
            )
            .order_by(models.SessionTracking.session_start.desc())
            .first()
        )

    def get_user_sessions(self, user_id: int) -> List[models.SessionTracking]:
        return self.list(
            user_id=user_id, order_by=models.SessionTracking.session_start
        )


class DailySummaryRepository(BaseRepository[models.DailySessionSummary]):
    def __init__(self, db: Session):
        super().__init__(models.DailySessionSummary, db)

    def get_for_date(
        self, user_id: int, day: date
    ) -> Optional[models.DailySessionSummary]:
        return self.get_by(user_id=user_id, date=day)

    def get_user_summaries(self, user_id: int) -> List[models.DailySessionSummary]:
        return self.list(user_id=user_id, order_by=models.DailySessionSummary.date)

    def get_or_create(self, user_id: int, day: date) -> models.DailySessionSummary:
        """Creation default: all counters zero."""
        summary = self.get_for_date(user_id, day)
        if summary is None:
            summary = self.create(
                {
                    "user_id": user_id,
                    "date": day,
                    "total_sessions": 0,
                    "total_minutes": 0,
                    "breaks_taken": 0,
                }
            )
        return summary
