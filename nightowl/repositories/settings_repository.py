# nightowl/repositories/settings_repository.py
from typing import Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.repositories.base_repository import BaseRepository


class SettingsRepository(BaseRepository[models.GamificationSettings]):
    def __init__(self, db: Session):
        super().__init__(models.GamificationSettings, db)

    def get_for_user(self, user_id: int) -> Optional[models.GamificationSettings]:
        return self.get_by(user_id=user_id)
