# nightowl/schemas/achievement.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class Achievement(BaseModel):
    user_id: int
    achievement_id: str
    progress: int
    unlocked_at: Optional[datetime] = None
    notified: bool = False

    class Config:
        from_attributes = True

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


# Catalogue entry as shown to the user
class Badge(BaseModel):
    id: str
    name: str
    description: str
    category: str
    rarity: str
    reward_xp: int = 0
    reward_title: Optional[str] = None
    unlocks: List[str] = []
    hidden: bool = False

    class Config:
        from_attributes = True


class UserBadge(BaseModel):
    badge: Badge
    earned_at: datetime
    is_new: bool
