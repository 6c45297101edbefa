# nightowl/schemas/quest.py
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from nightowl.core.constants import QuestStatus


class UserQuest(BaseModel):
    user_id: int
    quest_id: str
    status: QuestStatus
    started_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    objectives_json: Dict[str, Any] = {}

    class Config:
        from_attributes = True


# Catalogue entry as shown to the user
class Quest(BaseModel):
    id: str
    title: str
    description: str
    category: str
    difficulty: str
    duration_days: int
    target_metric: str
    target_value: int
    reward_xp: int
    reward_badge: Optional[str] = None

    class Config:
        from_attributes = True


class ActiveQuest(BaseModel):
    quest: Quest
    progress: UserQuest
    progress_percent: int
    days_remaining: Optional[int] = None


class QuestStartRequest(BaseModel):
    quest_id: str
