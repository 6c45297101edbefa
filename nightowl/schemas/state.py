# nightowl/schemas/state.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from nightowl.core.constants import EngagementLevel


class GamificationStateBase(BaseModel):
    total_xp: int = 0
    current_level: int = 1
    engagement_level: EngagementLevel = EngagementLevel.NEW_USER
    total_days_active: int = 0
    last_active_at: Optional[datetime] = None


# Fields accepted by save_state; unset fields keep their stored value
class GamificationStateUpdate(BaseModel):
    engagement_level: Optional[EngagementLevel] = None
    total_days_active: Optional[int] = None
    last_active_at: Optional[datetime] = None


class GamificationState(GamificationStateBase):
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
