# nightowl/schemas/streak.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from nightowl.core.constants import StreakType


class Streak(BaseModel):
    user_id: int
    type: StreakType
    current_count: int = 0
    longest_count: int = 0
    last_activity_at: Optional[datetime] = None
    multiplier: float = 1.0
    frozen: bool = False
    frozen_until: Optional[datetime] = None

    class Config:
        from_attributes = True


class StreakUpdate(BaseModel):
    type: StreakType
    current_count: int
    previous_count: int
    is_frozen: bool
    is_new_record: bool


class StreakFreezeRequest(BaseModel):
    days: int = Field(1, ge=1, le=14)
