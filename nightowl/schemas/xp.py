# nightowl/schemas/xp.py
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from nightowl.core.constants import XPSource


class XPTransaction(BaseModel):
    id: int
    user_id: int
    amount: int
    source: XPSource
    multiplier: float = 1.0
    metadata_json: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class XPAwardResult(BaseModel):
    new_total_xp: int
    previous_level: int
    new_level: int
    leveled_up: bool
    transaction: XPTransaction


class XPStatus(BaseModel):
    total_xp: int
    level: int
    xp_into_level: int
    xp_to_next_level: int
    progress_percent: int
    xp_earned_today: int
