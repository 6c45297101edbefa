# nightowl/schemas/event.py
from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, Field

from nightowl.core.constants import EventType
from nightowl.utils.time import utcnow


class GamificationEvent(BaseModel):
    type: EventType
    user_id: int
    payload: Dict[str, Any] = {}
    occurred_at: datetime = Field(default_factory=utcnow)
