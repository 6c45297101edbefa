# nightowl/schemas/session.py
from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import BaseModel


class SessionTracking(BaseModel):
    id: int
    user_id: int
    session_start: datetime
    session_end: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    breaks_taken: int = 0

    class Config:
        from_attributes = True


class DailySessionSummary(BaseModel):
    user_id: int
    date: date_type
    total_sessions: int = 0
    total_minutes: int = 0
    breaks_taken: int = 0

    class Config:
        from_attributes = True


class WellbeingStatus(BaseModel):
    session_minutes: int
    today_minutes: int
    should_suggest_break: bool
    should_end_session: bool
    daily_limit_reached: bool
    alerts: List[str] = []
