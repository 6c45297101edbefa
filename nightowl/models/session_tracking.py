from sqlalchemy import Column, Date, DateTime, Integer, UniqueConstraint

from nightowl.db.base import Base


class SessionTracking(Base):
    """One row per chat session. An open session has no session_end."""

    __tablename__ = "session_tracking"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    session_start = Column(DateTime, nullable=False)
    session_end = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    breaks_taken = Column(Integer, nullable=False, default=0)


class DailySessionSummary(Base):
    __tablename__ = "daily_session_summary"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_session_summary_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False)
    total_sessions = Column(Integer, nullable=False, default=0)
    total_minutes = Column(Integer, nullable=False, default=0)
    breaks_taken = Column(Integer, nullable=False, default=0)
