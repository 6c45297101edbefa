from sqlalchemy import Boolean, Column, DateTime, Float, Integer

from nightowl.db.base import Base
from nightowl.utils.time import utcnow


class GamificationSettings(Base):
    __tablename__ = "gamification_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    compassion_enabled = Column(Boolean, nullable=False, default=True)
    soft_reset_enabled = Column(Boolean, nullable=False, default=True)
    preserve_percentage = Column(Float, nullable=False, default=0.5)
    soft_limit_minutes = Column(Integer, nullable=False, default=30)
    hard_limit_minutes = Column(Integer, nullable=False, default=60)
    daily_limit_minutes = Column(Integer, nullable=False, default=120)
    break_duration_minutes = Column(Integer, nullable=False, default=15)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
