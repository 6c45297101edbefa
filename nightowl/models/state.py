from sqlalchemy import Column, DateTime, Enum, Integer

from nightowl.core.constants import EngagementLevel
from nightowl.db.base import Base, enum_values
from nightowl.utils.time import utcnow


class GamificationState(Base):
    __tablename__ = "gamification_state"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    total_xp = Column(Integer, nullable=False, default=0)
    current_level = Column(Integer, nullable=False, default=1)
    engagement_level = Column(
        Enum(EngagementLevel, values_callable=enum_values, native_enum=False),
        nullable=False,
        default=EngagementLevel.NEW_USER,
    )
    total_days_active = Column(Integer, nullable=False, default=0)
    last_active_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)  # set by anonymization
