from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    Integer,
    UniqueConstraint,
)

from nightowl.core.constants import StreakType
from nightowl.db.base import Base, enum_values
from nightowl.utils.time import utcnow


class Streak(Base):
    __tablename__ = "streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_streaks_user_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(
        Enum(StreakType, values_callable=enum_values, native_enum=False),
        nullable=False,
    )
    current_count = Column(Integer, nullable=False, default=0)
    longest_count = Column(Integer, nullable=False, default=0)
    last_activity_at = Column(DateTime, nullable=True)
    multiplier = Column(Float, nullable=False, default=1.0)
    frozen = Column(Boolean, nullable=False, default=False)
    frozen_until = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
