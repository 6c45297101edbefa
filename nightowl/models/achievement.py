from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)

from nightowl.db.base import Base
from nightowl.utils.time import utcnow


class Achievement(Base):
    """A user's progress towards, or ownership of, one badge."""

    __tablename__ = "achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_achievements_user_badge"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    achievement_id = Column(String(64), nullable=False)
    progress = Column(Integer, nullable=False, default=0)  # 0 to 100
    unlocked_at = Column(DateTime, nullable=True)
    notified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
