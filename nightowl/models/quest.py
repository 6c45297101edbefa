from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Integer,
    String,
    UniqueConstraint,
)

from nightowl.core.constants import QuestStatus
from nightowl.db.base import Base, enum_values
from nightowl.utils.time import utcnow


class UserQuest(Base):
    __tablename__ = "user_quests"
    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", name="uq_user_quests_user_quest"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    quest_id = Column(String(64), nullable=False)
    status = Column(
        Enum(QuestStatus, values_callable=enum_values, native_enum=False),
        nullable=False,
        default=QuestStatus.ACTIVE,
        index=True,
    )
    started_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    objectives_json = Column(JSON, nullable=False, default=dict)
