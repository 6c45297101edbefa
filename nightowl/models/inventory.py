from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from nightowl.db.base import Base
from nightowl.utils.time import utcnow


class InventoryItem(Base):
    """Owned reward. Rows never persist with a zero quantity."""

    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("user_id", "reward_id", name="uq_inventory_user_reward"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    reward_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    acquired_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, nullable=True)


class EquippedItems(Base):
    __tablename__ = "equipped_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    equipped_badge = Column(String(64), nullable=True)
    equipped_title = Column(String(64), nullable=True)
    equipped_theme = Column(String(64), nullable=True)
    equipped_frame = Column(String(64), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
