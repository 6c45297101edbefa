from sqlalchemy import JSON, Column, DateTime, Enum, Float, Integer

from nightowl.core.constants import XPSource
from nightowl.db.base import Base, enum_values
from nightowl.utils.time import utcnow


class XPTransaction(Base):
    """Append-only XP ledger. The amounts sum to the user's total XP."""

    __tablename__ = "xp_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    source = Column(
        Enum(XPSource, values_callable=enum_values, native_enum=False),
        nullable=False,
    )
    multiplier = Column(Float, nullable=False, default=1.0)
    metadata_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
