# nightowl/repositories/xp_transaction_repository.py
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.core.constants import XPSource
from nightowl.repositories.base_repository import BaseRepository


class XPTransactionRepository(BaseRepository[models.XPTransaction]):
    """Repository for the append-only XP ledger."""

    def __init__(self, db: Session):
        super().__init__(models.XPTransaction, db)

    def append(
        self,
        user_id: int,
        amount: int,
        source: XPSource,
        metadata: Optional[Dict[str, Any]] = None,
        multiplier: float = 1.0,
    ) -> models.XPTransaction:
        return self.create(
            {
                "user_id": user_id,
                "amount": amount,
                "source": source,
                "multiplier": multiplier,
                "metadata_json": metadata,
            }
        )

    def list_for_user(
        self, user_id: int, limit: Optional[int] = None
    ) -> List[models.XPTransaction]:
        """Newest first."""
        query = (
            self.db.query(models.XPTransaction)
            .filter(models.XPTransaction.user_id == user_id)
            .order_by(
                models.XPTransaction.created_at.desc(), models.XPTransaction.id.desc()
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def total_for_user(self, user_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(models.XPTransaction.amount), 0))
            .filter(models.XPTransaction.user_id == user_id)
            .scalar()
        )
        return int(total or 0)

    def earned_since(self, user_id: int, since: datetime) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(models.XPTransaction.amount), 0))
            .filter(
                models.XPTransaction.user_id == user_id,
                models.XPTransaction.created_at >= since,
            )
            .scalar()
        )
        return int(total or 0)

    def metric_counts(self, user_id: int) -> Dict[str, int]:
        """Count ledger rows per ``metric`` recorded in their metadata."""
        rows = (
            self.db.query(models.XPTransaction.metadata_json)
            .filter(models.XPTransaction.user_id == user_id)
            .all()
        )
        counts = Counter()
        for (metadata,) in rows:
            if metadata and metadata.get("metric"):
                counts[metadata["metric"]] += 1
        return dict(counts)
