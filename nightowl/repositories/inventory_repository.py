# nightowl/repositories/inventory_repository.py
from typing import List, Optional
from sqlalchemy.orm import Session

from nightowl import models
from nightowl.repositories.base_repository import BaseRepository


class InventoryRepository(BaseRepository[models.InventoryItem]):
    def __init__(self, db: Session):
        super().__init__(models.InventoryItem, db)

    def get_item(self, user_id: int, reward_id: str) -> Optional[models.InventoryItem]:
        return (
            self.db.query(models.InventoryItem)
            .filter(
                models.InventoryItem.user_id == user_id,
                models.InventoryItem.reward_id == reward_id,
            )
            .first()
        )

    def get_items(self, user_id: int) -> List[models.InventoryItem]:
        return (
            self.db.query(models.InventoryItem)
            .filter(models.InventoryItem.user_id == user_id)
            .order_by(models.InventoryItem.acquired_at, models.InventoryItem.id)
            .all()
        )


class EquippedItemsRepository(BaseRepository[models.EquippedItems]):
    def __init__(self, db: Session):
        super().__init__(models.EquippedItems, db)

    def get_for_user(self, user_id: int) -> Optional[models.EquippedItems]:
        return self.get_by(user_id=user_id)

    def get_or_create(self, user_id: int) -> models.EquippedItems:
        """Creation default: every slot empty."""
        equipped = self.get_for_user(user_id)
        if equipped is None:
            equipped = self.create({"user_id": user_id})
        return equipped
