# nightowl/schemas/inventory.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class InventoryItem(BaseModel):
    user_id: int
    reward_id: str
    quantity: int
    acquired_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EquippedItems(BaseModel):
    user_id: int
    equipped_badge: Optional[str] = None
    equipped_title: Optional[str] = None
    equipped_theme: Optional[str] = None
    equipped_frame: Optional[str] = None

    class Config:
        from_attributes = True
