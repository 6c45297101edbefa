# nightowl/schemas/settings.py
from typing import Optional
from pydantic import BaseModel, Field


class GamificationSettingsBase(BaseModel):
    compassion_enabled: bool = True
    soft_reset_enabled: bool = True
    preserve_percentage: float = Field(0.5, gt=0, lt=1)
    soft_limit_minutes: int = Field(30, gt=0)
    hard_limit_minutes: int = Field(60, gt=0)
    daily_limit_minutes: int = Field(120, gt=0)
    break_duration_minutes: int = Field(15, gt=0)


class GamificationSettingsUpdate(BaseModel):
    compassion_enabled: Optional[bool] = None
    soft_reset_enabled: Optional[bool] = None
    preserve_percentage: Optional[float] = Field(None, gt=0, lt=1)
    soft_limit_minutes: Optional[int] = Field(None, gt=0)
    hard_limit_minutes: Optional[int] = Field(None, gt=0)
    daily_limit_minutes: Optional[int] = Field(None, gt=0)
    break_duration_minutes: Optional[int] = Field(None, gt=0)


class GamificationSettings(GamificationSettingsBase):
    user_id: int

    class Config:
        from_attributes = True
