# nightowl/core/config.py
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment settings
    ENVIRONMENT: Literal["development", "testing", "production"] = "development"

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "NightOwl Gamification API"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # Path to log file if file logging is enabled

    # Database settings
    DATABASE_URL: str = "sqlite:///./nightowl.db"
    SQL_ECHO: bool = False

    # Gamification settings
    MAX_ACTIVE_QUESTS: int = 3
    DAILY_CHECK_IN_BASE_XP: int = 10
    DEDUPLICATE_DAILY_CHECK_IN: bool = True
    DEFAULT_QUEST_DURATION_DAYS: int = 7
    COMEBACK_AFTER_DAYS: int = 7

    # GDPR export
    XP_TRANSACTION_EXPORT_LIMIT: int = 1000

    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )


# Create settings instance
settings = Settings()
