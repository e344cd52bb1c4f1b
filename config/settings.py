"""Application settings and configuration management."""
from __future__ import annotations

from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    LLM_CONFIG_PATH: str = Field(default="app_config.json")

    QUESTIONS_PER_SESSION: int = Field(default=5, ge=1)
    CREATE_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    CREATE_RETRY_BACKOFF_S: float = Field(default=0.05, ge=0.0)

    FALLBACK_RATING_MIN: int = Field(default=5, ge=1, le=10)
    FALLBACK_RATING_MAX: int = Field(default=8, ge=1, le=10)

    # Minutes allotted per question when the generator omits a usable value
    DEFAULT_TIME_LIMITS: Dict[str, int] = Field(
        default_factory=lambda: {"Beginner": 3, "Intermediate": 5, "Advanced": 8}
    )

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
