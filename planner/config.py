"""
Day Planner — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from planner/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "scheduler.db"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 7540
    WEB_DIR: str = "web"
    TASKS_LIMIT: int = 20

    LOG_LEVEL: str = "INFO"

    # Telegram (only needed by `python main.py bot`)
    TELEGRAM_BOT_TOKEN: str = ""
    ALLOWED_USER_IDS: list[int] = []

    # Daily agenda push
    AGENDA_HOUR: int = 8
    TIMEZONE: str = "UTC"

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("PORT", "TASKS_LIMIT", "AGENDA_HOUR", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("AGENDA_HOUR")
    @classmethod
    def check_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"AGENDA_HOUR must be between 0 and 23, got {v}")
        return v

    @field_validator("TASKS_LIMIT")
    @classmethod
    def check_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"TASKS_LIMIT must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "scheduler.db"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=os.getenv("PORT", "7540"),
        WEB_DIR=os.getenv("WEB_DIR", "web"),
        TASKS_LIMIT=os.getenv("TASKS_LIMIT", "20"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        AGENDA_HOUR=os.getenv("AGENDA_HOUR", "8"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
    )


# Singleton, imported by all other modules as:
#   from planner.config import settings
settings = _load_settings()
