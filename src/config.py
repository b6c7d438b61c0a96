"""
IntelliPlan — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_STORE_BACKENDS = ("sqlite", "json", "memory")
_OVERFLOW_POLICIES = ("drop", "keep")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Storage: "sqlite" | "json" | "memory"
    STORE_BACKEND: str = "sqlite"
    DATABASE_PATH: str = "data/intelliplan.db"
    JSON_STORE_PATH: str = "data/intelliplan.json"

    # Planning
    PLAN_DURATION_DAYS: int = 30
    MAX_TASKS_PER_DAY: int = 4
    FOCUS_WINDOW_DAYS: int = 2
    FOCUS_OVERFLOW_POLICY: str = "drop"   # "drop" | "keep"
    DEFAULT_CATCHUP_MINUTES: int = 60

    # Clock — empty → host local time
    TIMEZONE: str = ""

    LOG_LEVEL: str = "INFO"

    @field_validator("STORE_BACKEND", mode="before")
    @classmethod
    def parse_backend(cls, v: str) -> str:
        backend = str(v).strip().lower()
        if backend not in _STORE_BACKENDS:
            raise ValueError(f"STORE_BACKEND must be one of {_STORE_BACKENDS}, got {v!r}")
        return backend

    @field_validator("FOCUS_OVERFLOW_POLICY", mode="before")
    @classmethod
    def parse_policy(cls, v: str) -> str:
        policy = str(v).strip().lower()
        if policy not in _OVERFLOW_POLICIES:
            raise ValueError(
                f"FOCUS_OVERFLOW_POLICY must be one of {_OVERFLOW_POLICIES}, got {v!r}"
            )
        return policy

    @field_validator(
        "PLAN_DURATION_DAYS", "MAX_TASKS_PER_DAY", "FOCUS_WINDOW_DAYS",
        "DEFAULT_CATCHUP_MINUTES", mode="before",
    )
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"must be a positive integer, got {v!r}")
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        return str(v).strip().upper() or "INFO"


def _load_settings() -> Settings:
    """Load settings from environment, validating every key."""
    return Settings(
        STORE_BACKEND=os.getenv("STORE_BACKEND", "sqlite"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/intelliplan.db"),
        JSON_STORE_PATH=os.getenv("JSON_STORE_PATH", "data/intelliplan.json"),
        PLAN_DURATION_DAYS=os.getenv("PLAN_DURATION_DAYS", "30"),
        MAX_TASKS_PER_DAY=os.getenv("MAX_TASKS_PER_DAY", "4"),
        FOCUS_WINDOW_DAYS=os.getenv("FOCUS_WINDOW_DAYS", "2"),
        FOCUS_OVERFLOW_POLICY=os.getenv("FOCUS_OVERFLOW_POLICY", "drop"),
        DEFAULT_CATCHUP_MINUTES=os.getenv("DEFAULT_CATCHUP_MINUTES", "60"),
        TIMEZONE=os.getenv("TIMEZONE", ""),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
