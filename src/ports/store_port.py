"""Store port — abstract key-value interface for persisted app state.

The service layer depends on this protocol, never on a specific backend.
Values are plain JSON-compatible structures (dicts, lists, strings, numbers).
"""

from __future__ import annotations

from typing import Any, Protocol

USER_PROFILE_KEY = "userProfile"
STUDY_PLAN_KEY = "studyPlan"
STUDY_STREAK_KEY = "studyStreak"
ACHIEVEMENTS_KEY = "achievements"
EXAMS_KEY = "exams"
PLAN_VERSION_KEY = "studyPlanVersion"


class StoreError(Exception):
    """Raised when any store backend fails to read or write a value."""


class StorePort(Protocol):
    """Abstract key-value store used by the service layer."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...
