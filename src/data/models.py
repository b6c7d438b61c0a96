"""
IntelliPlan — Data Models.

The plan is a flat list of Tasks that every engine operation reads in full
and replaces in full. Entities serialise to the camelCase JSON documents kept
in the key-value store, so a plan written by one version of the app can be
read back by another without loss.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable

from src.core.errors import PlanValidationError

# Stored task days are always plain YYYY-MM-DD so they compare as strings
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class TaskStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    MISSED = "Missed"
    PARTIALLY_DONE = "Partially Done"
    RESCHEDULED = "Rescheduled"


# Statuses the engine may still move, drop or count toward a day's load.
LIVE_STATUSES = frozenset({
    TaskStatus.PENDING, TaskStatus.MISSED, TaskStatus.PARTIALLY_DONE,
})


def new_task_id() -> str:
    """Default id factory: a random UUID4 string."""
    return str(uuid.uuid4())


def parse_status(value: str | TaskStatus) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise PlanValidationError(
            f"Unknown task status {value!r} (expected one of: {allowed})"
        ) from None


# snake_case attribute → camelCase wire name, for every optional flag
_OPTIONAL_WIRE_NAMES = {
    "is_revision": "isRevision",
    "revision_offset_days": "revisionOffsetDays",
    "revision_label": "revisionLabel",
    "original_task_id": "originalTaskId",
    "is_emergency_catchup": "isEmergencyCatchup",
    "is_auto_rescheduled": "isAutoRescheduled",
    "exam_mode": "examMode",
    "priority": "priority",
    "is_action_task": "isActionTask",
    "action_type": "actionType",
    "original_date": "originalDate",
    "is_exam_revision": "isExamRevision",
    "exam_id": "examId",
}


@dataclass
class Task:
    """One scheduled unit of study work.

    ``date`` is an ISO calendar day (YYYY-MM-DD), ``start_time`` an hour of
    day and ``duration`` a length in hours (0.5 is half an hour).
    """

    id: str
    date: str
    subject: str
    unit: str
    start_time: int
    duration: float
    status: TaskStatus = TaskStatus.PENDING
    is_revision: bool = False
    revision_offset_days: int | None = None
    revision_label: str | None = None
    original_task_id: str | None = None
    is_emergency_catchup: bool = False
    is_auto_rescheduled: bool = False
    exam_mode: bool = False
    priority: float | None = None
    is_action_task: bool = False
    action_type: str | None = None
    original_date: str | None = None
    is_exam_revision: bool = False
    exam_id: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """The (subject, unit) pair this task studies."""
        return (self.subject, self.unit)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "subject": self.subject,
            "unit": self.unit,
            "startTime": self.start_time,
            "duration": self.duration,
            "status": TaskStatus(self.status).value,
        }
        for attr, wire in _OPTIONAL_WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None or value is False:
                continue
            data[wire] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Build a Task from its stored form, rejecting malformed records."""
        missing = [k for k in ("id", "date", "subject", "startTime", "duration") if k not in data]
        if missing:
            raise PlanValidationError(f"Task record is missing fields: {', '.join(missing)}")

        if not isinstance(data["date"], str) or not _ISO_DATE.fullmatch(data["date"]):
            raise PlanValidationError(f"Invalid task date: {data['date']!r}")
        try:
            date.fromisoformat(data["date"])
        except ValueError:
            raise PlanValidationError(f"Invalid task date: {data['date']!r}") from None

        try:
            start_time = int(data["startTime"])
            duration = float(data["duration"])
        except (TypeError, ValueError):
            raise PlanValidationError(
                f"Task {data['id']!r} has a non-numeric startTime or duration"
            ) from None
        if not 0 <= start_time <= 23:
            raise PlanValidationError(f"Task {data['id']!r} startTime out of range: {start_time}")
        if duration < 0:
            raise PlanValidationError(f"Task {data['id']!r} has a negative duration")

        kwargs: dict[str, Any] = {
            "id": str(data["id"]),
            "date": data["date"],
            "subject": str(data["subject"]),
            "unit": str(data.get("unit", "")),
            "start_time": start_time,
            "duration": duration,
            "status": parse_status(data.get("status", TaskStatus.PENDING.value)),
        }
        for attr, wire in _OPTIONAL_WIRE_NAMES.items():
            if wire in data and data[wire] is not None:
                kwargs[attr] = data[wire]
        return cls(**kwargs)


@dataclass
class StreakState:
    """Consecutive days with at least one completed task."""

    current: int = 0
    last_completed_date: str | None = None   # ISO date YYYY-MM-DD

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current, "lastCompletedDate": self.last_completed_date}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StreakState:
        if not data:
            return cls()
        return cls(
            current=int(data.get("current", 0)),
            last_completed_date=data.get("lastCompletedDate"),
        )


@dataclass
class Achievement:
    """An earned badge. Once earned it is never removed."""

    id: str
    name: str
    icon: str
    date: str = ""   # ISO timestamp of when it was earned

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "icon": self.icon, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Achievement:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            icon=data.get("icon", ""),
            date=data.get("date", ""),
        )


def plan_to_dicts(plan: Iterable[Task]) -> list[dict[str, Any]]:
    return [task.to_dict() for task in plan]


def plan_from_dicts(records: Iterable[dict[str, Any]] | None) -> list[Task]:
    return [Task.from_dict(r) for r in records or []]


def sort_plan(plan: Iterable[Task]) -> list[Task]:
    """Display order: by date, then start hour."""
    return sorted(plan, key=lambda t: (t.date, t.start_time))
