"""
IntelliPlan — Plan Analytics.

Read-only summaries of a plan: overall and per-subject completion, how
heavy today is compared with the student's daily capacity, and how loaded
each day of the current week looks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from src.core.dates import DateLike, add_days, start_of_week, to_iso
from src.data.models import Task, TaskStatus
from src.data.schemas import UserProfile

WEAK_PERCENT = 50
WEAK_MIN_TASKS = 2


@dataclass
class SubjectStats:
    name: str
    completed: int
    total: int
    percentage: float


@dataclass
class PlanStats:
    total_tasks: int
    completed_tasks: int
    missed_tasks: int
    partially_done_tasks: int
    pending_tasks: int
    completion_percentage: float
    hours_planned: float
    hours_studied: float
    subjects: list[SubjectStats] = field(default_factory=list)
    weaknesses: list[SubjectStats] = field(default_factory=list)


def plan_statistics(plan: list[Task], profile: UserProfile) -> PlanStats:
    """Whole-plan counts, hours and a per-subject completion breakdown.

    Subjects with more than two tasks and under 50% completion are listed
    as weaknesses, weakest first.
    """
    def count(status: TaskStatus) -> int:
        return sum(1 for t in plan if t.status == status)

    total = len(plan)
    completed = count(TaskStatus.COMPLETED)
    missed = count(TaskStatus.MISSED)
    partial = count(TaskStatus.PARTIALLY_DONE)

    subjects = []
    for subject in profile.subjects:
        tasks = [t for t in plan if t.subject == subject.name]
        done = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        subjects.append(SubjectStats(
            name=subject.name,
            completed=done,
            total=len(tasks),
            percentage=done / len(tasks) * 100 if tasks else 0.0,
        ))
    weaknesses = sorted(
        (s for s in subjects if s.percentage < WEAK_PERCENT and s.total > WEAK_MIN_TASKS),
        key=lambda s: s.percentage,
    )

    return PlanStats(
        total_tasks=total,
        completed_tasks=completed,
        missed_tasks=missed,
        partially_done_tasks=partial,
        pending_tasks=total - completed - missed - partial,
        completion_percentage=completed / total * 100 if total else 0.0,
        hours_planned=sum(t.duration for t in plan),
        hours_studied=sum(t.duration for t in plan if t.status == TaskStatus.COMPLETED),
        subjects=subjects,
        weaknesses=weaknesses,
    )


# ---------------------------------------------------------------------------
# Daily load
# ---------------------------------------------------------------------------


def calculate_daily_study_minutes(plan: Iterable[Task], day: DateLike) -> int:
    """Minutes of not-yet-completed study booked on ``day``."""
    iso = to_iso(day)
    return round(sum(
        t.duration * 60 for t in plan
        if t.date == iso and t.status not in (TaskStatus.COMPLETED, TaskStatus.RESCHEDULED)
    ))


@dataclass
class LoadLevel:
    level: str          # Light | Moderate | Heavy | Overloaded
    percentage: float   # capped at 100 for display
    actual_percentage: float


def get_study_load_level(minutes: float, capacity_minutes: float) -> LoadLevel:
    actual = minutes / capacity_minutes * 100 if capacity_minutes > 0 else 0.0
    if actual <= 50:
        level = "Light"
    elif actual <= 80:
        level = "Moderate"
    elif actual <= 100:
        level = "Heavy"
    else:
        level = "Overloaded"
    return LoadLevel(level=level, percentage=min(100.0, actual), actual_percentage=actual)


def get_study_load_suggestion(minutes: float, capacity_minutes: float) -> str:
    level = get_study_load_level(minutes, capacity_minutes).level
    if level == "Light":
        return "Light day. A good moment to get ahead or review weak topics."
    if level == "Moderate":
        return "Balanced load. Stick to the plan."
    if level == "Heavy":
        return "Full day. Take short breaks between sessions."
    over = round(minutes - capacity_minutes)
    return f"Over capacity by {over} minutes. Consider moving a task to tomorrow."


# ---------------------------------------------------------------------------
# Weekly load
# ---------------------------------------------------------------------------


@dataclass
class DayLoad:
    date: str
    task_count: int
    percentage: int
    level: str


def _load_for_count(task_count: int) -> tuple[int, str]:
    if task_count <= 2:
        return 25, "Relaxed"
    if task_count <= 3:
        return 50, "Moderate"
    if task_count <= 4:
        return 75, "High"
    return 100, "Overloaded"


def weekly_study_load(plan: Iterable[Task], today: DateLike) -> list[DayLoad]:
    """Sunday-to-Saturday load for the week containing ``today``."""
    tasks = list(plan)
    week_start = start_of_week(today)
    days = []
    for offset in range(7):
        day = add_days(week_start, offset)
        open_count = sum(
            1 for t in tasks
            if t.date == day and t.status not in (TaskStatus.COMPLETED, TaskStatus.RESCHEDULED)
        )
        percentage, level = _load_for_count(open_count)
        days.append(DayLoad(date=day, task_count=open_count, percentage=percentage, level=level))
    return days
