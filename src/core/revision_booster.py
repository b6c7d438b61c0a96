"""
IntelliPlan — Revision Booster.

Spaced repetition: every topic gets a short review one day after it is first
studied and a booster a week later. Revisions are half as long as the source
task, never shorter than half an hour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from src.core.dates import DateLike, add_days
from src.data.models import Task, TaskStatus, new_task_id

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

MIN_REVISION_HOURS = 0.5


@dataclass(frozen=True)
class RevisionSlot:
    days: int
    label: str


REVISION_SLOTS = (
    RevisionSlot(1, "1-Day Review"),
    RevisionSlot(7, "7-Day Booster"),
)


def revision_duration(duration: float) -> float:
    return max(MIN_REVISION_HOURS, duration * 0.5)


def _revision_for(source: Task, slot: RevisionSlot, base_date: DateLike, id_factory: IdFactory) -> Task:
    return Task(
        id=id_factory(),
        date=add_days(base_date, slot.days),
        subject=source.subject,
        unit=source.unit,
        start_time=source.start_time,
        duration=revision_duration(source.duration),
        status=TaskStatus.PENDING,
        is_revision=True,
        revision_offset_days=slot.days,
        revision_label=slot.label,
        original_task_id=source.id,
    )


def create_revision_slots(
    task: Task | None,
    completion_date: DateLike,
    id_factory: IdFactory = new_task_id,
) -> list[Task]:
    """Revision pair for a task completed on ``completion_date``."""
    if task is None or not task.id:
        return []
    return [_revision_for(task, slot, completion_date, id_factory) for slot in REVISION_SLOTS]


def add_revision_tasks_to_plan(
    plan: list[Task],
    task: Task,
    completion_date: DateLike,
    id_factory: IdFactory = new_task_id,
) -> list[Task]:
    return [*plan, *create_revision_slots(task, completion_date, id_factory)]


def generate_initial_revisions(plan: Iterable[Task], id_factory: IdFactory = new_task_id) -> list[Task]:
    """Two revisions for the first pending occurrence of each (subject, unit)."""
    seen: set[tuple[str, str]] = set()
    revisions: list[Task] = []
    for task in plan:
        if task.is_revision or task.status != TaskStatus.PENDING or task.key in seen:
            continue
        seen.add(task.key)
        revisions.extend(_revision_for(task, slot, task.date, id_factory) for slot in REVISION_SLOTS)
    return revisions


def plan_with_revisions(plan: list[Task], id_factory: IdFactory = new_task_id) -> list[Task]:
    """The plan plus its initial revisions, sorted by date (stable within a day)."""
    revisions = generate_initial_revisions(plan, id_factory)
    logger.debug("Generated %d revision tasks for %d base tasks", len(revisions), len(plan))
    return sorted([*plan, *revisions], key=lambda t: t.date)


def has_revisions(plan: Iterable[Task], task_id: str) -> bool:
    return any(t.is_revision and t.original_task_id == task_id for t in plan)
