"""
IntelliPlan — Adaptive Rescheduler.

Runs once per session load. Tasks marked Missed on a past day are moved
forward: each one takes over the next future Pending slot, or, when none is
left, gets a new task appended after the end of the plan. The missed
originals stay in the plan as Rescheduled history, so the pass never loses a
task and never handles the same miss twice.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from src.core.dates import DateLike, add_days, to_iso
from src.data.models import Task, TaskStatus, new_task_id

logger = logging.getLogger(__name__)


def find_missed_for_reschedule(plan: list[Task], today: DateLike) -> list[Task]:
    """Missed tasks dated strictly before today, in plan order."""
    day = to_iso(today)
    return [t for t in plan if t.status == TaskStatus.MISSED and t.date < day]


def adapt_plan(
    plan: list[Task],
    today: DateLike,
    id_factory: Callable[[], str] = new_task_id,
) -> list[Task]:
    """Reconcile past missed tasks into future slots.

    Returns ``plan`` itself when there is nothing to reschedule; otherwise a
    new list holding every original task (missed ones now Rescheduled, reused
    slots overwritten in place) followed by any appended tasks.
    """
    missed = find_missed_for_reschedule(plan, today)
    if not missed:
        return plan

    day = to_iso(today)
    missed_ids = {t.id for t in missed}
    free_slots = sorted(
        (t for t in plan if t.id not in missed_ids and t.status == TaskStatus.PENDING and t.date >= day),
        key=lambda t: t.date,
    )

    overwrites: dict[str, Task] = {}
    appended: list[Task] = []
    last_date = max(t.date for t in plan)
    for task in missed:
        if free_slots:
            slot = free_slots.pop(0)
            overwrites[slot.id] = replace(
                slot,
                subject=task.subject,
                unit=task.unit,
                original_task_id=task.id,
                is_auto_rescheduled=True,
            )
            continue
        new_date = max(add_days(last_date, 1), day)
        appended.append(replace(
            task,
            id=id_factory(),
            date=new_date,
            status=TaskStatus.PENDING,
            original_task_id=task.id,
            is_auto_rescheduled=True,
        ))
        last_date = new_date

    result = []
    for task in plan:
        if task.id in missed_ids:
            result.append(replace(task, status=TaskStatus.RESCHEDULED))
        else:
            result.append(overwrites.get(task.id, task))
    result.extend(appended)

    logger.info(
        "Rescheduled %d missed tasks: %d into free slots, %d appended",
        len(missed), len(overwrites), len(appended),
    )
    return result
