"""
IntelliPlan — Exam-Driven Auto-Rebalancer.

Reshapes the plan whenever the exam list (or the plan) changes. For each
upcoming exam, soonest first, the days just before it become a focus window
reserved for that exam's subjects:

  1. exam-subject tasks on or after the exam date are removed;
  2. other subjects' tasks inside the window are paused (removed);
  3. exam-subject tasks dated before the window are packed into the window
     days, regular tasks before revisions, never past the per-day cap;
  4. every day outside the window is trimmed back to the per-day cap.

Tasks that don't fit the window are either dropped or left where they were,
depending on the overflow policy, and are always reported back. Revision
sessions booked for any exam are never moved, paused or trimmed.

Exams are handled one after another on the previous pass's output, so an
earlier exam's window can use up capacity a later exam needed.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Iterable

from src.core.dates import DateLike, add_days, to_iso
from src.core.exam_planner import upcoming_exams
from src.data.models import Task
from src.data.schemas import Exam

logger = logging.getLogger(__name__)

OVERFLOW_DROP = "drop"
OVERFLOW_KEEP = "keep"


@dataclass
class ExamPass:
    """What one exam's pass did to the plan."""

    exam_id: str
    window: list[str]
    moved: int = 0
    removed_after_exam: int = 0
    paused: int = 0
    capped: int = 0
    unplaced: list[Task] = field(default_factory=list)


@dataclass
class RebalanceResult:
    plan: list[Task]
    passes: list[ExamPass] = field(default_factory=list)

    @property
    def unplaced(self) -> list[Task]:
        return [t for p in self.passes for t in p.unplaced]

    @property
    def changed(self) -> bool:
        return any(p.moved or p.removed_after_exam or p.paused or p.capped or p.unplaced for p in self.passes)


def focus_window(exam_date: DateLike, window_days: int) -> list[str]:
    """The ``window_days`` calendar days right before the exam, earliest first."""
    return [add_days(exam_date, -offset) for offset in range(window_days, 0, -1)]


def _next_free_hour(day_tasks: list[Task], preferred: int) -> int:
    if not day_tasks:
        return preferred
    end = max(t.start_time + max(1, math.ceil(t.duration)) for t in day_tasks)
    return min(23, end)


def _rebalance_for_exam(
    plan: list[Task],
    exam: Exam,
    today: str,
    max_per_day: int,
    window_days: int,
    overflow_policy: str,
) -> tuple[list[Task], ExamPass]:
    subjects = set(exam.subjects)
    window = focus_window(exam.date, window_days)
    window_start = window[0]
    report = ExamPass(exam_id=exam.id, window=window)

    history: list[Task] = []
    kept: list[Task] = []
    to_move: list[Task] = []
    for task in plan:
        if not task.is_live:
            history.append(task)
            continue
        if task.is_exam_revision or task.exam_id == exam.id:
            # Exam revision sessions stay where they were booked, for every exam
            kept.append(task)
            continue
        is_exam_subject = task.subject in subjects
        if is_exam_subject and task.date >= exam.date:
            report.removed_after_exam += 1
        elif not is_exam_subject and task.date in window:
            report.paused += 1
        elif is_exam_subject and task.date < window_start:
            to_move.append(task)
        else:
            kept.append(task)

    by_day: dict[str, list[Task]] = defaultdict(list)
    for task in kept:
        by_day[task.date].append(task)

    # Regular sessions first, then revisions; earliest first within each group
    to_move.sort(key=lambda t: (t.is_revision, t.date, t.start_time))
    open_days = [d for d in window if d >= today]
    for task in to_move:
        day = next((d for d in open_days if len(by_day[d]) < max_per_day), None)
        if day is None:
            report.unplaced.append(task)
            if overflow_policy == OVERFLOW_KEEP:
                by_day[task.date].append(task)
            continue
        moved = replace(
            task,
            date=day,
            start_time=_next_free_hour(by_day[day], task.start_time),
            exam_mode=True,
            is_auto_rescheduled=True,
            original_date=task.original_date or task.date,
        )
        by_day[day].append(moved)
        report.moved += 1

    result = list(history)
    for day in sorted(by_day):
        tasks = by_day[day]
        if day not in window and len(tasks) > max_per_day:
            pinned: list[Task] = []
            others: list[Task] = []
            for t in tasks:
                (pinned if t.is_exam_revision or t.exam_id == exam.id else others).append(t)
            # Exam subjects win ties for the remaining capacity
            ranked = sorted(others, key=lambda t: (t.subject not in subjects, t.start_time))
            room = max(0, max_per_day - len(pinned))
            report.capped += len(ranked) - min(room, len(ranked))
            tasks = pinned + ranked[:room]
        result.extend(tasks)

    if report.unplaced:
        logger.warning(
            "%d %s tasks did not fit the focus window %s for %s (policy: %s)",
            len(report.unplaced), "/".join(sorted(subjects)), " & ".join(window),
            exam.name, overflow_policy,
        )
    logger.info(
        "Rebalanced for %s on %s: moved %d, removed %d after exam, paused %d, capped %d",
        exam.name, exam.date, report.moved, report.removed_after_exam, report.paused, report.capped,
    )
    return result, report


def rebalance_plan(
    plan: list[Task],
    exams: Iterable[Exam],
    today: DateLike,
    max_per_day: int | None = None,
    window_days: int | None = None,
    overflow_policy: str | None = None,
) -> RebalanceResult:
    """Run the focus-window pass for every upcoming exam, soonest first.

    Completed and Rescheduled tasks pass through untouched and don't count
    toward any day's cap. Settings supply defaults for the cap, the window
    length and the overflow policy.
    """
    from src.config import settings

    max_per_day = max_per_day or settings.MAX_TASKS_PER_DAY
    window_days = window_days or settings.FOCUS_WINDOW_DAYS
    overflow_policy = overflow_policy or settings.FOCUS_OVERFLOW_POLICY
    if overflow_policy not in (OVERFLOW_DROP, OVERFLOW_KEEP):
        raise ValueError(f"Unknown FOCUS_OVERFLOW_POLICY: {overflow_policy!r}")

    day = to_iso(today)
    result = RebalanceResult(plan=list(plan))
    for exam in upcoming_exams(exams, day):
        if not exam.subjects:
            continue
        result.plan, report = _rebalance_for_exam(
            result.plan, exam, day, max_per_day, window_days, overflow_policy,
        )
        result.passes.append(report)
    return result
