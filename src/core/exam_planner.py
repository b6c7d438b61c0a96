"""
IntelliPlan — Exam Planner.

Countdown arithmetic and exam-driven task synthesis: how far away an exam
is, what phase of preparation that puts the student in, which revision
sessions to add as it gets closer, and when a falling-behind student should
be pushed toward an emergency catch-up.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from src.core.dates import DateLike, add_days, days_between, parse_date
from src.data.models import Task, TaskStatus, new_task_id
from src.data.schemas import Exam

logger = logging.getLogger(__name__)

SPLIT_THRESHOLD_MINUTES = 90


def calculate_days_left(exam_date: DateLike, today: DateLike) -> int:
    """Calendar days from ``today`` until the exam (negative once it's past)."""
    return days_between(today, exam_date)


def get_exam_status(days_left: int) -> str:
    """'far' | 'approaching' | 'imminent' | 'today' | 'completed'"""
    if days_left > 14:
        return "far"
    if days_left > 7:
        return "approaching"
    if days_left > 0:
        return "imminent"
    if days_left == 0:
        return "today"
    return "completed"


def preparation_tip(days_left: int) -> str:
    if days_left > 14:
        return "Start with fundamentals"
    if days_left > 7:
        return "Focus on weak areas"
    if days_left > 0:
        return "Practice past papers & revision"
    if days_left == 0:
        return "You got this! Light revision only"
    return ""


def upcoming_exams(exams: Iterable[Exam], today: DateLike) -> list[Exam]:
    """Exams dated strictly after today, soonest first."""
    day = parse_date(today).isoformat()
    return sorted((e for e in exams if e.date > day), key=lambda e: e.date)


def nearest_upcoming_exam(exams: Iterable[Exam], today: DateLike) -> Exam | None:
    upcoming = upcoming_exams(exams, today)
    return upcoming[0] if upcoming else None


def exam_subjects(exams: Iterable[Exam]) -> list[str]:
    """Every subject named by the given exams, first-seen order, no repeats."""
    seen: dict[str, None] = {}
    for exam in exams:
        for subject in exam.subjects:
            seen.setdefault(subject, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Exam revision tasks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _ExamSession:
    offset_days: int
    subject: str
    unit: str
    start_time: int
    duration: float
    max_days_left: int


_EXAM_SESSIONS = (
    _ExamSession(7, "{name} Revision - Day 7", "Revision for {name}", 9, 0.5, 14),
    _ExamSession(3, "{name} Practice Test", "Full practice test for {name}", 9, 0.75, 7),
    _ExamSession(1, "{name} Final Review", "Quick notes review for {name}", 18, 0.33, 7),
)


def generate_exam_revision_tasks(
    exam: Exam,
    today: DateLike,
    id_factory: Callable[[], str] = new_task_id,
) -> list[Task]:
    """Revision sessions before an exam, more of them the closer it is.

    Within two weeks: a half-hour revision seven days out. Within one week:
    also a practice test three days out and a final review the evening
    before.
    """
    days_left = calculate_days_left(exam.date, today)
    tasks = []
    for session in _EXAM_SESSIONS:
        if days_left > session.max_days_left:
            continue
        tasks.append(Task(
            id=id_factory(),
            date=add_days(exam.date, -session.offset_days),
            subject=session.subject.format(name=exam.name),
            unit=session.unit.format(name=exam.name),
            start_time=session.start_time,
            duration=session.duration,
            status=TaskStatus.PENDING,
            is_revision=True,
            is_exam_revision=True,
            exam_id=exam.id,
            revision_offset_days=session.offset_days,
        ))
    return tasks


def has_exam_revisions(plan: Iterable[Task], exam_id: str) -> bool:
    return any(t.is_exam_revision and t.exam_id == exam_id for t in plan)


# ---------------------------------------------------------------------------
# Emergency detection and focus split
# ---------------------------------------------------------------------------


@dataclass
class EmergencyCheck:
    exam: Exam
    days_left: int
    missed_rate: float
    reason: str
    triggered: bool = True


def check_emergency_catchup(
    plan: Iterable[Task],
    exams: Iterable[Exam],
    subjects: Iterable[str],
    today: DateLike,
) -> EmergencyCheck | None:
    """Recommend a catch-up when the nearest exam is close and tasks are being missed.

    Any missed exam task triggers it in the last three days; more than 20%
    missed in the last week; more than 30% missed in the last two weeks.
    """
    nearest = nearest_upcoming_exam(exams, today)
    if nearest is None:
        return None
    days_left = calculate_days_left(nearest.date, today)
    if days_left > 14:
        return None

    wanted = set(subjects)
    exam_tasks = [t for t in plan if t.subject in wanted]
    missed = sum(1 for t in exam_tasks if t.status == TaskStatus.MISSED)
    missed_rate = missed / len(exam_tasks) if exam_tasks else 0.0
    percent = round(missed_rate * 100)

    if days_left <= 3 and missed_rate > 0:
        reason = f"Exam in {days_left} days with missed tasks"
    elif days_left <= 7 and missed_rate > 0.2:
        reason = f"{percent}% tasks missed for {nearest.name}"
    elif missed_rate > 0.3:
        reason = f"{percent}% tasks missed for {nearest.name}"
    else:
        return None

    logger.info("Emergency catch-up recommended: %s", reason)
    return EmergencyCheck(exam=nearest, days_left=days_left, missed_rate=missed_rate, reason=reason)


@dataclass
class ExamAdjustment:
    nearest_exam: Exam | None = None
    days_left: int | None = None
    exam_focus: int = 50
    non_exam_focus: int = 50
    exam_subjects: list[str] = field(default_factory=list)


def calculate_exam_adjustments(
    exams: Iterable[Exam],
    subjects: Iterable[str],
    today: DateLike,
) -> ExamAdjustment:
    """Percent of study time to give exam subjects versus everything else."""
    nearest = nearest_upcoming_exam(exams, today)
    if nearest is None:
        return ExamAdjustment()

    days_left = calculate_days_left(nearest.date, today)
    exam_focus = 50
    if days_left <= 7:
        exam_focus = 75
    elif days_left <= 14:
        exam_focus = 65
    return ExamAdjustment(
        nearest_exam=nearest,
        days_left=days_left,
        exam_focus=exam_focus,
        non_exam_focus=100 - exam_focus,
        exam_subjects=list(subjects),
    )


# ---------------------------------------------------------------------------
# Topic splitting and suggestions
# ---------------------------------------------------------------------------


def split_long_topic(task: Task) -> list[Task]:
    """Break a task longer than 90 minutes into smaller sessions.

    A comma-separated unit list splits one session per unit; anything else
    splits into three equal parts. Parts get ``<id>-part-N`` ids and point
    back at the source through ``original_task_id``.
    """
    if task.duration * 60 <= SPLIT_THRESHOLD_MINUTES:
        return [task]

    if "," in task.unit:
        sub_units = [u.strip() for u in task.unit.split(",")]
        base_minutes = task.duration * 60 / len(sub_units)
        part_hours = max(0.5, math.ceil(base_minutes / 60) / 2)
        return [
            replace(task, id=f"{task.id}-part-{i}", unit=unit, duration=part_hours,
                    original_task_id=task.id)
            for i, unit in enumerate(sub_units, start=1)
        ]

    part_hours = task.duration / 3
    return [
        replace(task, id=f"{task.id}-part-{i}", unit=f"{task.unit} (Part {i})",
                duration=part_hours, original_task_id=task.id)
        for i in range(1, 4)
    ]


@dataclass
class StudySuggestion:
    type: str      # "increase-frequency" | "increase-difficulty" | "quick-review" | "complete"
    message: str


def get_study_suggestion(completion_rate: float, days_left: int) -> StudySuggestion:
    """What to change about studying an exam subject. ``completion_rate`` is 0..1."""
    if completion_rate < 0.8 and days_left > 0:
        return StudySuggestion("increase-frequency", "Increase daily study for this subject")
    if completion_rate >= 0.8 and days_left > 3:
        return StudySuggestion("increase-difficulty", "Practice harder problems")
    if 0 < days_left <= 3:
        return StudySuggestion("quick-review", "Quick revision & practice tests")
    return StudySuggestion("complete", "Exam completed!")


@dataclass
class ExamProgress:
    exam: Exam
    days_left: int
    status: str
    completion_rate: float
    total_tasks: int
    completed_tasks: int
    preparation_percent: float
    tip: str
    suggestion: StudySuggestion


def exam_progress(exam: Exam, plan: Iterable[Task], today: DateLike) -> ExamProgress:
    """Countdown and completion for one exam's subjects."""
    days_left = calculate_days_left(exam.date, today)
    wanted = set(exam.subjects)
    tasks = [t for t in plan if t.subject in wanted]
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    rate = completed / len(tasks) if tasks else 0.0
    return ExamProgress(
        exam=exam,
        days_left=days_left,
        status=get_exam_status(days_left),
        completion_rate=rate,
        total_tasks=len(tasks),
        completed_tasks=completed,
        # A 30-day runway fills the bar
        preparation_percent=max(0.0, min(100.0, (30 - days_left) / 30 * 100)),
        tip=preparation_tip(days_left),
        suggestion=get_study_suggestion(rate, days_left),
    )
