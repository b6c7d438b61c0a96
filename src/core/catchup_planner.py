"""
IntelliPlan — Emergency Catch-Up Planner.

When the student falls behind, or an exam is on the horizon, this module
builds a time-boxed catch-up plan and commits it to today or tomorrow.

Two modes, chosen by whether any exam is still upcoming:
  - normal: score every open task (exam subject, due soon, known weakness,
    short) and greedily fill the time budget with the best ones;
  - exam: take every task of every upcoming exam's subjects and split the
    budget between those subjects by urgency and weakness.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from src.core.dates import DateLike, add_days, days_between, to_iso
from src.core.errors import PlanValidationError
from src.core.exam_planner import exam_subjects, upcoming_exams
from src.data.models import Task, TaskStatus
from src.data.schemas import Exam

logger = logging.getLogger(__name__)

DEFAULT_TASK_MINUTES = 5
DUE_SOON_DAYS = 3
PAUSE_WINDOW_DAYS = 2
FORCED_SELECTION = 3
TRIGGER_MISSED_RATE = 0.2

SCORE_EXAM_SUBJECT = 100
SCORE_DUE_SOON = 50
SCORE_WEAKNESS = 30
SCORE_SHORT_TASK_MAX = 30


def task_minutes(task: Task) -> float:
    """Task length in minutes; unset or zero durations count as 5."""
    return task.duration * 60 if task.duration else DEFAULT_TASK_MINUTES


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


def calculate_missed_rate(plan: list[Task], today: DateLike) -> float:
    """Share of all tasks that are dated before today and not completed."""
    if not plan:
        return 0.0
    day = to_iso(today)
    overdue = sum(1 for t in plan if t.date < day and t.status != TaskStatus.COMPLETED)
    return overdue / len(plan)


def should_trigger_catchup(plan: list[Task], exams: Iterable[Exam], today: DateLike) -> bool:
    missed_rate = calculate_missed_rate(plan, today)
    if missed_rate > TRIGGER_MISSED_RATE:
        logger.debug("Catch-up triggered: missed rate %.0f%%", missed_rate * 100)
        return True
    if upcoming_exams(exams, today):
        logger.debug("Catch-up triggered: upcoming exams")
        return True
    return False


def get_urgent_exams(exams: Iterable[Exam], today: DateLike) -> list[Exam]:
    """Exams one to three days away, soonest first."""
    return [e for e in upcoming_exams(exams, today) if days_between(today, e.date) <= DUE_SOON_DAYS]


@dataclass
class ExamSubject:
    name: str
    days_until_exam: int


def get_exam_subjects(exams: Iterable[Exam], today: DateLike) -> list[ExamSubject]:
    """Subjects of the upcoming exams, each tied to its soonest exam."""
    subjects: dict[str, ExamSubject] = {}
    for exam in upcoming_exams(exams, today):
        for name in exam.subjects:
            if name not in subjects:
                subjects[name] = ExamSubject(name, days_between(today, exam.date))
    return list(subjects.values())


def relevant_exam(subject: str, exams: list[Exam]) -> Exam | None:
    """The soonest exam in ``exams`` (already sorted) that lists ``subject``."""
    return next((e for e in exams if subject in e.subjects), None)


def distribute_study_hours(
    total_minutes: int,
    subjects: list[ExamSubject],
    weaknesses: Iterable[str] = (),
) -> dict[str, int]:
    """Minutes per exam subject, proportional to urgency plus weakness.

    Urgency is ``max(0, 5 - days until the exam)``; a known weakness adds 2.
    If every subject scores zero the budget is split evenly.
    """
    if not subjects:
        return {}
    weak = set(weaknesses)
    scores = {s.name: max(0, 5 - s.days_until_exam) + (2 if s.name in weak else 0) for s in subjects}
    total_score = sum(scores.values())
    if total_score == 0:
        return {name: total_minutes // len(scores) for name in scores}
    return {name: int(total_minutes * score / total_score) for name, score in scores.items()}


# ---------------------------------------------------------------------------
# Plan generation
# ---------------------------------------------------------------------------


@dataclass
class CatchupPlan:
    tasks: list[Task]
    total_minutes: float
    completion_estimate: int
    missed_count: int
    focus_subjects: list[str]
    budget_minutes: int
    difficulty: str = "Balanced"
    message: str = ""
    is_exam_mode: bool = False
    hour_distribution: dict[str, int] = field(default_factory=dict)
    upcoming_exams: list[Exam] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "totalMinutes": self.total_minutes,
            "completionEstimate": self.completion_estimate,
            "missedCount": self.missed_count,
            "focusSubjects": self.focus_subjects,
            "budgetMinutes": self.budget_minutes,
            "difficulty": self.difficulty,
            "message": self.message,
            "isExamMode": self.is_exam_mode,
            "hourDistribution": self.hour_distribution,
            "upcomingExams": [e.to_dict() for e in self.upcoming_exams],
        }


def score_task_priority(
    task: Task,
    exams: Iterable[Exam],
    weaknesses: Iterable[str],
    today: DateLike,
) -> float:
    score = 0.0
    if task.subject in exam_subjects(exams):
        score += SCORE_EXAM_SUBJECT
    if task.date <= add_days(today, DUE_SOON_DAYS):
        score += SCORE_DUE_SOON
    if task.subject in set(weaknesses):
        score += SCORE_WEAKNESS
    if task.duration:
        score += max(0, SCORE_SHORT_TASK_MAX - task.duration * 60 / 2)
    return score


def get_difficulty_level(total_minutes: float, available_minutes: float) -> str:
    if total_minutes <= available_minutes * 0.6:
        return "Easy"
    if total_minutes <= available_minutes * 0.85:
        return "Balanced"
    return "Intense"


_MESSAGES = {
    "Easy": "You got this! {minutes} minutes is enough to catch up.",
    "Balanced": "Ready to focus? This is a solid catch-up plan for the next {minutes} minutes.",
    "Intense": "You're pushing hard! This is intensive but doable. Stay focused!",
}


def get_motivational_message(difficulty: str, available_minutes: int) -> str:
    template = _MESSAGES.get(difficulty, _MESSAGES["Balanced"])
    return template.format(minutes=available_minutes)


def _validate_budget(minutes: int) -> None:
    if minutes <= 0:
        raise PlanValidationError(f"Catch-up time must be positive, got {minutes}")


def generate_catchup_plan(
    plan: list[Task],
    time_available: int,
    exams: Iterable[Exam],
    weaknesses: Iterable[str],
    today: DateLike,
) -> CatchupPlan:
    """Normal-mode plan: the best-scoring open tasks that fit the budget.

    Falls back to the top three tasks when not even one fits.
    """
    _validate_budget(time_available)
    exams = list(exams)
    weaknesses = list(weaknesses)
    open_tasks = [t for t in plan if t.is_live]
    scored = [replace(t, priority=score_task_priority(t, exams, weaknesses, today)) for t in open_tasks]
    # list.sort is stable, so equal scores keep plan order
    scored.sort(key=lambda t: t.priority, reverse=True)

    selected: list[Task] = []
    used = 0.0
    for task in scored:
        minutes = task_minutes(task)
        if used + minutes <= time_available:
            selected.append(task)
            used += minutes
    if not selected and scored:
        selected = scored[:FORCED_SELECTION]
        logger.info("Nothing fits %d minutes; forcing the top %d tasks", time_available, len(selected))

    total = sum(task_minutes(t) for t in selected)
    difficulty = get_difficulty_level(total, time_available)
    logger.info(
        "Catch-up (normal): %d of %d open tasks selected, %.0f/%d minutes, %s",
        len(selected), len(open_tasks), total, time_available, difficulty,
    )
    return CatchupPlan(
        tasks=selected,
        total_minutes=total,
        completion_estimate=math.ceil(total),
        missed_count=len(open_tasks),
        focus_subjects=list(dict.fromkeys(t.subject for t in selected)),
        budget_minutes=time_available,
        difficulty=difficulty,
        message=get_motivational_message(difficulty, time_available),
    )


def generate_exam_catchup_plan(
    plan: list[Task],
    time_available: int,
    exams: Iterable[Exam],
    weaknesses: Iterable[str],
    today: DateLike,
) -> CatchupPlan:
    """Exam-mode plan: every task of the upcoming exams' subjects, budget split by subject."""
    _validate_budget(time_available)
    upcoming = upcoming_exams(exams, today)
    subjects = get_exam_subjects(upcoming, today)
    names = [s.name for s in subjects]
    tasks = [t for t in plan if t.subject in set(names)]
    distribution = distribute_study_hours(time_available, subjects, weaknesses)
    difficulty = get_difficulty_level(time_available, time_available)

    logger.info(
        "Catch-up (exam mode): %d exams, subjects %s, %d tasks",
        len(upcoming), ", ".join(names), len(tasks),
    )
    return CatchupPlan(
        tasks=tasks,
        total_minutes=time_available,
        completion_estimate=time_available,
        missed_count=len(tasks),
        focus_subjects=names,
        budget_minutes=time_available,
        difficulty=difficulty,
        message=get_motivational_message(difficulty, time_available),
        is_exam_mode=True,
        hour_distribution=distribution,
        upcoming_exams=upcoming,
    )


def build_catchup_plan(
    plan: list[Task],
    time_available: int,
    exams: Iterable[Exam],
    weaknesses: Iterable[str],
    today: DateLike,
) -> CatchupPlan:
    """Exam mode whenever any exam is upcoming, normal mode otherwise."""
    exams = list(exams)
    if upcoming_exams(exams, today):
        return generate_exam_catchup_plan(plan, time_available, exams, weaknesses, today)
    return generate_catchup_plan(plan, time_available, exams, weaknesses, today)


# ---------------------------------------------------------------------------
# Applying a plan
# ---------------------------------------------------------------------------


def resolve_target_date(schedule_for: str, today: DateLike) -> str:
    if schedule_for == "today":
        return to_iso(today)
    if schedule_for == "tomorrow":
        return add_days(today, 1)
    raise PlanValidationError(f"schedule_for must be 'today' or 'tomorrow', got {schedule_for!r}")


def create_emergency_catchup_tasks(catchup: CatchupPlan, target_date: str) -> list[Task]:
    return [
        replace(t, date=target_date, is_emergency_catchup=True, original_date=t.date)
        for t in catchup.tasks
    ]


@dataclass
class ApplyResult:
    plan: list[Task]
    rescheduled: int = 0
    removed: int = 0
    paused: int = 0
    kept: int = 0
    added: int = 0

    def summary(self) -> str:
        return (
            f"Rescheduled: {self.rescheduled}, Removed: {self.removed}, "
            f"Paused: {self.paused}, Kept: {self.kept}, Added: {self.added}"
        )


def _match_selected(plan: list[Task], selected: list[Task]) -> tuple[set[str], list[Task]]:
    """Plan ids to move, plus selected tasks with no counterpart in the plan.

    A selected task matches the plan task with its id, or failing that the
    first unmatched open task with the same (subject, unit).
    """
    by_id = {t.id for t in plan}
    matched: set[str] = set()
    missing: list[Task] = []
    for sel in selected:
        if sel.id in by_id:
            matched.add(sel.id)
            continue
        twin = next((t for t in plan if t.key == sel.key and t.is_live and t.id not in matched), None)
        if twin is None:
            missing.append(sel)
        else:
            matched.add(twin.id)
    return matched, missing


def _in_pause_window(day: str, exams: list[Exam], window_days: int) -> bool:
    return any(add_days(e.date, -window_days) <= day < e.date for e in exams)


def apply_catchup(
    plan: list[Task],
    catchup: CatchupPlan,
    schedule_for: str,
    today: DateLike,
    pause_window_days: int = PAUSE_WINDOW_DAYS,
) -> ApplyResult:
    """Commit a catch-up plan to today or tomorrow.

    Matched tasks move to the target day. In exam mode, exam-subject tasks on
    or after their exam are removed and other subjects' tasks in the days
    just before any exam are paused (removed). Completed and Rescheduled
    tasks are never touched.
    """
    target = resolve_target_date(schedule_for, today)
    exam_mode = catchup.is_exam_mode and bool(catchup.upcoming_exams)
    exams = sorted(catchup.upcoming_exams, key=lambda e: e.date)
    subjects = set(exam_subjects(exams))
    matched, missing = _match_selected(plan, catchup.tasks)

    result = ApplyResult(plan=[])
    for task in plan:
        if not task.is_live:
            result.kept += 1
            result.plan.append(task)
            continue

        exam = relevant_exam(task.subject, exams) if exam_mode else None
        if task.id in matched and (exam is None or target <= exam.date):
            logger.debug("Rescheduling %s %r: %s -> %s", task.subject, task.unit, task.date, target)
            result.rescheduled += 1
            result.plan.append(replace(
                task, date=target, is_emergency_catchup=True, original_date=task.date,
            ))
        elif exam is not None and task.date >= exam.date:
            logger.debug("Removing %s %r: %s is on/after exam %s", task.subject, task.unit, task.date, exam.date)
            result.removed += 1
        elif (
            exam_mode
            and task.subject not in subjects
            and not task.is_exam_revision
            and _in_pause_window(task.date, exams, pause_window_days)
        ):
            logger.debug("Pausing %s %r on %s: too close to an exam", task.subject, task.unit, task.date)
            result.paused += 1
        else:
            result.kept += 1
            result.plan.append(task)

    for extra in missing:
        exam = relevant_exam(extra.subject, exams) if exam_mode else None
        if exam is not None and target > exam.date:
            continue
        result.plan.append(replace(
            extra, date=target, status=TaskStatus.PENDING,
            is_emergency_catchup=True, original_date=extra.date,
        ))
        result.added += 1

    logger.info("Applied catch-up for %s: %s", target, result.summary())
    return result
