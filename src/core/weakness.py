"""
IntelliPlan — Weakness Detector.

Looks back over the plan (today and earlier) to spot subjects the student is
struggling with, names the most likely cause, and turns that cause into
three concrete remedial sessions that can be dropped into the plan.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterable

from src.core.dates import DateLike, add_days, to_iso
from src.core.plan_generator import anchor_hour
from src.data.models import Task, TaskStatus, new_task_id
from src.data.schemas import UserProfile

logger = logging.getLogger(__name__)

CAUSE_MISSED = "Missed tasks"
CAUSE_LOW_TIME = "Low study time"
CAUSE_INCONSISTENT = "Inconsistent progress"
CAUSE_LOW_QUIZ = "Low quiz score"

WEAK_COMPLETION_PERCENT = 50
MISSED_CAUSE_PERCENT = 40
LOW_TIME_RATIO = 0.6
MIN_TASKS_FOR_SIGNAL = 2


@dataclass
class WeaknessRecord:
    subject_name: str
    completion_percentage: int
    cause: str
    total_tasks: int
    completed_tasks: int
    missed_tasks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectName": self.subject_name,
            "completionPercentage": self.completion_percentage,
            "cause": self.cause,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "missedTasks": self.missed_tasks,
        }


def _classify(tasks: list[Task], completed: int, missed: int) -> str:
    if missed / len(tasks) * 100 > MISSED_CAUSE_PERCENT:
        return CAUSE_MISSED
    planned_hours = sum(t.duration for t in tasks)
    completed_hours = sum(t.duration for t in tasks if t.status == TaskStatus.COMPLETED)
    if completed_hours < planned_hours * LOW_TIME_RATIO:
        return CAUSE_LOW_TIME
    return CAUSE_INCONSISTENT


def find_weak_subjects_with_causes(
    plan: Iterable[Task],
    profile: UserProfile,
    today: DateLike,
) -> list[WeaknessRecord]:
    """One record per profile subject below 50% completion with at least one miss.

    Only tasks dated today or earlier count. Subjects with fewer than two such
    tasks, or with no missed tasks, are skipped.
    """
    day = to_iso(today)
    past = [t for t in plan if t.date <= day]
    records = []
    for subject in profile.subjects:
        tasks = [t for t in past if t.subject == subject.name]
        if len(tasks) < MIN_TASKS_FOR_SIGNAL:
            continue
        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        missed = sum(1 for t in tasks if t.status == TaskStatus.MISSED)
        if missed == 0:
            continue
        completion = completed / len(tasks) * 100
        if completion >= WEAK_COMPLETION_PERCENT:
            continue
        records.append(WeaknessRecord(
            subject_name=subject.name,
            completion_percentage=round(completion),
            cause=_classify(tasks, completed, missed),
            total_tasks=len(tasks),
            completed_tasks=completed,
            missed_tasks=missed,
        ))

    if records:
        logger.info("Weak subjects: %s", ", ".join(f"{r.subject_name} ({r.cause})" for r in records))
    return records


# ---------------------------------------------------------------------------
# Suggested actions
# ---------------------------------------------------------------------------


@dataclass
class SuggestedAction:
    subject: str
    type: str        # video | practice | revision | focus | notes | examples | quiz
    title: str
    duration: int    # minutes

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# (type, title template, minutes); {subject} is filled in per weakness
_ACTION_TEMPLATES: dict[str, tuple[tuple[str, str, int], ...]] = {
    CAUSE_MISSED: (
        ("revision", "Quick recap of missed {subject} topics", 20),
        ("focus", "Short focused {subject} session, phone away", 25),
        ("practice", "Five practice questions on {subject}", 30),
    ),
    CAUSE_LOW_TIME: (
        ("focus", "Add one extra {subject} block this week", 45),
        ("video", "Watch a short {subject} explainer video", 15),
        ("practice", "Timed {subject} practice set", 30),
    ),
    CAUSE_INCONSISTENT: (
        ("notes", "Rewrite your {subject} notes into a one-page summary", 30),
        ("examples", "Work through two solved {subject} examples", 25),
        ("quiz", "Self-quiz on yesterday's {subject} material", 15),
    ),
    CAUSE_LOW_QUIZ: (
        ("revision", "Review the {subject} questions you got wrong", 30),
        ("examples", "Study worked {subject} examples for weak spots", 25),
        ("quiz", "Retake a short {subject} quiz", 20),
    ),
}


def generate_suggested_actions(subject_name: str, cause: str) -> list[SuggestedAction]:
    """Three remedial actions for a cause; unknown causes get the 'Inconsistent progress' set."""
    templates = _ACTION_TEMPLATES.get(cause, _ACTION_TEMPLATES[CAUSE_INCONSISTENT])
    return [
        SuggestedAction(subject=subject_name, type=kind, title=title.format(subject=subject_name), duration=minutes)
        for kind, title, minutes in templates
    ]


def create_task_from_action(
    action: SuggestedAction,
    profile: UserProfile,
    today: DateLike,
    id_factory: Callable[[], str] = new_task_id,
) -> Task:
    """A pending task for tomorrow at the profile's anchor hour."""
    return Task(
        id=id_factory(),
        date=add_days(today, 1),
        subject=action.subject,
        unit=action.title,
        start_time=anchor_hour(profile.study_time),
        duration=math.ceil(action.duration / 60),
        status=TaskStatus.PENDING,
        is_action_task=True,
        action_type=action.type,
    )
