"""
IntelliPlan — Initial Plan Generator.

Builds the first multi-week schedule from the onboarding profile. Each
(subject, unit) topic is weighted by how new the student is to the subject,
gets a share of the horizon's task slots proportional to that weight, and
the resulting placeholders are shuffled so one subject doesn't clump on
consecutive days. Three or four one-hour tasks land on each day, starting at
the student's preferred hour, and the plan is finished with spaced-repetition
revisions.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable

from src.core.dates import DateLike, add_days
from src.core.errors import PlanValidationError
from src.core.revision_booster import plan_with_revisions
from src.data.models import Task, TaskStatus, new_task_id
from src.data.schemas import UserProfile, parse_profile

logger = logging.getLogger(__name__)

SKILL_WEIGHTS = {"Beginner": 3, "Medium": 2, "Advanced": 1}
ANCHOR_HOURS = {"Morning": 8, "Night": 19}
TASKS_PER_DAY_CHOICES = (3, 4)
TASK_DURATION_HOURS = 1


@dataclass(frozen=True)
class WeightedTopic:
    subject: str
    unit: str
    weight: int


def anchor_hour(study_time: str) -> int:
    return ANCHOR_HOURS.get(study_time, ANCHOR_HOURS["Night"])


def weighted_topics(profile: UserProfile) -> list[WeightedTopic]:
    return [
        WeightedTopic(subject.name, unit, SKILL_WEIGHTS[subject.skill])
        for subject in profile.subjects
        for unit in subject.unit_list
    ]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def allocate_slots(topics: list[WeightedTopic], total_slots: int) -> list[int]:
    """Slot count per topic, proportional to its share of the total weight.

    When there are at least as many slots as topics every topic gets one,
    and the counts are trimmed (largest first) so they never exceed
    ``total_slots``.
    """
    total_weight = sum(t.weight for t in topics)
    if total_weight == 0 or total_slots <= 0:
        return [0] * len(topics)

    counts = [_round_half_up(t.weight / total_weight * total_slots) for t in topics]
    if total_slots < len(topics):
        return counts

    counts = [max(1, c) for c in counts]
    while sum(counts) > total_slots:
        largest = max(range(len(counts)), key=lambda i: counts[i])
        counts[largest] -= 1
    return counts


def generate_initial_plan(
    profile: UserProfile | dict[str, Any],
    start_date: DateLike,
    horizon_days: int | None = None,
    rng: random.Random | None = None,
    id_factory: Callable[[], str] = new_task_id,
) -> list[Task]:
    """Build the first plan for ``profile``, starting on ``start_date``.

    Args:
        horizon_days: Days to cover. Defaults to the profile's
            ``scheduleDuration``, then to PLAN_DURATION_DAYS.
        rng: Source of randomness for per-day counts and the shuffle.
        id_factory: Produces a fresh task id per call.

    Raises:
        PlanValidationError: for a malformed profile or horizon.
    """
    profile = parse_profile(profile)
    if horizon_days is None:
        horizon_days = profile.schedule_duration
    if horizon_days is None:
        from src.config import settings
        horizon_days = settings.PLAN_DURATION_DAYS
    if horizon_days <= 0:
        raise PlanValidationError(f"Plan horizon must be positive, got {horizon_days}")
    add_days(start_date, 0)   # validates start_date
    rng = rng or random.Random()

    topics = weighted_topics(profile)
    daily_counts = [rng.choice(TASKS_PER_DAY_CHOICES) for _ in range(horizon_days)]
    total_slots = sum(daily_counts)

    placeholders: list[WeightedTopic] = []
    for topic, count in zip(topics, allocate_slots(topics, total_slots)):
        placeholders.extend([topic] * count)
    rng.shuffle(placeholders)

    start_hour = anchor_hour(profile.study_time)
    plan: list[Task] = []
    queue = iter(placeholders)
    for day_index, tasks_today in enumerate(daily_counts):
        day = add_days(start_date, day_index)
        for slot in range(tasks_today):
            topic = next(queue, None)
            if topic is None:
                break
            plan.append(Task(
                id=id_factory(),
                date=day,
                subject=topic.subject,
                unit=topic.unit,
                start_time=start_hour + slot,
                duration=TASK_DURATION_HOURS,
                status=TaskStatus.PENDING,
            ))

    full_plan = plan_with_revisions(plan, id_factory)
    logger.info(
        "Generated plan for %s: %d topics, %d base tasks, %d revisions over %d days",
        profile.name, len(topics), len(plan), len(full_plan) - len(plan), horizon_days,
    )
    return full_plan
