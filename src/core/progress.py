"""
IntelliPlan — Progress Tracking.

Single-task status changes drive the motivational side of the app: the
daily completion streak and the achievement badges. A first completion of a
base task also books its spaced-repetition follow-ups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Iterable

from src.core.dates import DateLike, add_days, to_iso
from src.core.errors import TaskNotFoundError
from src.core.revision_booster import create_revision_slots, has_revisions
from src.data.models import (
    Achievement,
    StreakState,
    Task,
    TaskStatus,
    new_task_id,
    parse_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementRule:
    id: str
    name: str
    icon: str
    description: str
    min_completed: int = 0
    min_streak: int = 0

    def is_met(self, completed: int, streak: int) -> bool:
        return completed >= self.min_completed and streak >= self.min_streak


ACHIEVEMENT_CATALOGUE = (
    AchievementRule("first_step", "First Step", "👟", "Complete your first task.", min_completed=1),
    AchievementRule("five_done", "High Five", "🖐️", "Complete 5 tasks.", min_completed=5),
    AchievementRule("ten_done", "Ten-tastic!", "🔟", "Complete 10 tasks.", min_completed=10),
    AchievementRule("streak_3", "On a Roll!", "🔥", "Maintain a 3-day streak.", min_streak=3),
    AchievementRule("streak_7", "Week Warrior", "🗓️", "Maintain a 7-day streak.", min_streak=7),
    AchievementRule("consistency_king", "Consistency King", "👑", "Maintain a 30-day streak.", min_streak=30),
)


def update_streak(streak: StreakState, completion_day: DateLike) -> StreakState:
    """Streak after a completion on ``completion_day``.

    Same day: unchanged. The day after the last completion: +1. Anything
    else: back to 1.
    """
    day = to_iso(completion_day)
    if streak.last_completed_date == day:
        return streak
    if streak.last_completed_date == add_days(day, -1):
        return StreakState(current=streak.current + 1, last_completed_date=day)
    return StreakState(current=1, last_completed_date=day)


def check_achievements(
    earned: Iterable[Achievement],
    completed_count: int,
    streak: StreakState,
    now: datetime,
) -> tuple[list[Achievement], list[Achievement]]:
    """Return (all achievements, newly earned ones). Earned badges are never removed."""
    all_earned = list(earned)
    have = {a.id for a in all_earned}
    new = [
        Achievement(id=rule.id, name=rule.name, icon=rule.icon, date=now.isoformat())
        for rule in ACHIEVEMENT_CATALOGUE
        if rule.id not in have and rule.is_met(completed_count, streak.current)
    ]
    return all_earned + new, new


@dataclass
class StatusChange:
    plan: list[Task]
    task: Task
    streak: StreakState
    achievements: list[Achievement]
    new_achievements: list[Achievement] = field(default_factory=list)
    added_revisions: list[Task] = field(default_factory=list)


def apply_status_change(
    plan: list[Task],
    task_id: str,
    status: TaskStatus | str,
    streak: StreakState,
    achievements: Iterable[Achievement],
    now: datetime,
    id_factory: Callable[[], str] = new_task_id,
) -> StatusChange:
    """Set one task's status and update streak, badges and revisions to match.

    Raises:
        TaskNotFoundError: no task in the plan has ``task_id``.
        PlanValidationError: ``status`` is not a known status.
    """
    new_status = parse_status(status)
    target = next((t for t in plan if t.id == task_id), None)
    if target is None:
        raise TaskNotFoundError(f"No task with id {task_id!r}")

    updated = replace(target, status=new_status)
    new_plan = [updated if t.id == task_id else t for t in plan]
    became_complete = new_status == TaskStatus.COMPLETED and target.status != TaskStatus.COMPLETED

    added: list[Task] = []
    if became_complete:
        streak = update_streak(streak, now.date())
        if not updated.is_revision and not has_revisions(plan, task_id):
            added = create_revision_slots(updated, now.date(), id_factory)
            new_plan.extend(added)

    completed_count = sum(1 for t in new_plan if t.status == TaskStatus.COMPLETED)
    all_achievements, new = check_achievements(achievements, completed_count, streak, now)
    for badge in new:
        logger.info("Achievement unlocked: %s %s", badge.icon, badge.name)
    logger.debug("Task %s: %s -> %s", task_id, target.status.value, new_status.value)

    return StatusChange(
        plan=new_plan,
        task=updated,
        streak=streak,
        achievements=all_achievements,
        new_achievements=new,
        added_revisions=added,
    )
