"""
IntelliPlan — Calendar Export.

Renders the open part of a study plan as an iCalendar file so it can be
imported into Google Calendar, Outlook, Apple Calendar and friends.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable

from icalendar import Calendar, Event as IcsEvent

from src.data.models import Task, TaskStatus, sort_plan

logger = logging.getLogger(__name__)

_EXPORTED_STATUSES = {TaskStatus.PENDING, TaskStatus.PARTIALLY_DONE}


def _summary(task: Task) -> str:
    if task.revision_label:
        return f"{task.subject}: {task.unit} ({task.revision_label})"
    if task.is_emergency_catchup:
        return f"{task.subject}: {task.unit} (catch-up)"
    return f"{task.subject}: {task.unit}" if task.unit else task.subject


def plan_to_ics(
    plan: Iterable[Task],
    tz: tzinfo | None = None,
    now: datetime | None = None,
) -> bytes:
    """Return an .ics payload with one VEVENT per pending task.

    Args:
        tz: Zone for event start times; floating local time when None.
        now: DTSTAMP for every event (defaults to the current time).
    """
    cal = Calendar()
    cal.add("prodid", "-//IntelliPlan//Study Plan//EN")
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", "Study Plan")

    stamp = now or datetime.now()
    exported = 0
    for task in sort_plan(plan):
        if task.status not in _EXPORTED_STATUSES:
            continue
        start = datetime.combine(date.fromisoformat(task.date), time(hour=task.start_time), tzinfo=tz)
        minutes = max(1, round(task.duration * 60))

        event = IcsEvent()
        event.add("uid", f"{task.id}@intelliplan")
        event.add("summary", _summary(task))
        event.add("dtstart", start)
        event.add("dtend", start + timedelta(minutes=minutes))
        event.add("dtstamp", stamp)
        event.add("categories", [task.subject])
        if task.is_revision:
            event.add("description", "Spaced-repetition review")
        cal.add_component(event)
        exported += 1

    logger.info("Exported %d tasks to iCalendar", exported)
    return cal.to_ical()
