"""
IntelliPlan — Date Utilities.

The engine works in local calendar days, never instants. Days travel as ISO
``YYYY-MM-DD`` strings (which compare correctly as plain strings) and are
turned into ``date`` values only for arithmetic.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from src.core.errors import PlanValidationError

if TYPE_CHECKING:
    from src.ports.clock_port import Clock

DateLike = date | str

# A calendar day, optionally followed by an ISO time part
_ISO_DAY = re.compile(r"(\d{4}-\d{2}-\d{2})(?:T\d{2}:\d{2}\S*)?")


def parse_date(value: DateLike) -> date:
    """Return a ``date`` for an ISO string or date value.

    Raises PlanValidationError for anything that isn't a real calendar day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _ISO_DAY.fullmatch(value.strip())
        if match:
            try:
                return date.fromisoformat(match.group(1))
            except ValueError:
                pass
    raise PlanValidationError(f"Invalid date: {value!r}")


def to_iso(value: DateLike) -> str:
    return parse_date(value).isoformat()


def add_days(value: DateLike, n: int) -> str:
    """ISO date ``n`` days after ``value`` (negative ``n`` goes back)."""
    return (parse_date(value) + timedelta(days=n)).isoformat()


def today(clock: Clock) -> str:
    return clock.today().isoformat()


def yesterday(clock: Clock) -> str:
    return add_days(clock.today(), -1)


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (parse_date(end) - parse_date(start)).days


def start_of_week(value: DateLike) -> str:
    """The Sunday on or before ``value``."""
    day = parse_date(value)
    # date.weekday(): Monday=0 .. Sunday=6
    return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
