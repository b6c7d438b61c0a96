"""Clock adapters: the wall clock, and a frozen clock for tests and what-if runs."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class SystemClock:
    """Local wall-clock time, optionally pinned to an IANA zone."""

    def __init__(self, tz_name: str | None = None) -> None:
        if tz_name is None:
            from src.config import settings
            tz_name = settings.TIMEZONE

        self._tz: ZoneInfo | None = None
        if tz_name:
            try:
                self._tz = ZoneInfo(tz_name)
            except ZoneInfoNotFoundError:
                raise ValueError(f"Unknown TIMEZONE: {tz_name!r}") from None

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """A clock frozen on one calendar day."""

    def __init__(self, day: date | str, hour: int = 9) -> None:
        self._day = date.fromisoformat(day) if isinstance(day, str) else day
        self._hour = hour

    def now(self) -> datetime:
        return datetime.combine(self._day, time(hour=self._hour))

    def today(self) -> date:
        return self._day

    def advance(self, days: int = 1) -> None:
        self._day = self._day + timedelta(days=days)
