"""Tests for the clock adapters."""

from datetime import date, datetime

import pytest

from src.adapters.system_clock import FixedClock, SystemClock


class TestFixedClock:
    def test_today_and_now(self):
        clock = FixedClock("2026-03-10", hour=18)
        assert clock.today() == date(2026, 3, 10)
        assert clock.now() == datetime(2026, 3, 10, 18)

    def test_advance(self):
        clock = FixedClock(date(2026, 3, 31))
        clock.advance()
        assert clock.today() == date(2026, 4, 1)
        clock.advance(-2)
        assert clock.today() == date(2026, 3, 30)


class TestSystemClock:
    def test_local_time(self):
        clock = SystemClock(tz_name="")
        assert clock.now().tzinfo is None
        assert isinstance(clock.today(), date)

    def test_named_zone(self):
        clock = SystemClock(tz_name="Asia/Jerusalem")
        assert clock.now().tzinfo is not None

    def test_unknown_zone_raises(self):
        with pytest.raises(ValueError, match="Unknown TIMEZONE"):
            SystemClock(tz_name="Mars/Olympus_Mons")
