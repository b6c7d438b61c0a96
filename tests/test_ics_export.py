"""Tests for src.adapters.ics_export — iCalendar export of the plan."""

from datetime import datetime
from zoneinfo import ZoneInfo

from icalendar import Calendar

from src.adapters.ics_export import plan_to_ics
from src.data.models import TaskStatus

NOW = datetime(2026, 3, 10, 9, 0)


def _events(payload):
    return list(Calendar.from_ical(payload).walk("VEVENT"))


class TestPlanToIcs:
    def test_calendar_header(self, make_task):
        cal = Calendar.from_ical(plan_to_ics([make_task()], now=NOW))
        assert str(cal["prodid"]) == "-//IntelliPlan//Study Plan//EN"
        assert str(cal["version"]) == "2.0"

    def test_one_event_per_open_task(self, make_task):
        plan = [
            make_task(id="p"),
            make_task(id="pd", status=TaskStatus.PARTIALLY_DONE),
            make_task(id="c", status=TaskStatus.COMPLETED),
            make_task(id="m", status=TaskStatus.MISSED),
            make_task(id="r", status=TaskStatus.RESCHEDULED),
        ]
        uids = {str(e["uid"]) for e in _events(plan_to_ics(plan, now=NOW))}
        assert uids == {"p@intelliplan", "pd@intelliplan"}

    def test_event_times(self, make_task):
        task = make_task(date="2026-03-12", start_time=19, duration=1.5)
        event = _events(plan_to_ics([task], now=NOW))[0]
        assert event.decoded("dtstart") == datetime(2026, 3, 12, 19, 0)
        assert event.decoded("dtend") == datetime(2026, 3, 12, 20, 30)
        assert str(event["summary"]) == "Math: Algebra"

    def test_zero_duration_gets_a_minute(self, make_task):
        event = _events(plan_to_ics([make_task(duration=0)], now=NOW))[0]
        assert (event.decoded("dtend") - event.decoded("dtstart")).total_seconds() == 60

    def test_revision_label_in_summary(self, make_task):
        task = make_task(is_revision=True, revision_label="7-Day Booster")
        event = _events(plan_to_ics([task], now=NOW))[0]
        assert str(event["summary"]) == "Math: Algebra (7-Day Booster)"
        assert "review" in str(event["description"])

    def test_catchup_summary(self, make_task):
        event = _events(plan_to_ics([make_task(is_emergency_catchup=True)], now=NOW))[0]
        assert str(event["summary"]).endswith("(catch-up)")

    def test_zone_aware_start(self, make_task):
        tz = ZoneInfo("Asia/Jerusalem")
        event = _events(plan_to_ics([make_task(start_time=8)], tz=tz, now=NOW))[0]
        start = event.decoded("dtstart")
        assert start.hour == 8
        assert start.utcoffset() is not None

    def test_empty_plan(self):
        assert _events(plan_to_ics([], now=NOW)) == []
