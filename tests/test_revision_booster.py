"""Tests for src.core.revision_booster — spaced-repetition revisions."""

from collections import Counter

from src.core.revision_booster import (
    add_revision_tasks_to_plan,
    create_revision_slots,
    generate_initial_revisions,
    has_revisions,
    plan_with_revisions,
    revision_duration,
)
from src.data.models import TaskStatus


class TestRevisionDuration:
    def test_halves_duration(self):
        assert revision_duration(2) == 1

    def test_floors_at_half_hour(self):
        assert revision_duration(0.5) == 0.5
        assert revision_duration(0) == 0.5


class TestCreateRevisionSlots:
    def test_two_slots_from_completion_date(self, make_task, id_factory):
        task = make_task(id="base", date="2026-03-01", start_time=10, duration=1)
        slots = create_revision_slots(task, "2026-03-10", id_factory)
        assert [(s.date, s.revision_label) for s in slots] == [
            ("2026-03-11", "1-Day Review"),
            ("2026-03-17", "7-Day Booster"),
        ]
        for slot in slots:
            assert slot.is_revision
            assert slot.original_task_id == "base"
            assert slot.start_time == 10
            assert slot.duration == 0.5
            assert slot.status == TaskStatus.PENDING
        assert [s.id for s in slots] == ["t1", "t2"]

    def test_none_task_gives_nothing(self):
        assert create_revision_slots(None, "2026-03-10") == []

    def test_add_to_plan_appends(self, make_task, id_factory):
        base = make_task()
        plan = add_revision_tasks_to_plan([base], base, "2026-03-10", id_factory)
        assert len(plan) == 3
        assert plan[0] is base


class TestInitialRevisions:
    def test_first_occurrence_only(self, make_task, id_factory):
        plan = [
            make_task(id="a1", date="2026-03-10", unit="Algebra"),
            make_task(id="a2", date="2026-03-12", unit="Algebra"),
            make_task(id="g1", date="2026-03-11", unit="Geometry"),
        ]
        revisions = generate_initial_revisions(plan, id_factory)
        assert Counter(r.original_task_id for r in revisions) == {"a1": 2, "g1": 2}

    def test_offsets_from_base_date(self, make_task, id_factory):
        revisions = generate_initial_revisions([make_task(id="a1", date="2026-03-10")], id_factory)
        assert sorted((r.revision_offset_days, r.date) for r in revisions) == [
            (1, "2026-03-11"), (7, "2026-03-17"),
        ]

    def test_skips_non_pending_first_occurrence(self, make_task, id_factory):
        plan = [
            make_task(id="a1", status=TaskStatus.COMPLETED),
            make_task(id="a2", date="2026-03-12"),
        ]
        revisions = generate_initial_revisions(plan, id_factory)
        assert {r.original_task_id for r in revisions} == {"a2"}

    def test_empty_plan(self, id_factory):
        assert generate_initial_revisions([], id_factory) == []

    def test_plan_with_revisions_is_sorted(self, make_task, id_factory):
        plan = [make_task(id="a1", date="2026-03-10"), make_task(id="g1", date="2026-03-20", unit="Geometry")]
        full = plan_with_revisions(plan, id_factory)
        assert len(full) == 6
        assert [t.date for t in full] == sorted(t.date for t in full)

    def test_revision_tasks_are_not_revised(self, make_task, id_factory):
        revision = make_task(id="r1", is_revision=True)
        assert generate_initial_revisions([revision], id_factory) == []

    def test_has_revisions(self, make_task, id_factory):
        full = plan_with_revisions([make_task(id="a1")], id_factory)
        assert has_revisions(full, "a1")
        assert not has_revisions(full, "zzz")
