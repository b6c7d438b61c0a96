"""Tests for src.core.weakness — weak-subject detection and remedial actions."""

import pytest

from src.core.weakness import (
    CAUSE_INCONSISTENT,
    CAUSE_LOW_QUIZ,
    CAUSE_LOW_TIME,
    CAUSE_MISSED,
    SuggestedAction,
    create_task_from_action,
    find_weak_subjects_with_causes,
    generate_suggested_actions,
)
from src.data.models import TaskStatus

TODAY = "2026-03-10"


def _history(make_task, subject, completed=0, missed=0, pending=0, partial=0, **kw):
    tasks = []
    for status, n in ((TaskStatus.COMPLETED, completed), (TaskStatus.MISSED, missed),
                      (TaskStatus.PENDING, pending), (TaskStatus.PARTIALLY_DONE, partial)):
        tasks += [make_task(subject=subject, date="2026-03-05", status=status, **kw) for _ in range(n)]
    return tasks


class TestFindWeakSubjects:
    def test_missed_tasks_scenario(self, make_task, profile):
        plan = _history(make_task, "Math", completed=2, missed=6, pending=2)
        records = find_weak_subjects_with_causes(plan, profile, TODAY)
        assert len(records) == 1
        record = records[0]
        assert record.subject_name == "Math"
        assert record.completion_percentage == 20
        assert record.cause == CAUSE_MISSED
        assert (record.total_tasks, record.completed_tasks, record.missed_tasks) == (10, 2, 6)

    def test_sixty_percent_complete_is_not_weak(self, make_task, profile):
        plan = _history(make_task, "Math", completed=6, missed=2, pending=2)
        assert find_weak_subjects_with_causes(plan, profile, TODAY) == []

    def test_no_missed_tasks_is_not_weak(self, make_task, profile):
        plan = _history(make_task, "Math", completed=1, pending=9)
        assert find_weak_subjects_with_causes(plan, profile, TODAY) == []

    def test_single_task_is_not_enough_signal(self, make_task, profile):
        plan = _history(make_task, "Math", missed=1)
        assert find_weak_subjects_with_causes(plan, profile, TODAY) == []

    def test_future_tasks_ignored(self, make_task, profile):
        plan = _history(make_task, "Math", completed=1, missed=1)
        plan += [make_task(subject="Math", date="2026-03-20", status=TaskStatus.MISSED) for _ in range(5)]
        records = find_weak_subjects_with_causes(plan, profile, TODAY)
        assert records == []

    def test_low_study_time(self, make_task, profile):
        # 30% missed, 40% completed, little completed time
        plan = _history(make_task, "Math", completed=4, missed=3, pending=3)
        records = find_weak_subjects_with_causes(plan, profile, TODAY)
        assert records[0].cause == CAUSE_LOW_TIME
        assert records[0].completion_percentage == 40

    def test_inconsistent_progress(self, make_task, profile):
        # 2 of 5 done but they carry most of the hours
        plan = _history(make_task, "Math", completed=2, duration=4)
        plan += _history(make_task, "Math", missed=1, pending=2, duration=0.5)
        records = find_weak_subjects_with_causes(plan, profile, TODAY)
        assert records[0].cause == CAUSE_INCONSISTENT

    def test_only_profile_subjects(self, make_task, profile):
        plan = _history(make_task, "History", missed=5)
        assert find_weak_subjects_with_causes(plan, profile, TODAY) == []

    def test_to_dict(self, make_task, profile):
        plan = _history(make_task, "Math", completed=2, missed=6, pending=2)
        data = find_weak_subjects_with_causes(plan, profile, TODAY)[0].to_dict()
        assert data["subjectName"] == "Math"
        assert data["completionPercentage"] == 20


class TestSuggestedActions:
    @pytest.mark.parametrize("cause", [CAUSE_MISSED, CAUSE_LOW_TIME, CAUSE_INCONSISTENT, CAUSE_LOW_QUIZ])
    def test_three_actions_per_cause(self, cause):
        actions = generate_suggested_actions("Physics", cause)
        assert len(actions) == 3
        assert all(a.subject == "Physics" and "Physics" in a.title for a in actions)
        assert all(a.type in {"video", "practice", "revision", "focus", "notes", "examples", "quiz"}
                   for a in actions)

    def test_unknown_cause_falls_back(self):
        assert generate_suggested_actions("Physics", "Bad luck") == generate_suggested_actions(
            "Physics", CAUSE_INCONSISTENT
        )


class TestCreateTaskFromAction:
    def test_tomorrow_at_anchor(self, profile, id_factory):
        action = SuggestedAction(subject="Physics", type="video", title="Watch it", duration=15)
        task = create_task_from_action(action, profile, TODAY, id_factory)
        assert task.date == "2026-03-11"
        assert task.start_time == 8
        assert task.duration == 1
        assert task.is_action_task
        assert task.action_type == "video"
        assert task.unit == "Watch it"
        assert task.status == TaskStatus.PENDING

    def test_duration_rounds_up_to_hours(self, profile, id_factory):
        action = SuggestedAction(subject="Physics", type="focus", title="Long", duration=61)
        assert create_task_from_action(action, profile, TODAY, id_factory).duration == 2
