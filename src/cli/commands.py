"""IntelliPlan CLI - command line shell over the study plan service."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from src.adapters.ics_export import plan_to_ics
from src.adapters.store_factory import create_store
from src.adapters.system_clock import FixedClock, SystemClock
from src.config import settings
from src.core.errors import PlanningError
from src.core.plan_service import (
    ApplyCatchupResponse,
    CatchupResponse,
    ResponseKind,
    ServiceResponse,
    StatusUpdateResponse,
    StudyPlanService,
)
from src.data.models import Task, TaskStatus

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {s.value.lower(): s for s in TaskStatus}
_STATUS_ALIASES.update({s.value.lower().replace(" ", "-"): s for s in TaskStatus})


def _load_json(path: str) -> Any:
    file = Path(path)
    if not file.exists():
        raise FileNotFoundError(f"File not found: {file}")
    return json.loads(file.read_text(encoding="utf-8"))


def _format_task(task: Task) -> str:
    tags = []
    if task.revision_label:
        tags.append(task.revision_label)
    elif task.is_exam_revision:
        tags.append("exam revision")
    if task.is_emergency_catchup:
        tags.append("catch-up")
    if task.is_auto_rescheduled:
        tags.append("moved")
    suffix = f" [{', '.join(tags)}]" if tags else ""
    return (
        f"{task.date} {task.start_time:02d}:00 ({task.duration:g}h) "
        f"{task.subject}: {task.unit} <{task.status.value}> id={task.id}{suffix}"
    )


def _print_response(response: ServiceResponse) -> int:
    prefix = {"success": "OK", "error": "ERROR", "no_action": "--"}[response.kind.value]
    print(f"{prefix}: {response.message}")
    return 1 if response.kind is ResponseKind.ERROR else 0


def onboard(service: StudyPlanService, args: argparse.Namespace) -> int:
    response = service.onboard(_load_json(args.profile))
    code = _print_response(response)
    if code == 0:
        first_day = [t for t in getattr(response, "plan", []) if t.date == service.today]
        for task in first_day:
            print(f"  {_format_task(task)}")
    return code


def show_today(service: StudyPlanService, args: argparse.Namespace) -> int:
    tasks = service.todays_tasks()
    print(f"# Today ({service.today})")
    if not tasks:
        print("- Nothing scheduled.")
    for task in tasks:
        print(f"- {_format_task(task)}")
    return 0


def set_status(service: StudyPlanService, args: argparse.Namespace) -> int:
    status = _STATUS_ALIASES.get(args.status.lower())
    if status is None:
        print(f"ERROR: unknown status {args.status!r}")
        return 1
    response = service.update_task_status(args.task_id, status)
    code = _print_response(response)
    if isinstance(response, StatusUpdateResponse):
        if response.streak is not None:
            print(f"  Streak: {response.streak.current} day(s)")
        for badge in response.new_achievements:
            print(f"  Achievement unlocked: {badge.icon} {badge.name}")
        for task in response.added_revisions:
            print(f"  Revision booked: {_format_task(task)}")
    return code


def set_exams(service: StudyPlanService, args: argparse.Namespace) -> int:
    data = _load_json(args.file)
    if not isinstance(data, list):
        print("ERROR: exam file must be a JSON list.")
        return 1
    response = service.set_exams(data)
    code = _print_response(response)
    result = getattr(response, "result", None)
    if result is not None:
        for report in result.passes:
            print(
                f"  {report.exam_id}: focus {' & '.join(report.window)}; moved {report.moved}, "
                f"removed {report.removed_after_exam}, paused {report.paused}, capped {report.capped}"
            )
        for task in result.unplaced:
            print(f"  did not fit: {_format_task(task)}")
    return code


def catchup(service: StudyPlanService, args: argparse.Namespace) -> int:
    response = service.build_catchup_plan(args.minutes)
    code = _print_response(response)
    if not isinstance(response, CatchupResponse) or response.catchup is None:
        return code

    plan = response.catchup
    mode = "exam mode" if plan.is_exam_mode else "normal mode"
    print(f"  {mode}, difficulty {plan.difficulty}, {plan.total_minutes:g}/{plan.budget_minutes} min")
    print(f"  Focus: {', '.join(plan.focus_subjects) or '-'}")
    for subject, minutes in plan.hour_distribution.items():
        print(f"  {subject}: {minutes} min")
    for task in plan.tasks:
        print(f"  - {_format_task(task)}")

    if args.apply:
        applied = service.apply_catchup(plan, args.apply)
        code = _print_response(applied)
        if isinstance(applied, ApplyCatchupResponse) and applied.result is not None:
            print(f"  Plan now has {len(applied.result.plan)} tasks.")
    return code


def weak(service: StudyPlanService, args: argparse.Namespace) -> int:
    records = service.weak_subjects()
    if not records:
        print("No weak subjects detected! Keep up the great work!")
        return 0
    for record in records:
        print(
            f"- {record.subject_name}: {record.completion_percentage}% complete, "
            f"{record.missed_tasks}/{record.total_tasks} missed ({record.cause})"
        )
    if args.schedule:
        first = records[0]
        return _print_response(service.schedule_weakness_actions(first.subject_name, first.cause))
    return 0


def stats(service: StudyPlanService, args: argparse.Namespace) -> int:
    summary = service.progress_summary()
    if summary is None:
        print("No profile yet. Run `onboard` first.")
        return 1
    s = summary.stats
    print(f"Completion: {s.completion_percentage:.1f}% ({s.completed_tasks}/{s.total_tasks})")
    print(f"Hours studied: {s.hours_studied:g} / {s.hours_planned:g}")
    print(f"Missed: {s.missed_tasks}  Partially done: {s.partially_done_tasks}  Pending: {s.pending_tasks}")
    print(f"Streak: {summary.streak.current} day(s)")
    print(f"Today: {summary.today_minutes} min ({summary.today_load.level})")
    for subject in s.subjects:
        print(f"  {subject.name}: {subject.percentage:.0f}% ({subject.completed}/{subject.total})")
    print("Week: " + "  ".join(f"{d.date[5:]} {d.level}" for d in summary.week))
    if summary.achievements:
        print("Achievements: " + " ".join(f"{a.icon} {a.name}" for a in summary.achievements))
    return 0


def export(service: StudyPlanService, args: argparse.Namespace) -> int:
    plan = service.load_session().plan
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(plan_to_ics(plan))
    print(f"Calendar written: {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="intelliplan", description="IntelliPlan: adaptive study planner.")
    parser.add_argument("--store", choices=["sqlite", "json", "memory"], help="Override STORE_BACKEND.")
    parser.add_argument("--store-path", help="Override the store's file path.")
    parser.add_argument("--today", type=date.fromisoformat, help="Pretend today is YYYY-MM-DD.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_onboard = sub.add_parser("onboard", help="Create a plan from a profile JSON file.")
    p_onboard.add_argument("--profile", required=True, help="Profile JSON path.")
    p_onboard.set_defaults(func=onboard)

    p_today = sub.add_parser("today", help="Show today's tasks.")
    p_today.set_defaults(func=show_today)

    p_status = sub.add_parser("status", help="Set a task's status.")
    p_status.add_argument("task_id")
    p_status.add_argument("status", help="Pending, Completed, Missed, partially-done or Rescheduled.")
    p_status.set_defaults(func=set_status)

    p_exams = sub.add_parser("exams", help="Replace the exam list from a JSON file.")
    p_exams.add_argument("--file", required=True, help="Exam list JSON path.")
    p_exams.set_defaults(func=set_exams)

    p_catchup = sub.add_parser("catchup", help="Build (and optionally apply) an emergency catch-up plan.")
    p_catchup.add_argument("--minutes", type=int, default=None, help="Time available.")
    p_catchup.add_argument("--apply", choices=["today", "tomorrow"], help="Commit the plan to this day.")
    p_catchup.set_defaults(func=catchup)

    p_weak = sub.add_parser("weak", help="Show weak subjects.")
    p_weak.add_argument("--schedule", action="store_true", help="Book actions for the weakest subject.")
    p_weak.set_defaults(func=weak)

    p_stats = sub.add_parser("stats", help="Show progress and load.")
    p_stats.set_defaults(func=stats)

    p_export = sub.add_parser("export", help="Export pending tasks as an .ics calendar.")
    p_export.add_argument("--out", required=True, help="Output .ics path.")
    p_export.set_defaults(func=export)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    clock = FixedClock(args.today) if args.today else SystemClock(settings.TIMEZONE)
    service = StudyPlanService(create_store(args.store, args.store_path), clock=clock)

    if args.command not in ("onboard", "export"):
        session = service.load_session()
        if not session.onboarded:
            print("No profile yet. Run `onboard --profile FILE` first.")
            return 1
        if session.adapted:
            print("Missed tasks from earlier days were moved forward.")
        if session.emergency is not None:
            print(f"Heads up: {session.emergency.reason}. Try `catchup`.")

    try:
        return args.func(service, args)
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        print(f"ERROR: {exc}")
        return 1
    except PlanningError as exc:
        logger.error("Command %s failed: %s", args.command, exc)
        print(f"ERROR: {exc}")
        return 1
