"""
IntelliPlan — Study Plan Service.

The one place where the pure planning engine meets persisted state. Every
operation reads what it needs from the store, runs the engine, and writes
the full result back, all under a single lock, bumping a plan version
counter on each write so callers holding an old snapshot can be told their
plan is stale instead of silently overwriting newer work.

Each shell (the CLI today, anything else tomorrow) calls this service and
renders the response objects in its own way.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

from src.config import Settings, settings
from src.core import dates
from src.core.analytics import (
    DayLoad,
    LoadLevel,
    PlanStats,
    calculate_daily_study_minutes,
    get_study_load_level,
    plan_statistics,
    weekly_study_load,
)
from src.core.catchup_planner import (
    ApplyResult,
    CatchupPlan,
    apply_catchup as apply_catchup_plan,
    build_catchup_plan as build_catchup,
    should_trigger_catchup,
)
from src.core.errors import PlanningError, StalePlanError
from src.core.exam_planner import (
    EmergencyCheck,
    check_emergency_catchup,
    exam_subjects,
    generate_exam_revision_tasks,
    has_exam_revisions,
    upcoming_exams,
)
from src.core.plan_generator import anchor_hour, generate_initial_plan
from src.core.progress import apply_status_change
from src.core.rebalancer import RebalanceResult, rebalance_plan
from src.core.rescheduler import adapt_plan
from src.core.weakness import (
    WeaknessRecord,
    create_task_from_action,
    find_weak_subjects_with_causes,
    generate_suggested_actions,
)
from src.data.models import (
    Achievement,
    StreakState,
    Task,
    TaskStatus,
    new_task_id,
    plan_from_dicts,
    plan_to_dicts,
    sort_plan,
)
from src.data.schemas import Exam, UserProfile, parse_exams, parse_profile
from src.ports.store_port import (
    ACHIEVEMENTS_KEY,
    EXAMS_KEY,
    PLAN_VERSION_KEY,
    STUDY_PLAN_KEY,
    STUDY_STREAK_KEY,
    USER_PROFILE_KEY,
    StoreError,
)

if TYPE_CHECKING:
    from src.ports.clock_port import Clock
    from src.ports.store_port import StorePort

logger = logging.getLogger(__name__)

GENERIC_PLAN_ERROR = "Sorry, I couldn't build your plan. Please check your details and try again."


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    NO_ACTION = "no_action"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class SuccessResponse(ServiceResponse):
    plan: list[Task] = field(default_factory=list)


@dataclass
class ErrorResponse(ServiceResponse):
    pass


@dataclass
class NoActionResponse(ServiceResponse):
    pass


@dataclass
class StatusUpdateResponse(ServiceResponse):
    task: Task | None = None
    streak: StreakState | None = None
    new_achievements: list[Achievement] = field(default_factory=list)
    added_revisions: list[Task] = field(default_factory=list)


@dataclass
class CatchupResponse(ServiceResponse):
    catchup: CatchupPlan | None = None


@dataclass
class ApplyCatchupResponse(ServiceResponse):
    result: ApplyResult | None = None


@dataclass
class RebalanceResponse(ServiceResponse):
    result: RebalanceResult | None = None


@dataclass
class SessionState:
    profile: UserProfile | None
    plan: list[Task]
    exams: list[Exam]
    streak: StreakState
    achievements: list[Achievement]
    version: int
    adapted: bool = False
    catchup_recommended: bool = False
    emergency: EmergencyCheck | None = None

    @property
    def onboarded(self) -> bool:
        return self.profile is not None


@dataclass
class ProgressSummary:
    stats: PlanStats
    streak: StreakState
    achievements: list[Achievement]
    today_minutes: int
    today_load: LoadLevel
    week: list[DayLoad]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class StudyPlanService:
    """Serialised read-compute-write access to one student's plan."""

    def __init__(
        self,
        store: StorePort,
        clock: Clock | None = None,
        id_factory: Callable[[], str] = new_task_id,
        rng: random.Random | None = None,
        config: Settings = settings,
    ) -> None:
        if clock is None:
            from src.adapters.system_clock import SystemClock
            clock = SystemClock(config.TIMEZONE)
        self._store = store
        self._clock = clock
        self._id_factory = id_factory
        self._rng = rng or random.Random()
        self._config = config
        self._lock = threading.RLock()

    @property
    def today(self) -> str:
        return dates.today(self._clock)

    # --- reads (bad stored data falls back to "no data yet") ---

    def _read(self, key: str, parse: Callable[[Any], Any], default: Any) -> Any:
        try:
            raw = self._store.get(key)
        except StoreError:
            logger.exception("Could not read %s from store; treating as empty", key)
            return default
        if raw is None:
            return default
        try:
            return parse(raw)
        except (PlanningError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring unreadable %s in store: %s", key, exc)
            return default

    def _profile(self) -> UserProfile | None:
        return self._read(USER_PROFILE_KEY, parse_profile, None)

    def _plan(self) -> list[Task]:
        return self._read(STUDY_PLAN_KEY, plan_from_dicts, [])

    def _exams(self) -> list[Exam]:
        return self._read(EXAMS_KEY, parse_exams, [])

    def _streak(self) -> StreakState:
        return self._read(STUDY_STREAK_KEY, StreakState.from_dict, StreakState())

    def _achievements(self) -> list[Achievement]:
        return self._read(
            ACHIEVEMENTS_KEY, lambda raw: [Achievement.from_dict(a) for a in raw], [],
        )

    def current_version(self) -> int:
        return self._read(PLAN_VERSION_KEY, int, 0)

    # --- writes ---

    def _write_plan(self, plan: list[Task]) -> int:
        version = self.current_version() + 1
        self._store.set(STUDY_PLAN_KEY, plan_to_dicts(plan))
        self._store.set(PLAN_VERSION_KEY, version)
        return version

    def _with_exam_focus(self, plan: list[Task]) -> list[Task]:
        """Rebalance a changed plan around the upcoming exams, if there are any."""
        exams = self._exams()
        if not upcoming_exams(exams, self.today):
            return plan
        return self._rebalanced(plan, exams).plan

    # --- operations ---

    def onboard(self, profile_data: UserProfile | dict[str, Any]) -> ServiceResponse:
        """Validate the profile, build the first plan and persist everything."""
        with self._lock:
            try:
                profile = parse_profile(profile_data)
                plan = generate_initial_plan(
                    profile,
                    start_date=self.today,
                    horizon_days=profile.schedule_duration or self._config.PLAN_DURATION_DAYS,
                    rng=self._rng,
                    id_factory=self._id_factory,
                )
            except PlanningError as exc:
                logger.warning("Onboarding failed: %s", exc)
                return ErrorResponse(kind=ResponseKind.ERROR, message=GENERIC_PLAN_ERROR)

            self._store.set(USER_PROFILE_KEY, profile.to_dict())
            self._store.set(STUDY_STREAK_KEY, StreakState().to_dict())
            self._store.set(ACHIEVEMENTS_KEY, [])
            if self._store.get(EXAMS_KEY) is None:
                self._store.set(EXAMS_KEY, [])
            self._write_plan(plan)
            logger.info("Onboarded %s with %d tasks", profile.name, len(plan))
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Your {len(plan)}-task study plan is ready, {profile.name}!",
                plan=sort_plan(plan),
            )

    def load_session(self) -> SessionState:
        """Load everything and reconcile missed tasks from previous days."""
        with self._lock:
            profile = self._profile()
            plan = self._plan()
            exams = self._exams()
            adapted = False
            if profile is not None and plan:
                new_plan = adapt_plan(plan, self.today, self._id_factory)
                if new_plan is not plan:
                    plan = self._with_exam_focus(new_plan)
                    self._write_plan(plan)
                    adapted = True
            return SessionState(
                profile=profile,
                plan=plan,
                exams=exams,
                streak=self._streak(),
                achievements=self._achievements(),
                version=self.current_version(),
                adapted=adapted,
                catchup_recommended=bool(plan) and should_trigger_catchup(plan, exams, self.today),
                emergency=check_emergency_catchup(plan, exams, exam_subjects(exams), self.today),
            )

    def update_task_status(self, task_id: str, status: TaskStatus | str) -> ServiceResponse:
        """Change one task's status; streak and achievements follow completions."""
        with self._lock:
            try:
                change = apply_status_change(
                    self._plan(), task_id, status, self._streak(), self._achievements(),
                    now=self._clock.now(), id_factory=self._id_factory,
                )
            except PlanningError as exc:
                logger.warning("Status update rejected: %s", exc)
                return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))

            self._write_plan(self._with_exam_focus(change.plan))
            self._store.set(STUDY_STREAK_KEY, change.streak.to_dict())
            self._store.set(ACHIEVEMENTS_KEY, [a.to_dict() for a in change.achievements])
            return StatusUpdateResponse(
                kind=ResponseKind.SUCCESS,
                message=f"{change.task.subject}: {change.task.unit} marked {change.task.status.value}",
                task=change.task,
                streak=change.streak,
                new_achievements=change.new_achievements,
                added_revisions=change.added_revisions,
            )

    def replace_plan(
        self,
        new_plan: Iterable[Task | dict[str, Any]],
        expected_version: int | None = None,
    ) -> SuccessResponse:
        """Replace the whole plan, rebalanced around any upcoming exams.

        Streak and achievements are not touched.

        Raises:
            StalePlanError: ``expected_version`` no longer matches the store.
            PlanValidationError: a task record is malformed.
        """
        tasks = [t if isinstance(t, Task) else Task.from_dict(t) for t in new_plan]
        with self._lock:
            actual = self.current_version()
            if expected_version is not None and expected_version != actual:
                raise StalePlanError(expected_version, actual)
            tasks = self._with_exam_focus(tasks)
            version = self._write_plan(tasks)
        logger.info("Plan replaced (%d tasks, version %d)", len(tasks), version)
        return SuccessResponse(kind=ResponseKind.SUCCESS, message="Plan saved.", plan=tasks)

    def _rebalanced(self, plan: list[Task], exams: list[Exam]) -> RebalanceResult:
        return rebalance_plan(
            plan, exams, self.today,
            max_per_day=self._config.MAX_TASKS_PER_DAY,
            window_days=self._config.FOCUS_WINDOW_DAYS,
            overflow_policy=self._config.FOCUS_OVERFLOW_POLICY,
        )

    def set_exams(self, exams_data: Iterable[Exam | dict[str, Any]]) -> ServiceResponse:
        """Save the exam list, add exam revision sessions, then rebalance."""
        with self._lock:
            try:
                exams = parse_exams(exams_data)
            except PlanningError as exc:
                logger.warning("Exam list rejected: %s", exc)
                return ErrorResponse(kind=ResponseKind.ERROR, message=GENERIC_PLAN_ERROR)

            plan = self._plan()
            for exam in upcoming_exams(exams, self.today):
                if not has_exam_revisions(plan, exam.id):
                    plan = plan + generate_exam_revision_tasks(exam, self.today, self._id_factory)
            result = self._rebalanced(plan, exams)

            self._store.set(EXAMS_KEY, [e.to_dict() for e in exams])
            self._write_plan(result.plan)
            return RebalanceResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Saved {len(exams)} exams; plan rebalanced.",
                result=result,
            )

    def rebalance(self) -> ServiceResponse:
        with self._lock:
            exams = self._exams()
            if not upcoming_exams(exams, self.today):
                return NoActionResponse(kind=ResponseKind.NO_ACTION, message="No upcoming exams.")
            result = self._rebalanced(self._plan(), exams)
            if result.changed:
                self._write_plan(result.plan)
            return RebalanceResponse(kind=ResponseKind.SUCCESS, message="Plan rebalanced.", result=result)

    def build_catchup_plan(self, minutes: int | None = None) -> ServiceResponse:
        with self._lock:
            profile = self._profile()
            if minutes is None:
                minutes = self._config.DEFAULT_CATCHUP_MINUTES
            try:
                catchup = build_catchup(
                    self._plan(), minutes, self._exams(),
                    profile.weaknesses if profile else [], self.today,
                )
            except PlanningError as exc:
                logger.warning("Catch-up plan failed: %s", exc)
                return ErrorResponse(kind=ResponseKind.ERROR, message=GENERIC_PLAN_ERROR)
            if not catchup.tasks:
                return NoActionResponse(kind=ResponseKind.NO_ACTION, message="No tasks available for catch-up.")
            return CatchupResponse(kind=ResponseKind.SUCCESS, message=catchup.message, catchup=catchup)

    def apply_catchup(self, catchup: CatchupPlan, schedule_for: str = "today") -> ServiceResponse:
        with self._lock:
            if not catchup.tasks:
                return NoActionResponse(kind=ResponseKind.NO_ACTION, message="No tasks available for catch-up.")
            try:
                result = apply_catchup_plan(self._plan(), catchup, schedule_for, self.today)
            except PlanningError as exc:
                logger.warning("Catch-up apply failed: %s", exc)
                return ErrorResponse(kind=ResponseKind.ERROR, message=GENERIC_PLAN_ERROR)
            self._write_plan(self._with_exam_focus(result.plan))
            return ApplyCatchupResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Emergency plan applied. {result.summary()}",
                result=result,
            )

    def weak_subjects(self) -> list[WeaknessRecord]:
        with self._lock:
            profile = self._profile()
            if profile is None:
                return []
            return find_weak_subjects_with_causes(self._plan(), profile, self.today)

    def schedule_weakness_actions(
        self,
        subject_name: str,
        cause: str,
        day_offsets: Iterable[int] = (1, 2, 3),
    ) -> ServiceResponse:
        """Book the suggested actions for a weakness, one per day offset.

        Offset 0 means today; same-day actions get consecutive start hours.
        """
        with self._lock:
            profile = self._profile()
            if profile is None:
                return ErrorResponse(kind=ResponseKind.ERROR, message="Complete onboarding first.")
            actions = generate_suggested_actions(subject_name, cause)
            added = []
            for idx, (action, offset) in enumerate(zip(actions, day_offsets)):
                task = create_task_from_action(action, profile, self.today, self._id_factory)
                task.date = dates.add_days(self.today, offset)
                if offset == 0:
                    task.start_time = min(23, anchor_hour(profile.study_time) + idx)
                added.append(task)
            self._write_plan(self._with_exam_focus(self._plan() + added))
            logger.info("Scheduled %d actions for weak subject %s", len(added), subject_name)
            return SuccessResponse(
                kind=ResponseKind.SUCCESS,
                message=f"Scheduled {len(added)} actions for {subject_name}.",
                plan=added,
            )

    def todays_tasks(self) -> list[Task]:
        with self._lock:
            today = self.today
            return sort_plan(t for t in self._plan() if t.date == today)

    def progress_summary(self) -> ProgressSummary | None:
        with self._lock:
            profile = self._profile()
            if profile is None:
                return None
            plan = self._plan()
            minutes = calculate_daily_study_minutes(plan, self.today)
            return ProgressSummary(
                stats=plan_statistics(plan, profile),
                streak=self._streak(),
                achievements=self._achievements(),
                today_minutes=minutes,
                today_load=get_study_load_level(minutes, profile.daily_hours * 60),
                week=weekly_study_load(plan, self.today),
            )
