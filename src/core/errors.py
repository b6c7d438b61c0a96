"""Planning engine exceptions."""

from __future__ import annotations


class PlanningError(Exception):
    """Base class for every error raised by the planning engine."""


class PlanValidationError(PlanningError, ValueError):
    """Raised when profile, exam, task or date input is malformed."""


class TaskNotFoundError(PlanningError, KeyError):
    """Raised when a status update targets a task id that is not in the plan."""

    def __str__(self) -> str:
        return self.args[0] if self.args else "Task not found"


class StalePlanError(PlanningError):
    """Raised when a plan replacement was computed from an outdated snapshot."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Plan changed since it was read (expected version {expected}, found {actual})"
        )
        self.expected = expected
        self.actual = actual
