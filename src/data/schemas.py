"""
IntelliPlan — Input Schemas.

Validated shapes for what the user hands us: the onboarding profile and the
exam list. Both arrive as camelCase JSON and are checked here, at the
boundary, so the engine never sees a profile without subjects or an exam
with an unparseable date.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from src.core.dates import to_iso
from src.core.errors import PlanValidationError

SKILL_LEVELS = ("Beginner", "Medium", "Advanced")
STUDY_TIMES = ("Morning", "Night")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SubjectSpec(_CamelModel):
    """One subject from the onboarding form.

    JSON example:
    {"name": "Math", "skill": "Medium", "units": "Algebra, Geometry"}
    """

    name: str = Field(min_length=1)
    skill: Literal["Beginner", "Medium", "Advanced"] = "Medium"
    units: str

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("units")
    @classmethod
    def require_units(cls, v: str) -> str:
        if not any(part.strip() for part in v.split(",")):
            raise ValueError("at least one unit is required")
        return v

    @property
    def unit_list(self) -> list[str]:
        """Units split on commas, trimmed, blanks dropped."""
        return [part.strip() for part in self.units.split(",") if part.strip()]


class UserProfile(_CamelModel):
    """The onboarding profile that seeds the initial plan.

    JSON example:
    {
        "name": "Dana",
        "course": "B.Sc. Physics",
        "dailyHours": 2,
        "studyTime": "Morning",
        "subjects": [{"name": "Math", "skill": "Medium", "units": "Algebra, Geometry"}],
        "weaknesses": ["Math"],
        "scheduleDuration": 30
    }
    """

    name: str = Field(min_length=1)
    course: str = ""
    daily_hours: float = Field(gt=0, le=24)
    study_time: Literal["Morning", "Night"] = "Morning"
    subjects: list[SubjectSpec] = Field(min_length=1)
    weaknesses: list[str] = Field(default_factory=list)
    schedule_duration: int | None = Field(default=None, ge=1)

    @property
    def subject_names(self) -> list[str]:
        return [s.name for s in self.subjects]


class Exam(_CamelModel):
    """A dated exam covering one or more profile subjects.

    JSON example:
    {"id": "e1", "name": "Physics Midterm", "date": "2026-11-02",
     "subjects": ["Physics"], "status": "upcoming"}
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    date: str                # ISO format YYYY-MM-DD
    subjects: list[str] = Field(default_factory=list)
    status: str = "upcoming"

    @field_validator("date", mode="before")
    @classmethod
    def parse_iso_date(cls, v: Any) -> str:
        if isinstance(v, date):
            return v.isoformat()
        try:
            return to_iso(str(v))
        except PlanValidationError:
            raise ValueError(f"invalid ISO date {v!r}") from None


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_profile(data: UserProfile | dict[str, Any] | None) -> UserProfile:
    """Validate raw profile data, raising PlanValidationError on bad input."""
    if isinstance(data, UserProfile):
        return data
    if not data:
        raise PlanValidationError("A user profile is required")
    try:
        return UserProfile.model_validate(data)
    except ValidationError as exc:
        raise PlanValidationError(f"Invalid profile: {_describe(exc)}") from exc


def parse_exams(data: Iterable[Exam | dict[str, Any]] | None) -> list[Exam]:
    """Validate a raw exam list. ``None`` means no exams."""
    exams: list[Exam] = []
    for item in data or []:
        if isinstance(item, Exam):
            exams.append(item)
            continue
        try:
            exams.append(Exam.model_validate(item))
        except ValidationError as exc:
            raise PlanValidationError(f"Invalid exam: {_describe(exc)}") from exc
    return exams
