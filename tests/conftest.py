"""Shared test fixtures and configuration.

Sets up environment variables so src.config never touches a real database,
and provides a frozen clock, deterministic ids, a seeded RNG and stores
backed by temp files.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "")
os.environ.setdefault("FOCUS_OVERFLOW_POLICY", "drop")

import itertools
import random
from datetime import date

import pytest

TODAY = date(2026, 3, 10)   # a Tuesday
TODAY_ISO = TODAY.isoformat()


@pytest.fixture
def clock():
    from src.adapters.system_clock import FixedClock
    return FixedClock(TODAY)


@pytest.fixture
def id_factory():
    """Return a factory yielding t1, t2, t3, ..."""
    counter = itertools.count(1)
    return lambda: f"t{next(counter)}"


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def make_task():
    """Return a Task builder with sensible defaults."""
    from src.data.models import Task, TaskStatus

    counter = itertools.count(1)

    def _make(**overrides):
        fields = {
            "id": f"task-{next(counter)}",
            "date": TODAY_ISO,
            "subject": "Math",
            "unit": "Algebra",
            "start_time": 8,
            "duration": 1,
            "status": TaskStatus.PENDING,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def profile_data():
    return {
        "name": "Dana",
        "course": "B.Sc. Physics",
        "dailyHours": 2,
        "studyTime": "Morning",
        "subjects": [
            {"name": "Math", "skill": "Medium", "units": "Algebra, Geometry"},
            {"name": "Physics", "skill": "Beginner", "units": "Mechanics, Optics, Waves"},
        ],
        "weaknesses": ["Physics"],
    }


@pytest.fixture
def profile(profile_data):
    from src.data.schemas import parse_profile
    return parse_profile(profile_data)


@pytest.fixture
def memory_store():
    from src.adapters.memory_store import MemoryStore
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    from src.adapters.sqlite_store import SQLiteStore
    return SQLiteStore(db_path=str(tmp_path / "test_intelliplan.db"))


@pytest.fixture
def json_store(tmp_path):
    from src.adapters.json_file_store import JsonFileStore
    return JsonFileStore(path=str(tmp_path / "test_intelliplan.json"))


@pytest.fixture
def service(memory_store, clock, id_factory, rng):
    from src.core.plan_service import StudyPlanService
    return StudyPlanService(memory_store, clock=clock, id_factory=id_factory, rng=rng)
