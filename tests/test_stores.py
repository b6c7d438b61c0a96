"""Tests for the StorePort adapters — SQLite, JSON file and in-memory."""

import json

import pytest

from src.adapters.json_file_store import JsonFileStore
from src.adapters.sqlite_store import SQLiteStore
from src.ports.store_port import STUDY_PLAN_KEY, USER_PROFILE_KEY, StoreError

PLAN = [{"id": "a", "date": "2026-03-10", "subject": "Math", "unit": "Algebra",
         "startTime": 8, "duration": 1, "status": "Pending"}]


@pytest.fixture(params=["memory_store", "sqlite_store", "json_store"])
def store(request):
    return request.getfixturevalue(request.param)


class TestStoreContract:
    def test_missing_key_is_none(self, store):
        assert store.get(STUDY_PLAN_KEY) is None

    def test_set_then_get(self, store):
        store.set(STUDY_PLAN_KEY, PLAN)
        assert store.get(STUDY_PLAN_KEY) == PLAN

    def test_overwrite_replaces_value(self, store):
        store.set(STUDY_PLAN_KEY, PLAN)
        store.set(STUDY_PLAN_KEY, [])
        assert store.get(STUDY_PLAN_KEY) == []

    def test_keys_are_independent(self, store):
        store.set(STUDY_PLAN_KEY, PLAN)
        store.set(USER_PROFILE_KEY, {"name": "Dana"})
        assert store.get(USER_PROFILE_KEY) == {"name": "Dana"}
        assert store.get(STUDY_PLAN_KEY) == PLAN

    def test_returned_values_are_copies(self, store):
        store.set(STUDY_PLAN_KEY, PLAN)
        value = store.get(STUDY_PLAN_KEY)
        value[0]["status"] = "Completed"
        assert store.get(STUDY_PLAN_KEY)[0]["status"] == "Pending"

    def test_unicode_round_trips(self, store):
        store.set(USER_PROFILE_KEY, {"name": "Dana 👑"})
        assert store.get(USER_PROFILE_KEY) == {"name": "Dana 👑"}


class TestSQLiteStore:
    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "nested" / "plan.db")
        SQLiteStore(db_path=path).set(STUDY_PLAN_KEY, PLAN)
        assert SQLiteStore(db_path=path).get(STUDY_PLAN_KEY) == PLAN

    def test_in_memory_keeps_data_between_calls(self):
        store = SQLiteStore(db_path=":memory:")
        store.set(STUDY_PLAN_KEY, PLAN)
        assert store.get(STUDY_PLAN_KEY) == PLAN

    def test_keys(self, sqlite_store):
        sqlite_store.set(STUDY_PLAN_KEY, PLAN)
        sqlite_store.set(USER_PROFILE_KEY, {})
        assert sqlite_store.keys() == [STUDY_PLAN_KEY, USER_PROFILE_KEY]

    def test_unserialisable_value_raises(self, sqlite_store):
        with pytest.raises(StoreError):
            sqlite_store.set(STUDY_PLAN_KEY, {"when": object()})


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "plan.json")
        JsonFileStore(path=path).set(STUDY_PLAN_KEY, PLAN)
        assert JsonFileStore(path=path).get(STUDY_PLAN_KEY) == PLAN

    def test_file_is_plain_json(self, json_store):
        json_store.set(STUDY_PLAN_KEY, PLAN)
        assert json.loads(json_store.path.read_text(encoding="utf-8")) == {STUDY_PLAN_KEY: PLAN}

    def test_no_temp_file_left_behind(self, json_store):
        json_store.set(STUDY_PLAN_KEY, PLAN)
        assert [p.name for p in json_store.path.parent.iterdir()] == [json_store.path.name]

    def test_empty_file_reads_as_empty(self, json_store):
        json_store.path.write_text("   ", encoding="utf-8")
        assert json_store.get(STUDY_PLAN_KEY) is None

    def test_corrupt_file_backed_up_and_reset(self, json_store):
        json_store.path.write_text("{not json", encoding="utf-8")
        assert json_store.get(STUDY_PLAN_KEY) is None
        backup = json_store.path.with_name(json_store.path.name + ".bak")
        assert backup.read_text(encoding="utf-8") == "{not json"
        assert json.loads(json_store.path.read_text(encoding="utf-8")) == {}

    def test_non_object_document_backed_up(self, json_store):
        json_store.path.write_text("[1, 2]", encoding="utf-8")
        json_store.set(STUDY_PLAN_KEY, PLAN)
        assert json_store.get(STUDY_PLAN_KEY) == PLAN
        assert json_store.path.with_name(json_store.path.name + ".bak").exists()


class TestMemoryStore:
    def test_initial_data(self):
        from src.adapters.memory_store import MemoryStore
        store = MemoryStore({STUDY_PLAN_KEY: PLAN})
        assert store.get(STUDY_PLAN_KEY) == PLAN
        assert store.keys() == [STUDY_PLAN_KEY]

    def test_stored_value_isolated_from_caller(self, memory_store):
        value = {"name": "Dana"}
        memory_store.set(USER_PROFILE_KEY, value)
        value["name"] = "Changed"
        assert memory_store.get(USER_PROFILE_KEY) == {"name": "Dana"}
