"""
IntelliPlan — SQLite Key-Value Store.

Every app key (profile, plan, streak, achievements, exams) is one row in a
single ``kv`` table holding its JSON-encoded value. The whole value is
replaced on every write, matching how the engine replaces plans wholesale.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from src.ports.store_port import StoreError

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite-backed implementation of StorePort."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        # A ":memory:" database lives only as long as its connection
        self._shared: sqlite3.Connection | None = (
            sqlite3.connect(db_path, check_same_thread=False) if db_path == ":memory:" else None
        )
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the kv table if it doesn't exist."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv (
                        key        TEXT PRIMARY KEY,
                        value      TEXT NOT NULL,
                        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                    )
                """)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not initialise store at {self._db_path}: {exc}") from exc
        logger.debug("kv table initialized at %s", self._db_path)

    def get(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not read {key!r}: {exc}") from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise StoreError(f"Stored value for {key!r} is not valid JSON") from exc

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Value for {key!r} is not JSON-serialisable: {exc}") from exc
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at) VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, encoded),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Could not write {key!r}: {exc}") from exc
        logger.debug("Stored %s (%d bytes)", key, len(encoded))

    def keys(self) -> list[str]:
        with self._connect() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv ORDER BY key")]
