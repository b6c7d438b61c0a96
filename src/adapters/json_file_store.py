"""
IntelliPlan — JSON File Store.

All keys live in one JSON document on disk. Writes go to a temp file that
then replaces the target, so a crash mid-write never leaves half a plan.
A corrupt or empty file is copied to ``.bak`` and treated as empty.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from src.ports.store_port import StoreError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Single-document JSON implementation of StorePort."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from src.config import settings
            path = settings.JSON_STORE_PATH

        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _backup(self, content: str) -> None:
        backup = self._path.with_suffix(self._path.suffix + ".bak")
        try:
            backup.write_text(content, encoding="utf-8")
        except OSError:
            logger.exception("Could not back up corrupt store to %s", backup)
            return
        logger.warning("Corrupt store file backed up to %s", backup)

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw_text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Could not read {self._path}: {exc}") from exc

        text = raw_text.strip()
        if not text:
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            self._backup(raw_text)
            self._save({})
            return {}
        if not isinstance(data, dict):
            self._backup(raw_text)
            self._save({})
            return {}
        return data

    def _save(self, payload: dict[str, Any]) -> None:
        temp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            temp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            temp.replace(self._path)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Could not write {self._path}: {exc}") from exc

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        logger.debug("Stored %s in %s", key, self._path)
