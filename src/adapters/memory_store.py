"""In-memory StorePort, used by tests and one-off CLI runs."""

from __future__ import annotations

import copy
from typing import Any


class MemoryStore:
    """Dict-backed store. Values are deep-copied in and out, like a real
    backend that serialises them, so callers can't mutate stored state."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return sorted(self._data)
