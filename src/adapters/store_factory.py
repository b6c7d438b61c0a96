"""Store factory — creates the right store adapter based on config."""

from __future__ import annotations

from src.config import settings
from src.ports.store_port import StorePort


def create_store(backend: str | None = None, path: str | None = None) -> StorePort:
    """Return the store adapter matching the STORE_BACKEND setting.

    Args:
        backend: Overrides STORE_BACKEND (e.g. from a CLI flag).
        path: Overrides the backend's configured file path.
    """
    backend = (backend or settings.STORE_BACKEND).lower()

    if backend == "sqlite":
        from src.adapters.sqlite_store import SQLiteStore

        return SQLiteStore(db_path=path)

    if backend == "json":
        from src.adapters.json_file_store import JsonFileStore

        return JsonFileStore(path=path)

    if backend == "memory":
        from src.adapters.memory_store import MemoryStore

        return MemoryStore()

    raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")
