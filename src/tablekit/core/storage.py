"""Durable key/value storage used for selection persistence and search history."""

from __future__ import annotations

import json
import pathlib
from typing import Any, Protocol, runtime_checkable

from loguru import logger


def storage_key(table_id: str, feature: str) -> str:
    """Namespace a key by table id and feature name."""
    return f"{table_id}:{feature}"


@runtime_checkable
class KeyValueStore(Protocol):
    """String-keyed store holding JSON-serializable values."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStore:
    """In-process store; values are round-tripped through JSON on write."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def __repr__(self) -> str:
        return f"MemoryStore(keys={len(self._data)})"


class JsonFileStore:
    """Store backed by a single JSON document on disk.

    Reads tolerate a missing or corrupt file (treated as empty, with a
    warning); writes replace the whole document.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self._path = pathlib.Path(path)

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store {}: {}", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store {}: top-level value is not an object", self._path)
            return {}
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)
