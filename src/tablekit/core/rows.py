"""Row helpers: dot-path access and row identity."""

from __future__ import annotations

from typing import Any, Iterable

from .errors import MissingRowIdError

DEFAULT_ID_FIELDS = ("id", "_id")

_MISSING = object()


def get_nested_value(row: Any, path: str | None) -> Any:
    """Read ``a.b.c`` from nested dicts. Missing keys yield None."""
    if not path or row is None:
        return row
    value = row
    for key in path.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(key)
        else:
            value = getattr(value, key, None)
    return value


def set_nested_value(row: dict, path: str, value: Any) -> None:
    """Assign ``a.b.c`` in nested dicts, creating intermediate dicts."""
    if not path:
        raise ValueError("Field path must not be empty.")
    keys = path.split(".")
    current = row
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value


def find_row_id(row: dict, alias: str | None = None) -> Any:
    """Return the row's identifier or None when it has none."""
    fields: Iterable[str] = DEFAULT_ID_FIELDS
    if alias:
        fields = (*DEFAULT_ID_FIELDS, alias)
    for field in fields:
        value = get_nested_value(row, field) if "." in field else row.get(field, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return None


def extract_row_id(row: dict, alias: str | None = None) -> Any:
    """Return the row's identifier, raising if it has none."""
    row_id = find_row_id(row, alias)
    if row_id is None:
        expected = ", ".join(DEFAULT_ID_FIELDS + ((alias,) if alias else ()))
        raise MissingRowIdError(f"Row has no identifier (looked for: {expected}).")
    return row_id
