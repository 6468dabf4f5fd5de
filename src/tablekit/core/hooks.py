"""External hooks supplied by the embedding application."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable

from .errors import HookError


@dataclass
class Hooks:
    """Optional callbacks. Each may be a plain function or a coroutine function.

    save_cell(row_id, field, value, row) -> bool | dict | None
        Persist one edited value. ``False``, ``{"success": False}`` or an
        exception means failure.
    validate_cell(value, column, row) -> bool | str
        Extra validation after the built-in checks. ``True`` passes; a
        string is the error message; ``False`` fails with a generic one.
    bulk_delete(row_ids, rows), bulk_export(row_ids, rows), bulk_update(row_ids, rows)
        Replace the default bulk actions.
    confirm(message) -> bool
        Asked before destructive actions. Without it they are refused.
    """

    save_cell: Callable[..., Any] | None = None
    validate_cell: Callable[..., Any] | None = None
    bulk_delete: Callable[..., Any] | None = None
    bulk_export: Callable[..., Any] | None = None
    bulk_update: Callable[..., Any] | None = None
    confirm: Callable[[str], Any] | None = None


async def call_hook(fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn`` and await its result when it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def check_hook_result(result: Any, action: str) -> None:
    """Raise HookError for the failure shapes a hook may return."""
    if result is False:
        raise HookError(f"{action} failed")
    if isinstance(result, dict) and result.get("success") is False:
        message = result.get("message") or result.get("error") or f"{action} failed"
        raise HookError(str(message))
