"""Inline cell editing: Viewing -> Editing -> Saving/Cancelled -> Viewing."""

from __future__ import annotations

import re
from typing import Any

from loguru import logger

from ..core.config import ColumnSpec
from ..core.errors import CellValidationError
from ..core.events import EngineEvent
from ..core.hooks import call_hook, check_hook_result
from ..core.rows import extract_row_id, get_nested_value, set_nested_value
from ..core.session import EditSession, EditState
from ..display_utils import is_empty
from .context import TableContext
from .edit_surface import render_edit_surface

SAVE_CONTROL = "save"
CANCEL_CONTROL = "cancel"

_UNSET = object()


def _bound(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


def same_value(a: Any, b: Any) -> bool:
    """Edit equality: None and "" are the same empty value."""
    if is_empty(a) and is_empty(b):
        return True
    return a == b


def coerce_value(column: ColumnSpec, raw: Any) -> Any:
    """Convert raw input by the column's edit type.

    Number columns turn numeric strings into int or float and empty
    input into None; other types keep the input as given.
    """
    if column.edit_type != "number":
        return raw
    if raw is None or isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise CellValidationError("Value must be a number") from None


def validate_value(column: ColumnSpec, value: Any) -> None:
    """Built-in checks: required, numeric bounds, pattern."""
    if column.edit_required and is_empty(value):
        raise CellValidationError("This field is required")

    if column.edit_type == "number" and not is_empty(value):
        if column.edit_min is not None and value < column.edit_min:
            raise CellValidationError(f"Value must be at least {_bound(column.edit_min)}")
        if column.edit_max is not None and value > column.edit_max:
            raise CellValidationError(f"Value must be at most {_bound(column.edit_max)}")

    if column.edit_pattern and not is_empty(value):
        try:
            pattern = re.compile(column.edit_pattern)
        except re.error as exc:
            logger.warning("Ignoring invalid edit pattern {!r}: {}", column.edit_pattern, exc)
            return
        if not pattern.search(str(value)):
            raise CellValidationError(column.edit_pattern_message or "Invalid format")


class CellEditController:
    """Owns the single EditSession of one table."""

    FEATURE = "editing"

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.session = ctx.session
        self._display_markup = ""

    def attach(self) -> None:
        self.ctx.track(self.ctx.host.on_draw(self._on_draw))

    @property
    def active(self) -> EditSession | None:
        return self.session.edit_session

    def is_editable(self, col: int) -> bool:
        host = self.ctx.host
        return 0 <= col < host.column_count and host.column_def(col).editable

    def _on_draw(self) -> None:
        es = self.session.edit_session
        if es is not None and es.state is EditState.EDITING:
            logger.debug("[{}] Redraw cancelled edit of {}", self.ctx.table_id, es.cell)
            self.cancel(restore=False)

    # -- entry -------------------------------------------------------------

    def enter_edit(self, row: int, col: int) -> bool:
        """Open the edit surface on page cell (row, col)."""
        host = self.ctx.host
        page = host.page_indices()
        if not (0 <= row < len(page)) or not self.is_editable(col):
            return False

        current = self.session.edit_session
        if current is not None:
            if current.cell == (row, col):
                return True
            self.cancel()

        column = host.column_def(col).spec
        index = page[row]
        value = get_nested_value(host.row(index), column.data)
        self._display_markup = host.cell_markup(row, col)
        self.session.edit_session = EditSession(
            row=row,
            col=col,
            row_index=index,
            field=column.data,
            original=value,
            pending=value,
        )
        self.session.focus.row, self.session.focus.col = row, col
        self.session.focus.mode = "edit"
        host.set_cell_markup(row, col, render_edit_surface(column, value))
        return True

    def set_pending(self, value: Any) -> None:
        """Record the current content of the edit input."""
        if self.session.edit_session is not None:
            self.session.edit_session.pending = value

    # -- save --------------------------------------------------------------

    def _show_error(self, es: EditSession, message: str) -> None:
        es.errors = [message]
        column = self.ctx.host.column_def(es.col).spec
        self.ctx.host.set_cell_markup(
            es.row, es.col, render_edit_surface(column, es.pending, message)
        )

    async def _external_validate(self, column: ColumnSpec, value: Any, row: dict) -> None:
        hook = self.ctx.hooks.validate_cell
        if hook is None:
            return
        result = await call_hook(hook, value, column, row)
        if result is None or result is True:
            return
        if isinstance(result, str):
            raise CellValidationError(result)
        if isinstance(result, dict):
            if result.get("valid", True):
                return
            raise CellValidationError(result.get("message") or "Invalid value")
        if not result:
            raise CellValidationError("Invalid value")

    async def save(self, value: Any = _UNSET) -> bool:
        """Validate and persist the pending value. Returns True when committed."""
        es = self.session.edit_session
        if es is None:
            return False
        if es.state is EditState.SAVING:
            logger.debug("[{}] Save already in progress", self.ctx.table_id)
            return False
        if value is not _UNSET:
            es.pending = value

        host = self.ctx.host
        column = host.column_def(es.col).spec
        row = host.row(es.row_index)
        try:
            new_value = coerce_value(column, es.pending)
            validate_value(column, new_value)
            await self._external_validate(column, new_value, row)
        except CellValidationError as exc:
            self._show_error(es, str(exc))
            return False
        except Exception as exc:
            logger.exception("[{}] Cell validator failed", self.ctx.table_id)
            self._show_error(es, str(exc))
            self.ctx.notify(f"Validation failed: {exc}", "error")
            return False

        if same_value(new_value, es.original):
            self.cancel()
            return False

        es.state = EditState.SAVING
        row_id = self.ctx.row_id(es.row_index)
        hook = self.ctx.hooks.save_cell
        if hook is not None:
            try:
                row_id = extract_row_id(row, self.ctx.config.row_id_field)
                result = await call_hook(hook, row_id, es.field, new_value, row)
                check_hook_result(result, "Save")
            except Exception as exc:
                es.state = EditState.EDITING
                self._show_error(es, str(exc))
                self.ctx.notify(f"Failed to save: {exc}", "error")
                return False

        set_nested_value(row, es.field, new_value)
        if self.session.edit_session is es:
            self.session.edit_session = None
            self.session.focus.mode = "navigation"
        host.invalidate_row(es.row_index)
        self.ctx.emit(
            EngineEvent.CELL_SAVED,
            row_id=row_id, field=es.field, value=new_value, original=es.original,
        )
        self.ctx.notify("Cell updated successfully", "success")
        self.ctx.emit(
            EngineEvent.DATA_CHANGED,
            change="updated", detail=f"{column.title} set to {new_value}",
        )
        host.draw(reset_paging=False)
        return True

    # -- cancel ------------------------------------------------------------

    def cancel(self, restore: bool = True) -> bool:
        es = self.session.edit_session
        if es is None:
            return False
        self.session.edit_session = None
        self.session.focus.mode = "navigation"
        if restore:
            self.ctx.host.set_cell_markup(es.row, es.col, self._display_markup)
        self.ctx.emit(
            EngineEvent.CELL_SAVE_CANCELLED,
            row_id=self.ctx.row_id(es.row_index), field=es.field,
        )
        return True

    # -- dismissal triggers ------------------------------------------------

    def handle_key(self, key: str, shift: bool = False) -> bool:
        """Enter saves (Shift+Enter is a line break), Escape cancels."""
        if self.session.edit_session is None:
            return False
        if key == "Enter" and not shift:
            self.ctx.scheduler.spawn(self.save())
            return True
        if key == "Escape":
            self.cancel()
            return True
        return False

    def handle_outside_interaction(self, target: Any) -> bool:
        """Cancel when ``target`` is neither an editable cell nor a save/cancel control.

        ``target`` is a page cell ``(row, col)``, a control name, or None
        for anything else on the page.
        """
        if self.session.edit_session is None:
            return False
        if target in (SAVE_CONTROL, CANCEL_CONTROL):
            return False
        if isinstance(target, tuple) and len(target) == 2 and self.is_editable(target[1]):
            return False
        return self.cancel()
