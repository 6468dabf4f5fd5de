"""Multi-row selection, range selection and bulk actions."""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Any

import pandas as pd
from loguru import logger

from ..core.events import EngineEvent
from ..core.hooks import call_hook, check_hook_result
from ..core.rows import find_row_id
from ..core.session import HeaderState
from ..core.storage import storage_key
from .context import TableContext


@dataclass(frozen=True)
class ExportResult:
    """Delimited text produced by a default export."""

    filename: str
    content: str
    row_count: int


@dataclass(frozen=True)
class ToolbarModel:
    """State of the bulk-action toolbar."""

    visible: bool
    selected_count: int
    actions: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{self.selected_count} rows selected"


def _csv_cell(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value)
    return str(value)


def rows_to_csv(rows: list[dict], delimiter: str = ",") -> str:
    """Serialize rows with the first row's keys as header.

    Nested objects and lists are JSON-stringified; fields containing the
    delimiter or a quote are quoted with doubled inner quotes.
    """
    if not rows:
        return ""
    headers = list(rows[0])
    frame = pd.DataFrame(
        [[_csv_cell(row.get(h)) for h in headers] for row in rows],
        columns=headers,
    )
    text = frame.to_csv(index=False, sep=delimiter, lineterminator="\n")
    return text.rstrip("\n")


class SelectionManager:
    """Tracks selected RowIds of one table and drives bulk actions.

    Positions used by range selection are indices into the current
    filtered, ordered view (all pages).
    """

    FEATURE = "selection"

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.settings = ctx.config.selection
        self.session = ctx.session
        self._key = storage_key(ctx.table_id, "selection")

    def attach(self) -> None:
        if self.settings.persist_selection:
            self.restore()
        self.reconcile()
        self.ctx.track(self.ctx.host.on_draw(self.reconcile))

    # -- lookups -----------------------------------------------------------

    def _ids_for(self, indices: list[int]) -> list[Any]:
        ids, skipped = [], 0
        for index in indices:
            row_id = self.ctx.row_id(index)
            if row_id is None:
                skipped += 1
            else:
                ids.append(row_id)
        if skipped:
            logger.warning(
                "[{}] Skipped {} row(s) without an identifier", self.ctx.table_id, skipped
            )
        return ids

    def _view_ids(self) -> list[Any]:
        return self._ids_for(self.ctx.host.data_indices(applied=True))

    def _index_by_id(self) -> dict[Any, int]:
        mapping = {}
        for index in self.ctx.host.data_indices(applied=False):
            row_id = self.ctx.row_id(index)
            if row_id is not None:
                mapping[row_id] = index
        return mapping

    def selected_ids(self) -> list[Any]:
        """Selected RowIds in dataset order."""
        order = self._index_by_id()
        return sorted(self.session.selection, key=lambda rid: order.get(rid, math.inf))

    def selected_rows(self) -> list[dict]:
        order = self._index_by_id()
        return [
            self.ctx.host.row(order[rid]) for rid in self.selected_ids() if rid in order
        ]

    @property
    def header_state(self) -> HeaderState:
        return self.session.header_state

    @property
    def toolbar(self) -> ToolbarModel:
        count = len(self.session.selection)
        return ToolbarModel(
            visible=count > 0,
            selected_count=count,
            actions=tuple(self.settings.bulk_actions),
        )

    # -- mutations ---------------------------------------------------------

    def _update_header(self, view_ids: list[Any] | None = None) -> None:
        if view_ids is None:
            view_ids = self._view_ids()
        in_view = sum(1 for rid in view_ids if rid in self.session.selection)
        if in_view == 0:
            state = HeaderState.UNCHECKED
        elif in_view == len(view_ids):
            state = HeaderState.CHECKED
        else:
            state = HeaderState.INDETERMINATE
        self.session.header_state = state

    def _changed(self, view_ids: list[Any] | None = None) -> None:
        if view_ids is None:
            view_ids = self._view_ids()
        self._update_header(view_ids)
        if self.settings.persist_selection:
            self.save()
        self.ctx.emit(
            EngineEvent.SELECTION_CHANGED,
            selected=len(self.session.selection),
            total=len(view_ids),
        )

    def toggle_all(self, checked: bool) -> None:
        """Select or deselect every row of the filtered view."""
        view_ids = self._view_ids()
        if checked:
            self.session.selection.update(view_ids)
        else:
            self.session.selection.difference_update(view_ids)
        self._changed(view_ids)

    def toggle_row(self, row_id: Any, checked: bool, range_from: int | None = None) -> None:
        view_ids = self._view_ids()
        position = view_ids.index(row_id) if row_id in view_ids else None
        if range_from is not None and position is not None:
            self._add_range(view_ids, range_from, position)
        elif checked:
            if position is None and row_id not in self._index_by_id():
                logger.warning("[{}] Ignoring unknown row id {!r}", self.ctx.table_id, row_id)
                return
            self.session.selection.add(row_id)
        else:
            self.session.selection.discard(row_id)
        if position is not None:
            self.session.last_selected_index = position
        self._changed(view_ids)

    def click_row(self, row_id: Any, checked: bool, shift: bool = False) -> None:
        """Checkbox click: with shift, select from the last clicked row."""
        anchor = self.session.last_selected_index
        if shift and anchor is not None:
            self.toggle_row(row_id, True, range_from=anchor)
        else:
            self.toggle_row(row_id, checked)

    def _add_range(self, view_ids: list[Any], start: int, end: int) -> None:
        lo, hi = sorted((start, end))
        lo = max(lo, 0)
        self.session.selection.update(view_ids[lo:hi + 1])

    def select_range(self, start: int, end: int) -> None:
        """Force every row between two view positions (inclusive) selected."""
        view_ids = self._view_ids()
        self._add_range(view_ids, start, end)
        self.session.last_selected_index = end
        self._changed(view_ids)

    def clear(self) -> None:
        self.session.selection.clear()
        self.session.last_selected_index = None
        self.session.header_state = HeaderState.UNCHECKED
        if self.settings.persist_selection:
            self.ctx.storage.delete(self._key)
        self.ctx.emit(
            EngineEvent.SELECTION_CHANGED,
            selected=0,
            total=len(self.ctx.host.data_indices(applied=True)),
        )

    def reconcile(self) -> None:
        """Drop RowIds no longer in the dataset; recompute the header toggle."""
        present = set(self._index_by_id())
        stale = self.session.selection - present
        if stale:
            self.session.selection -= stale
            logger.debug("[{}] Pruned {} stale selection(s)", self.ctx.table_id, len(stale))
            self._changed()
        else:
            self._update_header()

    # -- persistence -------------------------------------------------------

    def save(self) -> None:
        self.ctx.storage.set(self._key, self.selected_ids())

    def restore(self) -> None:
        saved = self.ctx.storage.get(self._key)
        if not saved:
            return
        present = self._index_by_id()
        self.session.selection.update(rid for rid in saved if rid in present)

    # -- bulk actions ------------------------------------------------------

    async def _confirm(self, message: str) -> bool:
        if self.ctx.hooks.confirm is None:
            logger.warning(
                "[{}] No confirm hook installed; refusing: {}", self.ctx.table_id, message
            )
            self.ctx.notify("Delete requires confirmation", "warning")
            return False
        return bool(await call_hook(self.ctx.hooks.confirm, message))

    async def bulk_delete(self) -> list[Any]:
        """Delete the selected rows after confirmation. Returns deleted RowIds."""
        ids = self.selected_ids()
        if not ids:
            return []
        if not await self._confirm(f"Are you sure you want to delete {len(ids)} row(s)?"):
            return []

        hook = self.ctx.hooks.bulk_delete
        if hook is not None:
            try:
                check_hook_result(await call_hook(hook, ids, self.selected_rows()), "Bulk delete")
            except Exception as exc:
                self.ctx.notify(f"Bulk delete failed: {exc}", "error")
                return []

        order = self._index_by_id()
        self.ctx.host.remove_rows([order[rid] for rid in ids if rid in order])
        self.clear()
        self.ctx.notify(f"Deleted {len(ids)} row(s)", "success")
        self.ctx.emit(EngineEvent.BULK_ACTION_COMPLETED, action="delete", row_ids=ids)
        self.ctx.emit(EngineEvent.DATA_CHANGED, change="deleted", detail=f"{len(ids)} row(s)")
        self.ctx.host.draw(reset_paging=False)
        return ids

    async def bulk_export(self, rows: list[dict] | None = None) -> ExportResult | None:
        """Export the selected rows (or ``rows``) as delimited text.

        Returns None when nothing was exported or an export hook handled it.
        """
        if rows is None:
            rows = self.selected_rows()
        if not rows:
            return None
        ids = [find_row_id(row, self.ctx.config.row_id_field) for row in rows]

        hook = self.ctx.hooks.bulk_export
        if hook is not None:
            try:
                check_hook_result(await call_hook(hook, ids, rows), "Bulk export")
            except Exception as exc:
                self.ctx.notify(f"Bulk export failed: {exc}", "error")
                return None
            self.ctx.emit(EngineEvent.BULK_ACTION_COMPLETED, action="export", row_ids=ids)
            return None

        result = ExportResult(
            filename=f"{self.ctx.table_id}_export_{int(time.time() * 1000)}.csv",
            content=rows_to_csv(rows, self.settings.export_delimiter),
            row_count=len(rows),
        )
        self.ctx.notify(f"Exported {len(rows)} row(s)", "success")
        self.ctx.emit(EngineEvent.BULK_ACTION_COMPLETED, action="export", row_ids=ids)
        return result

    async def bulk_update(self) -> bool:
        ids = self.selected_ids()
        if not ids:
            return False
        hook = self.ctx.hooks.bulk_update
        if hook is None:
            self.ctx.notify("Bulk update requires a custom implementation", "warning")
            return False
        try:
            check_hook_result(await call_hook(hook, ids, self.selected_rows()), "Bulk update")
        except Exception as exc:
            self.ctx.notify(f"Bulk update failed: {exc}", "error")
            return False
        for index in self._index_by_id().values():
            self.ctx.host.invalidate_row(index)
        self.ctx.emit(EngineEvent.BULK_ACTION_COMPLETED, action="update", row_ids=ids)
        self.ctx.emit(EngineEvent.DATA_CHANGED, change="updated", detail=f"{len(ids)} row(s)")
        self.ctx.host.draw(reset_paging=False)
        return True
