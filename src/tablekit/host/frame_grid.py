"""FrameGrid: a headless, pandas-backed grid host.

Implements just enough of a grid widget (global and per-column search,
row filters, single-column ordering, paging, display markup and footer
cells) to honor the ``GridHost`` contract in scripts, notebooks and
tests.
"""

from __future__ import annotations

import math
from typing import Any, Callable

import pandas as pd
from loguru import logger

from ..core.config import ColumnSpec
from ..core.registry import Registry, RenderFn
from ..core.rows import get_nested_value
from ..display_utils import cell_text, is_empty
from ..render.columns import ColumnDef, build_column_defs, default_render_registry
from .protocol import PageInfo, RowPredicate, Unsubscribe


class FrameGrid:
    """In-memory grid over a list of row dicts (or a DataFrame).

    Parameters
    ----------
    rows : list[dict] or pd.DataFrame
        Row records. Nested dicts are allowed; columns address them with
        dot paths.
    columns : list[ColumnDef]
        Column definitions with resolved render functions.
    page_length : int
        Rows per page.
    loader : callable, optional
        Returns fresh rows on ``reload()``.
    defer_init : bool
        If True the grid is not ready until ``init()`` is called.
    """

    def __init__(
        self,
        rows: list[dict] | pd.DataFrame,
        columns: list[ColumnDef],
        page_length: int = 25,
        loader: Callable[[], list[dict]] | None = None,
        defer_init: bool = False,
    ) -> None:
        if not columns:
            raise ValueError("FrameGrid needs at least one column.")
        self._columns = list(columns)
        self._rows: dict[int, dict] = {}
        self._next_key = 0
        self._load(rows)
        self._loader = loader

        self._length = page_length
        self._page = 0
        self._order: list[tuple[int, str]] = []
        self._search = ""
        self._column_searches: dict[int, str] = {}
        self._row_filters: dict[str, RowPredicate] = {}
        self._search_cache: dict[int, list[str]] = {}

        self._view: list[int] = []
        self._markup: dict[tuple[int, int], str] = {}
        self._footer: dict[int, str] = {}
        self.footer_classes: dict[int, str] = {}
        self.table_attributes: dict[str, str] = {}
        self.focused_cell: tuple[int, int] | None = None
        self.search_focused = False

        self._listeners: dict[str, list[Callable]] = {
            "ready": [], "draw": [], "order": [], "page": [], "length": [], "destroy": [],
        }
        self._ready = False
        self._destroyed = False
        if not defer_init:
            self.init()

    @classmethod
    def from_records(
        cls,
        rows: list[dict] | pd.DataFrame,
        columns: list[ColumnSpec],
        registry: Registry[RenderFn] | None = None,
        **kwargs,
    ) -> FrameGrid:
        """Build column definitions from specs, then the grid."""
        defs = build_column_defs(columns, registry or default_render_registry())
        return cls(rows, defs, **kwargs)

    def _load(self, rows: list[dict] | pd.DataFrame) -> None:
        if isinstance(rows, pd.DataFrame):
            rows = rows.astype(object).where(rows.notna(), None).to_dict("records")
        for row in rows:
            self._rows[self._next_key] = row
            self._next_key += 1

    # -- lifecycle ---------------------------------------------------------

    def _listen(self, kind: str, callback: Callable) -> Unsubscribe:
        callbacks = self._listeners[kind]
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _fire(self, kind: str, *args: Any) -> None:
        for callback in list(self._listeners[kind]):
            callback(*args)

    @property
    def is_ready(self) -> bool:
        return self._ready

    def init(self) -> None:
        """First draw, then the one-time ready callbacks."""
        if self._ready:
            return
        self.draw()
        self._ready = True
        self._fire("ready")
        self._listeners["ready"].clear()

    def on_ready(self, callback: Callable[[], Any]) -> Unsubscribe:
        if self._ready:
            callback()
            return lambda: None
        return self._listen("ready", callback)

    def on_draw(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self._listen("draw", callback)

    def on_order(self, callback: Callable[[list[tuple[int, str]]], Any]) -> Unsubscribe:
        return self._listen("order", callback)

    def on_page(self, callback: Callable[[PageInfo], Any]) -> Unsubscribe:
        return self._listen("page", callback)

    def on_length(self, callback: Callable[[int], Any]) -> Unsubscribe:
        return self._listen("length", callback)

    def on_destroy(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self._listen("destroy", callback)

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._fire("destroy")
        for callbacks in self._listeners.values():
            callbacks.clear()

    # -- columns and rows --------------------------------------------------

    @property
    def column_count(self) -> int:
        return len(self._columns)

    @property
    def columns(self) -> list[ColumnDef]:
        return list(self._columns)

    def column_def(self, col: int) -> ColumnDef:
        return self._columns[col]

    def column_title(self, col: int) -> str:
        return self._columns[col].title

    def row(self, index: int) -> dict:
        return self._rows[index]

    def data_indices(self, applied: bool = True) -> list[int]:
        return list(self._view) if applied else list(self._rows)

    def page_indices(self) -> list[int]:
        info = self.page_info()
        return self._view[info.start:info.end]

    def column_data(self, col: int, applied: bool = True) -> pd.Series:
        path = self._columns[col].data
        indices = self.data_indices(applied)
        values = [get_nested_value(self._rows[i], path) for i in indices]
        return pd.Series(values, index=indices, dtype=object)

    def search_data(self, index: int) -> list[str]:
        cached = self._search_cache.get(index)
        if cached is None:
            row = self._rows[index]
            cached = [
                cell_text(col.render(get_nested_value(row, col.data), "filter", row))
                if col.searchable else ""
                for col in self._columns
            ]
            self._search_cache[index] = cached
        return cached

    # -- filtering ---------------------------------------------------------

    def search(self, query: str) -> None:
        self._search = query or ""

    def column_search(self, col: int, term: str) -> None:
        if term:
            self._column_searches[col] = term
        else:
            self._column_searches.pop(col, None)

    def clear_column_searches(self) -> None:
        self._column_searches.clear()

    def add_row_filter(self, key: str, predicate: RowPredicate) -> None:
        self._row_filters[key] = predicate

    def remove_row_filter(self, key: str) -> None:
        self._row_filters.pop(key, None)

    @property
    def row_filter_keys(self) -> list[str]:
        return list(self._row_filters)

    def _matches(self, index: int) -> bool:
        data = self.search_data(index)
        if self._search:
            needle = self._search.lower()
            if not any(needle in text.lower() for text in data):
                return False
        for col, term in self._column_searches.items():
            if term.lower() not in data[col].lower():
                return False
        row = self._rows[index]
        return all(pred(data, row, index) for pred in self._row_filters.values())

    def _sort_key(self, col: int) -> Callable[[int], tuple]:
        column = self._columns[col]

        def key(index: int) -> tuple:
            row = self._rows[index]
            value = column.render(get_nested_value(row, column.data), "sort", row)
            if is_empty(value):
                return (2, 0.0, "")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return (0, float(value), "")
            return (1, 0.0, str(value).lower())

        return key

    def _compute_view(self) -> None:
        view = [i for i in self._rows if self._matches(i)]
        for col, direction in reversed(self._order):
            view.sort(key=self._sort_key(col), reverse=direction == "desc")
        self._view = view

    # -- drawing and data mutation -----------------------------------------

    def draw(self, reset_paging: bool = True) -> None:
        if reset_paging:
            self._page = 0
        self._compute_view()
        pages = self.page_info().pages
        self._page = min(self._page, max(pages - 1, 0))
        self._markup = {}
        for r, index in enumerate(self.page_indices()):
            row = self._rows[index]
            for c, column in enumerate(self._columns):
                display = column.render(get_nested_value(row, column.data), "display", row)
                self._markup[(r, c)] = "" if display is None else str(display)
        self._fire("draw")

    def invalidate_row(self, index: int) -> None:
        self._search_cache.pop(index, None)

    def add_row(self, row: dict) -> int:
        key = self._next_key
        self._rows[key] = row
        self._next_key += 1
        return key

    def remove_rows(self, indices: list[int]) -> None:
        for index in indices:
            self._rows.pop(index, None)
            self._search_cache.pop(index, None)

    def reload(self) -> None:
        if self._loader is not None:
            self._rows.clear()
            self._search_cache.clear()
            self._load(self._loader())
            logger.debug("Reloaded {} rows", len(self._rows))
        self.draw(reset_paging=False)

    # -- paging and ordering -----------------------------------------------

    def page_info(self) -> PageInfo:
        display = len(self._view)
        pages = math.ceil(display / self._length)
        start = self._page * self._length
        end = min(start + self._length, display)
        return PageInfo(
            page=self._page,
            pages=pages,
            length=self._length,
            start=start,
            end=end,
            records_total=len(self._rows),
            records_display=display,
        )

    def set_page(self, page: int) -> None:
        pages = self.page_info().pages
        page = min(max(page, 0), max(pages - 1, 0))
        if page == self._page:
            return
        self._page = page
        self._fire("page", self.page_info())
        self.draw(reset_paging=False)

    def set_length(self, length: int) -> None:
        if length < 1:
            raise ValueError("Page length must be positive.")
        self._length = length
        self._fire("length", length)
        self.draw()

    def order(self) -> list[tuple[int, str]]:
        return list(self._order)

    def set_order(self, col: int, direction: str = "asc") -> None:
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unknown order direction '{direction}'.")
        self._order = [(col, direction)]
        self._fire("order", self.order())
        self.draw()

    # -- display surface ---------------------------------------------------

    def focus_cell(self, row: int, col: int) -> bool:
        if not (0 <= row < len(self.page_indices()) and 0 <= col < self.column_count):
            return False
        self.focused_cell = (row, col)
        self.search_focused = False
        return True

    def focus_search_input(self) -> None:
        self.search_focused = True

    def cell_markup(self, row: int, col: int) -> str:
        return self._markup.get((row, col), "")

    def set_cell_markup(self, row: int, col: int, markup: str) -> None:
        self._markup[(row, col)] = str(markup)

    def set_footer(self, col: int, markup: str, class_name: str = "") -> None:
        self._footer[col] = str(markup)
        if class_name:
            self.footer_classes[col] = class_name

    def footer(self, col: int) -> str | None:
        return self._footer.get(col)

    def set_table_attributes(self, attributes: dict[str, str]) -> None:
        self.table_attributes.update(attributes)

    def __repr__(self) -> str:
        info = self.page_info()
        return (
            f"FrameGrid(rows={info.records_total}, shown={info.records_display}, "
            f"page={info.page + 1}/{info.pages})"
        )
