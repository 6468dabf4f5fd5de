"""GridHost: the interface the engine needs from the underlying grid widget.

The grid itself (ordering, paging, row model, redraw) is a black box.
The engine only calls the accessors and mutators below and listens to
the grid's lifecycle callbacks.

Coordinates
-----------
* *data index*: stable integer key of a row in the grid's dataset.
* *page row*: position of a row on the currently drawn page.
* *column*: position of the column in the column definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

import pandas as pd

from ..render.columns import ColumnDef

Unsubscribe = Callable[[], None]
RowPredicate = Callable[[list, dict, int], bool]


@dataclass(frozen=True)
class PageInfo:
    """Paging state after the last draw (``page`` is zero-based)."""

    page: int
    pages: int
    length: int
    start: int
    end: int
    records_total: int
    records_display: int

    @property
    def is_last(self) -> bool:
        return self.page >= self.pages - 1


@runtime_checkable
class GridHost(Protocol):
    # -- lifecycle ---------------------------------------------------------
    def on_ready(self, callback: Callable[[], Any]) -> Unsubscribe: ...
    def on_draw(self, callback: Callable[[], Any]) -> Unsubscribe: ...
    def on_order(self, callback: Callable[[list[tuple[int, str]]], Any]) -> Unsubscribe: ...
    def on_page(self, callback: Callable[[PageInfo], Any]) -> Unsubscribe: ...
    def on_length(self, callback: Callable[[int], Any]) -> Unsubscribe: ...
    def on_destroy(self, callback: Callable[[], Any]) -> Unsubscribe: ...

    # -- columns and rows --------------------------------------------------
    @property
    def column_count(self) -> int: ...
    def column_def(self, col: int) -> ColumnDef: ...
    def column_title(self, col: int) -> str: ...
    def row(self, index: int) -> dict: ...
    def data_indices(self, applied: bool = True) -> list[int]: ...
    def page_indices(self) -> list[int]: ...
    def column_data(self, col: int, applied: bool = True) -> pd.Series: ...
    def search_data(self, index: int) -> list[str]: ...

    # -- filtering ---------------------------------------------------------
    def search(self, query: str) -> None: ...
    def column_search(self, col: int, term: str) -> None: ...
    def clear_column_searches(self) -> None: ...
    def add_row_filter(self, key: str, predicate: RowPredicate) -> None: ...
    def remove_row_filter(self, key: str) -> None: ...

    # -- drawing and data mutation -----------------------------------------
    def draw(self, reset_paging: bool = True) -> None: ...
    def invalidate_row(self, index: int) -> None: ...
    def remove_rows(self, indices: list[int]) -> None: ...
    def reload(self) -> None: ...

    # -- paging and ordering -----------------------------------------------
    def page_info(self) -> PageInfo: ...
    def set_page(self, page: int) -> None: ...
    def set_length(self, length: int) -> None: ...
    def order(self) -> list[tuple[int, str]]: ...
    def set_order(self, col: int, direction: str = "asc") -> None: ...

    # -- display surface ---------------------------------------------------
    def focus_cell(self, row: int, col: int) -> bool: ...
    def focus_search_input(self) -> None: ...
    def cell_markup(self, row: int, col: int) -> str: ...
    def set_cell_markup(self, row: int, col: int, markup: str) -> None: ...
    def set_footer(self, col: int, markup: str, class_name: str = "") -> None: ...
    def set_table_attributes(self, attributes: dict[str, str]) -> None: ...
