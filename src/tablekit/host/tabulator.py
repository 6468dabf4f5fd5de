"""TabulatorGrid: FrameGrid whose drawn page is shown in a Panel Tabulator."""

from __future__ import annotations

from typing import Any, Callable

import pandas as pd
import panel as pn

from .frame_grid import FrameGrid


class TabulatorGrid(FrameGrid):
    """Headless grid logic with a browser view.

    Filtering, ordering and paging stay in :class:`FrameGrid`; after
    every draw the current page's display markup is pushed to
    ``self.widget`` (HTML formatters, checkbox selection) and footer
    cells to ``self.footer_pane``.
    """

    def __init__(
        self, rows, columns, page_length: int = 25, loader=None, defer_init: bool = False,
        **widget_kwargs,
    ) -> None:
        self._syncing = False
        self._drawing = False
        self._checkbox_callbacks: list[Callable[[int, bool], Any]] = []
        self._click_callbacks: list[Callable[[int, int], Any]] = []
        self.widget = pn.widgets.Tabulator(
            pd.DataFrame(),
            disabled=True,
            show_index=False,
            selectable="checkbox",
            sizing_mode="stretch_width",
            **widget_kwargs,
        )
        self.footer_pane = pn.pane.HTML("", sizing_mode="stretch_width")
        super().__init__(
            rows, columns, page_length=page_length, loader=loader, defer_init=defer_init
        )
        self.widget.param.watch(self._on_widget_selection, "selection")
        self.widget.on_click(self._on_widget_click)

    # -- view sync ---------------------------------------------------------

    def _titles(self) -> list[str]:
        titles, seen = [], set()
        for col in self.columns:
            title = col.title or col.data or f"Column {col.index + 1}"
            if title in seen:
                title = f"{title} ({col.index + 1})"
            seen.add(title)
            titles.append(title)
        return titles

    def page_frame(self) -> pd.DataFrame:
        titles = self._titles()
        rows = len(self.page_indices())
        return pd.DataFrame(
            {t: [self.cell_markup(r, c) for r in range(rows)] for c, t in enumerate(titles)},
            columns=titles,
        )

    def refresh_widget(self) -> None:
        frame = self.page_frame()
        self._syncing = True
        try:
            self.widget.formatters = {t: {"type": "html"} for t in frame.columns}
            self.widget.value = frame
        finally:
            self._syncing = False

    def draw(self, reset_paging: bool = True) -> None:
        self._drawing = True
        try:
            super().draw(reset_paging)
        finally:
            self._drawing = False
        self.refresh_widget()

    def set_cell_markup(self, row: int, col: int, markup: str) -> None:
        super().set_cell_markup(row, col, markup)
        if self.is_ready and not self._drawing:
            self.refresh_widget()

    def set_footer(self, col: int, markup: str, class_name: str = "") -> None:
        super().set_footer(col, markup, class_name)
        cells = "".join(
            f'<td class="{self.footer_classes.get(c, "")}">{self.footer(c) or ""}</td>'
            for c in range(self.column_count)
        )
        self.footer_pane.object = f'<table class="tablekit-footer"><tr>{cells}</tr></table>'

    # -- widget events -----------------------------------------------------

    def show_selection(self, page_rows: list[int]) -> None:
        """Reflect selected page rows in the checkbox column."""
        self._syncing = True
        try:
            self.widget.selection = sorted(page_rows)
        finally:
            self._syncing = False

    def on_checkbox(self, callback: Callable[[int, bool], Any]) -> None:
        self._checkbox_callbacks.append(callback)

    def on_cell_click(self, callback: Callable[[int, int], Any]) -> None:
        self._click_callbacks.append(callback)

    def _on_widget_selection(self, event) -> None:
        if self._syncing:
            return
        old, new = set(event.old or []), set(event.new or [])
        for row in sorted(new - old):
            for callback in self._checkbox_callbacks:
                callback(row, True)
        for row in sorted(old - new):
            for callback in self._checkbox_callbacks:
                callback(row, False)

    def _on_widget_click(self, event) -> None:
        titles = self._titles()
        if event.column not in titles or event.row is None:
            return
        for callback in self._click_callbacks:
            callback(event.row, titles.index(event.column))

    def panel(self) -> pn.Column:
        return pn.Column(self.widget, self.footer_pane, sizing_mode="stretch_width")
