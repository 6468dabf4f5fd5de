"""ExplorerApp: serves a DataFrame through a TableEngine in a Panel template."""

from __future__ import annotations

import io

import pandas as pd
import panel as pn
from loguru import logger

from .core.config import ColumnSpec, TableConfig
from .core.events import EngineEvent, Event
from .core.hooks import Hooks
from .core.session import SearchMode
from .engine import TableEngine, TableHandle
from .features.selection import rows_to_csv
from .host.tabulator import TabulatorGrid

_EXPLORER_CSS = """
.sr-only {
  position: absolute; width: 1px; height: 1px; overflow: hidden;
  clip: rect(0, 0, 0, 0); white-space: nowrap;
}
mark.search-highlight { background: #fff3b0; padding: 0 1px; }
.tablekit-footer { width: 100%; font-size: 12px; color: #5f6368; }
.tablekit-footer td { padding: 4px 8px; }
.footer-label { font-weight: 500; }
.validation-error { color: #d93025; font-size: 11px; }
"""

LENGTH_OPTIONS = [10, 25, 50, 100]


def columns_for_frame(data: pd.DataFrame) -> list[ColumnSpec]:
    """One column spec per DataFrame column; numeric columns use the number renderer."""
    specs = []
    for name in data.columns:
        render = "number" if pd.api.types.is_numeric_dtype(data[name]) else None
        specs.append(ColumnSpec(data=str(name), render=render))
    return specs


class ExplorerApp:
    """Interactive table explorer.

    Assembles a Panel MaterialTemplate with:
    - Sidebar: search box and mode, history, page length, ordering, export
    - Main area: Tabulator view of the current page plus footer row
    - Live region pane mirroring the polite announcer channel
    """

    def __init__(
        self,
        data: pd.DataFrame,
        config: TableConfig | dict | None = None,
        hooks: Hooks | None = None,
        engine: TableEngine | None = None,
    ) -> None:
        pn.extension("tabulator", sizing_mode="stretch_width")
        pn.config.raw_css.append(_EXPLORER_CSS)

        if config is None:
            config = TableConfig(table_id="explorer", columns=columns_for_frame(data))
        elif isinstance(config, dict):
            config = TableConfig.from_dict(config)
        if not config.row_id_field and "id" not in data.columns:
            data = data.reset_index(names="_row")
            config.row_id_field = "_row"

        self.engine = engine or TableEngine(hooks=hooks)
        self.grid = TabulatorGrid.from_records(
            data, config.columns, self.engine.renderers, page_length=config.page_length,
            defer_init=True,
        )
        self.handle: TableHandle = self.engine.attach(self.grid, config)
        self.grid.init()

        self.live_pane = pn.pane.HTML("", css_classes=["sr-only"], sizing_mode="stretch_width")
        self.status_pane = pn.pane.Markdown("", sizing_mode="stretch_width")
        self.page_label = pn.pane.Markdown("", width=160)
        self._recalling = False
        self._build_widgets()

        self.engine.bus.subscribe(None, self._on_event)
        self.grid.on_checkbox(self._on_checkbox)
        self.grid.on_cell_click(self._on_cell_click)
        self.grid.on_draw(self._sync_view)
        self._sync_view()

    # -- widgets -----------------------------------------------------------

    def _build_widgets(self) -> None:
        titles = [col.title for col in self.grid.columns]
        self.search_input = pn.widgets.TextInput(name="Search", placeholder="Search...")
        self.mode_select = pn.widgets.Select(
            name="Mode", options=[mode.value for mode in SearchMode], value=SearchMode.SIMPLE.value
        )
        self.history_select = pn.widgets.Select(name="Recent searches", options=[])
        self.clear_button = pn.widgets.Button(name="Clear search", button_type="danger")
        self.length_select = pn.widgets.Select(
            name="Rows per page", options=LENGTH_OPTIONS, value=self.grid.page_info().length
        )
        self.order_select = pn.widgets.Select(name="Sort by", options=["", *titles], value="")
        self.direction_toggle = pn.widgets.RadioButtonGroup(options=["asc", "desc"], value="asc")
        self.prev_button = pn.widgets.Button(name="Previous", width=90)
        self.next_button = pn.widgets.Button(name="Next", width=90)
        self.export_button = pn.widgets.FileDownload(
            callback=self._export, filename=f"{self.handle.table_id}_export.csv",
            label="Export CSV", button_type="primary",
        )

        self.search_input.param.watch(lambda event: self._search(event.new), "value")
        self.mode_select.param.watch(lambda event: self._search(self.search_input.value), "value")
        self.history_select.param.watch(self._recall, "value")
        self.clear_button.on_click(lambda event: self._clear_search())
        self.length_select.param.watch(lambda event: self.grid.set_length(event.new), "value")
        self.order_select.param.watch(lambda event: self._order(), "value")
        self.direction_toggle.param.watch(lambda event: self._order(), "value")
        self.prev_button.on_click(lambda event: self._turn_page(-1))
        self.next_button.on_click(lambda event: self._turn_page(1))

    def _search(self, text: str) -> None:
        search = self.handle.search
        if search is None or self._recalling:
            return
        search.apply(self.mode_select.value, text)
        if self.handle.session.search_error:
            self.status_pane.object = f"**{self.handle.session.search_error}**"
        self._refresh_history()

    def _clear_search(self) -> None:
        if self.handle.search is not None:
            self.handle.search.clear()
        self.search_input.value = ""

    def _refresh_history(self) -> None:
        search = self.handle.search
        if search is None:
            return
        self.history_select.options = {
            f"{entry.query} ({entry.mode_label})": entry for entry in search.history.recent()
        }

    def _recall(self, event) -> None:
        entry = event.new
        if entry is None or self.handle.search is None:
            return
        self._recalling = True
        try:
            self.mode_select.value = entry.mode
            self.search_input.value = entry.query
        finally:
            self._recalling = False
        self.handle.search.recall(entry)

    def _order(self) -> None:
        title = self.order_select.value
        if not title:
            return
        col = [c.title for c in self.grid.columns].index(title)
        self.grid.set_order(col, self.direction_toggle.value)

    def _turn_page(self, step: int) -> None:
        info = self.grid.page_info()
        self.grid.set_page(min(max(info.page + step, 0), max(info.pages - 1, 0)))

    def _export(self) -> io.StringIO:
        selection = self.handle.selection
        rows = selection.selected_rows() if selection is not None else []
        if not rows:
            rows = [self.grid.row(index) for index in self.grid.data_indices()]
        delimiter = selection.settings.export_delimiter if selection is not None else ","
        logger.info("[{}] Exporting {} row(s)", self.handle.table_id, len(rows))
        return io.StringIO(rows_to_csv(rows, delimiter))

    # -- engine bridge -----------------------------------------------------

    def _on_checkbox(self, row: int, checked: bool) -> None:
        selection = self.handle.selection
        indices = self.grid.page_indices()
        if selection is None or row >= len(indices):
            return
        selection.toggle_row(self.handle.ctx.row_id(indices[row]), checked)

    def _on_cell_click(self, row: int, col: int) -> None:
        if self.handle.keyboard is not None:
            self.handle.keyboard.focus_cell(row, col)

    def _sync_view(self) -> None:
        info = self.grid.page_info()
        self.page_label.object = f"Page {info.page + 1} of {max(info.pages, 1)}"
        selection = self.handle.selection
        if selection is None:
            return
        selected = set(selection.selected_ids())
        rows = [
            position for position, index in enumerate(self.grid.page_indices())
            if self.handle.ctx.row_id(index) in selected
        ]
        self.grid.show_selection(rows)

    def _on_event(self, event: Event) -> None:
        if event.table_id != self.handle.table_id:
            return
        if event.kind is EngineEvent.ANNOUNCED:
            self.live_pane.object = event.payload["message"]
        elif event.kind is EngineEvent.NOTIFICATION:
            self.status_pane.object = event.payload["message"]
        elif event.kind is EngineEvent.SELECTION_CHANGED:
            self._sync_view()
            if self.handle.selection is not None:
                self.status_pane.object = self.handle.selection.toolbar.label

    # -- layout ------------------------------------------------------------

    def _build_template(self) -> pn.template.MaterialTemplate:
        sidebar = pn.Column(
            self.search_input,
            self.mode_select,
            self.history_select,
            self.clear_button,
            pn.layout.Divider(),
            self.order_select,
            self.direction_toggle,
            self.length_select,
            pn.layout.Divider(),
            self.export_button,
        )
        template = pn.template.MaterialTemplate(
            title="tablekit",
            sidebar=[sidebar],
            sidebar_width=260,
            header_background="#fafafa",
            header_color="#202124",
        )
        template.main.append(
            pn.Column(
                self.status_pane,
                self.grid.panel(),
                pn.Row(self.prev_button, self.page_label, self.next_button),
                self.live_pane,
                sizing_mode="stretch_width",
            )
        )
        return template

    def serve(self, port: int = 0, show: bool = True, **kwargs) -> None:
        """Start the Panel server and optionally open the browser.

        Parameters
        ----------
        port : int
            Port number. 0 = auto-assign.
        show : bool
            Whether to open the browser automatically.
        **kwargs
            Additional keyword arguments passed to pn.serve().
        """
        template = self._build_template()
        pn.serve(
            template,
            port=port or 0,
            show=show,
            title="tablekit Explorer",
            **kwargs,
        )
