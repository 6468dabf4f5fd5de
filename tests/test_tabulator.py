"""Tests for the Panel Tabulator grid and the explorer app."""

import pandas as pd
import pytest

from tablekit.app import ExplorerApp, columns_for_frame
from tablekit.core.config import ColumnSpec, FooterColumnSpec, FooterConfig, TableConfig
from tablekit.host.tabulator import TabulatorGrid


@pytest.fixture
def grid_table(engine, people, column_specs):
    grid = TabulatorGrid.from_records(people, column_specs, engine.renderers, defer_init=True)
    config = TableConfig(
        table_id="people",
        columns=column_specs,
        footer=FooterConfig(columns=[FooterColumnSpec(column_index=4, aggregation="sum")]),
    )
    handle = engine.attach(grid, config)
    grid.init()
    return handle


class TestTabulatorGrid:

    def test_widget_shows_current_page(self, grid_table):
        frame = grid_table.host.widget.value
        assert list(frame.columns) == ["ID", "Name", "Team", "Status", "Score"]
        assert len(frame) == 5
        assert grid_table.host.widget.formatters["Name"] == {"type": "html"}

    def test_search_updates_widget(self, grid_table):
        grid_table.search.simple("api")
        frame = grid_table.host.widget.value
        assert len(frame) == 2
        assert "search-highlight" in frame.loc[0, "Team"]

    def test_edit_surface_reaches_widget(self, grid_table):
        grid_table.editing.enter_edit(0, 4)
        assert "cell-edit-input" in grid_table.host.widget.value.loc[0, "Score"]

    def test_footer_pane(self, grid_table):
        assert 'class="tablekit-footer"' in grid_table.host.footer_pane.object
        assert ">35</td>" in grid_table.host.footer_pane.object

    def test_checkbox_events(self, grid_table):
        seen = []
        grid_table.host.on_checkbox(lambda row, checked: seen.append((row, checked)))
        grid_table.host.widget.selection = [1, 3]
        grid_table.host.widget.selection = [3]
        assert seen == [(1, True), (3, True), (1, False)]

    def test_show_selection_is_silent(self, grid_table):
        seen = []
        grid_table.host.on_checkbox(lambda row, checked: seen.append(row))
        grid_table.host.show_selection([2, 0])
        assert grid_table.host.widget.selection == [0, 2]
        assert seen == []

    def test_duplicate_titles(self, engine):
        columns = [ColumnSpec(data="a", title="X"), ColumnSpec(data="b", title="X")]
        grid = TabulatorGrid.from_records([{"a": 1, "b": 2}], columns)
        assert list(grid.page_frame().columns) == ["X", "X (2)"]


class TestExplorerApp:

    def test_columns_for_frame(self, incident_frame):
        specs = columns_for_frame(incident_frame)
        assert [s.data for s in specs] == ["id", "service", "latency"]
        assert [s.render for s in specs] == ["number", None, "number"]

    def test_index_used_as_row_id(self):
        app = ExplorerApp(pd.DataFrame({"service": ["api", "billing"]}))
        assert app.handle.ctx.config.row_id_field == "_row"
        assert app.handle.ctx.row_id(app.grid.data_indices()[1]) == 1

    def test_search_widget(self, incident_frame):
        app = ExplorerApp(incident_frame)
        app.search_input.value = "api"
        assert app.grid.page_info().records_display == 2
        assert list(app.history_select.options) == ["api (Simple)"]

    def test_invalid_regex_reported(self, incident_frame):
        app = ExplorerApp(incident_frame)
        app.mode_select.value = "regex"
        app.search_input.value = "[bad"
        assert "Invalid regular expression" in app.status_pane.object

    def test_checkbox_selects_row(self, incident_frame):
        app = ExplorerApp(incident_frame)
        app.grid.widget.selection = [2]
        assert app.handle.selection.selected_ids() == [3]
        assert app.status_pane.object == "1 rows selected"

    def test_export(self, incident_frame):
        app = ExplorerApp(incident_frame)
        assert app._export().getvalue().splitlines()[0] == "id,service,latency"
        app.handle.selection.toggle_row(2, True)
        assert app._export().getvalue().splitlines() == ["id,service,latency", "2,billing,"]

    def test_page_controls(self):
        app = ExplorerApp(pd.DataFrame({"id": range(30), "value": range(30)}))
        app.next_button.clicks += 1
        assert app.grid.page_info().page == 1
        assert app.page_label.object == "Page 2 of 2"
        app.length_select.value = 50
        assert app.page_label.object == "Page 1 of 1"
