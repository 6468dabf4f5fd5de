"""Shared test fixtures for tablekit."""

import pandas as pd
import pytest

from tablekit import FrameGrid, Hooks, ManualScheduler, MemoryStore, TableConfig, TableEngine
from tablekit.core.config import ColumnSpec


@pytest.fixture
def people():
    """Five rows; ``score`` mixes numbers, a bad string and a null."""
    return [
        {"id": 1, "name": "Ann", "team": "api", "status": "open", "score": 10,
         "owner": {"email": "ann@example.com"}},
        {"id": 2, "name": "Bob", "team": "billing", "status": "closed", "score": "bad"},
        {"id": 3, "name": "Cara", "team": "api", "status": "open", "score": 5},
        {"id": 4, "name": "Dan", "team": "search", "status": "closed", "score": None},
        {"id": 5, "name": "Eve", "team": "auth", "status": "open", "score": 20},
    ]


@pytest.fixture
def many_rows():
    """12 rows for paging tests."""
    return [{"id": i, "name": f"user{i:02d}", "score": i * 10} for i in range(1, 13)]


@pytest.fixture
def column_specs():
    return [
        ColumnSpec(data="id", title="ID"),
        ColumnSpec(data="name"),
        ColumnSpec(data="team"),
        ColumnSpec(data="status", render="status_badge"),
        ColumnSpec(data="score", editable=True, edit_type="number", edit_min=0, edit_max=100),
    ]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def hooks():
    return Hooks()


@pytest.fixture
def engine(hooks, store, scheduler):
    return TableEngine(hooks=hooks, storage=store, scheduler=scheduler)


@pytest.fixture
def make_table(engine, column_specs, people):
    """Attach a FrameGrid-backed table and return its handle."""

    def _make(table_id="people", rows=None, columns=None, page_length=25, **sections):
        columns = columns if columns is not None else column_specs
        rows = rows if rows is not None else people
        config = TableConfig(
            table_id=table_id, columns=columns, page_length=page_length, **sections
        )
        grid = FrameGrid.from_records(
            rows, columns, engine.renderers, page_length=page_length, defer_init=True
        )
        handle = engine.attach(grid, config)
        grid.init()
        return handle

    return _make


@pytest.fixture
def table(make_table):
    return make_table()


@pytest.fixture
def paged_table(make_table, many_rows):
    """12 rows, 5 per page, with an editable score column."""
    columns = [
        ColumnSpec(data="id", title="ID"),
        ColumnSpec(data="name"),
        ColumnSpec(data="score", editable=True, edit_type="number"),
    ]
    return make_table(table_id="paged", rows=many_rows, columns=columns, page_length=5)


@pytest.fixture
def incident_frame():
    """DataFrame with a NaN, for host conversion tests."""
    return pd.DataFrame({
        "id": [1, 2, 3],
        "service": ["api", "billing", "api"],
        "latency": [120.5, float("nan"), 80.0],
    })
