"""tablekit: search, selection, inline editing, footers and accessibility for data tables."""

from ._version import __version__
from .core.config import (
    AccessibilityConfig,
    ColumnSpec,
    FooterColumnSpec,
    FooterConfig,
    KeyboardConfig,
    SearchConfig,
    SelectionConfig,
    Shortcut,
    TableConfig,
)
from .core.errors import (
    CellValidationError,
    ConfigurationError,
    DuplicateSessionError,
    HookError,
    MissingRowIdError,
    QueryError,
    TableKitError,
    UnknownTableError,
)
from .core.events import EngineEvent, Event, EventBus
from .core.hooks import Hooks
from .core.scheduler import AsyncioScheduler, ManualScheduler
from .core.storage import JsonFileStore, MemoryStore
from .engine import TableEngine, TableHandle
from .host import FrameGrid, GridHost, PageInfo
from .logging_config import configure_logging


def explore(data, config=None, hooks=None, port=0, show=True, **kwargs):
    """Launch an interactive table explorer in the browser.

    Parameters
    ----------
    data : pd.DataFrame
        Rows to display. Each row needs an id; the index is used when
        there is no ``id`` column and ``config`` names no id field.
    config : TableConfig or dict, optional
        Table configuration. Defaults to one column per DataFrame column.
    hooks : Hooks, optional
        Persistence and confirmation callbacks.
    port : int
        Port number. 0 = auto-assign.
    show : bool
        Whether to open the browser automatically.
    """
    from .app import ExplorerApp

    app = ExplorerApp(data, config=config, hooks=hooks)
    app.serve(port=port, show=show, **kwargs)


__all__ = [
    "__version__",
    "explore",
    "configure_logging",
    "TableEngine",
    "TableHandle",
    "Hooks",
    "TableConfig",
    "ColumnSpec",
    "FooterColumnSpec",
    "SelectionConfig",
    "FooterConfig",
    "SearchConfig",
    "KeyboardConfig",
    "AccessibilityConfig",
    "Shortcut",
    "FrameGrid",
    "GridHost",
    "PageInfo",
    "EngineEvent",
    "Event",
    "EventBus",
    "MemoryStore",
    "JsonFileStore",
    "ManualScheduler",
    "AsyncioScheduler",
    "TableKitError",
    "ConfigurationError",
    "DuplicateSessionError",
    "UnknownTableError",
    "MissingRowIdError",
    "CellValidationError",
    "QueryError",
    "HookError",
]
