"""TableSession and SessionStore: all mutable per-table state, keyed by table id."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator

from loguru import logger

from .errors import DuplicateSessionError, UnknownTableError


class SearchMode(str, enum.Enum):
    SIMPLE = "simple"
    REGEX = "regex"
    OPERATOR = "operator"
    COLUMN = "column"


class EditState(str, enum.Enum):
    EDITING = "editing"
    SAVING = "saving"


class HeaderState(str, enum.Enum):
    """Tri-state of the select-all toggle."""

    UNCHECKED = "unchecked"
    CHECKED = "checked"
    INDETERMINATE = "indeterminate"


@dataclass
class EditSession:
    """One in-progress cell edit. At most one exists per table."""

    row: int
    col: int
    row_index: int
    field: str
    original: Any
    pending: Any
    errors: list[str] = field(default_factory=list)
    state: EditState = EditState.EDITING

    @property
    def cell(self) -> tuple[int, int]:
        return (self.row, self.col)

    @property
    def error(self) -> str | None:
        return self.errors[-1] if self.errors else None


@dataclass
class SearchState:
    """Active search of one table. Replaced, never merged, on mode switch."""

    mode: SearchMode = SearchMode.SIMPLE
    query: Any = ""
    text: str = ""
    highlight_enabled: bool = True
    column_filters: dict[int, str] = field(default_factory=dict)
    case_sensitive: bool = False

    @property
    def active(self) -> bool:
        if self.mode is SearchMode.COLUMN:
            return bool(self.column_filters)
        return bool(self.text)


@dataclass
class FocusPosition:
    """Page-relative coordinate receiving keyboard input."""

    row: int = 0
    col: int = 0
    mode: str = "navigation"


@dataclass
class TableSession:
    """Full mutable state for one mounted grid instance."""

    table_id: str
    selection: set = field(default_factory=set)
    edit_session: EditSession | None = None
    search_state: SearchState = field(default_factory=SearchState)
    focus: FocusPosition = field(default_factory=FocusPosition)
    last_selected_index: int | None = None
    header_state: HeaderState = HeaderState.UNCHECKED
    search_error: str | None = None

    def __repr__(self) -> str:
        editing = self.edit_session.cell if self.edit_session else None
        return (
            f"TableSession({self.table_id!r}, selected={len(self.selection)}, "
            f"editing={editing}, search={self.search_state.mode.value})"
        )


class SessionStore:
    """Owns the single ``table_id -> TableSession`` map of an engine."""

    def __init__(self) -> None:
        self._sessions: dict[str, TableSession] = {}

    def create(self, table_id: str) -> TableSession:
        if not table_id:
            raise ValueError("table_id must be a non-empty string.")
        if table_id in self._sessions:
            raise DuplicateSessionError(table_id)
        session = TableSession(table_id=table_id)
        self._sessions[table_id] = session
        logger.debug("Created session for table '{}'", table_id)
        return session

    def get(self, table_id: str) -> TableSession:
        try:
            return self._sessions[table_id]
        except KeyError:
            raise UnknownTableError(table_id) from None

    def destroy(self, table_id: str) -> None:
        if self._sessions.pop(table_id, None) is not None:
            logger.debug("Destroyed session for table '{}'", table_id)

    @property
    def table_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._sessions

    def __iter__(self) -> Iterator[TableSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)
