"""SearchEngine: four search modes sharing one query/highlight contract."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

from loguru import logger

from ..core.errors import QueryError
from ..core.events import EngineEvent
from ..core.session import SearchMode, SearchState
from ..core.storage import storage_key
from ..features.context import TableContext
from .expression import evaluate, parse, positive_terms
from .highlight import highlight_markup, literal_pattern
from .history import SearchHistory, SearchHistoryEntry

FILTER_KEY = "tablekit-search"


@dataclass(frozen=True)
class SearchResult:
    """Outcome of applying one query."""

    mode: SearchMode
    query: str
    matches: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def compile_regex(pattern: str, case_sensitive: bool = False) -> re.Pattern:
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as exc:
        raise QueryError(f"Invalid regular expression: {exc}") from None


def format_column_query(filters: dict[int, str]) -> str:
    """``{0: "ann", 2: "ok"}`` -> ``"0=ann & 2=ok"``."""
    return " & ".join(f"{col}={term}" for col, term in filters.items())


def parse_column_query(text: str) -> list[tuple[int, str]]:
    pairs = []
    for part in text.split(" & "):
        col, sep, term = part.partition("=")
        if sep and col.strip().isdigit():
            pairs.append((int(col), term))
    return pairs


class SearchEngine:
    """Applies one search mode at a time to a table and highlights matches."""

    FEATURE = "search"

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.settings = ctx.config.search
        self.session = ctx.session
        self.session.search_state = SearchState(
            highlight_enabled=self.settings.highlight_results
        )
        self.history = SearchHistory(
            ctx.storage,
            storage_key(ctx.table_id, "search-history"),
            self.settings.max_history_items,
        )

    def attach(self) -> None:
        self.ctx.track(self.ctx.host.on_draw(self.apply_highlights))

    @property
    def state(self) -> SearchState:
        return self.session.search_state

    # -- internals ---------------------------------------------------------

    def _reset_filters(self) -> None:
        host = self.ctx.host
        host.search("")
        host.clear_column_searches()
        host.remove_row_filter(FILTER_KEY)

    def _commit(self, state: SearchState, record: bool) -> SearchResult:
        self.session.search_state = state
        self.session.search_error = None
        self.ctx.host.draw()
        matches = self.ctx.host.page_info().records_display
        if record and state.text and self.settings.show_search_history:
            self.history.add(state.text, state.mode.value)
        self.ctx.emit(
            EngineEvent.SEARCH_APPLIED,
            mode=state.mode.value, query=state.text, matches=matches,
        )
        return SearchResult(mode=state.mode, query=state.text, matches=matches)

    def _new_state(self, mode: SearchMode, query: Any, text: str, **kwargs) -> SearchState:
        return SearchState(
            mode=mode,
            query=query,
            text=text,
            highlight_enabled=self.state.highlight_enabled,
            **kwargs,
        )

    # -- modes -------------------------------------------------------------

    def simple(self, query: str, record: bool = True) -> SearchResult:
        """Case-insensitive substring across searchable columns."""
        query = (query or "").strip()
        if not query:
            return self.clear()
        self._reset_filters()
        self.ctx.host.search(query)
        return self._commit(self._new_state(SearchMode.SIMPLE, query, query), record)

    def regex(self, pattern: str, case_sensitive: bool = False, record: bool = True) -> SearchResult:
        """Regular-expression search. An invalid pattern leaves everything as it was."""
        pattern = (pattern or "").strip()
        if not pattern:
            return self.clear()
        try:
            compiled = compile_regex(pattern, case_sensitive)
        except QueryError as exc:
            self.session.search_error = str(exc)
            logger.warning("[{}] {}", self.ctx.table_id, exc)
            return SearchResult(
                mode=SearchMode.REGEX,
                query=pattern,
                matches=self.ctx.host.page_info().records_display,
                error=str(exc),
            )
        searchable = self._searchable_columns()
        self._reset_filters()
        self.ctx.host.add_row_filter(
            FILTER_KEY,
            lambda data, row, index: any(compiled.search(data[c]) for c in searchable),
        )
        state = self._new_state(
            SearchMode.REGEX, compiled, pattern, case_sensitive=case_sensitive
        )
        return self._commit(state, record)

    def operator(self, expression: str, record: bool = True) -> SearchResult:
        """Boolean AND/OR/NOT expression over the whole row text."""
        expression = (expression or "").strip()
        if not expression:
            return self.clear()
        tree = parse(expression)
        self._reset_filters()
        self.ctx.host.add_row_filter(
            FILTER_KEY,
            lambda data, row, index: evaluate(tree, " ".join(data).lower()),
        )
        return self._commit(self._new_state(SearchMode.OPERATOR, tree, expression), record)

    def column(
        self,
        filters: Iterable[tuple[int, str]] | dict[int, str],
        record: bool = True,
    ) -> SearchResult:
        """Conjunctive per-column substring filters."""
        pairs = filters.items() if isinstance(filters, dict) else filters
        host = self.ctx.host
        applied: dict[int, str] = {}
        for col, term in pairs:
            term = (term or "").strip()
            if not term:
                continue
            if not 0 <= col < host.column_count:
                logger.warning("[{}] Ignoring search on unknown column {}", self.ctx.table_id, col)
                continue
            applied[col] = term
        if not applied:
            return self.clear()
        self._reset_filters()
        for col, term in applied.items():
            host.column_search(col, term)
        text = format_column_query(applied)
        state = self._new_state(SearchMode.COLUMN, text, text, column_filters=applied)
        return self._commit(state, record)

    def apply(self, mode: SearchMode | str, query: Any, **kwargs) -> SearchResult:
        mode = SearchMode(mode)
        if mode is SearchMode.COLUMN:
            if isinstance(query, str):
                query = parse_column_query(query)
            return self.column(query, **kwargs)
        return getattr(self, mode.value)(query, **kwargs)

    def quick_search(self, text: str, regex: bool = False) -> SearchResult | None:
        """The default search box. An invalid regex is logged and ignored."""
        if regex and self.settings.enable_regex:
            try:
                compile_regex(text)
            except QueryError as exc:
                logger.warning("[{}] {}", self.ctx.table_id, exc)
                return None
            return self.regex(text, record=False)
        return self.simple(text, record=False)

    def recall(self, entry: SearchHistoryEntry) -> SearchResult:
        """Re-apply a history entry."""
        return self.apply(entry.mode, entry.query)

    def clear(self) -> SearchResult:
        """Remove every filter, highlight and error; back to simple mode."""
        self._reset_filters()
        self.session.search_state = SearchState(highlight_enabled=self.state.highlight_enabled)
        self.session.search_error = None
        self.ctx.host.draw()
        self.ctx.emit(EngineEvent.SEARCH_CLEARED)
        return SearchResult(
            mode=SearchMode.SIMPLE,
            query="",
            matches=self.ctx.host.page_info().records_display,
        )

    # -- highlighting ------------------------------------------------------

    def set_highlight(self, enabled: bool) -> None:
        self.state.highlight_enabled = enabled
        self.apply_highlights()

    def _searchable_columns(self) -> list[int]:
        host = self.ctx.host
        return [c for c in range(host.column_count) if host.column_def(c).searchable]

    def _patterns(self) -> dict[int, re.Pattern | None]:
        state = self.state
        if not state.highlight_enabled or not state.active:
            return {}
        if state.mode is SearchMode.COLUMN:
            return {col: literal_pattern(term) for col, term in state.column_filters.items()}
        if state.mode is SearchMode.REGEX:
            pattern = state.query
        elif state.mode is SearchMode.OPERATOR:
            pattern = literal_pattern(*positive_terms(state.query))
        else:
            pattern = literal_pattern(state.text)
        return {col: pattern for col in self._searchable_columns()}

    def apply_highlights(self) -> int:
        """Re-mark the drawn page. Returns the number of marks."""
        host = self.ctx.host
        patterns = self._patterns()
        editing = self.session.edit_session
        total = 0
        for row in range(len(host.page_indices())):
            for col in range(host.column_count):
                if editing is not None and editing.cell == (row, col):
                    continue
                markup = host.cell_markup(row, col)
                marked, count = highlight_markup(markup, patterns.get(col))
                if marked != markup:
                    host.set_cell_markup(row, col, marked)
                total += count
        return total
