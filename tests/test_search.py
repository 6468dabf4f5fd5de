"""Tests for search expressions, highlighting, history and the search engine."""

import re

import pytest

from tablekit.core.events import EngineEvent
from tablekit.core.config import ColumnSpec, SearchConfig
from tablekit.core.session import SearchMode
from tablekit.search import And, Literal, Not, Or, Term, parse, positive_terms
from tablekit.search.engine import FILTER_KEY, format_column_query, parse_column_query
from tablekit.search.expression import matches
from tablekit.search.highlight import highlight_markup, literal_pattern, strip_highlights
from tablekit.search.history import SearchHistory, SearchHistoryEntry

MARK = '<mark class="search-highlight">{}</mark>'


class TestExpressionParser:

    def test_and_binds_tighter_than_or(self):
        assert parse("a or b and c") == Or(Term("a"), And(Term("b"), Term("c")))

    def test_not_is_lowest(self):
        assert parse("a or b not c") == Not(Or(Term("a"), Term("b")), Term("c"))

    def test_multi_word_terms(self):
        assert parse("new york or boston") == Or(Term("new york"), Term("boston"))

    def test_groups(self):
        assert parse("(a or b) and c") == And(Or(Term("a"), Term("b")), Term("c"))

    def test_term_next_to_group_is_and(self):
        assert parse("a (b or c)") == And(Term("a"), Or(Term("b"), Term("c")))

    def test_unbalanced_matches_everything(self):
        assert parse("(a or b") == Literal(True)
        assert parse("a) or (b") == Literal(True)
        assert matches("(broken", "anything")

    def test_dangling_operators_drop_out(self):
        assert parse("a or") == Term("a")
        assert parse("a not") == Term("a")
        assert parse("and a") == Term("a")

    def test_leading_not_excludes(self):
        assert matches("not resolved", "error open")
        assert not matches("not resolved", "error resolved")

    def test_case_insensitive(self):
        assert matches("ERROR AND Prod", "Error in PROD")

    def test_evaluation(self):
        query = "error AND (prod OR staging) NOT resolved"
        assert matches(query, "error prod")
        assert matches(query, "error staging open")
        assert not matches(query, "error dev")
        assert not matches(query, "error prod resolved")

    def test_positive_terms(self):
        assert positive_terms(parse("a or b not c")) == ["a", "b"]
        assert positive_terms(parse("(x")) == []


class TestHighlight:

    def test_marks_text_only(self):
        markup = '<span class="open">open</span>'
        marked, count = highlight_markup(markup, literal_pattern("open"))
        assert marked == '<span class="open">' + MARK.format("open") + "</span>"
        assert count == 1

    def test_entities_survive(self):
        marked, count = highlight_markup("Tom &amp; Jerry", literal_pattern("jerry"))
        assert marked == "Tom &amp; " + MARK.format("Jerry")
        assert count == 1

    def test_rehighlight_replaces_previous_marks(self):
        first, _ = highlight_markup("alpha beta", literal_pattern("alpha"))
        second, count = highlight_markup(first, literal_pattern("beta"))
        assert second == "alpha " + MARK.format("beta")
        assert count == 1
        assert strip_highlights(second) == "alpha beta"

    def test_no_pattern_strips(self):
        marked = "x " + MARK.format("y")
        assert highlight_markup(marked, None) == ("x y", 0)

    def test_empty_matches_ignored(self):
        assert highlight_markup("abc", re.compile("x*")) == ("abc", 0)

    def test_literal_pattern(self):
        assert literal_pattern("a", "ab").pattern == "ab|a"
        assert literal_pattern("", "") is None
        assert literal_pattern("a.b").search("aXb") is None


class TestSearchHistory:

    def test_newest_first_and_deduplicated(self, store):
        history = SearchHistory(store, "t:search-history")
        history.add("api", "simple")
        history.add("bob", "simple")
        history.add("api", "simple")
        history.add("api", "regex")
        assert [(e.query, e.mode) for e in history] == [
            ("api", "regex"), ("api", "simple"), ("bob", "simple"),
        ]

    def test_capped(self, store):
        history = SearchHistory(store, "t:search-history", max_items=3)
        for query in ["a", "b", "c", "d", "e"]:
            history.add(query, "simple")
        assert [e.query for e in history.entries] == ["e", "d", "c"]
        assert [e.query for e in history.recent(2)] == ["e", "d"]

    def test_persisted_and_cleared(self, store):
        SearchHistory(store, "t:search-history").add("api", "operator")
        reloaded = SearchHistory(store, "t:search-history")
        assert len(reloaded) == 1
        assert reloaded.entries[0].mode_label == "Operator"
        reloaded.clear()
        assert store.get("t:search-history") is None

    def test_malformed_entries_skipped(self, store):
        store.set("t:search-history", [
            {"query": "a", "mode": "simple", "timestamp": "2024-01-01T00:00:00.000Z"},
            {"bogus": True},
        ])
        assert len(SearchHistory(store, "t:search-history")) == 1

    def test_timestamp_is_utc_iso(self):
        entry = SearchHistoryEntry.create("x", "simple")
        assert entry.timestamp.endswith("Z")
        assert entry.mode_label == "Simple"


def test_column_query_format():
    text = format_column_query({0: "ann", 2: "ok"})
    assert text == "0=ann & 2=ok"
    assert parse_column_query(text) == [(0, "ann"), (2, "ok")]


class TestSearchEngine:

    @pytest.fixture
    def events(self, engine):
        seen = []
        engine.bus.subscribe(None, seen.append)
        return seen

    def test_simple(self, table, events):
        result = table.search.simple("api")
        assert result.ok
        assert result.matches == 2
        applied = [e for e in events if e.kind is EngineEvent.SEARCH_APPLIED]
        assert applied[-1].payload == {"mode": "simple", "query": "api", "matches": 2}
        assert table.host.cell_markup(0, 2) == MARK.format("api")

    def test_empty_query_clears(self, table, events):
        table.search.simple("api")
        result = table.search.simple("   ")
        assert result.matches == 5
        assert events[-1].kind is EngineEvent.SEARCH_CLEARED
        assert table.host.cell_markup(0, 2) == "api"

    def test_regex_matches_cells(self, table):
        result = table.search.regex("^(ann|eve)$")
        assert result.matches == 2
        assert table.session.search_state.mode is SearchMode.REGEX
        assert table.host.row_filter_keys == [FILTER_KEY]

    def test_regex_skips_unsearchable_columns(self, make_table):
        columns = [
            ColumnSpec(data="id", searchable=False),
            ColumnSpec(data="name"),
            ColumnSpec(data="note"),
        ]
        rows = [
            {"id": 1, "name": "Ann", "note": "x"},
            {"id": 2, "name": "Bob", "note": "y"},
            {"id": 3, "name": "Cara", "note": ""},
        ]
        handle = make_table(rows=rows, columns=columns)
        assert handle.search.regex("^$").matches == 1
        assert handle.search.regex(r"^\s*$").matches == 1
        assert handle.search.regex("^2$").matches == 0

    def test_regex_case_sensitive(self, table):
        assert table.search.regex("^ann$", case_sensitive=True).matches == 0

    def test_invalid_regex_keeps_previous_search(self, table):
        table.search.simple("api")
        result = table.search.regex("[unclosed")
        assert not result.ok
        assert "Invalid regular expression" in table.session.search_error
        assert table.host.page_info().records_display == 2
        assert table.session.search_state.mode is SearchMode.SIMPLE

    def test_operator(self, table):
        result = table.search.operator("api or billing not ann")
        assert result.matches == 2
        names = [table.host.row(i)["name"] for i in table.host.data_indices()]
        assert names == ["Bob", "Cara"]

    def test_switching_mode_removes_row_filter(self, table):
        table.search.operator("api or billing")
        table.search.simple("open")
        assert table.host.row_filter_keys == []
        assert table.host.page_info().records_display == 3

    def test_column(self, table):
        result = table.search.column({1: "a", 2: "api"})
        assert result.matches == 2
        assert table.session.search_state.text == "1=a & 2=api"
        assert table.host.cell_markup(0, 2) == MARK.format("api")
        assert table.host.cell_markup(0, 1) == MARK.format("A") + "nn"

    def test_column_unknown_index_only_clears(self, table):
        result = table.search.column({9: "x"})
        assert result.matches == 5
        assert not table.session.search_state.active

    def test_history_and_recall(self, table, store):
        table.search.column({2: "api"})
        table.search.simple("bob")
        entries = table.search.history.entries
        assert [(e.query, e.mode) for e in entries] == [("bob", "simple"), ("2=api", "column")]
        assert store.get("people:search-history")
        result = table.search.recall(entries[1])
        assert result.mode is SearchMode.COLUMN
        assert result.matches == 2

    def test_history_cap(self, make_table):
        handle = make_table(search=SearchConfig(max_history_items=3))
        for query in ["ann", "bob", "cara", "dan"]:
            handle.search.simple(query)
        assert [e.query for e in handle.search.history] == ["dan", "cara", "bob"]

    def test_quick_search_does_not_record(self, table):
        table.search.quick_search("api")
        assert len(table.search.history) == 0
        assert table.host.page_info().records_display == 2

    def test_quick_search_invalid_regex_ignored(self, make_table):
        handle = make_table(search=SearchConfig(enable_regex=True))
        handle.search.simple("api")
        assert handle.search.quick_search("[bad", regex=True) is None
        assert handle.host.page_info().records_display == 2

    def test_highlight_toggle(self, table):
        table.search.simple("api")
        table.search.set_highlight(False)
        assert table.host.cell_markup(0, 2) == "api"
        table.search.set_highlight(True)
        assert table.host.cell_markup(0, 2) == MARK.format("api")

    def test_operator_highlights_positive_terms_only(self, table):
        table.search.operator("open not bob")
        markup = table.host.cell_markup(0, 3)
        assert MARK.format("Open") in markup
        assert "search-highlight" not in table.host.cell_markup(0, 1)

    def test_apply_by_mode_name(self, table):
        assert table.search.apply("column", "2=api").matches == 2
        assert table.search.apply(SearchMode.SIMPLE, "eve").matches == 1
