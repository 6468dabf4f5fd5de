"""Tests for the render registry, column definitions and built-in renderers."""

import pytest

from tablekit.core.config import ColumnSpec
from tablekit.core.registry import UNREGISTERED, Registry
from tablekit.display_utils import cell_text, format_number, is_empty, prettify_name
from tablekit.render import (
    build_column_defs,
    default_aggregation_registry,
    default_render_registry,
)
from tablekit.render.helpers import (
    clickable_cell,
    growth_rate,
    number,
    percentage,
    severity_badge,
    status_badge,
    timestamp,
    truncated_text,
)


class TestRegistry:

    def test_resolve_unknown_is_sentinel(self):
        registry = Registry("render function")
        result = registry.resolve("nope")
        assert result is UNREGISTERED
        assert not result
        assert repr(result) == "UNREGISTERED"

    def test_register_and_copy(self):
        registry = Registry("render function")
        registry.register("upper", lambda v, k, r=None, m=None: str(v).upper())
        clone = registry.copy()
        clone.unregister("upper")
        assert "upper" in registry
        assert "upper" not in clone
        assert registry.names() == ["upper"]

    def test_register_validates(self):
        registry = Registry("render function")
        with pytest.raises(ValueError):
            registry.register("", len)
        with pytest.raises(TypeError, match="callable"):
            registry.register("x", "not a function")

    def test_defaults(self):
        assert "status_badge" in default_render_registry()
        assert "clickable_cell" in default_render_registry()
        assert default_aggregation_registry().names() == ["percentage_of_total", "weighted_average"]

    def test_default_registries_are_fresh(self):
        first = default_render_registry()
        first.unregister("number")
        assert "number" in default_render_registry()


class TestColumnDefs:

    def test_unknown_render_falls_back_to_raw(self):
        defs = build_column_defs([ColumnSpec(data="x", render="sparkline")], default_render_registry())
        assert defs[0].render_fn is None
        assert defs[0].render("raw", "display", {}) == "raw"

    def test_editable_display_is_wrapped(self):
        defs = build_column_defs([ColumnSpec(data="x", editable=True)], default_render_registry())
        assert defs[0].render(10, "display", {}) == (
            '<div class="cell-display">10</div><div class="cell-edit"></div>'
        )
        assert defs[0].render(10, "sort", {}) == 10

    def test_render_receives_column_meta(self):
        seen = {}

        def spy(value, kind, row=None, meta=None):
            seen.update(meta)
            return value

        registry = Registry("render function", {"spy": spy})
        defs = build_column_defs([ColumnSpec(data="a"), ColumnSpec(data="b", render="spy")], registry)
        defs[1].render(1, "display", {"b": 1})
        assert seen["col"] == 1
        assert seen["column"].data == "b"


class TestRenderers:

    def test_status_badge(self):
        html = status_badge("open", "display")
        assert "bg-success" in html and "Open" in html
        assert "bg-secondary" in status_badge("closed", "display")
        assert status_badge("open", "sort") == "open"

    def test_badge_escapes_value(self):
        assert "&lt;b&gt;" in severity_badge("<b>", "display")

    def test_severity_badge(self):
        assert "bg-danger" in severity_badge("critical", "display")
        assert "bg-warning" in severity_badge("high", "display")
        assert "bg-secondary" in severity_badge("unknown", "display")

    def test_timestamp(self):
        assert timestamp("2024-01-05T15:04:00", "display") == "Jan 5, 2024, 03:04 PM"
        assert timestamp("not a date", "display") == "not a date"
        assert timestamp("2024-01-05T15:04:00", "sort") == "2024-01-05T15:04:00"

    def test_truncated_text(self):
        long = "x" * 60
        html = truncated_text(long, "display")
        assert f'title="{long}"' in html
        assert "x" * 50 + "..." in html
        assert truncated_text("short", "display") == "short"
        assert truncated_text(None, "display") == ""

    def test_number_and_percentage(self):
        assert number(1234567, "display") == "1,234,567"
        assert number(1234.5, "display") == "1,234.5"
        assert number("abc", "display") == "abc"
        assert percentage(12.345, "display") == "12.3%"

    def test_growth_rate(self):
        up = growth_rate(5, "display")
        assert "text-success" in up and "+5.0%" in up
        down = growth_rate(-2, "display")
        assert "text-danger" in down and "-2.0%" in down
        assert "text-secondary" in growth_rate(0, "display")

    def test_clickable_cell_encodes_placeholders(self):
        column = ColumnSpec(data="name", url_template="/users/{owner.email}")
        row = {"name": "Ann", "owner": {"email": "a b@x.org"}}
        html = clickable_cell("Ann", "display", row, {"column": column})
        assert html == '<a href="/users/a%20b%40x.org" class="dt-clickable">Ann</a>'

    def test_clickable_cell_missing_path_is_plain(self):
        column = ColumnSpec(data="name", url_template="/users/{owner.id}")
        assert clickable_cell("Ann", "display", {"name": "Ann"}, {"column": column}) == "Ann"


class TestDisplayUtils:

    def test_prettify_name(self):
        assert prettify_name("api_url") == "API URL"
        assert prettify_name("first_name") == "First Name"

    def test_is_empty(self):
        assert is_empty(None) and is_empty("") and is_empty(float("nan"))
        assert not is_empty(0) and not is_empty(" ")

    def test_cell_text(self):
        assert cell_text('<span class="x">Tom &amp; Jerry</span>') == "Tom & Jerry"
        assert cell_text(None) == ""

    def test_format_number(self):
        assert format_number(1234.5) == "1,234.5"
        assert format_number(1234.5, 2, 2) == "1,234.50"
        assert format_number(1234.567, 0, 2, grouping=False) == "1234.57"
        assert format_number(1000.0) == "1,000"
