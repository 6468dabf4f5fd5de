"""Built-in cell renderers and footer aggregations.

Renderers share the signature ``fn(value, kind, row, meta)`` where
``kind`` is one of ``"display"``, ``"filter"`` or ``"sort"``. Only the
display kind produces markup; every other kind returns the raw value so
sorting and filtering see the data, not the HTML.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

import pandas as pd
from loguru import logger
from markupsafe import Markup, escape

from ..core.rows import get_nested_value
from ..display_utils import format_number, is_empty

DISPLAY = "display"

_PLACEHOLDER_RE = re.compile(r"\{([^}]+)\}")

_SEVERITY_THEMES = {"critical": "danger", "high": "warning", "medium": "info"}
_SEVERITY_ICONS = {
    "critical": "bi-exclamation-octagon-fill",
    "high": "bi-exclamation-triangle-fill",
    "medium": "bi-info-circle-fill",
}
_TREND_THEMES = {"growing": "success", "stable": "info", "declining": "warning"}
_TREND_ICONS = {
    "growing": "bi-graph-up-arrow",
    "stable": "bi-graph-up",
    "declining": "bi-graph-down-arrow",
}


def _badge(theme: str, icon: str, value: Any) -> str:
    text = str(value)
    label = text[:1].upper() + text[1:]
    return Markup('<span class="badge bg-{}"><i class="{}"></i> {}</span>').format(
        theme, icon, label
    )


def _as_float(value: Any) -> float | None:
    number = pd.to_numeric(pd.Series([value], dtype=object), errors="coerce").iloc[0]
    return None if pd.isna(number) else float(number)


# ---------------------------------------------------------------------------
# Cell renderers
# ---------------------------------------------------------------------------

def status_badge(value, kind, row=None, meta=None):
    if kind != DISPLAY or is_empty(value):
        return value
    is_open = value == "open"
    return _badge(
        "success" if is_open else "secondary",
        "bi-check-circle-fill" if is_open else "bi-check-all",
        value,
    )


def severity_badge(value, kind, row=None, meta=None):
    if kind != DISPLAY or is_empty(value):
        return value
    return _badge(
        _SEVERITY_THEMES.get(value, "secondary"),
        _SEVERITY_ICONS.get(value, "bi-question-circle-fill"),
        value,
    )


def trend_badge(value, kind, row=None, meta=None):
    if kind != DISPLAY or is_empty(value):
        return value
    return _badge(
        _TREND_THEMES.get(value, "secondary"),
        _TREND_ICONS.get(value, "bi-question-circle"),
        value,
    )


def timestamp(value, kind, row=None, meta=None):
    """ISO-8601 string -> ``Jan 5, 2024, 03:04 PM``."""
    if kind != DISPLAY or is_empty(value):
        return value
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        logger.warning("Invalid timestamp format: {!r}", value)
        return value
    if pd.isna(ts):
        return value
    return f"{ts:%b} {ts.day}, {ts.year}, {ts:%I:%M %p}"


def truncated_text(value, kind, row=None, meta=None, max_length: int = 50):
    if value is None:
        return ""
    text = str(value)
    if kind == DISPLAY and len(text) > max_length:
        return Markup('<span title="{}">{}...</span>').format(text, text[:max_length])
    return value


def clickable_cell(value, kind, row=None, meta=None):
    """Link the cell to ``column.url_template`` with ``{dot.path}`` placeholders.

    Placeholder values are URL-encoded. If any placeholder cannot be
    resolved against the row the plain value is returned instead of a link.
    """
    column = (meta or {}).get("column")
    template = getattr(column, "url_template", None)
    if kind != DISPLAY or not template or is_empty(value):
        return "" if value is None else value
    url = template
    for placeholder in _PLACEHOLDER_RE.findall(template):
        resolved = get_nested_value(row or {}, placeholder)
        if resolved is None:
            logger.warning("Property path '{}' not found in row data", placeholder)
            return value
        url = url.replace("{" + placeholder + "}", quote(str(resolved), safe=""))
    return Markup('<a href="{}" class="dt-clickable">{}</a>').format(url, value)


def number(value, kind, row=None, meta=None):
    """Thousands-grouped number, e.g. ``1234567 -> 1,234,567``."""
    if kind != DISPLAY or is_empty(value):
        return value
    parsed = _as_float(value)
    return value if parsed is None else format_number(parsed)


def percentage(value, kind, row=None, meta=None):
    if kind != DISPLAY or is_empty(value):
        return value
    parsed = _as_float(value)
    return value if parsed is None else f"{parsed:.1f}%"


def growth_rate(value, kind, row=None, meta=None):
    if kind != DISPLAY or is_empty(value):
        return value
    parsed = _as_float(value)
    if parsed is None:
        return value
    if parsed > 0:
        color, icon, sign = "text-success", "bi-arrow-up", "+"
    elif parsed < 0:
        color, icon, sign = "text-danger", "bi-arrow-down", ""
    else:
        color, icon, sign = "text-secondary", "bi-dash", ""
    return Markup('<span class="{}"><i class="bi {}"></i> {}{}%</span>').format(
        color, icon, sign, f"{parsed:.1f}"
    )


BUILTIN_RENDERERS = {
    "status_badge": status_badge,
    "severity_badge": severity_badge,
    "trend_badge": trend_badge,
    "timestamp": timestamp,
    "truncated_text": truncated_text,
    "clickable_cell": clickable_cell,
    "number": number,
    "percentage": percentage,
    "growth_rate": growth_rate,
}


# ---------------------------------------------------------------------------
# Footer aggregations: fn(values, spec, host, column_index) -> value
# ---------------------------------------------------------------------------

def _numeric_sum(values: pd.Series) -> float:
    return float(pd.to_numeric(values, errors="coerce").fillna(0).sum())


def weighted_average(values: pd.Series, spec=None, host=None, column_index=None):
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    if numeric.empty:
        return 0
    return float(numeric.mean())


def percentage_of_total(values: pd.Series, spec, host, column_index=None):
    """Share of this column's sum in the ``reference_column`` sum, in percent."""
    current = _numeric_sum(values)
    reference = host.column_data(spec.reference_column, applied=True)
    total = _numeric_sum(reference)
    return current / total * 100 if total > 0 else 0


BUILTIN_AGGREGATIONS = {
    "weighted_average": weighted_average,
    "percentage_of_total": percentage_of_total,
}
