"""HTML for the inline edit surface of one cell."""

from __future__ import annotations

import pathlib
from typing import Any

import jinja2
import pandas as pd

from ..core.config import ColumnSpec
from ..display_utils import is_empty

_TEMPLATE_DIR = pathlib.Path(__file__).parent / "templates"

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=True,
)


def _iso_date(value: Any) -> str:
    if is_empty(value):
        return ""
    try:
        return pd.Timestamp(value).strftime("%Y-%m-%d")
    except (TypeError, ValueError):
        return ""


def _select_options(column: ColumnSpec, value: Any) -> list[dict]:
    options = []
    for opt in column.edit_options:
        if isinstance(opt, dict):
            opt_value, opt_label = opt.get("value"), opt.get("label", opt.get("value"))
        else:
            opt_value, opt_label = opt, opt
        options.append({
            "value": opt_value,
            "label": opt_label,
            "selected": not is_empty(value) and str(opt_value) == str(value),
        })
    return options


def render_edit_surface(column: ColumnSpec, value: Any, error: str | None = None) -> str:
    """Pre-filled input (by edit type) plus save/cancel controls."""
    if column.edit_type == "date":
        shown = _iso_date(value)
    else:
        shown = "" if is_empty(value) else value
    template = _env.get_template("edit_surface.html.j2")
    return template.render(
        edit_type=column.edit_type,
        value=shown,
        placeholder=column.edit_placeholder,
        min=column.edit_min,
        max=column.edit_max,
        step=column.edit_step,
        allow_empty=column.edit_allow_empty,
        options=_select_options(column, value),
        error=error,
    )


def render_keyboard_help(table_id: str, shortcuts: list[dict]) -> str:
    template = _env.get_template("keyboard_help.html.j2")
    return template.render(table_id=table_id, shortcuts=shortcuts)
