"""Display utilities for column titles and cell text."""

from __future__ import annotations

import html
import re
from typing import Any

import numpy as np

_TAG_RE = re.compile(r"<[^>]*>")

_ACRONYMS = {
    "id", "url", "uri", "api", "ip", "uuid", "csv", "json", "sku",
    "utc", "gdp", "cpu", "os",
}


def prettify_name(name: str) -> str:
    """Convert snake_case or dotted data paths to Title Case with smart acronyms.

    Examples::

        prettify_name("user_id")       # -> "User ID"
        prettify_name("owner.name")    # -> "Owner Name"
        prettify_name("api_url")       # -> "API URL"
    """
    words = name.replace(".", " ").replace("_", " ").split()
    return " ".join(
        w.upper() if w.lower() in _ACRONYMS else w.capitalize()
        for w in words
    )


def is_empty(value: Any) -> bool:
    """None, NaN and the empty string count as empty cell values."""
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def cell_text(value: Any) -> str:
    """Plain text of a cell display value: tags removed, entities decoded."""
    if is_empty(value):
        return ""
    return html.unescape(_TAG_RE.sub("", str(value)))


def format_number(
    value: float,
    min_fraction: int = 0,
    max_fraction: int = 3,
    grouping: bool = True,
) -> str:
    """Format like ``Number.toLocaleString('en-US')``.

    Rounds to ``max_fraction`` digits, then drops trailing zeros down to
    ``min_fraction`` digits.

    Examples::

        format_number(1234.5)                  # -> "1,234.5"
        format_number(1234.5, 2, 2)            # -> "1,234.50"
        format_number(1234.567, 0, 2, False)   # -> "1234.57"
    """
    spec = f",.{max_fraction}f" if grouping else f".{max_fraction}f"
    text = format(value, spec)
    if "." in text and max_fraction > min_fraction:
        whole, frac = text.split(".")
        frac = frac.rstrip("0").ljust(min_fraction, "0")
        text = f"{whole}.{frac}" if frac else whole
    return text
