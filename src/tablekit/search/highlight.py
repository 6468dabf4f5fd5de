"""Wrap matches in ``<mark class="search-highlight">``, touching text only."""

from __future__ import annotations

import html
import re

from markupsafe import Markup, escape

MARK_CLASS = "search-highlight"

_MARK_RE = re.compile(r'<mark class="search-highlight">(.*?)</mark>', re.DOTALL)
_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")


def strip_highlights(markup: str) -> str:
    """Remove highlight marks, keeping their content."""
    return _MARK_RE.sub(r"\1", markup)


def _highlight_text(text: str, pattern: re.Pattern) -> tuple[str, int]:
    parts: list[str] = []
    last = 0
    count = 0
    for match in pattern.finditer(text):
        start, end = match.span()
        if start == end:
            continue
        parts.append(escape(text[last:start]))
        parts.append(Markup('<mark class="{}">{}</mark>').format(MARK_CLASS, text[start:end]))
        last = end
        count += 1
    if not count:
        return "", 0
    parts.append(escape(text[last:]))
    return "".join(parts), count


def highlight_markup(markup: str, pattern: re.Pattern | None) -> tuple[str, int]:
    """Return ``markup`` with previous marks removed and new matches marked.

    Only text between tags is searched; tags and attributes are left
    untouched. The second value is the number of marks inserted.
    """
    clean = strip_highlights(markup)
    if pattern is None:
        return clean, 0
    out: list[str] = []
    total = 0
    for segment in _TAG_SPLIT_RE.split(clean):
        if not segment or segment.startswith("<"):
            out.append(segment)
            continue
        marked, count = _highlight_text(html.unescape(segment), pattern)
        if count:
            out.append(marked)
            total += count
        else:
            out.append(segment)
    return "".join(out), total


def literal_pattern(*terms: str) -> re.Pattern | None:
    """Case-insensitive alternation of literal terms, longest first."""
    unique = sorted({t for t in terms if t}, key=len, reverse=True)
    if not unique:
        return None
    return re.compile("|".join(re.escape(t) for t in unique), re.IGNORECASE)
