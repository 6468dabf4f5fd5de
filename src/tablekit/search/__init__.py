"""Search: simple, regex, operator-expression and per-column modes."""

from .engine import SearchEngine, SearchResult
from .expression import And, Literal, Not, Or, Term, evaluate, parse, positive_terms
from .highlight import highlight_markup, strip_highlights
from .history import SearchHistory, SearchHistoryEntry

__all__ = [
    "SearchEngine",
    "SearchResult",
    "And",
    "Literal",
    "Not",
    "Or",
    "Term",
    "evaluate",
    "parse",
    "positive_terms",
    "highlight_markup",
    "strip_highlights",
    "SearchHistory",
    "SearchHistoryEntry",
]
