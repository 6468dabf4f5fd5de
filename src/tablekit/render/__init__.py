"""Cell rendering: built-in renderers and column definitions."""

from .columns import (
    ColumnDef,
    build_column_defs,
    default_aggregation_registry,
    default_render_registry,
)
from .helpers import BUILTIN_AGGREGATIONS, BUILTIN_RENDERERS

__all__ = [
    "ColumnDef",
    "build_column_defs",
    "default_aggregation_registry",
    "default_render_registry",
    "BUILTIN_AGGREGATIONS",
    "BUILTIN_RENDERERS",
]
