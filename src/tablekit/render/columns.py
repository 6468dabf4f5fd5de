"""Column definitions: resolve render names once, at definition time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger
from markupsafe import Markup

from ..core.config import ColumnSpec
from ..core.registry import UNREGISTERED, AggregationFn, Registry, RenderFn
from .helpers import BUILTIN_AGGREGATIONS, BUILTIN_RENDERERS

_EDITABLE_WRAPPER = Markup('<div class="cell-display">{}</div><div class="cell-edit"></div>')


def default_render_registry() -> Registry[RenderFn]:
    """A fresh registry pre-loaded with the built-in cell renderers."""
    return Registry("render function", BUILTIN_RENDERERS)


def default_aggregation_registry() -> Registry[AggregationFn]:
    """A fresh registry pre-loaded with the built-in footer aggregations."""
    return Registry("footer aggregation", BUILTIN_AGGREGATIONS)


@dataclass(frozen=True)
class ColumnDef:
    """A column spec bound to its resolved render function."""

    index: int
    spec: ColumnSpec
    render_fn: RenderFn | None = None

    @property
    def title(self) -> str:
        return self.spec.title or ""

    @property
    def data(self) -> str | None:
        return self.spec.data

    @property
    def editable(self) -> bool:
        return self.spec.editable

    @property
    def searchable(self) -> bool:
        return self.spec.searchable

    def render(self, value: Any, kind: str, row: dict, meta: dict | None = None) -> Any:
        meta = {"col": self.index, "column": self.spec, **(meta or {})}
        output = value
        if self.render_fn is not None:
            output = self.render_fn(value, kind, row, meta)
        if kind == "display" and self.spec.editable:
            return _EDITABLE_WRAPPER.format("" if output is None else output)
        return output


def build_column_defs(
    columns: list[ColumnSpec],
    registry: Registry[RenderFn],
) -> list[ColumnDef]:
    """Bind every column to its render function.

    An unresolved render name is logged and the column falls back to
    displaying the raw value.
    """
    defs = []
    for index, spec in enumerate(columns):
        render_fn = None
        if spec.render:
            resolved = registry.resolve(spec.render)
            if resolved is UNREGISTERED:
                logger.warning(
                    "Render function '{}' for column '{}' is not registered; "
                    "showing raw values",
                    spec.render, spec.data,
                )
            else:
                render_fn = resolved
        defs.append(ColumnDef(index=index, spec=spec, render_fn=render_fn))
    return defs
