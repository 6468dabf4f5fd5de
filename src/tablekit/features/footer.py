"""Footer aggregates recomputed from the filtered column data on every draw."""

from __future__ import annotations

import numbers
from typing import Any, Callable

import pandas as pd
from loguru import logger
from markupsafe import Markup, escape

from ..core.config import FooterColumnSpec
from ..core.registry import UNREGISTERED
from ..display_utils import format_number, is_empty
from .context import TableContext


def _numeric(values: pd.Series) -> pd.Series:
    return pd.to_numeric(values, errors="coerce")


def _hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def agg_sum(values: pd.Series) -> float:
    """Non-numeric entries contribute 0."""
    return float(_numeric(values).fillna(0).sum())


def agg_average(values: pd.Series) -> float:
    """Mean over numeric entries only; 0 when there are none."""
    numeric = _numeric(values).dropna()
    return float(numeric.mean()) if len(numeric) else 0


def agg_min(values: pd.Series) -> float:
    numeric = _numeric(values).dropna()
    return float(numeric.min()) if len(numeric) else 0


def agg_max(values: pd.Series) -> float:
    numeric = _numeric(values).dropna()
    return float(numeric.max()) if len(numeric) else 0


def agg_count(values: pd.Series) -> int:
    return int(sum(not is_empty(v) for v in values))


def agg_count_unique(values: pd.Series) -> int:
    return len({_hashable(v) for v in values if not is_empty(v)})


AGGREGATIONS: dict[str, Callable[[pd.Series], Any]] = {
    "sum": agg_sum,
    "average": agg_average,
    "min": agg_min,
    "max": agg_max,
    "count": agg_count,
    "count_unique": agg_count_unique,
}


def _plain_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_footer_value(value: Any, spec: FooterColumnSpec) -> str:
    """Apply decimals, grouping, prefix/suffix and label to one aggregate.

    Examples::

        spec = FooterColumnSpec(column_index=2, aggregation="sum", decimals=2, prefix="$")
        format_footer_value(1234.5, spec)   # -> "$1,234.50"
    """
    if is_empty(value):
        return spec.empty_text or "-"

    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        number = float(value)
        if spec.thousands_separator:
            if spec.decimals is not None:
                number = float(f"{number:.{spec.decimals}f}")
            text = format_number(
                number,
                min_fraction=spec.decimals or 0,
                max_fraction=spec.decimals or 2,
            )
        elif spec.decimals is not None:
            text = f"{number:.{spec.decimals}f}"
        else:
            text = _plain_number(number)
    else:
        text = str(value)

    formatted = escape(spec.prefix) + escape(text) + escape(spec.suffix)
    if spec.label:
        formatted = Markup(
            '<span class="footer-label">{}:</span> <span class="footer-value">{}</span>'
        ).format(spec.label, formatted)
    return str(formatted)


class FooterAggregator:
    """Writes one formatted aggregate per configured footer column."""

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.specs: list[FooterColumnSpec] = list(ctx.config.footer.columns)

    def attach(self) -> None:
        self.update()
        self.ctx.track(self.ctx.host.on_draw(self.update))

    def compute(self, spec: FooterColumnSpec) -> Any:
        host = self.ctx.host
        if spec.aggregation == "static":
            return spec.static_text
        values = host.column_data(spec.column_index, applied=True)
        if spec.aggregation == "custom":
            fn = self.ctx.aggregations.resolve(spec.custom_function)
            if fn is UNREGISTERED:
                logger.warning(
                    "[{}] Footer aggregation '{}' is not registered",
                    self.ctx.table_id, spec.custom_function,
                )
                return ""
            try:
                return fn(values, spec, host, spec.column_index)
            except Exception:
                logger.exception(
                    "[{}] Footer aggregation '{}' failed",
                    self.ctx.table_id, spec.custom_function,
                )
                return ""
        return AGGREGATIONS[spec.aggregation](values)

    def values(self) -> dict[int, Any]:
        """Raw aggregate per footer column index, skipping missing columns."""
        result = {}
        for spec in self.specs:
            if not 0 <= spec.column_index < self.ctx.host.column_count:
                continue
            result[spec.column_index] = self.compute(spec)
        return result

    def update(self) -> None:
        host = self.ctx.host
        for spec in self.specs:
            if not 0 <= spec.column_index < host.column_count:
                logger.warning(
                    "[Footer] Column index {} does not exist in table {}. Skipping.",
                    spec.column_index, self.ctx.table_id,
                )
                continue
            markup = format_footer_value(self.compute(spec), spec)
            host.set_footer(spec.column_index, markup, spec.class_name)

    refresh = update
