"""Configuration objects consumed when a table is attached.

Every concern gets its own ``param.Parameterized`` class so values are
type-checked on assignment. ``TableConfig.from_dict`` accepts the
camelCase dictionaries that page templates usually embed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any, Callable

import param
from loguru import logger

from ..display_utils import prettify_name
from .errors import ConfigurationError

EDIT_TYPES = ["text", "number", "select", "date", "textarea"]
AGGREGATIONS = [
    "sum", "average", "min", "max", "count", "count_unique", "static", "custom",
]
BULK_ACTIONS = ["delete", "export", "update"]

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    """``editPatternMessage`` -> ``edit_pattern_message``."""
    return _CAMEL_RE.sub("_", key).lower()


def _normalize(data: dict[str, Any]) -> dict[str, Any]:
    return {snake_case(k): v for k, v in data.items()}


def _known_params(cls: type[param.Parameterized], data: dict[str, Any]) -> dict[str, Any]:
    known = set(cls.param) - {"name"}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("{}: ignoring unknown options {}", cls.__name__, unknown)
    return {k: v for k, v in data.items() if k in known}


class ColumnSpec(param.Parameterized):
    """One grid column: data accessor, rendering and edit behaviour."""

    data = param.String(default=None, allow_None=True, doc="Dot path into row data")
    title = param.String(default=None, allow_None=True)
    render = param.String(default=None, allow_None=True, doc="Registered render function name")
    url_template = param.String(default=None, allow_None=True)
    class_name = param.String(default="")

    editable = param.Boolean(default=False)
    edit_type = param.Selector(default="text", objects=EDIT_TYPES)
    edit_options = param.List(default=[])
    edit_allow_empty = param.Boolean(default=True)
    edit_required = param.Boolean(default=False)
    edit_min = param.Number(default=None, allow_None=True)
    edit_max = param.Number(default=None, allow_None=True)
    edit_step = param.Number(default=None, allow_None=True)
    edit_pattern = param.String(default=None, allow_None=True)
    edit_pattern_message = param.String(default="Invalid format")
    edit_placeholder = param.String(default="Enter value...")

    orderable = param.Boolean(default=True)
    searchable = param.Boolean(default=True)
    width = param.String(default=None, allow_None=True)
    responsive_priority = param.Integer(default=None, allow_None=True)

    def __init__(self, **params):
        super().__init__(**params)
        if self.title is None:
            self.title = prettify_name(self.data) if self.data else ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnSpec:
        values = _normalize(data)
        if isinstance(values.get("width"), (int, float)):
            values["width"] = f"{values['width']}px"
        return cls(**_known_params(cls, values))


@dataclass(frozen=True)
class FooterColumnSpec:
    """Declarative description of one footer aggregate cell."""

    column_index: int
    aggregation: str = "static"
    decimals: int | None = None
    prefix: str = ""
    suffix: str = ""
    label: str | None = None
    thousands_separator: bool = True
    empty_text: str = "-"
    class_name: str = ""
    static_text: str = ""
    custom_function: str | None = None
    reference_column: int = 0

    def __post_init__(self) -> None:
        if self.aggregation not in AGGREGATIONS:
            raise ConfigurationError(
                f"Unknown footer aggregation '{self.aggregation}'. "
                f"Expected one of {AGGREGATIONS}."
            )
        if self.aggregation == "custom" and not self.custom_function:
            raise ConfigurationError(
                f"Footer column {self.column_index}: 'custom' aggregation "
                "needs a custom_function name."
            )
        if self.decimals is not None and self.decimals < 0:
            raise ConfigurationError("Footer decimals must be >= 0.")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FooterColumnSpec:
        values = _normalize(data)
        if "content" in values:
            values.setdefault("aggregation", "static")
            values.setdefault("static_text", values.pop("content"))
        if "aggregation" in values:
            values["aggregation"] = snake_case(values["aggregation"])
        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - allowed)
        if unknown:
            logger.warning("FooterColumnSpec: ignoring unknown options {}", unknown)
        return cls(**{k: v for k, v in values.items() if k in allowed})


@dataclass(frozen=True)
class Shortcut:
    """A custom key binding checked before the default shortcuts."""

    key: str
    handler: Callable[..., Any]
    announce: str | None = None


class SelectionConfig(param.Parameterized):
    enabled = param.Boolean(default=True)
    select_all = param.Boolean(default=True)
    bulk_actions = param.ListSelector(default=["delete", "export"], objects=BULK_ACTIONS)
    persist_selection = param.Boolean(default=False)
    export_delimiter = param.String(default=",")


class FooterConfig(param.Parameterized):
    enabled = param.Boolean(default=True)
    columns = param.List(default=[], item_type=FooterColumnSpec)


class SearchConfig(param.Parameterized):
    enabled = param.Boolean(default=True)
    highlight_results = param.Boolean(default=True)
    enable_regex = param.Boolean(default=False)
    show_search_history = param.Boolean(default=True)
    max_history_items = param.Integer(default=20, bounds=(1, None))


class KeyboardConfig(param.Parameterized):
    enabled = param.Boolean(default=True)
    arrow_key_navigation = param.Boolean(default=True)
    auto_page_down = param.Boolean(default=True)
    enter_to_edit = param.Boolean(default=True)
    enter_to_select = param.Boolean(default=False)
    space_to_select = param.Boolean(default=True)
    tab_through_editable = param.Boolean(default=False)
    announce_position = param.Boolean(default=False)
    custom_shortcuts = param.List(default=[], item_type=Shortcut)

    search_shortcut = param.Boolean(default=True)
    select_all_shortcut = param.Boolean(default=True)
    export_shortcut = param.Boolean(default=True)
    refresh_shortcut = param.Boolean(default=True)
    escape_shortcut = param.Boolean(default=True)
    page_shortcuts = param.Boolean(default=True)
    help_shortcut = param.Boolean(default=True)


class AccessibilityConfig(param.Parameterized):
    enabled = param.Boolean(default=True)
    table_label = param.String(default=None, allow_None=True)
    table_description = param.String(default=None, allow_None=True)
    initialized_message = param.String(default="Data table loaded and ready")

    announce_row_count = param.Boolean(default=True)
    announce_update = param.Boolean(default=True)
    announce_sort = param.Boolean(default=True)
    announce_search = param.Boolean(default=True)
    announce_page = param.Boolean(default=True)
    announce_length = param.Boolean(default=True)
    announce_selection = param.Boolean(default=True)
    announce_data_change = param.Boolean(default=True)
    announce_filter = param.Boolean(default=True)


class TableConfig(param.Parameterized):
    """Everything the engine needs to know about one table."""

    table_id = param.String(default="", doc="Unique table identifier")
    columns = param.List(default=[], item_type=ColumnSpec)
    row_id_field = param.String(default=None, allow_None=True,
                                doc="Alias checked after 'id' and '_id'")
    page_length = param.Integer(default=25, bounds=(1, None))

    selection = param.ClassSelector(class_=SelectionConfig, default=None, allow_None=True)
    footer = param.ClassSelector(class_=FooterConfig, default=None, allow_None=True)
    search = param.ClassSelector(class_=SearchConfig, default=None, allow_None=True)
    keyboard = param.ClassSelector(class_=KeyboardConfig, default=None, allow_None=True)
    accessibility = param.ClassSelector(class_=AccessibilityConfig, default=None,
                                        allow_None=True)

    def __init__(self, **params):
        super().__init__(**params)
        self.validate()

    def validate(self) -> None:
        if not self.table_id:
            raise ConfigurationError("TableConfig needs a table_id.")
        if not self.columns:
            raise ConfigurationError(
                f"Table '{self.table_id}' needs at least one column."
            )

    @property
    def editable(self) -> bool:
        return any(col.editable for col in self.columns)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableConfig:
        """Build a config from a (possibly camelCase) dictionary.

        Section keys follow the page-template names: ``selectionConfig``,
        ``footerConfig``, ``searchConfig``, ``keyboardConfig`` and
        ``ariaConfig``/``accessibilityConfig``.
        """
        values = _normalize(data)
        if "id" in values and "table_id" not in values:
            values["table_id"] = values.pop("id")
        values["columns"] = [
            c if isinstance(c, ColumnSpec) else ColumnSpec.from_dict(c)
            for c in values.get("columns", [])
        ]

        sections = {
            "selection": (("selection_config", "selection"), SelectionConfig),
            "search": (("search_config", "search"), SearchConfig),
            "keyboard": (("keyboard_config", "keyboard"), KeyboardConfig),
            "accessibility": (
                ("aria_config", "accessibility_config", "accessibility"),
                AccessibilityConfig,
            ),
        }
        for target, (keys, section_cls) in sections.items():
            raw = None
            for key in keys:
                if key in values:
                    raw = values.pop(key)
            if raw is None or isinstance(raw, section_cls):
                values[target] = raw
                continue
            section = _normalize(raw)
            if section_cls is KeyboardConfig and "custom_shortcuts" in section:
                section["custom_shortcuts"] = [
                    s if isinstance(s, Shortcut) else Shortcut(**s)
                    for s in section["custom_shortcuts"]
                ]
            if section_cls is AccessibilityConfig and "messages" in section:
                messages = _normalize(section.pop("messages"))
                if "initialized" in messages:
                    section["initialized_message"] = messages["initialized"]
            values[target] = section_cls(**_known_params(section_cls, section))

        raw_footer = values.pop("footer_config", values.pop("footer", None))
        if raw_footer is not None and not isinstance(raw_footer, FooterConfig):
            footer = _normalize(raw_footer)
            footer["columns"] = [
                c if isinstance(c, FooterColumnSpec) else FooterColumnSpec.from_dict(c)
                for c in footer.get("columns", [])
            ]
            raw_footer = FooterConfig(**_known_params(FooterConfig, footer))
        values["footer"] = raw_footer

        return cls(**_known_params(cls, values))
