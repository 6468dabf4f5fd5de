"""TableEngine: attaches the interactive features to grid hosts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from .core.config import (
    AccessibilityConfig,
    FooterConfig,
    KeyboardConfig,
    SearchConfig,
    SelectionConfig,
    TableConfig,
)
from .core.errors import DuplicateSessionError, TableKitError
from .core.events import EngineEvent, EventBus
from .core.hooks import Hooks
from .core.registry import AggregationFn, Registry, RenderFn
from .core.scheduler import AsyncioScheduler, Scheduler
from .core.session import SessionStore, TableSession
from .core.storage import KeyValueStore, MemoryStore
from .features.announcer import Announcer
from .features.context import TableContext
from .features.editing import CellEditController
from .features.footer import FooterAggregator
from .features.keyboard import KeyboardManager
from .features.selection import SelectionManager
from .host.protocol import GridHost
from .render.columns import default_aggregation_registry, default_render_registry
from .search.engine import SearchEngine


@dataclass
class TableHandle:
    """Public entry points of one attached table."""

    ctx: TableContext

    @property
    def table_id(self) -> str:
        return self.ctx.table_id

    @property
    def session(self) -> TableSession:
        return self.ctx.session

    @property
    def host(self) -> GridHost:
        return self.ctx.host

    @property
    def ready(self) -> bool:
        return self.ctx.ready

    @property
    def footer(self) -> FooterAggregator | None:
        return self.ctx.feature("footer")

    @property
    def selection(self) -> SelectionManager | None:
        return self.ctx.feature("selection")

    @property
    def editing(self) -> CellEditController | None:
        return self.ctx.feature("editing")

    @property
    def search(self) -> SearchEngine | None:
        return self.ctx.feature("search")

    @property
    def keyboard(self) -> KeyboardManager | None:
        return self.ctx.feature("keyboard")

    @property
    def announcer(self) -> Announcer | None:
        return self.ctx.feature("announcer")

    def __repr__(self) -> str:
        return f"TableHandle({self.table_id!r}, features={list(self.ctx.features)})"


class TableEngine:
    """Owns the session store and shared collaborators for many tables.

    Usage::

        engine = TableEngine(hooks=Hooks(save_cell=save))
        grid = FrameGrid.from_records(rows, config.columns)
        handle = engine.attach(grid, config)
        handle.search.operator("error AND (prod OR staging) NOT resolved")
    """

    def __init__(
        self,
        hooks: Hooks | None = None,
        storage: KeyValueStore | None = None,
        scheduler: Scheduler | None = None,
        renderers: Registry[RenderFn] | None = None,
        aggregations: Registry[AggregationFn] | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.sessions = SessionStore()
        self.hooks = hooks or Hooks()
        self.storage = storage if storage is not None else MemoryStore()
        self.scheduler = scheduler or AsyncioScheduler()
        self.renderers = renderers or default_render_registry()
        self.aggregations = aggregations or default_aggregation_registry()
        self.bus = bus or EventBus()
        self._handles: dict[str, TableHandle] = {}

    def attach(self, host: GridHost, config: TableConfig | dict[str, Any]) -> TableHandle:
        """Create the session for ``config.table_id`` and start features once the grid is ready.

        Attaching a table id that is already attached logs and returns the
        existing handle.
        """
        if isinstance(config, dict):
            config = TableConfig.from_dict(config)
        table_id = config.table_id
        try:
            session = self.sessions.create(table_id)
        except DuplicateSessionError as exc:
            logger.warning("{}", exc)
            return self._handles[table_id]

        ctx = TableContext(
            session=session,
            host=host,
            config=config,
            bus=self.bus,
            storage=self.storage,
            scheduler=self.scheduler,
            hooks=self.hooks,
            aggregations=self.aggregations,
        )
        handle = TableHandle(ctx)
        self._handles[table_id] = handle
        ctx.track(
            host.on_ready(lambda: self._start(ctx)),
            host.on_destroy(lambda: self.detach(table_id)),
        )
        return handle

    def _start(self, ctx: TableContext) -> None:
        """Initialize features leaf-first; the announcer always comes last."""
        config = ctx.config
        selection = config.selection or SelectionConfig()
        footer = config.footer or FooterConfig()
        search = config.search or SearchConfig()
        keyboard = config.keyboard or KeyboardConfig()
        accessibility = config.accessibility or AccessibilityConfig()
        config.selection, config.footer, config.search = selection, footer, search
        config.keyboard, config.accessibility = keyboard, accessibility

        host = ctx.host
        ctx.track(
            host.on_page(
                lambda info: ctx.emit(EngineEvent.PAGE_CHANGED, page=info.page, pages=info.pages)
            ),
            host.on_order(lambda order: ctx.emit(EngineEvent.SORT_CHANGED, order=order)),
        )

        plan = [
            ("footer", footer.enabled and bool(footer.columns), FooterAggregator),
            ("selection", selection.enabled, SelectionManager),
            ("editing", config.editable, CellEditController),
            ("search", search.enabled, SearchEngine),
            ("keyboard", keyboard.enabled, KeyboardManager),
            ("announcer", accessibility.enabled, Announcer),
        ]
        for name, enabled, feature_cls in plan:
            if not enabled:
                continue
            try:
                feature = feature_cls(ctx)
                ctx.features[name] = feature
                feature.attach()
            except TableKitError as exc:
                logger.error("[{}] {} disabled: {}", ctx.table_id, name, exc)
                ctx.features.pop(name, None)
        ctx.ready = True
        logger.info("[{}] Table ready with {}", ctx.table_id, list(ctx.features))

    def get(self, table_id: str) -> TableHandle:
        self.sessions.get(table_id)
        return self._handles[table_id]

    def detach(self, table_id: str) -> None:
        """Tear down a table: listeners removed, session destroyed."""
        handle = self._handles.pop(table_id, None)
        if handle is None:
            return
        ctx = handle.ctx
        announcer = ctx.feature("announcer")
        if announcer is not None:
            announcer.destroy()
        for unsubscribe in reversed(ctx.unsubscribers):
            unsubscribe()
        ctx.unsubscribers.clear()
        ctx.features.clear()
        self.sessions.destroy(table_id)
        logger.debug("[{}] Detached", table_id)

    @property
    def table_ids(self) -> list[str]:
        return self.sessions.table_ids

    def __contains__(self, table_id: object) -> bool:
        return table_id in self.sessions
