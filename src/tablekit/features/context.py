"""TableContext: what every feature of one attached table shares."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from ..core.config import TableConfig
from ..core.events import EngineEvent, Event, EventBus
from ..core.hooks import Hooks
from ..core.registry import AggregationFn, Registry
from ..core.rows import find_row_id
from ..core.scheduler import Scheduler
from ..core.session import TableSession
from ..core.storage import KeyValueStore
from ..host.protocol import GridHost


@dataclass
class TableContext:
    """Session, host and collaborators for one table, passed by reference."""

    session: TableSession
    host: GridHost
    config: TableConfig
    bus: EventBus
    storage: KeyValueStore
    scheduler: Scheduler
    hooks: Hooks
    aggregations: Registry[AggregationFn]
    features: dict[str, Any] = field(default_factory=dict)
    unsubscribers: list[Callable[[], None]] = field(default_factory=list)
    ready: bool = False

    @property
    def table_id(self) -> str:
        return self.session.table_id

    def emit(self, kind: EngineEvent, **payload: Any) -> Event:
        return self.bus.emit(kind, self.table_id, **payload)

    def notify(self, message: str, level: str = "info") -> Event:
        return self.bus.notify(self.table_id, message, level)

    def row_id(self, index: int) -> Any:
        return find_row_id(self.host.row(index), self.config.row_id_field)

    def feature(self, name: str) -> Any:
        """Another feature of this table, or None when it is not enabled."""
        return self.features.get(name)

    def track(self, *unsubscribers: Callable[[], None]) -> None:
        self.unsubscribers.extend(unsubscribers)
