"""EventBus: engine events and subscriber registry."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable

from loguru import logger


class EngineEvent(str, enum.Enum):
    """Events emitted to collaborators. Values are the public event names."""

    SELECTION_CHANGED = "selection-changed"
    CELL_SAVED = "cell-saved"
    CELL_SAVE_CANCELLED = "cell-save-cancelled"
    SEARCH_APPLIED = "search-applied"
    SEARCH_CLEARED = "search-cleared"
    PAGE_CHANGED = "page-changed"
    SORT_CHANGED = "sort-changed"
    BULK_ACTION_COMPLETED = "bulk-action-completed"
    NOTIFICATION = "notification"
    DATA_CHANGED = "data-changed"
    FOCUS_MOVED = "focus-moved"
    HELP_REQUESTED = "help-requested"
    SHORTCUT_TRIGGERED = "shortcut-triggered"
    ANNOUNCED = "announced"


@dataclass(frozen=True)
class Event:
    """One emitted event: its kind, the table it concerns and a payload."""

    kind: EngineEvent
    table_id: str
    payload: dict[str, Any] = field(default_factory=dict)


EventCallback = Callable[[Event], Any]


class EventBus:
    """Synchronous publish/subscribe channel shared by one engine.

    Subscribers may listen to one event kind or, with ``kind=None``, to
    everything. A failing subscriber is logged and does not stop delivery
    to the others.
    """

    def __init__(self) -> None:
        self._subscribers: dict[EngineEvent | None, list[EventCallback]] = {}

    def subscribe(
        self,
        kind: EngineEvent | str | None,
        callback: EventCallback,
    ) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        key = EngineEvent(kind) if kind is not None else None
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, kind: EngineEvent, table_id: str, **payload: Any) -> Event:
        event = Event(kind=kind, table_id=table_id, payload=payload)
        targets = list(self._subscribers.get(kind, ())) + list(
            self._subscribers.get(None, ())
        )
        for cb in targets:
            try:
                cb(event)
            except Exception:
                logger.exception("Subscriber for '{}' failed", kind.value)
        return event

    def notify(self, table_id: str, message: str, level: str = "info") -> Event:
        """Emit a user-facing notification (toast)."""
        log = logger.error if level == "error" else logger.info
        log("[{}] {}", table_id, message)
        return self.emit(EngineEvent.NOTIFICATION, table_id, message=message, level=level)
