"""Screen-reader announcements through polite and assertive live regions."""

from __future__ import annotations

from loguru import logger

from ..core.events import EngineEvent, Event
from ..host.protocol import PageInfo
from .context import TableContext

POLITE = "polite"
ASSERTIVE = "assertive"


class LiveRegion:
    """One ``aria-live`` channel. ``text`` is what assistive tech would read."""

    def __init__(self, region_id: str, politeness: str) -> None:
        self.region_id = region_id
        self.politeness = politeness
        self.text = ""
        self.announcements: list[str] = []

    def attributes(self) -> dict[str, str]:
        return {
            "id": self.region_id,
            "class": "sr-only",
            "aria-live": self.politeness,
            "aria-atomic": "true",
            "role": "alert" if self.politeness == ASSERTIVE else "status",
        }

    def __repr__(self) -> str:
        return f"LiveRegion({self.region_id!r}, text={self.text!r})"


class Announcer:
    """Turns engine events into debounced live-region messages.

    ``announce`` clears the region, writes the message after ``DELAY``
    seconds and clears it again ``CLEAR_AFTER`` seconds later. A newer
    message on the same region cancels the pending write and clear of
    older ones.
    """

    FEATURE = "announcer"
    DELAY = 0.1
    CLEAR_AFTER = 2.0

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.settings = ctx.config.accessibility
        tid = ctx.table_id
        self.regions = {
            POLITE: LiveRegion(f"{tid}-aria-live", POLITE),
            ASSERTIVE: LiveRegion(f"{tid}-aria-live-assertive", ASSERTIVE),
        }
        self._generation = {POLITE: 0, ASSERTIVE: 0}
        self._explained_draw = False

    @property
    def polite(self) -> LiveRegion:
        return self.regions[POLITE]

    @property
    def assertive(self) -> LiveRegion:
        return self.regions[ASSERTIVE]

    def attach(self) -> None:
        host = self.ctx.host
        host.set_table_attributes(self.table_attributes())
        self.ctx.track(
            host.on_order(self._on_order),
            host.on_page(self._on_page),
            host.on_length(self._on_length),
            host.on_draw(self._on_draw),
            self.ctx.bus.subscribe(None, self._on_event),
        )
        self.announce(self.settings.initialized_message)

    def table_attributes(self) -> dict[str, str]:
        attrs = {
            "role": "table",
            "aria-label": self.settings.table_label or "Data table",
            "aria-rowcount": str(self.ctx.host.page_info().records_display),
        }
        if self.settings.table_description:
            attrs["aria-describedby"] = f"{self.ctx.table_id}-description"
        return attrs

    # -- channel -----------------------------------------------------------

    def announce(self, message: str, priority: str = POLITE) -> None:
        if not message:
            return
        region = self.regions[priority]
        self._generation[priority] += 1
        generation = self._generation[priority]
        region.text = ""

        def write() -> None:
            if self._generation[priority] != generation:
                return
            region.text = message
            region.announcements.append(message)
            logger.debug("[{}] announce ({}): {}", self.ctx.table_id, priority, message)
            self.ctx.emit(EngineEvent.ANNOUNCED, message=message, priority=priority)
            self.ctx.scheduler.call_later(self.CLEAR_AFTER, clear)

        def clear() -> None:
            if self._generation[priority] == generation:
                region.text = ""

        self.ctx.scheduler.call_later(self.DELAY, write)

    def destroy(self) -> None:
        for priority, region in self.regions.items():
            self._generation[priority] += 1
            region.text = ""

    # -- grid callbacks ----------------------------------------------------

    def _on_order(self, order: list[tuple[int, str]]) -> None:
        if not order or not self.settings.announce_sort:
            return
        col, direction = order[0]
        name = self.ctx.host.column_title(col)
        label = "ascending" if direction == "asc" else "descending"
        self._explained_draw = True
        self.announce(f"Table sorted by {name}, {label}")

    def _on_page(self, info: PageInfo) -> None:
        if self.settings.announce_page:
            self._explained_draw = True
            self.announce(f"Page {info.page + 1} of {info.pages}")

    def _on_length(self, length: int) -> None:
        if self.settings.announce_length:
            self._explained_draw = True
            self.announce(f"Showing {length} rows per page")

    def _on_draw(self) -> None:
        info = self.ctx.host.page_info()
        self.ctx.host.set_table_attributes({"aria-rowcount": str(info.records_display)})
        if self._explained_draw:
            self._explained_draw = False
            return
        if self.settings.announce_row_count and info.records_total != info.records_display:
            self.announce(f"Showing {info.records_display} of {info.records_total} rows")
        elif self.settings.announce_update:
            self.announce(f"Table updated. Showing {info.records_display} rows")

    # -- engine events -----------------------------------------------------

    def _on_event(self, event: Event) -> None:
        if event.table_id != self.ctx.table_id or event.kind is EngineEvent.ANNOUNCED:
            return
        message = self.describe(event)
        if message:
            priority = ASSERTIVE if event.payload.get("level") == "error" else POLITE
            self.announce(message, priority)

    def describe(self, event: Event) -> str | None:
        """The text announced for ``event``, or None when it stays silent."""
        s = self.settings
        payload = event.payload
        if payload.get("announce"):
            return payload["announce"]

        if event.kind is EngineEvent.SELECTION_CHANGED and s.announce_selection:
            if payload["selected"] == 0:
                return "All rows deselected"
            return f"{payload['selected']} of {payload['total']} rows selected"

        if event.kind is EngineEvent.SEARCH_APPLIED:
            if payload["mode"] == "column" and s.announce_filter:
                state = self.ctx.session.search_state
                return "; ".join(
                    f"Filter applied: {self.ctx.host.column_title(col)} equals {term}"
                    for col, term in state.column_filters.items()
                )
            if s.announce_search and payload["mode"] != "column":
                return f'Search results: {payload["matches"]} rows found for "{payload["query"]}"'

        if event.kind is EngineEvent.DATA_CHANGED and s.announce_data_change:
            change, detail = payload.get("change"), payload.get("detail", "")
            if change == "updated":
                return f"Row updated: {detail}"
            if change == "deleted":
                return f"Row deleted: {detail}"
            if change == "added":
                return f"Row added: {detail}"
            return "Table data updated"

        if event.kind is EngineEvent.NOTIFICATION and payload.get("level") == "error":
            return payload.get("message")
        return None
