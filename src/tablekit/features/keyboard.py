"""Keyboard navigation, focus tracking and table shortcuts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from ..core.events import EngineEvent
from ..core.rows import get_nested_value
from ..core.session import FocusPosition
from .context import TableContext
from .edit_surface import render_keyboard_help
from .selection import ExportResult

HELP_SHORTCUTS = [
    {"keys": "↑ ↓ ← →", "description": "Navigate between cells"},
    {"keys": "Home", "description": "Go to first column"},
    {"keys": "End", "description": "Go to last column"},
    {"keys": "Ctrl+Home", "description": "Go to first cell"},
    {"keys": "Ctrl+End", "description": "Go to last cell"},
    {"keys": "Page Up", "description": "Previous page"},
    {"keys": "Page Down", "description": "Next page"},
    {"keys": "Enter", "description": "Edit cell or select row"},
    {"keys": "Space", "description": "Select/deselect row"},
    {"keys": "Ctrl+F", "description": "Focus search box"},
    {"keys": "Ctrl+A", "description": "Select all rows"},
    {"keys": "Ctrl+E", "description": "Export table"},
    {"keys": "Ctrl+R", "description": "Refresh table"},
    {"keys": "Escape", "description": "Clear selection or cancel"},
    {"keys": "Alt+P", "description": "Previous page"},
    {"keys": "Alt+N", "description": "Next page"},
    {"keys": "?", "description": "Show this help"},
]

NAVIGATION_KEYS = {
    "ArrowUp", "ArrowDown", "ArrowLeft", "ArrowRight",
    "Home", "End", "PageUp", "PageDown", "Enter", " ", "Space", "Tab",
}


@dataclass(frozen=True)
class KeyEvent:
    """A key press with its modifiers. ``meta`` counts as Ctrl."""

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False

    @property
    def control(self) -> bool:
        return self.ctrl or self.meta

    def combo(self) -> str:
        """``Ctrl+Alt+Shift+key``, modifiers in that order."""
        parts = []
        if self.control:
            parts.append("Ctrl")
        if self.alt:
            parts.append("Alt")
        if self.shift:
            parts.append("Shift")
        parts.append(self.key)
        return "+".join(parts)

    @classmethod
    def parse(cls, combo: str) -> KeyEvent:
        """Inverse of ``combo``: ``"Ctrl+Shift+k"`` -> KeyEvent."""
        *mods, key = combo.split("+") if combo != "+" else ("+",)
        return cls(key=key, ctrl="Ctrl" in mods, alt="Alt" in mods, shift="Shift" in mods)


class KeyboardManager:
    """Maps key presses to focus moves, page changes and delegated actions."""

    FEATURE = "keyboard"

    def __init__(self, ctx: TableContext) -> None:
        self.ctx = ctx
        self.settings = ctx.config.keyboard
        self.session = ctx.session
        self._custom = {s.key: s for s in self.settings.custom_shortcuts}
        self._has_focus = False
        self.help_markup: str | None = None
        self.last_export: ExportResult | None = None
        for combo in self._custom:
            logger.debug("[{}] Registered shortcut {}", ctx.table_id, combo)

    def attach(self) -> None:
        self.ctx.track(self.ctx.host.on_draw(self.restore_focus))

    # -- focus -------------------------------------------------------------

    def focus_position(self) -> FocusPosition:
        return self.session.focus

    def _page_rows(self) -> int:
        return len(self.ctx.host.page_indices())

    def focus_cell(self, row: int, col: int, announce: bool = True) -> bool:
        if not self.ctx.host.focus_cell(row, col):
            return False
        self._has_focus = True
        self.session.focus.row, self.session.focus.col = row, col
        message = None
        if announce and self.settings.announce_position:
            index = self.ctx.host.page_indices()[row]
            column = self.ctx.host.column_def(col)
            value = get_nested_value(self.ctx.host.row(index), column.data)
            message = f"{column.title}, row {row + 1}: {value}"
        self.ctx.emit(EngineEvent.FOCUS_MOVED, row=row, col=col, announce=message)
        return True

    def restore_focus(self) -> None:
        """Re-focus the same coordinates after a redraw, clamped to the page."""
        if not self._has_focus:
            return
        rows = self._page_rows()
        if rows == 0:
            return
        focus = self.session.focus
        focus.row = min(focus.row, rows - 1)
        focus.col = min(focus.col, self.ctx.host.column_count - 1)
        self.ctx.host.focus_cell(focus.row, focus.col)

    # -- dispatch ----------------------------------------------------------

    def handle_key(self, event: KeyEvent | str, **modifiers: bool) -> bool:
        """Handle one key press. Returns True when it was consumed."""
        if isinstance(event, str):
            event = KeyEvent(event, **modifiers)
        if not self.settings.enabled:
            return False

        editing = self.ctx.feature("editing")
        if editing is not None and editing.active is not None:
            if editing.handle_key(event.key, shift=event.shift):
                return True

        shortcut = self._custom.get(event.combo())
        if shortcut is not None:
            shortcut.handler(self.ctx.table_id, self.ctx.host, event)
            self.ctx.emit(
                EngineEvent.SHORTCUT_TRIGGERED, combo=event.combo(), announce=shortcut.announce
            )
            return True

        if self.settings.arrow_key_navigation and event.key in NAVIGATION_KEYS:
            if self._navigate(event):
                return True
        return self._default_shortcut(event)

    # -- navigation --------------------------------------------------------

    def _navigate(self, event: KeyEvent) -> bool:
        host = self.ctx.host
        rows = self._page_rows()
        if rows == 0:
            return False
        last_col = host.column_count - 1
        focus = self.session.focus
        row, col = min(focus.row, rows - 1), focus.col
        key = event.key

        if key == "ArrowUp":
            if row == 0:
                return False
            row -= 1
        elif key == "ArrowDown":
            if row < rows - 1:
                row += 1
            elif self.settings.auto_page_down and not host.page_info().is_last:
                host.set_page(host.page_info().page + 1)
                row = 0
            else:
                return False
        elif key == "ArrowLeft":
            if col == 0:
                return False
            col -= 1
        elif key == "ArrowRight":
            if col >= last_col:
                return False
            col += 1
        elif key == "Home":
            col = 0
            if event.control:
                row = 0
        elif key == "End":
            col = last_col
            if event.control:
                row = rows - 1
        elif key == "PageUp":
            info = host.page_info()
            if info.page == 0:
                return False
            host.set_page(info.page - 1)
            row = min(row, self._page_rows() - 1)
        elif key == "PageDown":
            info = host.page_info()
            if info.is_last:
                return False
            host.set_page(info.page + 1)
            row = min(row, self._page_rows() - 1)
        elif key == "Enter":
            return self._enter(row, col)
        elif key in (" ", "Space"):
            return self.settings.space_to_select and self._toggle_row(row)
        elif key == "Tab":
            return self._tab(row, col, backwards=event.shift)

        return self.focus_cell(row, col)

    def _enter(self, row: int, col: int) -> bool:
        editing = self.ctx.feature("editing")
        if self.settings.enter_to_edit and editing is not None and editing.is_editable(col):
            return editing.enter_edit(row, col)
        if self.settings.enter_to_select:
            return self._toggle_row(row)
        return False

    def _toggle_row(self, row: int) -> bool:
        selection = self.ctx.feature("selection")
        if selection is None:
            return False
        row_id = self.ctx.row_id(self.ctx.host.page_indices()[row])
        if row_id is None:
            logger.warning("[{}] Row {} has no identifier", self.ctx.table_id, row)
            return False
        selection.toggle_row(row_id, row_id not in self.session.selection)
        return True

    def _tab(self, row: int, col: int, backwards: bool) -> bool:
        if not self.settings.tab_through_editable:
            return False
        editing = self.ctx.feature("editing")
        if editing is None:
            return False
        cells = [
            (r, c)
            for r in range(self._page_rows())
            for c in range(self.ctx.host.column_count)
            if editing.is_editable(c)
        ]
        if (row, col) not in cells:
            return False
        step = -1 if backwards else 1
        target = cells[(cells.index((row, col)) + step) % len(cells)]
        return self.focus_cell(*target)

    # -- shortcuts ---------------------------------------------------------

    def _announce(self, combo: str, message: str) -> None:
        self.ctx.emit(EngineEvent.SHORTCUT_TRIGGERED, combo=combo, announce=message)

    def _default_shortcut(self, event: KeyEvent) -> bool:
        s = self.settings
        host = self.ctx.host
        key = event.key.lower() if len(event.key) == 1 else event.key
        selection = self.ctx.feature("selection")

        if event.control and key == "f" and s.search_shortcut:
            host.focus_search_input()
            return True
        if event.control and key == "r" and s.refresh_shortcut:
            host.reload()
            self._announce(event.combo(), "Table refreshed")
            return True
        if event.control and key == "a" and s.select_all_shortcut and selection is not None:
            selection.toggle_all(True)
            return True
        if key == "Escape" and s.escape_shortcut:
            if selection is not None and self.session.selection:
                selection.clear()
                return True
            return False
        if event.control and key == "e" and s.export_shortcut and selection is not None:
            self.ctx.scheduler.spawn(self._export())
            return True
        if event.alt and key in ("p", "n") and s.page_shortcuts:
            info = host.page_info()
            if key == "p" and info.page > 0:
                host.set_page(info.page - 1)
                self._announce(event.combo(), f"Previous page, page {info.page}")
                return True
            if key == "n" and not info.is_last:
                host.set_page(info.page + 1)
                self._announce(event.combo(), f"Next page, page {info.page + 2}")
                return True
            return False
        if event.key == "?" and s.help_shortcut:
            self.show_help()
            return True
        return False

    async def _export(self) -> None:
        selection = self.ctx.feature("selection")
        rows = selection.selected_rows()
        if not rows:
            rows = [self.ctx.host.row(i) for i in self.ctx.host.data_indices(applied=True)]
        self.last_export = await selection.bulk_export(rows)

    def show_help(self) -> str:
        """Render the shortcut overlay and announce that it was requested."""
        self.help_markup = render_keyboard_help(self.ctx.table_id, HELP_SHORTCUTS)
        self.ctx.emit(
            EngineEvent.HELP_REQUESTED, markup=self.help_markup, shortcuts=list(HELP_SHORTCUTS)
        )
        return self.help_markup

    def shortcuts(self) -> list[dict[str, Any]]:
        return list(HELP_SHORTCUTS)
