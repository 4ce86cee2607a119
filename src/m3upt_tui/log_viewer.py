"""Collapsible log panel shown inside the channel browser."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Optional

from textual.widgets import Static

from .logging_utils import register_log_viewer


class LogViewer(Static):
    """Rolling buffer of formatted log lines, hidden until toggled."""

    DEFAULT_CSS = """
    LogViewer {
        display: none;
        height: 10;
        border: heavy $surface;
        padding: 0 1;
        overflow-y: auto;
    }
    LogViewer.-visible {
        display: block;
    }
    """

    def __init__(self, *, max_lines: int = 300, id: Optional[str] = None) -> None:
        super().__init__("", id=id, markup=False)
        self._messages: Deque[str] = deque(maxlen=max_lines)

    def on_mount(self) -> None:  # pragma: no cover - requires UI integration
        register_log_viewer(self)
        self._refresh_view()

    def on_unmount(self) -> None:  # pragma: no cover - cleanup
        register_log_viewer(None)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._messages)

    @property
    def is_open(self) -> bool:
        return self.has_class("-visible")

    def toggle(self) -> bool:
        """Show or hide the panel; return the new visibility."""

        self.toggle_class("-visible")
        if self.is_open:
            self.call_after_refresh(self.scroll_end, animate=False)
        return self.is_open

    def append_message(self, message: str) -> None:
        self._messages.append(message)
        self._refresh_view()

    def replace_messages(self, messages: Iterable[str]) -> None:
        self._messages.clear()
        self._messages.extend(messages)
        self._refresh_view()

    def _refresh_view(self) -> None:
        self.update("\n".join(self._messages) if self._messages else "No log messages yet.")
        if self.is_open:
            self.call_after_refresh(self.scroll_end, animate=False)
