"""The F2 log pane."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from textual.widgets import Log

from .logging_utils import register_log_viewer


class LogViewer(Log):
    """Scrolling pane that shows what the package logger has recorded."""

    def __init__(self, *, max_lines: int = 500, id: Optional[str] = None) -> None:
        super().__init__(max_lines=max_lines, auto_scroll=True, id=id)
        self._history: deque[str] = deque(maxlen=max_lines)

    def on_mount(self) -> None:
        register_log_viewer(self)

    def on_unmount(self) -> None:
        register_log_viewer(None)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(self._history)

    def append_message(self, message: str) -> None:
        self._history.append(message)
        self.write_line(message)

    def replace_messages(self, messages: Iterable[str]) -> None:
        self._history.clear()
        self._history.extend(messages)
        self.clear()
        self.write_lines(self._history)
