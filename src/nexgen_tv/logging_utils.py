"""Logging setup shared by the CLI, the Textual UI and the library modules.

Every module logs through a child of the ``nexgen_tv`` logger. The first call
to :func:`configure_logging` attaches three handlers to it:

* a console handler, removed once the full-screen UI owns the terminal,
* an in-memory handler that feeds the F2 log pane,
* a file handler (``~/.cache/nexgen_tv.log`` unless overridden).

Handler bookkeeping lives on :func:`configure_logging` itself so repeated
calls only adjust level and destination.
"""

from __future__ import annotations

import logging
import os
import threading
import weakref
from collections import deque
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .log_viewer import LogViewer

__all__ = [
    "configure_logging",
    "detach_console_handler",
    "get_log_file_path",
    "get_logger",
    "register_log_viewer",
]

LOGGER_NAME = "nexgen_tv"
LEVEL_ENV = "NEXGEN_TV_LOG_LEVEL"
FILE_ENV = "NEXGEN_TV_LOG_FILE"
DEFAULT_LOG_FILE = Path.home() / ".cache" / "nexgen_tv.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
UI_BUFFER_SIZE = 200


def _level_from(value: str) -> int:
    text = value.strip().upper()
    if text.isdigit():
        return min(int(text), logging.CRITICAL)
    level = logging.getLevelName(text)
    return level if isinstance(level, int) else logging.INFO


def _state(name: str, default=None):
    return getattr(configure_logging, name, default)


def _remember(**values) -> None:
    for name, value in values.items():
        setattr(configure_logging, name, value)


class _UILogHandler(logging.Handler):
    """Keep the latest records and mirror them into the registered viewer."""

    def __init__(self, capacity: int = UI_BUFFER_SIZE) -> None:
        super().__init__()
        self._recent: deque[str] = deque(maxlen=capacity)
        self._viewer_ref: Optional[weakref.ReferenceType["LogViewer"]] = None
        self._guard = threading.RLock()

    @property
    def messages(self) -> tuple[str, ...]:
        with self._guard:
            return tuple(self._recent)

    def set_viewer(self, viewer: Optional["LogViewer"]) -> None:
        with self._guard:
            self._viewer_ref = None if viewer is None else weakref.ref(viewer)
            backlog = list(self._recent)
        if viewer is not None:
            viewer.replace_messages(backlog)

    def _current_viewer(self) -> Optional["LogViewer"]:
        with self._guard:
            ref = self._viewer_ref
        return ref() if ref is not None else None

    def emit(self, record: logging.LogRecord) -> None:
        line = self.format(record)
        with self._guard:
            self._recent.append(line)
        viewer = self._current_viewer()
        if viewer is None or not viewer.is_attached:
            return
        try:
            viewer.app.call_from_thread(viewer.append_message, line)
        except RuntimeError:
            # Raised when already running on the UI thread.
            viewer.append_message(line)


def _replace_file_handler(
    logger: logging.Logger,
    formatter: logging.Formatter,
    destination: Optional[str],
) -> None:
    """Swap the file handler for one writing to *destination*, or none."""

    previous: Optional[logging.Handler] = _state("_file_handler")
    if previous is not None:
        logger.removeHandler(previous)
        previous.close()
    _remember(_file_handler=None, _log_path=None)
    if not destination:
        return

    path = Path(destination).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf8")
    except OSError as exc:
        logger.warning("File logging disabled; cannot write %s: %s", path, exc)
        return
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    _remember(_file_handler=handler, _log_path=path)
    logger.debug("Writing log file %s", path)


def _install_handlers(logger: logging.Logger, formatter: logging.Formatter) -> None:
    logger.propagate = False
    console = logging.StreamHandler()
    ui_handler = _UILogHandler()
    for handler in (console, ui_handler):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    _remember(_stream_handler=console, _ui_handler=ui_handler)


def configure_logging(
    *,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up the package logger once and apply overrides on later calls.

    The level comes from *level*, then ``NEXGEN_TV_LOG_LEVEL``, then INFO (or
    the previously configured level). *log_file* and ``NEXGEN_TV_LOG_FILE``
    choose the log file; an empty value turns file logging off.
    """

    logger = logging.getLogger(LOGGER_NAME)
    requested = level if level is not None else os.getenv(LEVEL_ENV)
    first_call = not _state("_configured", False)
    if requested is not None:
        resolved = _level_from(requested)
    elif first_call:
        resolved = logging.INFO
    else:
        resolved = _state("_level", logging.INFO)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    if first_call:
        _install_handlers(logger, formatter)
        destination = log_file if log_file is not None else os.getenv(FILE_ENV)
        if destination is None:
            destination = str(DEFAULT_LOG_FILE)
        _replace_file_handler(logger, formatter, destination)
        _remember(_configured=True)
    elif log_file is not None:
        _replace_file_handler(logger, formatter, log_file)

    logger.setLevel(resolved)
    for handler in logger.handlers:
        handler.setLevel(resolved)
    _remember(_level=resolved)
    return logger


def detach_console_handler() -> None:
    """Stop echoing records to the terminal."""

    console: Optional[logging.Handler] = _state("_stream_handler")
    if console is None:
        return
    logging.getLogger(LOGGER_NAME).removeHandler(console)
    _remember(_stream_handler=None)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the logger for *name*, nested under the package logger."""

    root = configure_logging()
    if not name or name == LOGGER_NAME:
        return root
    if not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_log_file_path() -> Optional[Path]:
    return _state("_log_path")


def register_log_viewer(viewer: Optional["LogViewer"]) -> None:
    """Route in-app log output to *viewer*, or stop routing when ``None``."""

    configure_logging()
    ui_handler: Optional[_UILogHandler] = _state("_ui_handler")
    if ui_handler is not None:
        ui_handler.set_viewer(viewer)
