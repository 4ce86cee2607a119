"""Logging helpers for :mod:`m3upt_tui`.

All package loggers hang off the ``m3upt_tui`` logger. Three handlers are
attached on first use:

* a stderr handler, removed once the log panel is mounted so records do not
  draw over the terminal UI;
* a file handler (``~/.cache/m3upt_tui.log`` unless overridden);
* a panel handler that keeps recent lines and forwards them to
  :class:`~m3upt_tui.log_viewer.LogViewer`.

``M3UPT_TUI_LOG_LEVEL`` and ``M3UPT_TUI_LOG_FILE`` provide defaults for the
level and the destination; an empty ``M3UPT_TUI_LOG_FILE`` disables file
logging.
"""

from __future__ import annotations

import logging
import os
import threading
import weakref
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .log_viewer import LogViewer

__all__ = [
    "configure_logging",
    "get_log_file_path",
    "get_logger",
    "register_log_viewer",
]

LOGGER_NAME = "m3upt_tui"
LEVEL_ENV = "M3UPT_TUI_LOG_LEVEL"
FILE_ENV = "M3UPT_TUI_LOG_FILE"
DEFAULT_LOG_PATH = Path.home() / ".cache" / "m3upt_tui.log"
_RECORD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_TIME_FORMAT = "%H:%M:%S"


class _PanelHandler(logging.Handler):
    """Keep the most recent formatted records and mirror them to a viewer."""

    def __init__(self, *, capacity: int = 200) -> None:
        super().__init__()
        self._recent: deque[str] = deque(maxlen=capacity)
        self._viewer_ref: Optional[weakref.ReferenceType["LogViewer"]] = None
        self._guard = threading.RLock()

    def attach(self, viewer: Optional["LogViewer"]) -> None:
        """Point the handler at *viewer* and replay the retained lines."""

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
        if viewer is None:
            return
        try:
            app = viewer.app
        except Exception:  # pragma: no cover - viewer no longer mounted
            return
        try:
            app.call_from_thread(viewer.append_message, line)
        except RuntimeError:
            # call_from_thread refuses to run on the app's own thread
            viewer.append_message(line)
        except Exception:  # pragma: no cover - app shutting down
            self.handleError(record)


@dataclass(slots=True)
class _LoggingState:
    configured: bool = False
    level: int = logging.INFO
    stream_handler: Optional[logging.Handler] = None
    file_handler: Optional[logging.Handler] = None
    panel_handler: Optional[_PanelHandler] = None
    log_path: Optional[Path] = None


_state = _LoggingState()


def _formatter() -> logging.Formatter:
    return logging.Formatter(fmt=_RECORD_FORMAT, datefmt=_TIME_FORMAT)


def _parse_level(value: str) -> int:
    """Translate a level name or number, defaulting to ``INFO``."""

    text = value.strip().upper()
    if text.isdigit():
        number = int(text)
        return number if 0 <= number <= logging.CRITICAL else logging.INFO
    named = logging.getLevelName(text)
    return named if isinstance(named, int) else logging.INFO


def _resolve_level(explicit: Optional[str]) -> int:
    if explicit is not None:
        return _parse_level(explicit)
    from_env = os.getenv(LEVEL_ENV)
    if from_env is not None:
        return _parse_level(from_env)
    return _state.level


def _swap_file_handler(logger: logging.Logger, destination: Optional[str]) -> None:
    """Close the current file handler and open one at *destination*, if any."""

    previous = _state.file_handler
    if previous is not None:
        logger.removeHandler(previous)
        previous.close()
    _state.file_handler = None
    _state.log_path = None
    if not destination:
        return

    path = Path(destination).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf8")
    except OSError as exc:
        logger.warning("Unable to write log file %s: %s", path, exc)
        return
    handler.setFormatter(_formatter())
    logger.addHandler(handler)
    _state.file_handler = handler
    _state.log_path = path


def _install_handlers(logger: logging.Logger) -> None:
    logger.propagate = False
    stream = logging.StreamHandler()
    stream.setFormatter(_formatter())
    logger.addHandler(stream)
    _state.stream_handler = stream

    panel = _PanelHandler()
    panel.setFormatter(_formatter())
    logger.addHandler(panel)
    _state.panel_handler = panel


def configure_logging(
    *,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up the package logger and return it.

    The first call installs the handlers. Later calls only change the level,
    and swap the log file when *log_file* is given.
    """

    logger = logging.getLogger(LOGGER_NAME)
    new_level = _resolve_level(level)

    if not _state.configured:
        _install_handlers(logger)
        destination = log_file if log_file is not None else os.getenv(FILE_ENV)
        if destination is None:
            destination = str(DEFAULT_LOG_PATH)
        _swap_file_handler(logger, destination)
        _state.configured = True
    elif log_file is not None:
        _swap_file_handler(logger, log_file)

    logger.setLevel(new_level)
    for handler in logger.handlers:
        handler.setLevel(new_level)
    _state.level = new_level
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``m3upt_tui`` or one of its children."""

    root = configure_logging()
    if not name or name == LOGGER_NAME:
        return root
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)


def get_log_file_path() -> Optional[Path]:
    """Return where file logging currently writes, or ``None``."""

    return _state.log_path


def register_log_viewer(viewer: Optional["LogViewer"]) -> None:
    """Route log records to *viewer*; ``None`` detaches the current one."""

    logger = configure_logging()
    panel = _state.panel_handler
    if panel is None:  # pragma: no cover - handlers are installed above
        return
    panel.attach(viewer)
    if viewer is None:
        return
    stream = _state.stream_handler
    if stream is not None:
        logger.removeHandler(stream)
        _state.stream_handler = None
