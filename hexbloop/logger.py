"""
Logger - Central logging system for Hexbloop

Usage:
    from hexbloop.logger import logger

    logger.debug("Detailed debug info")
    logger.info("Normal operation")
    logger.warning("Something unexpected")
    logger.error("Something failed")

    # With context
    logger.info("Effects stage started", component="SOX")
    logger.error("Mastering failed", component="FFMPEG", details=str(e))

Listeners registered with add_listener() receive every formatted line, so an
embedding UI can mirror the log without touching the logging module.
"""

import logging
import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import Callable, List, Optional

LogListener = Callable[[str, int, str], None]  # message, level, timestamp


class LogLevel(IntEnum):
    """Log levels matching Python logging."""
    DEBUG = logging.DEBUG      # 10
    INFO = logging.INFO        # 20
    WARNING = logging.WARNING  # 30
    ERROR = logging.ERROR      # 40


class ListenerHandler(logging.Handler):
    """
    Logging handler that forwards records to registered callbacks.
    Callbacks run on the logging thread; a failing callback is reported
    through handleError and never breaks the caller.
    """

    def __init__(self):
        super().__init__()
        self._listeners: List[LogListener] = []
        self._listeners_lock = threading.Lock()

    def add(self, listener: LogListener):
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove(self, listener: LogListener):
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, record: logging.LogRecord):
        try:
            msg = self.format(record)
            timestamp = datetime.now().strftime("%H:%M:%S")
            with self._listeners_lock:
                listeners = list(self._listeners)
            for listener in listeners:
                listener(msg, record.levelno, timestamp)
        except Exception:
            self.handleError(record)


class HexbloopLogger:
    """
    Central logger for Hexbloop.

    Features:
    - Component tagging for filtering ([SOX], [FFMPEG], [ART], ...)
    - Console (terminal) output
    - Listener callbacks for an embedding UI
    - Optional file output
    """

    def __init__(self):
        self._logger = logging.getLogger("hexbloop")
        self._logger.setLevel(logging.DEBUG)  # Capture all, filter on handlers
        self._logger.propagate = False

        self._console_handler = logging.StreamHandler(sys.stdout)
        self._console_handler.setLevel(logging.INFO)
        self._console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%H:%M:%S"
        ))
        self._logger.addHandler(self._console_handler)

        self._listener_handler = ListenerHandler()
        self._listener_handler.setLevel(logging.DEBUG)
        self._listener_handler.setFormatter(logging.Formatter("%(message)s"))
        self._logger.addHandler(self._listener_handler)

        self._file_handler: Optional[logging.FileHandler] = None

    def set_level(self, level: LogLevel):
        """Set minimum log level for console output."""
        self._console_handler.setLevel(level)

    def set_listener_level(self, level: LogLevel):
        """Set minimum log level delivered to listeners."""
        self._listener_handler.setLevel(level)

    def add_listener(self, listener: LogListener):
        self._listener_handler.add(listener)

    def remove_listener(self, listener: LogListener):
        self._listener_handler.remove(listener)

    def enable_file_logging(self, filepath: str):
        """Enable logging to file."""
        if self._file_handler:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()

        self._file_handler = logging.FileHandler(filepath)
        self._file_handler.setLevel(logging.DEBUG)
        self._file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(threadName)s %(message)s"
        ))
        self._logger.addHandler(self._file_handler)

    def disable_file_logging(self):
        """Disable file logging."""
        if self._file_handler:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

    def _format_message(self, msg: str, component: Optional[str] = None,
                        details: Optional[str] = None) -> str:
        """Format message with optional component tag and details."""
        parts = []
        if component:
            parts.append(f"[{component}]")
        parts.append(msg)
        if details:
            parts.append(f"- {details}")
        return " ".join(parts)

    def debug(self, msg: str, component: Optional[str] = None,
              details: Optional[str] = None):
        """Log debug message (detailed info for troubleshooting)."""
        self._logger.debug(self._format_message(msg, component, details))

    def info(self, msg: str, component: Optional[str] = None,
             details: Optional[str] = None):
        """Log info message (normal operation)."""
        self._logger.info(self._format_message(msg, component, details))

    def warning(self, msg: str, component: Optional[str] = None,
                details: Optional[str] = None):
        """Log warning message (unexpected but recoverable)."""
        self._logger.warning(self._format_message(msg, component, details))

    def error(self, msg: str, component: Optional[str] = None,
              details: Optional[str] = None):
        """Log error message (something failed)."""
        self._logger.error(self._format_message(msg, component, details))

    def tool(self, name: str, msg: str, details: Optional[str] = None):
        """Convenience: log external-tool message (name is the tag, e.g. SOX)."""
        self.debug(msg, component=name.upper(), details=details)

    def stage(self, file_name: str, stage: str, details: Optional[str] = None):
        """Convenience: log pipeline stage transition."""
        self.debug(f"{file_name}: {stage}", component="PIPELINE", details=details)


# Global logger instance
logger = HexbloopLogger()


def set_log_level(level: LogLevel):
    """Set the console log level."""
    logger.set_level(level)
