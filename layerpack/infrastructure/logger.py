#!/usr/bin/env python3
"""Structured logging for layerpack builds.

Messages carry key-value context after a ``|`` separator:

    2024-01-01 12:00:00 - layerpack - INFO - Creating layer | layer=app archive=out/app.tar

Context pushed with ``add_context`` applies to every message logged inside
the block on the same thread, so everything logged while a layer is written
is tagged with ``layer=<name>``. Console output goes to stderr; stdout is
left to command results such as archive paths.

Example:
    >>> logger = Logger(level="DEBUG")
    >>> with logger.add_context(layer="app"):
    ...     logger.debug("Skipping excluded", path="build/out.o")
"""

import logging
import logging.handlers
import sys
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotating log file limits
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Resolve a level given by name or number.

        Raises:
            KeyError: If the name is unknown
        """
        if isinstance(level, str):
            return cls[level.strip().upper()]
        return cls(level)


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def format_context(context: Dict[str, Any]) -> str:
    """Render context as space-separated ``key=value`` pairs.

    Values that are empty or contain spaces are quoted so paths stay readable.
    """
    pairs = []
    for key, value in context.items():
        text = str(value)
        if not text or " " in text:
            text = repr(text)
        pairs.append(f"{key}={text}")
    return " ".join(pairs)


class Logger:
    """Structured logger with thread-local context.

    Args:
        name: Name of the underlying ``logging`` logger
        level: Minimum level, as LogLevel or level name
        handlers: Handlers replacing the default stderr console handler
    """

    # Shared by all instances so context survives logger replacement
    _local = threading.local()

    def __init__(
        self,
        name: str = "layerpack",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.set_level(level)

        self.logger.handlers.clear()
        for handler in handlers if handlers is not None else [self._console_handler()]:
            self.logger.addHandler(handler)

    @staticmethod
    def _console_handler() -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_formatter())
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = MAX_LOG_BYTES,
        backup_count: int = LOG_BACKUP_COUNT,
    ) -> logging.handlers.RotatingFileHandler:
        """Create a rotating file handler using the console format.

        Args:
            filename: Log file path
            max_bytes: Size at which the file is rotated
            backup_count: Rotated files to keep

        Returns:
            Handler ready for ``add_handler``
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        handler.setFormatter(_formatter())
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    def remove_handler(self, handler: logging.Handler) -> None:
        self.logger.removeHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        self.logger.setLevel(LogLevel.parse(level))

    def get_level(self) -> LogLevel:
        return LogLevel(self.logger.level)

    def is_enabled_for(self, level: Union[LogLevel, str]) -> bool:
        return self.logger.isEnabledFor(LogLevel.parse(level))

    def _stack(self) -> List[Dict[str, Any]]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _get_context(self) -> Dict[str, Any]:
        """Context of the current thread, outermost block first."""
        context: Dict[str, Any] = {}
        for frame in self._stack():
            context.update(frame)
        return context

    @contextmanager
    def add_context(self, **kwargs) -> Iterator[None]:
        """Attach context to every message logged inside the block.

        Example:
            >>> with logger.add_context(layer="app"):
            ...     logger.info("Creating layer")
        """
        stack = self._stack()
        stack.append(kwargs)
        try:
            yield
        finally:
            stack.pop()

    def _log(
        self,
        level: int,
        msg: str,
        context: Dict[str, Any],
        exc_info: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        merged = self._get_context()
        merged.update(context)
        text = f"{msg} | {format_context(merged)}" if merged else msg
        self.logger.log(level, text, exc_info=exc_info, extra={"context": merged})

    def debug(self, msg: str, **context) -> None:
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._log(logging.ERROR, msg, context)

    def exception(self, msg: str, exc: BaseException, **context) -> None:
        """Log an error with the exception's type, message and traceback."""
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc_info=exc)


_global_logger: Optional[Logger] = None


def get_logger(name: str = "layerpack") -> Logger:
    """Return the shared logger, creating it on first use or on a name change."""
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Make ``logger`` the instance returned by ``get_logger``."""
    global _global_logger
    _global_logger = logger
