#!/usr/bin/env python3
"""Structured logging for fstrigger.

This module wraps the standard ``logging`` package with:
- Key-value context appended to every message
- Thread-local context stacks (one per watcher/dispatch thread)
- Console output by default, optional rotating log file
- Level control from configuration or the command line

Example:
    >>> logger = Logger("fstrigger.loader", level=LogLevel.DEBUG)
    >>> logger.warning("Rule rejected", rule="php-hint", reason="bad pattern")
    >>> with logger.add_context(event="file_create"):
    ...     logger.debug("Evaluating")
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG  # 10
    INFO = logging.INFO  # 20
    WARNING = logging.WARNING  # 30
    ERROR = logging.ERROR  # 40
    CRITICAL = logging.CRITICAL  # 50

    @classmethod
    def parse(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Coerce a name or number into a LogLevel."""
        if isinstance(level, str):
            return cls[level.upper()]
        return cls(level)


class Logger:
    """Structured logger with context support.

    Several Logger objects may share one underlying ``logging.Logger``; the
    handlers are only installed once per name.
    """

    _context_stack = threading.local()

    def __init__(
        self,
        name: str = "fstrigger",
        level: Union[LogLevel, int, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Logger name, dotted under ``fstrigger``
            level: Minimum level to output
            handlers: Handlers to install; a console handler when omitted
                and the underlying logger has none yet
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.set_level(level)

        if handlers is not None:
            self.logger.handlers.clear()
            for handler in handlers:
                self.logger.addHandler(handler)
        elif not self.logger.handlers:
            self.logger.addHandler(create_console_handler())

        self.logger.propagate = False

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    def set_level(self, level: Union[LogLevel, int, str]) -> None:
        self.logger.setLevel(LogLevel.parse(level))

    def get_level(self) -> LogLevel:
        return LogLevel(self.logger.level)

    def is_enabled_for(self, level: Union[LogLevel, int, str]) -> bool:
        return self.logger.isEnabledFor(LogLevel.parse(level))

    def child(self, suffix: str) -> "Logger":
        """Return a logger named ``<name>.<suffix>`` sharing this level."""
        return Logger(f"{self.name}.{suffix}", level=self.get_level(), handlers=self.logger.handlers)

    def _get_context(self) -> Dict[str, Any]:
        """Merge the thread-local context stack, innermost last."""
        stack = getattr(self._context_stack, "stack", None)
        if stack is None:
            stack = self._context_stack.stack = [{}]

        context: Dict[str, Any] = {}
        for frame in stack:
            context.update(frame)
        return context

    @staticmethod
    def _format_message(msg: str, context: Dict[str, Any]) -> str:
        if context:
            ctx_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{msg} | {ctx_str}"
        return msg

    @contextmanager
    def add_context(self, **kwargs: Any) -> Iterator[None]:
        """Attach key-value pairs to every message logged in the block.

        Example:
            >>> with logger.add_context(rule="php-hint"):
            ...     logger.info("Dispatching")
        """
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        self._context_stack.stack.append(kwargs)
        try:
            yield
        finally:
            self._context_stack.stack.pop()

    def _log(self, level: int, msg: str, context: Dict[str, Any], exc_info: Any = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        combined = self._get_context()
        combined.update(context)
        self.logger.log(
            level,
            self._format_message(msg, combined),
            exc_info=exc_info,
            extra={"context": combined},
        )

    def debug(self, msg: str, **context: Any) -> None:
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context: Any) -> None:
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context: Any) -> None:
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, **context: Any) -> None:
        self._log(logging.ERROR, msg, context)

    def exception(self, msg: str, exc: BaseException, **context: Any) -> None:
        """Log an error with traceback and the exception's type and text."""
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc_info=exc)


def create_console_handler() -> logging.StreamHandler:
    """Create the default console handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
    return handler


def create_file_handler(
    filename: Union[str, Path],
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.handlers.RotatingFileHandler:
    """Create a rotating file handler.

    Args:
        filename: Path to log file; parent directories are created
        max_bytes: Maximum size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured handler
    """
    path = Path(filename).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
    return handler


def configure_logging(
    level: Union[LogLevel, int, str] = LogLevel.INFO,
    log_file: Optional[Union[str, Path]] = None,
    name: str = "fstrigger",
) -> Logger:
    """Configure the root fstrigger logger and make it the global one.

    Args:
        level: Minimum level to output
        log_file: Optional file to log to in addition to the console
        name: Root logger name

    Returns:
        The configured logger
    """
    logger = Logger(name=name, level=level, handlers=[create_console_handler()])
    if log_file:
        logger.add_handler(create_file_handler(log_file))
    set_global_logger(logger)
    return logger


# Global logger instance
_global_logger: Optional[Logger] = None


def get_logger(name: str = "fstrigger") -> Logger:
    """Get a logger by name.

    The global logger is returned when ``name`` matches it; any other name
    gets a child logger that inherits the global logger's handlers and level.
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger(name="fstrigger")
    if name == _global_logger.name:
        return _global_logger
    prefix = f"{_global_logger.name}."
    if name.startswith(prefix):
        return _global_logger.child(name[len(prefix):])
    return Logger(name=name, level=_global_logger.get_level())


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance."""
    global _global_logger
    _global_logger = logger
