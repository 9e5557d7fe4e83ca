"""
PlantGate Logger
================

Structured logging with multiple handlers.

Context is passed as keyword arguments and rendered next to the
message. Keys that carry credentials are masked before any handler
sees them.

Example:
    from plantgate.utils.logger import get_logger

    logger = get_logger("plantgate.http")
    logger.info("Request handled", path="/api/v1/auth/login", status=200)
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import orjson


REDACTED = "***REDACTED***"

SENSITIVE_KEYS = frozenset({
    "password",
    "password_confirmation",
    "token",
    "access_token",
    "accessToken",
    "refresh_token",
    "credit_card",
    "verifySecondaryPassword",
    "publicAccessKey",
})


class LogLevel(IntEnum):
    """Log levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Parse a level from a name such as ``"info"`` or a number."""
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {value}") from None


def redact(data: Any, keys: Iterable[str] = SENSITIVE_KEYS) -> Any:
    """
    Mask sensitive values in nested mappings.

    Args:
        data: Mapping, list or scalar
        keys: Key names whose values must be hidden

    Returns:
        Copy of data with sensitive values replaced
    """
    keys = keys if isinstance(keys, frozenset) else frozenset(keys)

    if isinstance(data, dict):
        return {
            k: REDACTED if k in keys else redact(v, keys)
            for k, v in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact(item, keys) for item in data]
    return data


@dataclass
class LogRecord:
    """
    Structured log record.

    Attributes:
        level: Log level
        message: Log message
        timestamp: Record timestamp
        context: Additional context
        exception: Exception info
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    logger_name: str = "plantgate"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "message": self.message,
            "logger": self.logger_name,
        }

        if self.context:
            data["context"] = self.context

        if self.exception:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
                "traceback": traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__,
                ),
            }

        return data

    def to_json(self) -> str:
        """Convert to JSON string."""
        return orjson.dumps(self.to_dict(), default=str).decode("utf-8")


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2024-01-15 10:30:45 [INFO] plantgate.http: Request handled path=/health
    """

    def __init__(
        self,
        format_string: Optional[str] = None,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = True,
    ):
        self.format_string = format_string or "{timestamp} [{level}] {logger}: {message}"
        self.date_format = date_format
        self.colors = colors and sys.stderr.isatty()

        self._colors = {
            LogLevel.DEBUG: "\033[36m",
            LogLevel.INFO: "\033[32m",
            LogLevel.WARNING: "\033[33m",
            LogLevel.ERROR: "\033[31m",
            LogLevel.CRITICAL: "\033[35m",
        }
        self._reset = "\033[0m"

    def format(self, record: LogRecord) -> str:
        timestamp = record.timestamp.strftime(self.date_format)
        level = record.level.name

        if self.colors:
            color = self._colors.get(record.level, "")
            level = f"{color}{level}{self._reset}"

        message = record.message

        if record.context:
            context_str = " ".join(
                f"{k}={v}" for k, v in record.context.items()
            )
            message = f"{message} {context_str}"

        output = self.format_string.format(
            timestamp=timestamp,
            level=level,
            message=message,
            logger=record.logger_name,
        )

        if record.exception:
            output += "\n" + "".join(
                traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                )
            )

        return output


class JsonFormatter(LogFormatter):
    """
    JSON formatter for log shippers.

    Example output:
        {"timestamp": "2024-01-15T10:30:45", "level": "INFO", "message": "Request handled"}
    """

    def format(self, record: LogRecord) -> str:
        return record.to_json()


class LogHandler:
    """Base log handler."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Stream output handler."""

    def __init__(
        self,
        stream: Any = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter, level)
        self.stream = stream or sys.stderr

    def emit(self, record: LogRecord) -> None:
        self.stream.write(self.formatter.format(record) + "\n")
        self.stream.flush()


class FileHandler(LogHandler):
    """File output handler with size based rotation."""

    def __init__(
        self,
        path: Union[str, Path],
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
        max_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ):
        super().__init__(formatter or JsonFormatter(), level)
        self.path = Path(path)
        self.max_size = max_size
        self.backup_count = backup_count

        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: LogRecord) -> None:
        if self.path.exists() and self.path.stat().st_size > self.max_size:
            self._rotate()

        with open(self.path, "a", encoding="utf-8") as f:
            f.write(self.formatter.format(record) + "\n")

    def _rotate(self) -> None:
        oldest = self.path.with_suffix(f".{self.backup_count}")
        if oldest.exists():
            oldest.unlink()

        for i in range(self.backup_count - 1, 0, -1):
            src = self.path.with_suffix(f".{i}")
            dst = self.path.with_suffix(f".{i + 1}")
            if src.exists():
                src.rename(dst)

        if self.path.exists():
            self.path.rename(self.path.with_suffix(".1"))


class Logger:
    """
    Structured logger.

    Loggers created through ``get_logger`` share the handler list of the
    root ``plantgate`` logger, so ``configure_logging`` reaches loggers
    that modules created at import time.

    Example:
        logger = get_logger("plantgate.auth")

        logger.info("Token verified", username="alice")
        logger.error("Administration call failed", exception=e)

        logger = logger.with_context(request_id="abc123")
        logger.info("Processing request")
    """

    def __init__(
        self,
        name: str = "plantgate",
        level: LogLevel = LogLevel.DEBUG,
        handlers: Optional[List[LogHandler]] = None,
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            handlers: Log handlers, shared by reference
        """
        self.name = name
        self.level = level
        self._handlers = handlers if handlers is not None else []
        self._context: Dict[str, Any] = {}

    @property
    def handlers(self) -> List[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """
        Create logger with additional context.

        Args:
            **context: Context key-values

        Returns:
            New logger with context
        """
        new_logger = Logger(
            name=self.name,
            level=self.level,
            handlers=self._handlers,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if level < self._effective_level():
            return

        record = LogRecord(
            level=level,
            message=message,
            context=redact({**self._context, **context}),
            exception=exception,
            logger_name=self.name,
        )

        for handler in self._handlers:
            try:
                handler.handle(record)
            except Exception as e:
                # A broken handler must not take the request down with it
                sys.stderr.write(f"plantgate: log handler failed: {e!r}\n")

    def _effective_level(self) -> LogLevel:
        root = _loggers.get(ROOT_LOGGER)
        if root is not None and root is not self and self.name.startswith(ROOT_LOGGER):
            return max(self.level, root.level)
        return self.level

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.ERROR, message, exception, **context)

    def critical(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.CRITICAL, message, exception, **context)

    def exception(self, message: str, **context: Any) -> None:
        """Log the exception currently being handled."""
        self._log(LogLevel.ERROR, message, sys.exc_info()[1], **context)


ROOT_LOGGER = "plantgate"

_loggers: Dict[str, Logger] = {}


def _root() -> Logger:
    if ROOT_LOGGER not in _loggers:
        root = Logger(name=ROOT_LOGGER, level=LogLevel.INFO)
        root.add_handler(StreamHandler())
        _loggers[ROOT_LOGGER] = root
    return _loggers[ROOT_LOGGER]


def get_logger(name: str = ROOT_LOGGER) -> Logger:
    """
    Get or create logger.

    Args:
        name: Dotted logger name, e.g. ``plantgate.dispatcher``

    Returns:
        Logger instance sharing the root handlers
    """
    root = _root()
    if name not in _loggers:
        _loggers[name] = Logger(name=name, level=LogLevel.DEBUG, handlers=root.handlers)
    return _loggers[name]


def configure_logging(
    level: Union[str, int, LogLevel] = LogLevel.INFO,
    format: str = "text",
    log_file: Optional[str] = None,
    colors: bool = True,
) -> Logger:
    """
    Configure the root logger.

    Args:
        level: Log level
        format: Output format ("text" or "json")
        log_file: Optional log file path
        colors: Enable colored output

    Returns:
        Configured root logger
    """
    level = LogLevel.parse(level)

    if format == "json":
        formatter: LogFormatter = JsonFormatter()
    else:
        formatter = TextFormatter(colors=colors)

    handlers: List[LogHandler] = [StreamHandler(formatter=formatter, level=level)]

    if log_file:
        file_formatter = JsonFormatter() if format == "json" else TextFormatter(colors=False)
        handlers.append(FileHandler(log_file, formatter=file_formatter, level=level))

    root = _root()
    root.level = level
    # Replace in place so loggers handed out earlier see the new handlers
    root.handlers[:] = handlers

    return root
