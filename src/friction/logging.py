"""Structured logging for friction.

Gives every component the same logger shape, with human-readable or
JSON-lines output on stderr.

Two layers log differently. Library modules (parsing, discovery, session
building, detectors, knowledge) use a plain ``logging.getLogger(__name__)``
and carry no context. The batch layer in ``friction.pipeline`` uses
``get_logger`` so each line names the file and session it concerns.
Both end up under the ``friction`` logger that ``configure_logging`` sets up.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ROOT_LOGGER = "friction"


class LogFormat(Enum):
    """Log output format."""

    TEXT = "text"
    JSON = "json"


@dataclass
class LogContext:
    """Context information for structured logging."""

    component: str = ""
    operation: str = ""
    session_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def with_extra(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional fields."""
        return LogContext(
            component=self.component,
            operation=self.operation,
            session_id=self.session_id,
            extra={**self.extra, **kwargs},
        )


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = getattr(record, "context", None)
        if isinstance(ctx, LogContext):
            if ctx.component:
                log_data["component"] = ctx.component
            if ctx.operation:
                log_data["operation"] = ctx.operation
            if ctx.session_id:
                log_data["session_id"] = ctx.session_id
            if ctx.extra:
                log_data.update(ctx.extra)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with context."""

    def format(self, record: logging.LogRecord) -> str:
        prefix_parts = []

        ctx = getattr(record, "context", None)
        if isinstance(ctx, LogContext):
            if ctx.component:
                prefix_parts.append(f"[{ctx.component}]")
            if ctx.operation:
                prefix_parts.append(f"({ctx.operation})")
            if ctx.session_id:
                prefix_parts.append(f"session:{ctx.session_id[:8]}")

        prefix = " ".join(prefix_parts)
        if prefix:
            prefix = f"{prefix} "

        base = super().format(record)

        extra_str = ""
        if isinstance(ctx, LogContext) and ctx.extra:
            extra_str = " " + " ".join(f"{k}={v}" for k, v in ctx.extra.items())

        return f"{prefix}{base}{extra_str}"


def _make_handler(level: int, log_format: LogFormat) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == LogFormat.JSON:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter("%(asctime)s %(levelname)s %(message)s"))
    return handler


class FrictionLogger:
    """Structured logger for friction components."""

    def __init__(self, name: str, level: int = logging.NOTSET):
        """Initialize the logger.

        Args:
            name: Component name, appended to the ``friction`` root logger
            level: Logging level (NOTSET defers to the root configuration)
        """
        self._logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
        if level != logging.NOTSET:
            self._logger.setLevel(level)
        self._context = LogContext(component=name)

    def _derive(self, context: LogContext) -> "FrictionLogger":
        new_logger = FrictionLogger.__new__(FrictionLogger)
        new_logger._logger = self._logger
        new_logger._context = context
        return new_logger

    @property
    def context(self) -> LogContext:
        return self._context

    def with_context(self, **kwargs: Any) -> "FrictionLogger":
        """Create a new logger with additional context fields."""
        return self._derive(self._context.with_extra(**kwargs))

    def with_operation(self, operation: str) -> "FrictionLogger":
        """Create a new logger for a specific operation."""
        return self._derive(
            LogContext(
                component=self._context.component,
                operation=operation,
                session_id=self._context.session_id,
                extra=self._context.extra,
            )
        )

    def with_session(self, session_id: str) -> "FrictionLogger":
        """Create a new logger bound to a session."""
        return self._derive(
            LogContext(
                component=self._context.component,
                operation=self._context.operation,
                session_id=session_id,
                extra=self._context.extra,
            )
        )

    def _log(self, level: int, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            sys.exc_info() if exc_info else None,
        )
        record.context = self._context.with_extra(**kwargs) if kwargs else self._context
        self._logger.handle(record)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an error message with the active exception's traceback."""
        self._log(logging.ERROR, msg, exc_info=True, **kwargs)

    @contextmanager
    def timed(self, operation: str, **kwargs: Any):
        """Context manager for timing operations.

        Yields:
            Dict where 'elapsed_ms' will be set after completion
        """
        start = time.perf_counter()
        result: dict[str, Any] = {}
        try:
            yield result
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            result["elapsed_ms"] = elapsed_ms
            self.debug(
                f"{operation} completed",
                operation=operation,
                elapsed_ms=f"{elapsed_ms:.2f}",
                **kwargs,
            )


_loggers: dict[str, FrictionLogger] = {}


def get_logger(name: str, level: int = logging.NOTSET) -> FrictionLogger:
    """Get or create a logger for a component."""
    if name not in _loggers:
        _loggers[name] = FrictionLogger(name, level)
    return _loggers[name]


def configure_logging(
    level: int = logging.WARNING,
    log_format: LogFormat = LogFormat.TEXT,
) -> None:
    """Configure the ``friction`` root logger.

    Replaces any handlers previously installed on it, so calling this once
    per batch run gives a clean setup.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(_make_handler(level, log_format))


def log_event(
    component: str,
    event: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a single event quickly."""
    get_logger(component)._log(level, event, **kwargs)
