"""
Structured logging for manager-drone.

This module provides:
- Structured JSON or text log lines with consistent fields
- Typed records for status probes and actions
- Timing helpers
- Secret redaction for config summaries
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config.logging import LoggingConfig

# =============================================================================
# Log Record Types
# =============================================================================


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_trace_id() -> str:
    """Generate a unique trace ID."""
    return f"trace_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class LogContext:
    """Context information attached to log records."""

    trace_id: str | None = None
    service_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            trace_id=kwargs.pop("trace_id", self.trace_id),
            service_id=kwargs.pop("service_id", self.service_id),
            operation=kwargs.pop("operation", self.operation),
            extra={**self.extra, **kwargs},
        )


# Per-task, so concurrent requests keep separate contexts
_log_context: ContextVar[LogContext] = ContextVar("manager_drone_log_context", default=LogContext())


@dataclass
class ProbeLog:
    """Log record for one status probe."""

    service_id: str
    kind: str
    ok: bool

    timestamp: str = field(default_factory=_now)
    duration_ms: float | None = None

    reason: str | None = None
    attempts: int | None = None
    address: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ActionLog:
    """Log record for one adapter action."""

    service_id: str
    kind: str
    action: str

    timestamp: str = field(default_factory=_now)
    duration_ms: float | None = None

    success: bool = True
    error_code: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger emitting one structured line per event.

    Example:
        ```python
        logger = StructuredLogger("manager_drone")
        logger.log_probe(ProbeLog(service_id="MILVUS_MAIN", kind="milvus", ok=True))
        ```
    """

    def __init__(
        self,
        name: str = "manager_drone",
        level: str = "INFO",
        json_output: bool = True,
        include_timestamp: bool = True,
        log_file: Path | None = None,
    ):
        self.name = name
        self.json_output = json_output
        self.include_timestamp = include_timestamp

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        if not self._logger.handlers:
            handler: logging.Handler
            if log_file is not None:
                handler = logging.FileHandler(log_file)
            else:
                handler = logging.StreamHandler(sys.stdout)
            if json_output:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(TextFormatter(include_timestamp=include_timestamp))
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return _log_context.get()

    @contextmanager
    def trace_context(
        self,
        trace_id: str | None = None,
        **kwargs,
    ) -> Iterator[str]:
        """
        Context manager for trace correlation.

        Args:
            trace_id: Trace ID (inherited or auto-generated if not provided)
            **kwargs: Additional context fields (service_id, operation, ...)

        Yields:
            The trace ID
        """
        current = _log_context.get()
        trace_id = trace_id or current.trace_id or generate_trace_id()
        token = _log_context.set(current.with_update(trace_id=trace_id, **kwargs))
        try:
            yield trace_id
        finally:
            _log_context.reset(token)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        record_data: dict[str, Any] = {"message": message, **_log_context.get().to_dict()}

        if event_type:
            record_data["event_type"] = event_type

        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str))
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}".rstrip())

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    # Typed logging methods

    def log_probe(self, probe: ProbeLog) -> None:
        """Log a status probe outcome; failures are warnings."""
        level = logging.INFO if probe.ok else logging.WARNING
        message = f"Status probe {probe.service_id} ({probe.kind}): {'ok' if probe.ok else probe.reason}"
        if probe.duration_ms is not None:
            message += f" ({probe.duration_ms:.0f}ms)"
        self._log(level, message, event_type="probe", data=probe.to_dict())

    def log_action(self, action: ActionLog) -> None:
        """Log an adapter action."""
        level = logging.INFO if action.success else logging.WARNING
        message = f"Action '{action.action}' on {action.service_id}"
        if not action.success:
            message += " failed"
        self._log(level, message, event_type="action", data=action.to_dict())

    def log_error(
        self,
        error: Exception,
        message: str | None = None,
        **kwargs,
    ) -> None:
        """Log an error with context."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if hasattr(error, "retryable"):
            error_data["retryable"] = error.retryable
        if hasattr(error, "context") and error.context:
            error_data["error_context"] = error.context.to_dict()

        self._log(
            logging.ERROR,
            message or f"Error: {error}",
            event_type="error",
            data=error_data,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        # Parse JSON message if present
        try:
            message_data = json.loads(record.getMessage())
            if isinstance(message_data, dict):
                log_data.update(message_data)
            else:
                log_data["message"] = record.getMessage()
        except (json.JSONDecodeError, TypeError):
            log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname:8} {record.name}: {record.getMessage()}"
        if self.include_timestamp:
            timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
            line = f"{timestamp} {line}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Utilities
# =============================================================================


def redact_secret(value: str | None) -> str:
    """Redact a credential for safe logging."""
    if not value:
        return "<not set>"
    if len(value) <= 8:
        return "***"
    return f"{value[:2]}...{value[-2:]}"


# =============================================================================
# Timing Utilities
# =============================================================================


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    """Context manager for timing operations."""
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Global Logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str = "manager_drone") -> StructuredLogger:
    """Get or create the structured logger."""
    global _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name)
    return _default_logger


def configure_logging(config: LoggingConfig | None = None) -> StructuredLogger:
    """Configure the default logger from a ``LoggingConfig``."""
    global _default_logger

    from .config.logging import LoggingConfig

    config = config or LoggingConfig()
    root = logging.getLogger("manager_drone")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    _default_logger = StructuredLogger(
        level=config.level,
        json_output=config.format == "json",
        include_timestamp=config.include_timestamp,
        log_file=config.log_file,
    )
    return _default_logger


__all__ = [
    # Log records
    "LogContext",
    "ProbeLog",
    "ActionLog",
    # Logger
    "StructuredLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    # Timing
    "Timer",
    "timed",
    # Utilities
    "generate_trace_id",
    "redact_secret",
    # Global
    "get_logger",
    "configure_logging",
]
