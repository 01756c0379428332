"""Structured logging system with JSON output and rich terminal formatting."""

import logging
from typing import Any, Dict, Optional, Union, Protocol
from pathlib import Path

from .enums import BatchKind, LifecycleState
from .logger_factory import IsolatedLogManager


class Logger(Protocol):
    """Protocol for logger instances to enable dependency injection."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""


class LogManager:
    """Central logging configuration, a thin layer over IsolatedLogManager."""

    def __init__(self) -> None:
        self._manager = IsolatedLogManager("hubdeploy")
        self._configured = False

    def configure(
        self,
        level: Union[int, str] = logging.INFO,
        log_file: Optional[Path] = None,
        enable_json: bool = True,
        enable_console: bool = True,
        console_level: Optional[Union[int, str]] = None,
    ) -> None:
        """Configure logging system. Later calls are ignored."""
        if self._configured:
            return

        self._manager.configure(
            level=level,
            log_file=log_file,
            enable_json=enable_json,
            enable_console=enable_console,
            console_level=console_level,
        )
        self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger instance."""
        return self._manager.create_logger(name)

    def context(self, **kwargs: Any) -> Any:
        return self._manager.context(**kwargs)


# Global log manager instance
_log_manager = LogManager()


def configure_logging(**kwargs: Any) -> None:
    """Configure the global logging system."""
    _log_manager.configure(**kwargs)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return _log_manager.get_logger(name)


def log_event(
    logger: Logger, event_type: str, message: str, **kwargs: Any
) -> None:
    """Log a structured event with context."""
    logger.info(message, extra={"event_type": event_type, **kwargs})


def log_instance_event(
    logger: Logger,
    state: LifecycleState,
    namespace: str,
    **kwargs: Any,
) -> None:
    """Log a lifecycle transition of an instance."""
    extra: Dict[str, Any] = {
        "event_type": "instance",
        "lifecycle_state": state.value,
        "namespace": namespace,
    }
    extra.update(kwargs)
    if state in (LifecycleState.CONFIG_FAILED, LifecycleState.DB_FAILED):
        logger.error("Instance %s -> %s", namespace, state.value, extra=extra)
    else:
        logger.info("Instance %s -> %s", namespace, state.value, extra=extra)


def log_batch_event(
    logger: Logger,
    event: str,
    kind: BatchKind,
    namespace: str,
    manifest_count: Optional[int] = None,
    **kwargs: Any,
) -> None:
    """Log a batch apply/remove event."""
    extra: Dict[str, Any] = {
        "event_type": "batch",
        "batch_event": event,
        "batch_kind": kind.value,
        "namespace": namespace,
    }
    if manifest_count is not None:
        extra["manifest_count"] = manifest_count
    extra.update(kwargs)
    logger.info("Batch %s/%s %s", namespace, kind.value, event, extra=extra)


def log_poll_event(
    logger: Logger, what: str, attempt: int, max_attempts: int, **kwargs: Any
) -> None:
    """Log a single unsuccessful poll attempt at debug level."""
    extra: Dict[str, Any] = {
        "event_type": "poll",
        "poll_target": what,
        "attempt": attempt,
        "max_attempts": max_attempts,
    }
    extra.update(kwargs)
    logger.debug("Waiting for %s (%d/%d)", what, attempt, max_attempts, extra=extra)


def log_context(**kwargs: Any) -> Any:
    """Context manager for temporary logging context."""
    return _log_manager.context(**kwargs)
