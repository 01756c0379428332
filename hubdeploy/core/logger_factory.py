"""Isolated logging environments backing the global log manager."""

import logging
import threading
from typing import Any, Dict, Optional, Union
from pathlib import Path
from contextlib import contextmanager

from .log_formatters import StructuredFormatter, HubDeployRichHandler, LogContext


class IsolatedLogManager:
    """Non-singleton log manager owning its handlers and loggers."""

    def __init__(self, namespace: str = "") -> None:
        """Initialize isolated log manager.

        Args:
            namespace: Prefix for logger names to keep managers apart
        """
        self._namespace = namespace
        self._configured = False
        self._log_file: Optional[Path] = None
        self._json_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None
        self._loggers: Dict[str, logging.Logger] = {}
        self._context = LogContext()
        self._lock = threading.RLock()

    @property
    def is_configured(self) -> bool:
        return self._configured

    def configure(self,
                  level: Union[int, str] = logging.INFO,
                  log_file: Optional[Path] = None,
                  enable_json: bool = True,
                  enable_console: bool = True,
                  console_level: Optional[Union[int, str]] = None) -> None:
        """Configure handlers; reconfiguring replaces previous handlers."""
        with self._lock:
            if self._configured:
                self._clear_configuration()

            if enable_json and log_file:
                self._log_file = Path(log_file)
                self._log_file.parent.mkdir(parents=True, exist_ok=True)

                self._json_handler = logging.FileHandler(self._log_file)
                self._json_handler.setFormatter(
                    StructuredFormatter(
                        include_context=True, context_getter=self._context.get_context
                    )
                )
                self._json_handler.setLevel(level)

            if enable_console:
                self._console_handler = HubDeployRichHandler(
                    show_time=True,
                    show_path=False,
                    markup=False,
                )
                self._console_handler.setLevel(console_level or level)

            for logger in self._loggers.values():
                self._attach_handlers(logger)

            self._configured = True

    def create_logger(self, name: str) -> logging.Logger:
        """Create (or return the cached) logger with namespace isolation."""
        with self._lock:
            full_name = f"{self._namespace}.{name}" if self._namespace else name

            if full_name in self._loggers:
                return self._loggers[full_name]

            logger = logging.getLogger(full_name)
            # Keep records away from the root logger
            logger.propagate = False
            logger.setLevel(logging.DEBUG)
            self._attach_handlers(logger)

            self._loggers[full_name] = logger
            return logger

    def _attach_handlers(self, logger: logging.Logger) -> None:
        for handler in (self._json_handler, self._console_handler):
            if handler is not None and handler not in logger.handlers:
                logger.addHandler(handler)

    @contextmanager
    def context(self, **kwargs: Any):
        """Context manager for temporary context variables."""
        with self._context.context(**kwargs):
            yield

    def reset(self) -> None:
        """Drop handlers but keep loggers so they can be re-attached."""
        with self._lock:
            self._clear_configuration()

    def shutdown(self) -> None:
        """Shutdown this logging instance."""
        with self._lock:
            self._clear_configuration()
            self._loggers.clear()
            self._context.clear_context()

    def _clear_configuration(self) -> None:
        for logger in self._loggers.values():
            for handler in logger.handlers[:]:
                logger.removeHandler(handler)

        for handler in (self._json_handler, self._console_handler):
            if handler is None:
                continue
            try:
                handler.close()
            except (OSError, RuntimeError):
                pass  # Ignore handler close errors

        self._json_handler = None
        self._console_handler = None
        self._configured = False
