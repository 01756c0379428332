"""
Unit tests for core/log.py - Structured logging system.
Tests logging components with proper mocking to avoid side effects.
"""

import json
import logging
from pathlib import Path
from unittest.mock import Mock

from hubdeploy.core.enums import BatchKind, LifecycleState
from hubdeploy.core.log import (
    log_batch_event,
    log_instance_event,
    log_poll_event,
    log_event,
)
from hubdeploy.core.log_formatters import LogContext, StructuredFormatter
from hubdeploy.core.logger_factory import IsolatedLogManager


class TestLogContext:
    """Test LogContext thread-local context management."""

    def setup_method(self) -> None:
        """Set up test environment."""
        self.context = LogContext()

    def test_set_and_get_context(self) -> None:
        """Test setting and getting context variables."""
        assert self.context.get_context() == {}

        self.context.set_context(namespace="ns1", instance="bd1")

        assert self.context.get_context() == {"namespace": "ns1", "instance": "bd1"}

    def test_temporary_context_is_restored(self) -> None:
        """Test the context manager restores the previous context."""
        self.context.set_context(namespace="outer")

        with self.context.context(namespace="inner", step="db"):
            assert self.context.get_context() == {"namespace": "inner", "step": "db"}

        assert self.context.get_context() == {"namespace": "outer"}

    def test_clear_context(self) -> None:
        """Test clearing context."""
        self.context.set_context(key="value")
        self.context.clear_context()

        assert self.context.get_context() == {}


class TestStructuredFormatter:
    """Test JSON formatting of records."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "hubdeploy.test", logging.INFO, __file__, 1, "Instance %s ready", ("ns1",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self) -> None:
        """Test message, level and logger are emitted."""
        formatter = StructuredFormatter(include_context=False)

        entry = json.loads(formatter.format(self._record()))

        assert entry["message"] == "Instance ns1 ready"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "hubdeploy.test"
        assert "context" not in entry

    def test_extra_fields(self) -> None:
        """Test unknown extras end up under fields."""
        formatter = StructuredFormatter(include_context=False)

        entry = json.loads(formatter.format(self._record(event_type="event", step="db")))

        assert entry["event"] == "event"
        assert entry["fields"] == {"step": "db"}

    def test_instance_fields(self) -> None:
        """Test lifecycle extras are grouped under instance."""
        formatter = StructuredFormatter(include_context=False)
        record = self._record(
            event_type="instance", namespace="ns1", lifecycle_state="ready", endpoint="1.2.3.4"
        )

        entry = json.loads(formatter.format(record))

        assert entry["event"] == "instance"
        assert entry["namespace"] == "ns1"
        assert entry["instance"] == {"lifecycle_state": "ready", "endpoint": "1.2.3.4"}
        assert "fields" not in entry

    def test_batch_and_poll_fields(self) -> None:
        """Test batch and poll extras are grouped per event family."""
        formatter = StructuredFormatter(include_context=False)

        batch = json.loads(formatter.format(self._record(
            event_type="batch", namespace="ns1", batch_event="applied",
            batch_kind="database", manifest_count=2,
        )))
        poll = json.loads(formatter.format(self._record(
            event_type="poll", poll_target="pods", attempt=2, max_attempts=5,
        )))

        assert batch["batch"] == {
            "batch_event": "applied", "batch_kind": "database", "manifest_count": 2
        }
        assert poll["poll"] == {"poll_target": "pods", "attempt": 2, "max_attempts": 5}
        assert "namespace" not in poll

    def test_context_getter(self) -> None:
        """Test context comes from the injected getter."""
        formatter = StructuredFormatter(context_getter=lambda: {"namespace": "ns1"})

        entry = json.loads(formatter.format(self._record()))

        assert entry["context"] == {"namespace": "ns1"}


class TestIsolatedLogManager:
    """Test the isolated manager writes JSON lines to its file."""

    def test_json_file_logging(self, tmp_path: Path) -> None:
        """Test records reach the JSON file with context."""
        log_file = tmp_path / "logs" / "hubdeploy.jsonl"
        manager = IsolatedLogManager("isolated-test")
        manager.configure(level=logging.DEBUG, log_file=log_file, enable_console=False)
        try:
            logger = manager.create_logger("orchestrator")
            with manager.context(namespace="ns1"):
                logger.info("hello %s", "world")

            entry = json.loads(log_file.read_text().strip().splitlines()[-1])
            assert entry["message"] == "hello world"
            assert entry["context"] == {"namespace": "ns1"}
        finally:
            manager.shutdown()

    def test_loggers_are_cached_and_isolated(self) -> None:
        """Test loggers are namespaced, cached and do not propagate."""
        manager = IsolatedLogManager("isolated-cache")

        logger = manager.create_logger("x")

        assert logger.name == "isolated-cache.x"
        assert manager.create_logger("x") is logger
        assert logger.propagate is False

    def test_reset_keeps_loggers(self, tmp_path: Path) -> None:
        """Test reset drops handlers but loggers can be reconfigured."""
        manager = IsolatedLogManager("isolated-reset")
        manager.configure(log_file=tmp_path / "a.jsonl", enable_console=False)
        logger = manager.create_logger("x")
        assert logger.handlers

        manager.reset()
        assert not logger.handlers
        assert not manager.is_configured

        manager.configure(log_file=tmp_path / "b.jsonl", enable_console=False)
        assert logger.handlers
        manager.shutdown()

    def test_reset_closes_json_file(self, tmp_path: Path) -> None:
        """Test reset closes the JSON file handler it configured."""
        manager = IsolatedLogManager("isolated-close")
        manager.configure(log_file=tmp_path / "a.jsonl", enable_console=False)
        logger = manager.create_logger("x")
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1

        manager.reset()

        assert file_handlers[0].stream is None


class TestEventHelpers:
    """Test structured event helpers."""

    def test_log_event(self) -> None:
        """Test generic events carry their type."""
        logger = Mock()

        log_event(logger, "event", "something happened", namespace="ns1")

        logger.info.assert_called_once_with(
            "something happened", extra={"event_type": "event", "namespace": "ns1"}
        )

    def test_instance_transition_logged_at_info(self) -> None:
        """Test regular transitions are info."""
        logger = Mock()

        log_instance_event(logger, LifecycleState.READY, "ns1")

        args, kwargs = logger.info.call_args
        assert args == ("Instance %s -> %s", "ns1", "ready")
        assert kwargs["extra"]["lifecycle_state"] == "ready"
        logger.error.assert_not_called()

    def test_failed_transitions_logged_at_error(self) -> None:
        """Test failure states are errors."""
        logger = Mock()

        log_instance_event(logger, LifecycleState.DB_FAILED, "ns1")

        logger.error.assert_called_once()
        logger.info.assert_not_called()

    def test_batch_event(self) -> None:
        """Test batch events include kind and count."""
        logger = Mock()

        log_batch_event(logger, "applying", BatchKind.DATABASE, "ns1", 2)

        args, kwargs = logger.info.call_args
        assert args == ("Batch %s/%s %s", "ns1", "database", "applying")
        assert kwargs["extra"]["manifest_count"] == 2

    def test_poll_event_is_debug(self) -> None:
        """Test poll misses are debug records."""
        logger = Mock()

        log_poll_event(logger, "pods", 2, 5)

        logger.debug.assert_called_once()
        assert logger.debug.call_args[0] == ("Waiting for %s (%d/%d)", "pods", 2, 5)
