"""Tests for bounded readiness polling."""

import pytest
from unittest.mock import Mock, patch

from hubdeploy.core.errors import HubDeployTimeoutError, PlatformError
from hubdeploy.core.polling import poll_until, poll_with, tolerate_platform_errors
from hubdeploy.core.types import PollPolicy


class TestPollUntil:
    """Test poll_until attempt bounds and error propagation."""

    def test_returns_first_done_value(self) -> None:
        """Test the value of the first successful check is returned."""
        check = Mock(side_effect=[(None, False), ("10.0.0.1", True), ("other", True)])

        assert poll_until(check, interval=0, max_attempts=5) == "10.0.0.1"
        assert check.call_count == 2

    def test_times_out_after_exact_attempts(self) -> None:
        """Test a never-succeeding check is called exactly max_attempts times."""
        check = Mock(return_value=(None, False))

        with pytest.raises(HubDeployTimeoutError) as exc_info:
            poll_until(check, interval=0, max_attempts=3, what="something")

        assert check.call_count == 3
        assert exc_info.value.attempts == 3
        assert "something" in str(exc_info.value)

    def test_errors_from_check_propagate_immediately(self) -> None:
        """Test errors raised by check are not retried."""
        check = Mock(side_effect=PlatformError("api down", status=500))

        with pytest.raises(PlatformError):
            poll_until(check, interval=0, max_attempts=5)

        assert check.call_count == 1

    @patch("hubdeploy.core.polling.time.sleep")
    def test_sleeps_only_between_attempts(self, mock_sleep) -> None:
        """Test interval is slept between attempts, never after the last."""
        check = Mock(return_value=(None, False))

        with pytest.raises(HubDeployTimeoutError):
            poll_until(check, interval=10, max_attempts=3)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(10)

    @patch("hubdeploy.core.polling.time.sleep")
    def test_no_sleep_when_first_attempt_succeeds(self, mock_sleep) -> None:
        """Test a ready condition returns without sleeping."""
        poll_until(lambda: (1, True), interval=10, max_attempts=3)

        mock_sleep.assert_not_called()

    def test_rejects_zero_attempts(self) -> None:
        """Test max_attempts must be positive."""
        with pytest.raises(ValueError):
            poll_until(lambda: (None, True), interval=0, max_attempts=0)

    def test_logs_each_miss(self) -> None:
        """Test each unsuccessful attempt is logged at debug level."""
        log = Mock()

        with pytest.raises(HubDeployTimeoutError):
            poll_until(lambda: (None, False), interval=0, max_attempts=2, log=log)

        assert log.debug.call_count == 2


class TestPollWith:
    """Test policy-driven polling."""

    def test_uses_policy_bounds(self) -> None:
        """Test attempts come from the policy."""
        check = Mock(return_value=(None, False))

        with pytest.raises(HubDeployTimeoutError):
            poll_with(PollPolicy(interval=0, max_attempts=4), check)

        assert check.call_count == 4


class TestTolerantChecks:
    """Test tolerate_platform_errors wrapper."""

    def test_platform_error_counts_as_not_ready(self) -> None:
        """Test transient platform errors are retried by the poll."""
        check = Mock(side_effect=[PlatformError("not yet", status=404), ("pv-1", True)])

        wrapped = tolerate_platform_errors(check, "pvc")

        assert poll_until(wrapped, interval=0, max_attempts=3) == "pv-1"
        assert check.call_count == 2

    def test_other_errors_still_propagate(self) -> None:
        """Test only PlatformError is suppressed."""
        wrapped = tolerate_platform_errors(Mock(side_effect=KeyError("bug")), "pvc")

        with pytest.raises(KeyError):
            wrapped()

    def test_persistent_platform_errors_time_out(self) -> None:
        """Test a lookup failing every time ends in a timeout."""
        check = Mock(side_effect=PlatformError("down", status=503))

        with pytest.raises(HubDeployTimeoutError):
            poll_until(tolerate_platform_errors(check, "svc"), interval=0, max_attempts=3)

        assert check.call_count == 3
