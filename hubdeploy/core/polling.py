"""Bounded readiness polling.

``poll_until`` is the only waiting primitive used by the orchestrator. It
blocks the calling thread for at most ``interval * (max_attempts - 1)``
seconds plus the time spent inside ``check``; there is no cancellation.

Errors raised by ``check`` are never retried here. Callers that want to ride
out transient platform errors wrap their check with ``tolerate_platform_errors``.
"""

import time
from typing import Callable, Optional, Tuple, TypeVar

from .errors import HubDeployTimeoutError, PlatformError
from .log import Logger, get_logger, log_poll_event
from .types import PollPolicy

T = TypeVar("T")

CheckResult = Tuple[Optional[T], bool]

logger = get_logger(__name__)


def poll_until(
    check: Callable[[], CheckResult],
    interval: float,
    max_attempts: int,
    what: str = "condition",
    log: Optional[Logger] = None,
) -> T:
    """Call ``check`` until it reports done or attempts run out.

    Args:
        check: Returns ``(value, done)``; the first value with ``done`` true
            is returned
        interval: Seconds slept between attempts (not after the last one)
        max_attempts: Maximum number of ``check`` invocations
        what: Description used in log messages and the timeout error
        log: Logger for progress messages (module logger if None)

    Raises:
        HubDeployTimeoutError: If ``check`` never reported done
        Exception: Anything raised by ``check``, unchanged
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    log = log or logger
    for attempt in range(1, max_attempts + 1):
        value, done = check()
        if done:
            return value

        log_poll_event(log, what, attempt, max_attempts)
        if attempt < max_attempts and interval > 0:
            time.sleep(interval)

    raise HubDeployTimeoutError(
        f"Timed out waiting for {what} after {max_attempts} attempts",
        attempts=max_attempts,
        interval=interval,
        details={"what": what},
    )


def poll_with(
    policy: PollPolicy,
    check: Callable[[], CheckResult],
    what: str = "condition",
    log: Optional[Logger] = None,
) -> T:
    """``poll_until`` driven by a configured PollPolicy."""
    return poll_until(check, policy.interval, policy.max_attempts, what=what, log=log)


def tolerate_platform_errors(
    check: Callable[[], CheckResult],
    what: str,
    log: Optional[Logger] = None,
) -> Callable[[], CheckResult]:
    """Wrap ``check`` so a PlatformError counts as "not ready yet"."""
    log = log or logger

    def tolerant_check() -> CheckResult:
        try:
            return check()
        except PlatformError as e:
            log.debug("Lookup of %s failed, will retry: %s", what, e)
            return None, False

    return tolerant_check
