"""Error hierarchy for hubdeploy.

Every error raised by the orchestrator derives from HubDeployError. The
``fatal`` attribute tells callers whether the deployment that produced the
error should be considered unusable (True) or kept (False).
"""

from typing import Optional, Dict, Any


class HubDeployError(Exception):
    """Base exception for all hubdeploy errors."""

    fatal: bool = True

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration and Setup Errors
class ConfigurationError(HubDeployError):
    """Invalid size tag, malformed instance spec or invalid configuration.

    Always detected before any cluster mutation.
    """


# Platform Errors
class PlatformError(HubDeployError):
    """A cluster API call failed."""

    def __init__(self, message: str, status: Optional[int] = None,
                 reason: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.status = status
        self.reason = reason

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_conflict(self) -> bool:
        return self.status == 409


class DatabaseBootstrapError(PlatformError):
    """Database initialization or clone job reported failure."""


# Timeout Errors
class HubDeployTimeoutError(HubDeployError):
    """A bounded poll exhausted its attempts."""

    def __init__(self, message: str, attempts: int, interval: float,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.attempts = attempts
        self.interval = interval


# Partial success
class PartialSuccessError(HubDeployError):
    """The instance is deployed and healthy but a post-deploy lookup failed.

    Raised by ``create`` when PVC binding or endpoint resolution fails. The
    deployment should be retained; ``result`` holds what was resolved.
    """

    fatal = False

    def __init__(self, message: str, result: Any,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.result = result
