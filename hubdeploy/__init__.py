"""
hubdeploy: lifecycle orchestration for multi-tier instances on Kubernetes

Creates, starts, stops and deletes instances made of a config tier, a
database tier, an application tier and an exposure layer. Every wait on the
cluster is a bounded poll; errors carry a ``fatal`` flag telling callers
whether the deployment is worth keeping.
"""

__version__ = "1.0.0"

# Core exports
from .core.enums import DesiredState, ExposureMode, InstanceSize, InstanceStatus
from .core.errors import (
    HubDeployError,
    ConfigurationError,
    PlatformError,
    HubDeployTimeoutError,
    PartialSuccessError,
)
from .core.types import (
    EndpointRecord,
    HubDeployConfig,
    InstallationResult,
    InstanceSpec,
)

__all__ = [
    "__version__",
    "DesiredState",
    "ExposureMode",
    "InstanceSize",
    "InstanceStatus",
    "HubDeployError",
    "ConfigurationError",
    "PlatformError",
    "HubDeployTimeoutError",
    "PartialSuccessError",
    "EndpointRecord",
    "HubDeployConfig",
    "InstallationResult",
    "InstanceSpec",
]
