"""Core enumerations for hubdeploy.

Separated from types.py so that modules needing only the enums do not import
the pydantic models.
"""

from enum import Enum


class InstanceSize(Enum):
    """Size tag of an instance; selects a flavor profile."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    X_LARGE = "x-large"


class DesiredState(Enum):
    """Lifecycle state requested by the caller."""

    RUNNING = "running"
    STOPPED = "stopped"


class InstanceStatus(Enum):
    """State tag recorded for an instance by the caller.

    ``PENDING`` marks an instance that has never been started.
    """

    PENDING = "pending"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class ExposureMode(Enum):
    """How the web tier is exposed outside the cluster."""

    ROUTE = "route"
    LOADBALANCER = "loadbalancer"
    NODEPORT = "nodeport"
    NONE = "none"


class EndpointMechanism(Enum):
    """Platform feature that produced an external address."""

    ROUTE = "route"
    LOAD_BALANCER = "loadBalancer"
    NODE_PORT = "nodePort"


class BatchKind(Enum):
    """Orchestration step a deployment batch belongs to."""

    CONFIG = "config"
    DATABASE = "database"
    APPLICATION = "application"
    STORAGE = "storage"
    EXPOSURE = "exposure"


class LifecycleState(Enum):
    """Conceptual lifecycle of an instance. Logged, never persisted."""

    ABSENT = "absent"
    INITIALIZING = "initializing"
    CONFIG_FAILED = "configFailed"
    DB_INITIALIZING = "dbInitializing"
    DB_FAILED = "dbFailed"
    APP_DEPLOYING = "appDeploying"
    EXPOSING = "exposing"
    READY = "ready"
    STOPPED = "stopped"


class JobPhase(Enum):
    """Observed phase of a one-shot database job."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
