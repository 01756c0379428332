"""Core type definitions for hubdeploy."""

from typing import Dict, List, Optional, Any
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import (
    BatchKind,
    DesiredState,
    EndpointMechanism,
    ExposureMode,
    InstanceSize,
    InstanceStatus,
)
from .value_objects import Namespace


class PVCSpec(BaseModel):
    """Persistent volume claim requested by an instance."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: str = "2Gi"
    storage_class: Optional[str] = None


class ExternalDatabase(BaseModel):
    """Reference to a database that lives outside the instance namespace."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 5432
    admin_user: str = "blackduck"
    user: str = "blackduck_user"
    ssl: bool = True
    admin_password: str = Field(default="", repr=False)
    user_password: str = Field(default="", repr=False)


class RegistryConfig(BaseModel):
    """Image registry override and pull secrets."""

    model_config = ConfigDict(frozen=True)

    registry: Optional[str] = None
    pull_secrets: List[str] = Field(default_factory=list)


class InstanceSpec(BaseModel):
    """Declarative description of one instance. Read-only to the orchestrator.

    ``size`` is kept as a raw tag; it is resolved to a flavor on every
    operation so that an unknown tag surfaces as a ConfigurationError from
    the operation rather than from parsing.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    size: str = InstanceSize.SMALL.value
    version: str = "2019.12.0"
    persistent_storage: bool = False
    pvcs: List[PVCSpec] = Field(default_factory=list)
    external_database: Optional[ExternalDatabase] = None
    desired_state: DesiredState = DesiredState.RUNNING
    status: InstanceStatus = InstanceStatus.PENDING
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    db_prototype: Optional[str] = None
    exposure: ExposureMode = ExposureMode.NODEPORT
    environs: Dict[str, str] = Field(default_factory=dict)
    # Passed through to the resource builder untouched
    passthrough: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("size", mode="before")
    @classmethod
    def _normalize_size(cls, value: Any) -> Any:
        if isinstance(value, InstanceSize):
            return value.value
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("status", "desired_state", "exposure", mode="before")
    @classmethod
    def _lowercase_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("db_prototype", mode="before")
    @classmethod
    def _empty_prototype_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def validate_spec(self) -> "InstanceSpec":
        """Validate cross-field constraints. Pure, no side effects."""
        from .errors import ConfigurationError

        try:
            Namespace(self.namespace)
            Namespace(self.name)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.external_database is not None and self.db_prototype:
            raise ConfigurationError(
                "Cannot clone a database into an instance that uses an external database"
            )

        claim_names = [pvc.name for pvc in self.pvcs]
        if len(claim_names) != len(set(claim_names)):
            raise ConfigurationError(f"Duplicate PVC names in {claim_names}")

        return self

    @property
    def uses_external_database(self) -> bool:
        return self.external_database is not None

    @property
    def is_first_start(self) -> bool:
        return self.status == InstanceStatus.PENDING


class ContainerSizing(BaseModel):
    """Replica count and resource requests for one component."""

    model_config = ConfigDict(frozen=True)

    replicas: int = 1
    cpu: Optional[str] = None
    memory: str


class FlavorProfile(BaseModel):
    """Resolved resource sizing for a size tag."""

    model_config = ConfigDict(frozen=True)

    size: InstanceSize
    components: Dict[str, ContainerSizing]

    def sizing(self, component: str) -> ContainerSizing:
        """Get sizing for a component, raising KeyError if absent."""
        return self.components[component]


class DatabasePasswords(BaseModel):
    """Bootstrap database passwords read from the operator namespace."""

    model_config = ConfigDict(frozen=True)

    admin: str = Field(repr=False)
    user: str = Field(repr=False)
    postgres: str = Field(repr=False)


class EndpointRecord(BaseModel):
    """Externally reachable address and the mechanism that produced it."""

    model_config = ConfigDict(frozen=True)

    address: str
    mechanism: EndpointMechanism


class InstallationResult(BaseModel):
    """Outcome of a successful (or partially successful) create."""

    endpoint: Optional[EndpointRecord] = None
    # claim name -> bound volume name
    pvc_volumes: Dict[str, str] = Field(default_factory=dict)


class PollPolicy(BaseModel):
    """Fixed interval and attempt bound for one readiness poll."""

    model_config = ConfigDict(frozen=True)

    interval: float = 10.0
    max_attempts: int = 10

    @model_validator(mode="after")
    def validate_policy(self) -> "PollPolicy":
        from .errors import ConfigurationError

        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ConfigurationError("interval must not be negative")
        return self


class PollingConfig(BaseModel):
    """Centralized poll bounds to eliminate magical constants."""

    pods_running: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=10.0, max_attempts=60)
    )
    pvc_binding: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=10.0, max_attempts=60)
    )
    load_balancer: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=10.0, max_attempts=10)
    )
    node_port: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=10.0, max_attempts=10)
    )
    credentials: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=5.0, max_attempts=60)
    )
    database_endpoint: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=5.0, max_attempts=60)
    )
    job_completion: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=5.0, max_attempts=120)
    )
    namespace_deletion: PollPolicy = Field(
        default_factory=lambda: PollPolicy(interval=10.0, max_attempts=60)
    )
    # Applied once after exposure, before the first endpoint lookup
    exposure_settle_delay: float = 60.0


class KubeConfig(BaseModel):
    """How to reach the cluster."""

    kubeconfig: Optional[Path] = None
    context: Optional[str] = None
    in_cluster: bool = False
    openshift_routes: bool = False


class HubDeployConfig(BaseModel):
    """Main configuration."""

    operator_namespace: str = "synopsys-operator"
    password_secret_name: str = "blackduck-secret"
    kube: KubeConfig = Field(default_factory=KubeConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    verbose: int = 0

    @model_validator(mode="after")
    def validate_config(self) -> "HubDeployConfig":
        """Validate configuration - NO SIDE EFFECTS."""
        from .errors import ConfigurationError

        try:
            Namespace(self.operator_namespace)
        except ValueError as e:
            raise ConfigurationError(f"Invalid operator namespace: {e}") from e

        if not self.password_secret_name.strip():
            raise ConfigurationError("password_secret_name must not be empty")

        if self.polling.exposure_settle_delay < 0:  # pylint: disable=no-member
            raise ConfigurationError("exposure_settle_delay must not be negative")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

        return self


class DeploymentBatch(BaseModel):
    """Named, ordered set of manifests applied or removed together."""

    kind: BatchKind
    namespace: str
    manifests: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return f"{self.namespace}/{self.kind.value}"

    def __len__(self) -> int:
        return len(self.manifests)


class ServiceInfo(BaseModel):
    """Subset of a Service that endpoint resolution looks at."""

    name: str
    cluster_ip: Optional[str] = None
    # IPs (or hostnames when no IP is reported) of load balancer ingresses
    ingress_addresses: List[str] = Field(default_factory=list)
    node_ports: List[int] = Field(default_factory=list)
