"""Protocol definitions for the collaborators of the lifecycle orchestrator.

Protocols define the "what" (interfaces) without depending on "how"
(implementations). The Kubernetes-backed implementations live in
``hubdeploy.instances``; tests substitute in-memory fakes.
"""

from typing import Any, Dict, Optional, Protocol

from .enums import JobPhase
from .types import (
    DatabasePasswords,
    DeploymentBatch,
    FlavorProfile,
    InstanceSpec,
    ServiceInfo,
)


class ResourceBuilder(Protocol):
    """Converts an instance spec and flavor into manifests. Pure."""

    def build_config_batch(
        self,
        spec: InstanceSpec,
        flavor: FlavorProfile,
        passwords: Optional[DatabasePasswords],
    ) -> DeploymentBatch:
        """Secrets and config maps. ``passwords`` may be None when removing."""

    def build_storage_batch(self, spec: InstanceSpec) -> DeploymentBatch:
        """Persistent volume claims. Never removed by stop."""

    def build_database_batch(
        self, spec: InstanceSpec, flavor: FlavorProfile
    ) -> DeploymentBatch:
        """Database deployment, service and claims."""

    def build_application_batch(
        self, spec: InstanceSpec, flavor: FlavorProfile
    ) -> DeploymentBatch:
        """Web tier, scan tier and sidecars."""

    def build_exposure_batch(self, spec: InstanceSpec) -> DeploymentBatch:
        """Services that expose the web tier."""

    def build_database_init_job(
        self, spec: InstanceSpec, passwords: DatabasePasswords
    ) -> Dict[str, Any]:
        """Job that creates schemas and users in a fresh database."""

    def build_database_clone_job(
        self,
        spec: InstanceSpec,
        job_namespace: str,
        source_password: str,
    ) -> Dict[str, Any]:
        """Job that copies the clone source database into the instance."""


class BatchApplier(Protocol):
    """Applies or removes a batch. Re-applying identical manifests is a no-op."""

    def apply(self, batch: DeploymentBatch) -> None:
        """Create every manifest in the batch."""

    def remove(self, batch: DeploymentBatch) -> None:
        """Delete every manifest in the batch."""


class ClusterApi(Protocol):
    """Cluster reads and the few direct mutations the orchestrator performs.

    Every method raises PlatformError on API failure.
    """

    def namespace_exists(self, namespace: str) -> bool:
        """Whether the namespace is still reported by the platform."""

    def delete_namespace(self, namespace: str) -> bool:
        """Request deletion; False if it was already gone."""

    def read_secret(self, namespace: str, name: str) -> Dict[str, str]:
        """Decoded secret data."""

    def read_service(self, namespace: str, name: str) -> ServiceInfo:
        """Service addresses."""

    def read_pvc_volume_name(self, namespace: str, name: str) -> Optional[str]:
        """Bound volume name, or None while unbound."""

    def list_pod_phases(self, namespace: str) -> Dict[str, str]:
        """Pod name -> phase for every pod in the namespace."""

    def service_endpoint_ready(self, namespace: str, name: str) -> bool:
        """Whether the service has at least one ready endpoint address."""

    def create_job(self, namespace: str, manifest: Dict[str, Any]) -> str:
        """Submit a job, returning its name. An existing job is a conflict."""

    def job_phase(self, namespace: str, name: str) -> JobPhase:
        """Current phase of a job."""

    def job_exists(self, namespace: str, name: str) -> bool:
        """Whether a job of that name is still reported."""

    def delete_job(self, namespace: str, name: str) -> bool:
        """Delete a job and its pods; False if it was already gone."""

    def delete_persistent_volumes(self, namespace: str) -> int:
        """Delete volumes whose claims lived in the namespace; returns the count."""

    def delete_cluster_role_binding(self, name: str) -> bool:
        """Delete a cluster role binding; False if it was already gone."""


class RouteClient(Protocol):
    """Platform-native route support (OpenShift)."""

    def ensure_route(self, namespace: str, name: str, service_name: str) -> str:
        """Create the route if missing and return its host."""


class CredentialSource(Protocol):
    """Source of bootstrap database credentials."""

    def default_passwords(self) -> DatabasePasswords:
        """Passwords from the operator's well-known secret."""

    def source_database_password(self, namespace: str) -> str:
        """Database password of the instance living in ``namespace``."""
