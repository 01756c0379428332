"""Test configuration, fakes and fixtures for unit tests."""

from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from hubdeploy.core.context import ApplicationContext
from hubdeploy.core.enums import BatchKind, JobPhase
from hubdeploy.core.errors import PlatformError
from hubdeploy.core.types import DatabasePasswords, DeploymentBatch, ServiceInfo
from hubdeploy.instances.orchestrator import LifecycleOrchestrator


class FakeCluster:
    """In-memory ClusterApi.

    Lookups of objects that were never registered raise a 404 PlatformError,
    like the real client does.
    """

    def __init__(self) -> None:
        self.namespaces: Set[str] = set()
        self.secrets: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.services: Dict[Tuple[str, str], ServiceInfo] = {}
        self.pvc_volumes: Dict[Tuple[str, str], Optional[str]] = {}
        self.pod_phases: Dict[str, Dict[str, str]] = {}
        self.ready_endpoints: Set[Tuple[str, str]] = set()
        self.job_phases: Dict[str, JobPhase] = {}
        # every submitted job, in order; live_jobs holds the ones not deleted
        self.jobs: List[Tuple[str, Dict[str, Any]]] = []
        self.live_jobs: Set[Tuple[str, str]] = set()
        self.persistent_volumes: Dict[str, int] = {}
        self.calls: List[Tuple[str, str]] = []

    def namespace_exists(self, namespace: str) -> bool:
        self.calls.append(("namespace_exists", namespace))
        return namespace in self.namespaces

    def delete_namespace(self, namespace: str) -> bool:
        self.calls.append(("delete_namespace", namespace))
        if namespace not in self.namespaces:
            return False
        self.namespaces.discard(namespace)
        self.live_jobs = {job for job in self.live_jobs if job[0] != namespace}
        return True

    def read_secret(self, namespace: str, name: str) -> Dict[str, str]:
        try:
            return dict(self.secrets[(namespace, name)])
        except KeyError:
            raise PlatformError(f"secret {name} not found", status=404) from None

    def read_service(self, namespace: str, name: str) -> ServiceInfo:
        try:
            return self.services[(namespace, name)]
        except KeyError:
            raise PlatformError(f"service {name} not found", status=404) from None

    def read_pvc_volume_name(self, namespace: str, name: str) -> Optional[str]:
        try:
            return self.pvc_volumes[(namespace, name)]
        except KeyError:
            raise PlatformError(f"pvc {name} not found", status=404) from None

    def list_pod_phases(self, namespace: str) -> Dict[str, str]:
        return dict(self.pod_phases.get(namespace, {}))

    def service_endpoint_ready(self, namespace: str, name: str) -> bool:
        return (namespace, name) in self.ready_endpoints

    def create_job(self, namespace: str, manifest: Dict[str, Any]) -> str:
        name = manifest["metadata"]["name"]
        if (namespace, name) in self.live_jobs:
            raise PlatformError(f"job {name} already exists", status=409, reason="AlreadyExists")
        self.live_jobs.add((namespace, name))
        self.jobs.append((namespace, manifest))
        return name

    def job_phase(self, namespace: str, name: str) -> JobPhase:
        if (namespace, name) not in self.live_jobs:
            raise PlatformError(f"job {name} not found", status=404)
        return self.job_phases.get(name, JobPhase.SUCCEEDED)

    def job_exists(self, namespace: str, name: str) -> bool:
        return (namespace, name) in self.live_jobs

    def delete_job(self, namespace: str, name: str) -> bool:
        self.calls.append(("delete_job", f"{namespace}/{name}"))
        if (namespace, name) not in self.live_jobs:
            return False
        self.live_jobs.discard((namespace, name))
        return True

    def delete_persistent_volumes(self, namespace: str) -> int:
        self.calls.append(("delete_persistent_volumes", namespace))
        return self.persistent_volumes.pop(namespace, 0)

    def delete_cluster_role_binding(self, name: str) -> bool:
        self.calls.append(("delete_cluster_role_binding", name))
        return True

    def make_healthy(self, namespace: str, cluster_ip: str = "10.0.0.7") -> None:
        """Register everything a successful create in ``namespace`` looks at."""
        self.namespaces.add(namespace)
        self.pod_phases[namespace] = {"webserver-0": "Running", "postgres-0": "Running"}
        self.ready_endpoints.add((namespace, "postgres"))
        self.services[(namespace, "webserver-np")] = ServiceInfo(
            name="webserver-np", cluster_ip=cluster_ip, node_ports=[30443]
        )


class RecordingApplier:
    """BatchApplier recording every call; can be told to fail one batch kind."""

    def __init__(self, fail_on: Optional[BatchKind] = None) -> None:
        self.fail_on = fail_on
        self.events: List[Tuple[str, BatchKind]] = []
        self.batches: List[DeploymentBatch] = []

    def apply(self, batch: DeploymentBatch) -> None:
        self._record("apply", batch)

    def remove(self, batch: DeploymentBatch) -> None:
        self._record("remove", batch)

    @property
    def call_count(self) -> int:
        return len(self.events)

    def kinds(self, action: str) -> List[BatchKind]:
        return [kind for event, kind in self.events if event == action]

    def _record(self, action: str, batch: DeploymentBatch) -> None:
        self.events.append((action, batch.kind))
        self.batches.append(batch)
        if batch.kind == self.fail_on:
            raise PlatformError(f"{action} of {batch.name} failed", status=500)


class FakeCredentials:
    """CredentialSource returning fixed passwords."""

    def __init__(self) -> None:
        self.passwords = DatabasePasswords(admin="admin-pw", user="user-pw", postgres="pg-pw")
        self.source_requests: List[str] = []

    def default_passwords(self) -> DatabasePasswords:
        return self.passwords

    def source_database_password(self, namespace: str) -> str:
        self.source_requests.append(namespace)
        return "source-pw"


@pytest.fixture
def fake_cluster():
    """Provide a cluster with a healthy ns1 instance."""
    cluster = FakeCluster()
    cluster.make_healthy("ns1")
    return cluster


@pytest.fixture
def applier():
    """Provide a recording applier."""
    return RecordingApplier()


@pytest.fixture
def credentials():
    """Provide fixed bootstrap credentials."""
    return FakeCredentials()


@pytest.fixture
def app_context(fake_cluster, applier, credentials):
    """Provide an application context wired to the fakes with instant polling."""
    return ApplicationContext.for_testing(
        cluster=fake_cluster, applier=applier, credentials=credentials
    )


@pytest.fixture
def orchestrator(app_context):
    """Provide an orchestrator wired to the fakes."""
    return LifecycleOrchestrator(app_context)
