"""Kubernetes implementation of the ClusterApi protocol."""

import base64
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..core.enums import JobPhase
from ..core.errors import ConfigurationError, PlatformError
from ..core.log import get_logger
from ..core.types import KubeConfig, ServiceInfo

logger = get_logger(__name__)


def platform_error(exc: ApiException, action: str) -> PlatformError:
    """Translate an ApiException into a PlatformError keeping the status."""
    return PlatformError(
        f"Unable to {action}: {exc.status} {exc.reason}",
        status=exc.status,
        reason=exc.reason,
        details={"body": exc.body} if exc.body else None,
    )


def create_api_client(kube: KubeConfig) -> client.ApiClient:
    """Load cluster credentials and build an ApiClient.

    Raises:
        ConfigurationError: If no usable kubeconfig / in-cluster config exists
    """
    try:
        if kube.in_cluster:
            config.load_incluster_config()
            logger.debug("Loaded in-cluster Kubernetes config")
        else:
            config.load_kube_config(
                config_file=str(kube.kubeconfig) if kube.kubeconfig else None,
                context=kube.context,
            )
            logger.debug("Loaded kubeconfig (context=%s)", kube.context or "current")
    except (config.ConfigException, OSError) as e:
        raise ConfigurationError(f"Unable to load Kubernetes configuration: {e}") from e
    return client.ApiClient()


class KubernetesCluster:
    """ClusterApi backed by the official Kubernetes client."""

    def __init__(self, api_client: Optional[client.ApiClient] = None) -> None:
        self.core_v1 = client.CoreV1Api(api_client)
        self.batch_v1 = client.BatchV1Api(api_client)
        self.rbac_v1 = client.RbacAuthorizationV1Api(api_client)

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self.core_v1.read_namespace(namespace)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"get namespace {namespace}") from e

    def delete_namespace(self, namespace: str) -> bool:
        try:
            self.core_v1.delete_namespace(namespace)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"delete namespace {namespace}") from e

    def read_secret(self, namespace: str, name: str) -> Dict[str, str]:
        try:
            secret = self.core_v1.read_namespaced_secret(name, namespace)
        except ApiException as e:
            raise platform_error(e, f"get secret {name} in {namespace}") from e

        return {
            key: base64.b64decode(value).decode("utf-8")
            for key, value in (secret.data or {}).items()
        }

    def read_service(self, namespace: str, name: str) -> ServiceInfo:
        try:
            service = self.core_v1.read_namespaced_service(name, namespace)
        except ApiException as e:
            raise platform_error(e, f"get service {name} in {namespace}") from e

        ingress_addresses = []
        load_balancer = service.status.load_balancer if service.status else None
        for ingress in (load_balancer.ingress if load_balancer else None) or []:
            address = ingress.ip or ingress.hostname
            if address:
                ingress_addresses.append(address)

        cluster_ip = service.spec.cluster_ip if service.spec else None
        if cluster_ip == "None":
            # Headless service
            cluster_ip = None

        return ServiceInfo(
            name=name,
            cluster_ip=cluster_ip or None,
            ingress_addresses=ingress_addresses,
            node_ports=[
                port.node_port
                for port in ((service.spec.ports if service.spec else None) or [])
                if port.node_port
            ],
        )

    def read_pvc_volume_name(self, namespace: str, name: str) -> Optional[str]:
        try:
            pvc = self.core_v1.read_namespaced_persistent_volume_claim(name, namespace)
        except ApiException as e:
            raise platform_error(e, f"get pvc {name} in {namespace}") from e
        return (pvc.spec.volume_name if pvc.spec else None) or None

    def list_pod_phases(self, namespace: str) -> Dict[str, str]:
        try:
            pods = self.core_v1.list_namespaced_pod(namespace)
        except ApiException as e:
            raise platform_error(e, f"list pods in {namespace}") from e
        return {
            pod.metadata.name: (pod.status.phase if pod.status else None) or "Unknown"
            for pod in pods.items
        }

    def service_endpoint_ready(self, namespace: str, name: str) -> bool:
        try:
            endpoints = self.core_v1.read_namespaced_endpoints(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"get endpoints {name} in {namespace}") from e
        return any(subset.addresses for subset in endpoints.subsets or [])

    def create_job(self, namespace: str, manifest: Dict[str, Any]) -> str:
        name = manifest["metadata"]["name"]
        try:
            self.batch_v1.create_namespaced_job(namespace, manifest)
        except ApiException as e:
            raise platform_error(e, f"create job {name} in {namespace}") from e
        return name

    def job_phase(self, namespace: str, name: str) -> JobPhase:
        try:
            job = self.batch_v1.read_namespaced_job_status(name, namespace)
        except ApiException as e:
            raise platform_error(e, f"get job {name} in {namespace}") from e

        for condition in (job.status.conditions if job.status else None) or []:
            if condition.status != "True":
                continue
            if condition.type == "Complete":
                return JobPhase.SUCCEEDED
            if condition.type == "Failed":
                return JobPhase.FAILED
        return JobPhase.RUNNING

    def job_exists(self, namespace: str, name: str) -> bool:
        try:
            self.batch_v1.read_namespaced_job(name, namespace)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"get job {name} in {namespace}") from e

    def delete_job(self, namespace: str, name: str) -> bool:
        try:
            self.batch_v1.delete_namespaced_job(
                name,
                namespace,
                body=client.V1DeleteOptions(propagation_policy="Foreground"),
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"delete job {name} in {namespace}") from e

    def delete_persistent_volumes(self, namespace: str) -> int:
        """Delete every volume claimed from ``namespace``.

        A failing volume does not stop the others; failures are reported
        together once all volumes were tried.
        """
        try:
            volumes = self.core_v1.list_persistent_volume()
        except ApiException as e:
            raise platform_error(e, "list persistent volumes") from e

        deleted = 0
        failed: Dict[str, str] = {}
        for volume in volumes.items:
            claim_ref = volume.spec.claim_ref if volume.spec else None
            if claim_ref is None or claim_ref.namespace != namespace:
                continue
            name = volume.metadata.name
            try:
                self.core_v1.delete_persistent_volume(name)
                deleted += 1
            except ApiException as e:
                if e.status == 404:
                    continue
                logger.warning("Unable to delete persistent volume %s: %s", name, e.reason)
                failed[name] = f"{e.status} {e.reason}"

        if failed:
            raise PlatformError(
                f"Unable to delete persistent volume(s) {', '.join(sorted(failed))} "
                f"of {namespace}",
                details={"deleted": deleted, "failed": failed},
            )
        return deleted

    def delete_cluster_role_binding(self, name: str) -> bool:
        try:
            self.rbac_v1.delete_cluster_role_binding(name)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise platform_error(e, f"delete cluster role binding {name}") from e
