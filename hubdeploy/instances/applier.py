"""Kubernetes batch applier.

Manifests are applied one by one in batch order and removed in reverse
order. The platform applies them independently, so a failed apply can leave
the earlier manifests of the batch in place; callers treat that as
abort-in-place.
"""

from typing import Any, Callable, Dict, Optional, Tuple

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..core.errors import ConfigurationError
from ..core.types import DeploymentBatch
from ..core.log import Logger, get_logger, log_batch_event
from .cluster import platform_error

Handler = Tuple[Callable[..., Any], Callable[..., Any]]


class KubernetesBatchApplier:
    """BatchApplier that creates and deletes manifests through the API."""

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._logger = logger or get_logger(__name__)
        core = client.CoreV1Api(api_client)
        apps = client.AppsV1Api(api_client)
        batch = client.BatchV1Api(api_client)
        self._core = core
        # kind -> (create(namespace, body), delete(name, namespace))
        self._handlers: Dict[str, Handler] = {
            "Secret": (core.create_namespaced_secret, core.delete_namespaced_secret),
            "ConfigMap": (
                core.create_namespaced_config_map,
                core.delete_namespaced_config_map,
            ),
            "Service": (core.create_namespaced_service, core.delete_namespaced_service),
            "PersistentVolumeClaim": (
                core.create_namespaced_persistent_volume_claim,
                core.delete_namespaced_persistent_volume_claim,
            ),
            "ServiceAccount": (
                core.create_namespaced_service_account,
                core.delete_namespaced_service_account,
            ),
            "Deployment": (
                apps.create_namespaced_deployment,
                apps.delete_namespaced_deployment,
            ),
            "Job": (batch.create_namespaced_job, batch.delete_namespaced_job),
        }

    def apply(self, batch: DeploymentBatch) -> None:
        """Create every manifest; existing objects are left untouched.

        Raises:
            PlatformError: On the first failing API call
            ConfigurationError: On a manifest kind without a handler
        """
        log_batch_event(self._logger, "applying", batch.kind, batch.namespace, len(batch))
        if batch.manifests:
            self._ensure_namespace(batch.namespace)

        for manifest in batch.manifests:
            create, _ = self._handler_for(manifest)
            name = manifest["metadata"]["name"]
            try:
                create(batch.namespace, manifest)
                self._logger.debug("Created %s %s/%s", manifest["kind"], batch.namespace, name)
            except ApiException as e:
                if e.status == 409:
                    self._logger.debug(
                        "%s %s/%s already exists", manifest["kind"], batch.namespace, name
                    )
                    continue
                raise platform_error(
                    e, f"create {manifest['kind']} {name} in {batch.namespace}"
                ) from e

        log_batch_event(self._logger, "applied", batch.kind, batch.namespace)

    def remove(self, batch: DeploymentBatch) -> None:
        """Delete every manifest, last first; missing objects are skipped.

        Raises:
            PlatformError: On the first failing API call
            ConfigurationError: On a manifest kind without a handler
        """
        log_batch_event(self._logger, "removing", batch.kind, batch.namespace, len(batch))
        options = client.V1DeleteOptions(propagation_policy="Background")

        for manifest in reversed(batch.manifests):
            _, delete = self._handler_for(manifest)
            name = manifest["metadata"]["name"]
            try:
                delete(name, batch.namespace, body=options)
                self._logger.debug("Deleted %s %s/%s", manifest["kind"], batch.namespace, name)
            except ApiException as e:
                if e.status == 404:
                    continue
                raise platform_error(
                    e, f"delete {manifest['kind']} {name} in {batch.namespace}"
                ) from e

        log_batch_event(self._logger, "removed", batch.kind, batch.namespace)

    def _handler_for(self, manifest: Dict[str, Any]) -> Handler:
        kind = manifest.get("kind")
        try:
            return self._handlers[kind]
        except KeyError:
            raise ConfigurationError(f"Unsupported manifest kind: {kind}") from None

    def _ensure_namespace(self, namespace: str) -> None:
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace))
        try:
            self._core.create_namespace(body)
            self._logger.info("Created namespace %s", namespace)
        except ApiException as e:
            if e.status != 409:
                raise platform_error(e, f"create namespace {namespace}") from e
