"""OpenShift route support through the custom objects API."""

from typing import Any, Dict, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..core.errors import PlatformError
from ..core.log import get_logger
from .cluster import platform_error

logger = get_logger(__name__)

ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"


class OpenShiftRouteClient:
    """RouteClient that reads or creates ``route.openshift.io/v1`` routes."""

    def __init__(self, api_client: Optional[client.ApiClient] = None) -> None:
        self.custom_api = client.CustomObjectsApi(api_client)

    def ensure_route(self, namespace: str, name: str, service_name: str) -> str:
        route = self._get_route(namespace, name)
        if route is None:
            route = self._create_route(namespace, name, service_name)

        host = (route.get("spec") or {}).get("host")
        if not host:
            raise PlatformError(f"Route {name} in {namespace} has no host yet")
        logger.debug("OpenShift route host for %s: %s", namespace, host)
        return host

    def _get_route(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.custom_api.get_namespaced_custom_object(
                ROUTE_GROUP, ROUTE_VERSION, namespace, ROUTE_PLURAL, name
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise platform_error(e, f"get route {name} in {namespace}") from e

    def _create_route(
        self, namespace: str, name: str, service_name: str
    ) -> Dict[str, Any]:
        body = {
            "apiVersion": f"{ROUTE_GROUP}/{ROUTE_VERSION}",
            "kind": "Route",
            "metadata": {"name": name, "namespace": namespace},
            "spec": {
                "to": {"kind": "Service", "name": service_name},
                "port": {"targetPort": "port-8443"},
                "tls": {"termination": "passthrough"},
            },
        }
        try:
            return self.custom_api.create_namespaced_custom_object(
                ROUTE_GROUP, ROUTE_VERSION, namespace, ROUTE_PLURAL, body
            )
        except ApiException as e:
            raise platform_error(e, f"create route {name} in {namespace}") from e
