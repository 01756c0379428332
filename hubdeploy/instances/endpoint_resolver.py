"""Endpoint resolution for exposed instances.

Exposure mechanisms form a small closed set of variants. A configured route
client selects the route alone; otherwise the resolver tries load balancer
(when requested) and then node port. The first one that yields an address
wins; later variants are never attempted.
"""

import time
from typing import List, Optional, Protocol

from ..core.enums import EndpointMechanism, ExposureMode
from ..core.errors import HubDeployError, HubDeployTimeoutError
from ..core.log import Logger, get_logger
from ..core.polling import CheckResult, poll_with, tolerate_platform_errors
from ..core.protocols import ClusterApi, RouteClient
from ..core.types import EndpointRecord, InstanceSpec, PollingConfig, PollPolicy
from .resource_builder import LOAD_BALANCER_SERVICE, NODE_PORT_SERVICE, WEBSERVER_SERVICE


class ExposureVariant(Protocol):
    """One way of obtaining an externally reachable address."""

    mechanism: EndpointMechanism

    def resolve(self, namespace: str) -> str:
        """Return the address or raise HubDeployError."""


class RouteExposure:
    """Platform-native route; a single create-or-read, not polled."""

    mechanism = EndpointMechanism.ROUTE

    def __init__(self, route_client: RouteClient, service_name: str = WEBSERVER_SERVICE) -> None:
        self._route_client = route_client
        self._service_name = service_name

    def resolve(self, namespace: str) -> str:
        return self._route_client.ensure_route(namespace, namespace, self._service_name)


class LoadBalancerExposure:
    """First ingress address reported on the load balancer service."""

    mechanism = EndpointMechanism.LOAD_BALANCER

    def __init__(
        self,
        cluster: ClusterApi,
        policy: PollPolicy,
        service_name: str = LOAD_BALANCER_SERVICE,
        logger: Optional[Logger] = None,
    ) -> None:
        self._cluster = cluster
        self._policy = policy
        self._service_name = service_name
        self._logger = logger or get_logger(__name__)

    def resolve(self, namespace: str) -> str:
        def check() -> CheckResult:
            service = self._cluster.read_service(namespace, self._service_name)
            if service.ingress_addresses:
                return service.ingress_addresses[0], True
            return None, False

        what = f"load balancer ingress on {namespace}/{self._service_name}"
        return poll_with(
            self._policy,
            tolerate_platform_errors(check, what, self._logger),
            what=what,
            log=self._logger,
        )


class NodePortExposure:
    """Cluster IP of the node-port service."""

    mechanism = EndpointMechanism.NODE_PORT

    def __init__(
        self,
        cluster: ClusterApi,
        policy: PollPolicy,
        service_name: str = NODE_PORT_SERVICE,
        logger: Optional[Logger] = None,
    ) -> None:
        self._cluster = cluster
        self._policy = policy
        self._service_name = service_name
        self._logger = logger or get_logger(__name__)

    def resolve(self, namespace: str) -> str:
        def check() -> CheckResult:
            service = self._cluster.read_service(namespace, self._service_name)
            return service.cluster_ip, bool(service.cluster_ip)

        what = f"cluster IP of {namespace}/{self._service_name}"
        return poll_with(
            self._policy,
            tolerate_platform_errors(check, what, self._logger),
            what=what,
            log=self._logger,
        )


class EndpointResolver:
    """Resolves the external address of an exposed instance."""

    def __init__(
        self,
        cluster: ClusterApi,
        polling: PollingConfig,
        route_client: Optional[RouteClient] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._cluster = cluster
        self._polling = polling
        self._route_client = route_client
        self._logger = logger or get_logger(__name__)

    def variants_for(self, spec: InstanceSpec) -> List[ExposureVariant]:
        """Applicable exposure variants in precedence order.

        A configured route client makes the route the only variant; load
        balancer and node port are the fallbacks for clusters without routes.
        """
        if spec.exposure == ExposureMode.NONE:
            return []
        if self._route_client is not None:
            return [RouteExposure(self._route_client)]

        variants: List[ExposureVariant] = []
        if spec.exposure == ExposureMode.LOADBALANCER:
            variants.append(
                LoadBalancerExposure(
                    self._cluster, self._polling.load_balancer, logger=self._logger
                )
            )
        # Every exposed instance gets a node-port service
        variants.append(
            NodePortExposure(self._cluster, self._polling.node_port, logger=self._logger)
        )
        return variants

    def resolve(self, spec: InstanceSpec) -> Optional[EndpointRecord]:
        """Return the endpoint of the instance, or None if it is not exposed.

        Raises:
            HubDeployError: The error of the only applicable variant (for
                example the route lookup) when it fails
            HubDeployTimeoutError: If every fallback variant failed
        """
        variants = self.variants_for(spec)
        if not variants:
            self._logger.info("Instance %s is not exposed", spec.namespace)
            return None

        delay = self._polling.exposure_settle_delay
        if delay > 0:
            self._logger.debug("Waiting %.0fs for exposure to settle", delay)
            time.sleep(delay)

        failures = {}
        for variant in variants:
            try:
                address = variant.resolve(spec.namespace)
            except HubDeployError as e:
                self._logger.warning(
                    "Unable to resolve %s endpoint for %s: %s",
                    variant.mechanism.value,
                    spec.namespace,
                    e,
                )
                if len(variants) == 1:
                    raise
                failures[variant.mechanism.value] = str(e)
                continue

            self._logger.info(
                "Endpoint of %s: %s (%s)", spec.namespace, address, variant.mechanism.value
            )
            return EndpointRecord(address=address, mechanism=variant.mechanism)

        raise HubDeployTimeoutError(
            f"No endpoint could be resolved for {spec.namespace}",
            attempts=len(variants),
            interval=self._polling.node_port.interval,
            details={"failures": failures},
        )
