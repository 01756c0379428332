"""Application context for explicit dependency management.

This module provides the ApplicationContext - the single immutable container
for the orchestrator's collaborators. Components receive the context instead
of reaching for module-level singletons.

Usage:
    config = load_config(config_file=Path("hubdeploy.yaml"))
    app_context = ApplicationContext.create(config)
    orchestrator = LifecycleOrchestrator(app_context)

    # For testing
    test_context = ApplicationContext.for_testing(cluster=fake, applier=fake)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .log import Logger
from .protocols import (
    BatchApplier,
    ClusterApi,
    CredentialSource,
    ResourceBuilder,
    RouteClient,
)
from .types import HubDeployConfig, PollingConfig, PollPolicy

if TYPE_CHECKING:
    from ..instances.flavor import FlavorResolver


@dataclass(frozen=True)
class ApplicationContext:
    """Immutable application-wide context containing all dependencies.

    Attributes:
        config: Operator configuration
        logger: Logging instance
        cluster: Cluster reads and direct mutations
        applier: Batch apply/remove
        builder: Manifest builder
        flavor_resolver: Size tag -> FlavorProfile
        credentials: Bootstrap credential source
        route_client: OpenShift route support, None when routes are not used
    """

    config: HubDeployConfig
    logger: Logger
    cluster: ClusterApi
    applier: BatchApplier
    builder: ResourceBuilder
    flavor_resolver: "FlavorResolver"
    credentials: CredentialSource
    route_client: Optional[RouteClient] = None

    @classmethod
    def create(
        cls,
        config: HubDeployConfig,
        *,
        logger: Optional[Logger] = None,
        cluster: Optional[ClusterApi] = None,
        applier: Optional[BatchApplier] = None,
        builder: Optional[ResourceBuilder] = None,
        flavor_resolver: Optional["FlavorResolver"] = None,
        credentials: Optional[CredentialSource] = None,
        route_client: Optional[RouteClient] = None,
    ) -> "ApplicationContext":
        """Create application context with default implementations.

        Kubernetes-backed collaborators are only built (and cluster
        credentials only loaded) for dependencies not provided explicitly.

        Raises:
            ConfigurationError: If cluster credentials are needed but cannot
                be loaded
        """
        # Import here to avoid circular dependencies at module level
        from .log import configure_logging, get_logger
        from ..instances.cluster import KubernetesCluster, create_api_client
        from ..instances.applier import KubernetesBatchApplier
        from ..instances.credentials import SecretCredentialSource
        from ..instances.flavor import FlavorResolver
        from ..instances.resource_builder import StandardResourceBuilder
        from ..instances.routes import OpenShiftRouteClient

        if logger is None:
            configure_logging(level=config.log_level, log_file=config.log_file)
            logger = get_logger("hubdeploy")

        needs_api = (
            cluster is None
            or applier is None
            or (route_client is None and config.kube.openshift_routes)
        )
        api_client = create_api_client(config.kube) if needs_api else None

        if cluster is None:
            cluster = KubernetesCluster(api_client)
        if applier is None:
            applier = KubernetesBatchApplier(api_client, logger=logger)
        if route_client is None and config.kube.openshift_routes:
            route_client = OpenShiftRouteClient(api_client)
        if builder is None:
            builder = StandardResourceBuilder()
        if flavor_resolver is None:
            flavor_resolver = FlavorResolver()
        if credentials is None:
            credentials = SecretCredentialSource(
                cluster, config.operator_namespace, config.password_secret_name
            )

        return cls(
            config=config,
            logger=logger,
            cluster=cluster,
            applier=applier,
            builder=builder,
            flavor_resolver=flavor_resolver,
            credentials=credentials,
            route_client=route_client,
        )

    @classmethod
    def for_testing(
        cls,
        config: Optional[HubDeployConfig] = None,
        **overrides: Any,
    ) -> "ApplicationContext":
        """Create application context for testing.

        The default test configuration polls at most three times per step
        and never sleeps.
        Pass fakes for ``cluster`` and ``applier`` to keep tests off a real
        cluster.

        Example:
            >>> ctx = ApplicationContext.for_testing(cluster=fake, applier=recorder)
        """
        from .log import get_logger

        if config is None:
            instant = PollPolicy(interval=0.0, max_attempts=3)
            config = HubDeployConfig(
                polling=PollingConfig(
                    pods_running=instant,
                    pvc_binding=instant,
                    load_balancer=instant,
                    node_port=instant,
                    credentials=instant,
                    database_endpoint=instant,
                    job_completion=instant,
                    namespace_deletion=instant,
                    exposure_settle_delay=0.0,
                ),
            )

        overrides.setdefault("logger", get_logger("hubdeploy.test"))
        return cls.create(config, **overrides)
