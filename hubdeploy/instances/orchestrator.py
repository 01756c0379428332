"""Lifecycle orchestrator for multi-tier instances.

Sequences config, storage, database, application and exposure batches into
the create, start, stop and delete operations of one instance. Operations
run sequentially on the calling thread; every wait is a bounded poll.

Failure contract:
- ConfigurationError is raised before any cluster mutation
- Failures while creating durable resources abort the operation in place,
  without rollback
- ``create`` raises PartialSuccessError (``fatal`` is False) when the
  deployment is up but PVC binding or endpoint resolution failed
- ``delete`` never raises; each step logs and continues
"""

from typing import Dict, Optional

from ..core.context import ApplicationContext
from ..core.enums import DesiredState, LifecycleState
from ..core.errors import HubDeployError, PartialSuccessError
from ..core.log import log_context, log_instance_event
from ..core.polling import CheckResult, poll_with, tolerate_platform_errors
from ..core.types import (
    DeploymentBatch,
    FlavorProfile,
    InstallationResult,
    InstanceSpec,
)
from .database_bootstrapper import DatabaseBootstrapper
from .endpoint_resolver import EndpointResolver
from .resource_builder import clone_job_name

# Pod phases that count as "up" once the instance is deployed
READY_POD_PHASES = ("Running", "Succeeded")


class LifecycleOrchestrator:
    """Creates, starts, stops and deletes instances.

    Concurrent operations on the same instance are not guarded; operations
    on different namespaces are independent.
    """

    def __init__(
        self,
        app_context: ApplicationContext,
        bootstrapper: Optional[DatabaseBootstrapper] = None,
        endpoint_resolver: Optional[EndpointResolver] = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            app_context: Application context with injected dependencies
            bootstrapper: Optional custom database bootstrapper
            endpoint_resolver: Optional custom endpoint resolver
        """
        self._polling = app_context.config.polling
        self._operator_namespace = app_context.config.operator_namespace
        self._cluster = app_context.cluster
        self._applier = app_context.applier
        self._builder = app_context.builder
        self._flavors = app_context.flavor_resolver
        self._logger = app_context.logger

        self.bootstrapper = bootstrapper or DatabaseBootstrapper(
            cluster=app_context.cluster,
            builder=app_context.builder,
            credentials=app_context.credentials,
            polling=self._polling,
            operator_namespace=self._operator_namespace,
            logger=app_context.logger,
        )
        self.endpoint_resolver = endpoint_resolver or EndpointResolver(
            cluster=app_context.cluster,
            polling=self._polling,
            route_client=app_context.route_client,
            logger=app_context.logger,
        )

    def create(self, spec: InstanceSpec) -> InstallationResult:
        """Create an instance from scratch.

        Returns:
            Resolved endpoint (None when the instance is not exposed) and
            claim name -> bound volume name for persistent instances

        Raises:
            ConfigurationError: Unknown size tag; nothing was touched
            PlatformError: A batch or cluster call failed; deployment is left
                as is
            HubDeployTimeoutError: A fatal wait (pods, database) ran out
            PartialSuccessError: Deployment is usable but PVC binding or
                endpoint resolution failed; ``result`` holds what resolved
        """
        with log_context(namespace=spec.namespace, instance=spec.name):
            flavor = self._flavors.resolve(spec.size)
            log_instance_event(self._logger, LifecycleState.INITIALIZING, spec.namespace)

            try:
                passwords = self.bootstrapper.fetch_passwords()
                self._apply(self._builder.build_config_batch(spec, flavor, passwords))
                self._apply(self._builder.build_storage_batch(spec))
            except HubDeployError:
                log_instance_event(self._logger, LifecycleState.CONFIG_FAILED, spec.namespace)
                raise

            self._start(spec, flavor)

            log_instance_event(self._logger, LifecycleState.EXPOSING, spec.namespace)
            self._apply(self._builder.build_exposure_batch(spec))
            self._wait_for_pods(spec.namespace)

            result = InstallationResult()
            if spec.persistent_storage:
                try:
                    self._resolve_pvc_volumes(spec, result.pvc_volumes)
                except HubDeployError as e:
                    raise PartialSuccessError(
                        f"Instance {spec.namespace} is deployed but its volumes "
                        f"did not bind: {e}",
                        result=result,
                    ) from e

            try:
                result.endpoint = self.endpoint_resolver.resolve(spec)
            except HubDeployError as e:
                raise PartialSuccessError(
                    f"Instance {spec.namespace} is deployed but has no endpoint: {e}",
                    result=result,
                ) from e

            log_instance_event(
                self._logger,
                LifecycleState.READY,
                spec.namespace,
                endpoint=result.endpoint.address if result.endpoint else None,
            )
            return result

    def start(self, spec: InstanceSpec) -> None:
        """Bring up config, database (unless external) and application.

        Raises:
            ConfigurationError: Unknown size tag
            PlatformError: A batch failed; earlier batches stay applied
            HubDeployTimeoutError: Database bootstrap did not finish in time
            DatabaseBootstrapError: The init or clone job failed
        """
        with log_context(namespace=spec.namespace, instance=spec.name):
            flavor = self._flavors.resolve(spec.size)
            self._start(spec, flavor)

    def stop(self, spec: InstanceSpec) -> None:
        """Remove application, database (unless external) and config.

        Storage is left in place. The first failing step aborts the stop.
        """
        with log_context(namespace=spec.namespace, instance=spec.name):
            flavor = self._flavors.resolve(spec.size)

            self._applier.remove(self._builder.build_application_batch(spec, flavor))
            if not spec.uses_external_database:
                self._applier.remove(self._builder.build_database_batch(spec, flavor))
            self._applier.remove(self._builder.build_config_batch(spec, flavor, None))

            log_instance_event(self._logger, LifecycleState.STOPPED, spec.namespace)

    def reconcile(self, spec: InstanceSpec) -> None:
        """Start or stop the instance according to ``spec.desired_state``."""
        if spec.desired_state == DesiredState.STOPPED:
            self.stop(spec)
        else:
            self.start(spec)

    def delete(self, namespace: str) -> None:
        """Remove the namespace and everything that outlives it. Best effort."""
        with log_context(namespace=namespace):
            self._logger.info("Deleting instance %s", namespace)

            try:
                deleted = self._cluster.delete_namespace(namespace)
            except HubDeployError as e:
                self._logger.error("Unable to delete namespace %s: %s", namespace, e)
                deleted = False
            else:
                if not deleted:
                    self._logger.info("Namespace %s was already gone", namespace)

            if deleted:
                try:
                    poll_with(
                        self._polling.namespace_deletion,
                        lambda: (None, not self._cluster.namespace_exists(namespace)),
                        what=f"namespace {namespace} to be removed",
                        log=self._logger,
                    )
                except HubDeployError as e:
                    self._logger.error(
                        "Namespace %s still present, continuing cleanup: %s", namespace, e
                    )

            try:
                count = self._cluster.delete_persistent_volumes(namespace)
                self._logger.info("Deleted %d persistent volume(s) of %s", count, namespace)
            except HubDeployError as e:
                self._logger.error("Unable to delete persistent volumes of %s: %s", namespace, e)

            try:
                self._cluster.delete_cluster_role_binding(namespace)
            except HubDeployError as e:
                self._logger.error(
                    "Unable to delete cluster role binding of %s: %s", namespace, e
                )

            # Clone jobs run in the operator namespace and outlive the instance
            clone_job = clone_job_name(namespace)
            try:
                self._cluster.delete_job(self._operator_namespace, clone_job)
            except HubDeployError as e:
                self._logger.error(
                    "Unable to delete clone job %s/%s: %s", self._operator_namespace, clone_job, e
                )

            log_instance_event(self._logger, LifecycleState.ABSENT, namespace)

    def _start(self, spec: InstanceSpec, flavor: FlavorProfile) -> None:
        passwords = self.bootstrapper.fetch_passwords()
        self._apply(self._builder.build_config_batch(spec, flavor, passwords))

        if not spec.uses_external_database:
            log_instance_event(self._logger, LifecycleState.DB_INITIALIZING, spec.namespace)
            self._apply(self._builder.build_database_batch(spec, flavor))

            # Persisted data survives restarts; only bootstrap it once
            if not spec.persistent_storage or spec.is_first_start:
                try:
                    self.bootstrapper.init_or_clone(spec)
                except HubDeployError:
                    log_instance_event(self._logger, LifecycleState.DB_FAILED, spec.namespace)
                    raise
            else:
                self._logger.info(
                    "Skipping database bootstrap of %s, data is persisted", spec.namespace
                )

        log_instance_event(self._logger, LifecycleState.APP_DEPLOYING, spec.namespace)
        self._apply(self._builder.build_application_batch(spec, flavor))

    def _apply(self, batch: DeploymentBatch) -> None:
        if not batch.manifests:
            self._logger.debug("Nothing to apply for %s", batch.name)
            return
        self._applier.apply(batch)

    def _wait_for_pods(self, namespace: str) -> None:
        def check() -> CheckResult:
            phases = self._cluster.list_pod_phases(namespace)
            pending = sorted(
                name for name, phase in phases.items() if phase not in READY_POD_PHASES
            )
            return phases, bool(phases) and not pending

        poll_with(
            self._polling.pods_running,
            check,
            what=f"pods in {namespace} to be running",
            log=self._logger,
        )

    def _resolve_pvc_volumes(self, spec: InstanceSpec, volumes: Dict[str, str]) -> None:
        """Fill ``volumes`` claim by claim so a failure keeps what already bound."""
        for pvc in spec.pvcs:

            def check(claim: str = pvc.name) -> CheckResult:
                volume = self._cluster.read_pvc_volume_name(spec.namespace, claim)
                return volume, volume is not None

            what = f"pvc {spec.namespace}/{pvc.name} to bind"
            volumes[pvc.name] = poll_with(
                self._polling.pvc_binding,
                tolerate_platform_errors(check, what, self._logger),
                what=what,
                log=self._logger,
            )
