"""Database initialization and cloning for instances with an in-namespace database."""

from typing import Any, Dict, Optional

from ..core.enums import JobPhase
from ..core.errors import DatabaseBootstrapError
from ..core.log import Logger, get_logger
from ..core.polling import CheckResult, poll_with, tolerate_platform_errors
from ..core.protocols import ClusterApi, CredentialSource, ResourceBuilder
from ..core.types import DatabasePasswords, InstanceSpec, PollingConfig
from .resource_builder import POSTGRES_SERVICE


class DatabaseBootstrapper:
    """Runs exactly one of database initialization or clone for an instance.

    Steps:
    1. Fetch bootstrap credentials from the operator namespace (bounded retry)
    2. Wait for the postgres service to have a ready endpoint
    3. Run a fresh init job in the instance namespace, or a fresh clone job
       in the operator namespace when the instance names a clone source;
       an earlier job of the same name is deleted first
    4. Wait for the job to finish
    """

    def __init__(
        self,
        cluster: ClusterApi,
        builder: ResourceBuilder,
        credentials: CredentialSource,
        polling: PollingConfig,
        operator_namespace: str,
        logger: Optional[Logger] = None,
    ) -> None:
        self._cluster = cluster
        self._builder = builder
        self._credentials = credentials
        self._polling = polling
        self._operator_namespace = operator_namespace
        self._logger = logger or get_logger(__name__)

    def fetch_passwords(self) -> DatabasePasswords:
        """Bootstrap passwords, retried while the secret is missing or incomplete.

        Raises:
            HubDeployTimeoutError: If the secret never became readable
        """
        def check() -> CheckResult:
            return self._credentials.default_passwords(), True

        what = f"database credentials in {self._operator_namespace}"
        return poll_with(
            self._polling.credentials,
            tolerate_platform_errors(check, what, self._logger),
            what=what,
            log=self._logger,
        )

    def init_or_clone(self, spec: InstanceSpec) -> None:
        """Initialize or clone the database of ``spec``.

        The choice is made once from ``spec.db_prototype``.

        Raises:
            HubDeployTimeoutError: If credentials, the database endpoint or
                the job did not become ready in time
            DatabaseBootstrapError: If the init or clone job failed
            PlatformError: If a job could not be submitted
        """
        passwords = self.fetch_passwords()
        self._wait_for_database(spec.namespace)

        if spec.db_prototype:
            self._clone(spec)
        else:
            self._initialize(spec, passwords)

    def _wait_for_database(self, namespace: str) -> None:
        def check() -> CheckResult:
            ready = self._cluster.service_endpoint_ready(namespace, POSTGRES_SERVICE)
            return ready, ready

        what = f"{namespace}/{POSTGRES_SERVICE} endpoint"
        poll_with(
            self._polling.database_endpoint,
            tolerate_platform_errors(check, what, self._logger),
            what=what,
            log=self._logger,
        )

    def _initialize(self, spec: InstanceSpec, passwords: DatabasePasswords) -> None:
        self._logger.info("Initializing database of %s", spec.namespace)
        manifest = self._builder.build_database_init_job(spec, passwords)
        self._run_job(spec.namespace, manifest)

    def _clone(self, spec: InstanceSpec) -> None:
        source = spec.db_prototype
        self._logger.info("Cloning database of %s into %s", source, spec.namespace)
        source_password = self._credentials.source_database_password(source)
        manifest = self._builder.build_database_clone_job(
            spec, self._operator_namespace, source_password
        )
        self._run_job(self._operator_namespace, manifest)

    def _run_job(self, namespace: str, manifest: Dict[str, Any]) -> None:
        """Submit a fresh job and wait for it.

        Jobs are never reused: one left over from an earlier run is deleted
        and waited out before the new one is created.
        """
        name = manifest["metadata"]["name"]
        if self._cluster.delete_job(namespace, name):
            self._logger.info("Removed previous job %s/%s", namespace, name)
            poll_with(
                self._polling.job_completion,
                lambda: (None, not self._cluster.job_exists(namespace, name)),
                what=f"previous job {namespace}/{name} to be removed",
                log=self._logger,
            )

        job_name = self._cluster.create_job(namespace, manifest)
        self._wait_for_job(namespace, job_name)

    def _wait_for_job(self, namespace: str, job_name: str) -> None:
        def check() -> CheckResult:
            phase = self._cluster.job_phase(namespace, job_name)
            if phase == JobPhase.FAILED:
                raise DatabaseBootstrapError(
                    f"Job {namespace}/{job_name} failed",
                    details={"job": job_name, "namespace": namespace},
                )
            return phase, phase == JobPhase.SUCCEEDED

        poll_with(
            self._polling.job_completion,
            check,
            what=f"job {namespace}/{job_name}",
            log=self._logger,
        )
        self._logger.info("Job %s/%s completed", namespace, job_name)
