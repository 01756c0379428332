"""Default resource builder producing plain Kubernetes manifest dicts.

The builder is pure: identical inputs always produce identical manifests,
which is what makes re-applying a batch a no-op.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..core.enums import BatchKind, ExposureMode
from ..core.types import (
    DatabasePasswords,
    DeploymentBatch,
    FlavorProfile,
    InstanceSpec,
)

DEFAULT_REGISTRY = "docker.io/blackducksoftware"
POSTGRES_IMAGE = "postgresql:9.6"
DB_CREDS_SECRET = "db-creds"
CONFIG_MAPS = ("hub-config", "hub-db-config", "hub-db-config-granular")
WEBSERVER_SERVICE = "webserver"
LOAD_BALANCER_SERVICE = "webserver-lb"
NODE_PORT_SERVICE = "webserver-np"
POSTGRES_SERVICE = "postgres"
DB_INIT_JOB = "blackduck-db-init"

# component -> (service port or None, needs db-creds)
APPLICATION_COMPONENTS: Dict[str, Tuple[Optional[int], bool]] = {
    "cfssl": (8888, False),
    "zookeeper": (2181, False),
    "registration": (8443, False),
    "authentication": (8443, True),
    "solr": (8983, False),
    "documentation": (8443, False),
    "logstash": (5044, False),
    "webapp": (8443, True),
    "scan": (8443, True),
    "jobrunner": (None, True),
    "webserver": (8443, False),
}


def clone_job_name(namespace: str) -> str:
    """Name of the clone job copying a database into ``namespace``."""
    return f"{namespace}-db-clone"


def _labels(spec: InstanceSpec, component: str) -> Dict[str, str]:
    return {"app": "blackduck", "name": spec.name, "component": component}


def _metadata(spec: InstanceSpec, name: str, component: str) -> Dict[str, Any]:
    return {
        "name": name,
        "namespace": spec.namespace,
        "labels": _labels(spec, component),
    }


def _image(spec: InstanceSpec, image: str) -> str:
    registry = (spec.registry.registry or DEFAULT_REGISTRY).rstrip("/")
    return f"{registry}/{image}"


def _resources(cpu: Optional[str], memory: str) -> Dict[str, Any]:
    requests: Dict[str, str] = {"memory": memory}
    if cpu:
        requests["cpu"] = cpu
    return {"requests": requests, "limits": {"memory": memory}}


class StandardResourceBuilder:
    """Builds the batches for one Black Duck style instance."""

    def build_config_batch(
        self,
        spec: InstanceSpec,
        flavor: FlavorProfile,
        passwords: Optional[DatabasePasswords],
    ) -> DeploymentBatch:
        """Secrets and config maps.

        When ``passwords`` is None the secret is rendered without data; that
        is enough to remove it.
        """
        ext = spec.external_database
        secret_data: Dict[str, str] = {}
        if ext is not None:
            secret_data = {
                "HUB_POSTGRES_ADMIN_PASSWORD_FILE": ext.admin_password,
                "HUB_POSTGRES_USER_PASSWORD_FILE": ext.user_password,
            }
        elif passwords is not None:
            secret_data = {
                "HUB_POSTGRES_ADMIN_PASSWORD_FILE": passwords.admin,
                "HUB_POSTGRES_USER_PASSWORD_FILE": passwords.user,
                "HUB_POSTGRES_POSTGRES_PASSWORD_FILE": passwords.postgres,
            }

        hub_config = {
            "HUB_VERSION": spec.version,
            "HUB_FLAVOR": flavor.size.value,
            "PUBLIC_HUB_WEBSERVER_HOST": "localhost",
            "PUBLIC_HUB_WEBSERVER_PORT": "443",
            "HUB_WEBSERVER_PORT": "8443",
            "IPV4_ONLY": "0",
            "RUN_SECRETS_DIR": "/tmp/secrets",
            "HUB_PROXY_NON_PROXY_HOSTS": "solr",
        }
        hub_config.update(spec.environs)

        db_config = {
            "HUB_POSTGRES_ADMIN": ext.admin_user if ext else "blackduck",
            "HUB_POSTGRES_USER": ext.user if ext else "blackduck_user",
            "HUB_POSTGRES_PORT": str(ext.port if ext else 5432),
            "HUB_POSTGRES_HOST": ext.host if ext else POSTGRES_SERVICE,
        }
        granular = {
            "HUB_POSTGRES_ENABLE_SSL": "true" if ext and ext.ssl else "false",
        }

        manifests: List[Dict[str, Any]] = [
            {
                "apiVersion": "v1",
                "kind": "Secret",
                "metadata": _metadata(spec, DB_CREDS_SECRET, "config"),
                "type": "Opaque",
                "stringData": secret_data,
            },
        ]
        for name, data in zip(CONFIG_MAPS, (hub_config, db_config, granular)):
            manifests.append(
                {
                    "apiVersion": "v1",
                    "kind": "ConfigMap",
                    "metadata": _metadata(spec, name, "config"),
                    "data": data,
                }
            )
        return DeploymentBatch(
            kind=BatchKind.CONFIG, namespace=spec.namespace, manifests=manifests
        )

    def build_storage_batch(self, spec: InstanceSpec) -> DeploymentBatch:
        """Persistent volume claims, empty unless persistent storage is on."""
        manifests: List[Dict[str, Any]] = []
        if spec.persistent_storage:
            for pvc in spec.pvcs:
                claim: Dict[str, Any] = {
                    "apiVersion": "v1",
                    "kind": "PersistentVolumeClaim",
                    "metadata": _metadata(spec, pvc.name, "storage"),
                    "spec": {
                        "accessModes": ["ReadWriteOnce"],
                        "resources": {"requests": {"storage": pvc.size}},
                    },
                }
                if pvc.storage_class:
                    claim["spec"]["storageClassName"] = pvc.storage_class
                manifests.append(claim)
        return DeploymentBatch(
            kind=BatchKind.STORAGE, namespace=spec.namespace, manifests=manifests
        )

    def build_database_batch(
        self, spec: InstanceSpec, flavor: FlavorProfile
    ) -> DeploymentBatch:
        """Postgres deployment and service."""
        sizing = flavor.sizing("postgres")
        container = {
            "name": "postgres",
            "image": _image(spec, POSTGRES_IMAGE),
            "ports": [{"containerPort": 5432, "protocol": "TCP"}],
            "env": [
                {"name": "POSTGRESQL_MAX_CONNECTIONS", "value": "300"},
                {"name": "POSTGRESQL_SHARED_BUFFERS", "value": "1024MB"},
                {
                    "name": "POSTGRESQL_ADMIN_PASSWORD",
                    "valueFrom": {
                        "secretKeyRef": {
                            "name": DB_CREDS_SECRET,
                            "key": "HUB_POSTGRES_POSTGRES_PASSWORD_FILE",
                        }
                    },
                },
            ],
            "resources": _resources(sizing.cpu, sizing.memory),
            "volumeMounts": [
                {"name": "postgres-data", "mountPath": "/var/lib/pgsql/data"}
            ],
            "readinessProbe": {
                "exec": {"command": ["/bin/sh", "-c", "pg_isready -U postgres"]},
                "initialDelaySeconds": 20,
                "periodSeconds": 10,
            },
        }
        manifests = [
            self._deployment(
                spec,
                "postgres",
                sizing.replicas,
                container,
                [self._volume(spec, "postgres-data", "blackduck-postgres")],
            ),
            self._service(spec, POSTGRES_SERVICE, "postgres", 5432),
        ]
        return DeploymentBatch(
            kind=BatchKind.DATABASE, namespace=spec.namespace, manifests=manifests
        )

    def build_application_batch(
        self, spec: InstanceSpec, flavor: FlavorProfile
    ) -> DeploymentBatch:
        """Web tier, scan tier and sidecars wired to the config batch."""
        env_from: List[Dict[str, Any]] = [
            {"configMapRef": {"name": name}} for name in CONFIG_MAPS
        ]
        manifests: List[Dict[str, Any]] = []

        for component, (port, needs_creds) in APPLICATION_COMPONENTS.items():
            sizing = flavor.sizing(component)
            container: Dict[str, Any] = {
                "name": component,
                "image": _image(spec, f"blackduck-{component}:{spec.version}"),
                "envFrom": list(env_from),
                "resources": _resources(sizing.cpu, sizing.memory),
                "volumeMounts": [
                    {"name": f"{component}-volume", "mountPath": f"/opt/blackduck/hub/{component}"}
                ],
            }
            if needs_creds:
                container["envFrom"].append({"secretRef": {"name": DB_CREDS_SECRET}})
            if port is not None:
                container["ports"] = [{"containerPort": port, "protocol": "TCP"}]

            manifests.append(
                self._deployment(
                    spec,
                    component,
                    sizing.replicas,
                    container,
                    [self._volume(spec, f"{component}-volume", f"blackduck-{component}")],
                )
            )
            if port is not None:
                manifests.append(self._service(spec, component, component, port))

        return DeploymentBatch(
            kind=BatchKind.APPLICATION, namespace=spec.namespace, manifests=manifests
        )

    def build_exposure_batch(self, spec: InstanceSpec) -> DeploymentBatch:
        """Exposure services for the requested mode.

        A node port service is kept alongside every mode except ``none`` so
        that endpoint resolution always has a last fallback.
        """
        manifests: List[Dict[str, Any]] = []
        if spec.exposure == ExposureMode.LOADBALANCER:
            manifests.append(
                self._service(
                    spec, LOAD_BALANCER_SERVICE, WEBSERVER_SERVICE, 443,
                    target_port=8443, service_type="LoadBalancer",
                )
            )
        if spec.exposure != ExposureMode.NONE:
            manifests.append(
                self._service(
                    spec, NODE_PORT_SERVICE, WEBSERVER_SERVICE, 443,
                    target_port=8443, service_type="NodePort",
                )
            )
        return DeploymentBatch(
            kind=BatchKind.EXPOSURE, namespace=spec.namespace, manifests=manifests
        )

    def build_database_init_job(
        self, spec: InstanceSpec, passwords: DatabasePasswords
    ) -> Dict[str, Any]:
        """Job creating the hub databases and users in a fresh postgres."""
        script = "\n".join(
            [
                "set -e",
                "export PGPASSWORD=\"$POSTGRES_PASSWORD\"",
                "PSQL='psql -h postgres -p 5432 -U postgres -v ON_ERROR_STOP=1'",
                "$PSQL -c \"ALTER USER blackduck WITH PASSWORD '$ADMIN_PASSWORD';\"",
                "$PSQL -c \"GRANT blackduck_user TO blackduck;\"",
                "$PSQL -c \"ALTER USER blackduck_user WITH PASSWORD '$USER_PASSWORD';\"",
                "for db in bds_hub bds_hub_report bdio; do",
                "  $PSQL -c \"GRANT ALL PRIVILEGES ON DATABASE $db TO blackduck_user;\"",
                "done",
            ]
        )
        return self._job(
            spec.namespace,
            DB_INIT_JOB,
            _labels(spec, "db-init"),
            _image(spec, POSTGRES_IMAGE),
            script,
            {
                "POSTGRES_PASSWORD": passwords.postgres,
                "ADMIN_PASSWORD": passwords.admin,
                "USER_PASSWORD": passwords.user,
            },
        )

    def build_database_clone_job(
        self,
        spec: InstanceSpec,
        job_namespace: str,
        source_password: str,
    ) -> Dict[str, Any]:
        """Job dumping the clone source database into this instance."""
        source = spec.db_prototype
        script = "\n".join(
            [
                "set -e",
                "export PGPASSWORD=\"$SOURCE_PASSWORD\"",
                f"pg_dumpall -h postgres.{source}.svc -p 5432 -U postgres --clean "
                f"| psql -h postgres.{spec.namespace}.svc -p 5432 -U postgres",
            ]
        )
        labels = _labels(spec, "db-clone")
        labels["clone-source"] = str(source)
        return self._job(
            job_namespace,
            clone_job_name(spec.namespace),
            labels,
            _image(spec, POSTGRES_IMAGE),
            script,
            {"SOURCE_PASSWORD": source_password},
        )

    # Manifest helpers

    def _deployment(
        self,
        spec: InstanceSpec,
        component: str,
        replicas: int,
        container: Dict[str, Any],
        volumes: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        pod_spec: Dict[str, Any] = {"containers": [container], "volumes": volumes}
        if spec.registry.pull_secrets:
            pod_spec["imagePullSecrets"] = [
                {"name": name} for name in spec.registry.pull_secrets
            ]
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": _metadata(spec, component, component),
            "spec": {
                "replicas": replicas,
                "selector": {"matchLabels": _labels(spec, component)},
                "template": {
                    "metadata": {"labels": _labels(spec, component)},
                    "spec": pod_spec,
                },
            },
        }

    def _service(
        self,
        spec: InstanceSpec,
        name: str,
        component: str,
        port: int,
        target_port: Optional[int] = None,
        service_type: str = "ClusterIP",
    ) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": _metadata(spec, name, component),
            "spec": {
                "type": service_type,
                "selector": _labels(spec, component),
                "ports": [
                    {
                        "name": f"port-{port}",
                        "port": port,
                        "targetPort": target_port or port,
                        "protocol": "TCP",
                    }
                ],
            },
        }

    def _volume(self, spec: InstanceSpec, name: str, claim: str) -> Dict[str, Any]:
        claims = {pvc.name for pvc in spec.pvcs}
        if spec.persistent_storage and claim in claims:
            return {"name": name, "persistentVolumeClaim": {"claimName": claim}}
        return {"name": name, "emptyDir": {}}

    def _job(
        self,
        namespace: str,
        name: str,
        labels: Dict[str, str],
        image: str,
        script: str,
        env: Dict[str, str],
    ) -> Dict[str, Any]:
        return {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {"name": name, "namespace": namespace, "labels": labels},
            "spec": {
                "backoffLimit": 3,
                "template": {
                    "metadata": {"labels": labels},
                    "spec": {
                        "restartPolicy": "Never",
                        "containers": [
                            {
                                "name": name,
                                "image": image,
                                "command": ["/bin/sh", "-c", script],
                                "env": [
                                    {"name": key, "value": value}
                                    for key, value in env.items()
                                ],
                            }
                        ],
                    },
                },
            },
        }
