"""Bootstrap credential lookup from cluster secrets."""

from ..core.errors import PlatformError
from ..core.protocols import ClusterApi
from ..core.types import DatabasePasswords

PASSWORD_KEYS = ("ADMIN_PASSWORD", "USER_PASSWORD", "POSTGRES_PASSWORD")
INSTANCE_SECRET = "db-creds"
INSTANCE_PASSWORD_KEY = "HUB_POSTGRES_POSTGRES_PASSWORD_FILE"


class SecretCredentialSource:
    """CredentialSource reading the operator's well-known password secret."""

    def __init__(
        self, cluster: ClusterApi, operator_namespace: str, secret_name: str
    ) -> None:
        self._cluster = cluster
        self._operator_namespace = operator_namespace
        self._secret_name = secret_name

    def default_passwords(self) -> DatabasePasswords:
        """Read the bootstrap passwords.

        A secret with missing keys is reported as a PlatformError so pollers
        treat it like a secret that does not exist yet.
        """
        data = self._cluster.read_secret(self._operator_namespace, self._secret_name)
        missing = [key for key in PASSWORD_KEYS if not data.get(key)]
        if missing:
            raise PlatformError(
                f"Secret {self._operator_namespace}/{self._secret_name} "
                f"is missing {', '.join(missing)}",
                reason="IncompleteSecret",
            )
        return DatabasePasswords(
            admin=data["ADMIN_PASSWORD"],
            user=data["USER_PASSWORD"],
            postgres=data["POSTGRES_PASSWORD"],
        )

    def source_database_password(self, namespace: str) -> str:
        """Postgres password of the instance deployed in ``namespace``."""
        data = self._cluster.read_secret(namespace, INSTANCE_SECRET)
        password = data.get(INSTANCE_PASSWORD_KEY)
        if not password:
            raise PlatformError(
                f"Secret {namespace}/{INSTANCE_SECRET} has no {INSTANCE_PASSWORD_KEY}",
                reason="IncompleteSecret",
            )
        return password
