"""Domain primitives for instance identification."""

import re
from dataclasses import dataclass

_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


@dataclass(frozen=True)
class Namespace:
    """Validated Kubernetes namespace name. Hashable for use as dictionary key."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Namespace cannot be empty")

        if len(self.value) > 63:
            raise ValueError(f"Namespace longer than 63 characters: {self.value}")

        if not _DNS_LABEL.match(self.value):
            raise ValueError(
                f"Namespace must be a lowercase RFC 1123 label: {self.value}"
            )

    def __str__(self) -> str:
        return self.value
