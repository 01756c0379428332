"""Flavor resolution: size tag -> resource profile."""

from typing import Dict, List, Mapping, Optional

from ..core.enums import InstanceSize
from ..core.errors import ConfigurationError
from ..core.types import ContainerSizing, FlavorProfile


def _profile(
    size: InstanceSize,
    scan_replicas: int,
    jobrunner_replicas: int,
    webapp_memory: str,
    jobrunner_memory: str,
    postgres_cpu: str,
    postgres_memory: str,
) -> FlavorProfile:
    return FlavorProfile(
        size=size,
        components={
            "webserver": ContainerSizing(memory="2048Mi"),
            "webapp": ContainerSizing(cpu="1", memory=webapp_memory),
            "logstash": ContainerSizing(memory="1024Mi"),
            "scan": ContainerSizing(replicas=scan_replicas, memory="2560Mi"),
            "jobrunner": ContainerSizing(
                replicas=jobrunner_replicas, cpu="1", memory=jobrunner_memory
            ),
            "registration": ContainerSizing(memory="640Mi"),
            "zookeeper": ContainerSizing(memory="640Mi"),
            "authentication": ContainerSizing(memory="1024Mi"),
            "cfssl": ContainerSizing(memory="640Mi"),
            "documentation": ContainerSizing(memory="512Mi"),
            "solr": ContainerSizing(memory="640Mi"),
            "postgres": ContainerSizing(cpu=postgres_cpu, memory=postgres_memory),
        },
    )


DEFAULT_FLAVORS: Dict[InstanceSize, FlavorProfile] = {
    InstanceSize.SMALL: _profile(
        InstanceSize.SMALL, 1, 1, "3584Mi", "4608Mi", "1", "3072Mi"
    ),
    InstanceSize.MEDIUM: _profile(
        InstanceSize.MEDIUM, 2, 4, "5120Mi", "4608Mi", "2", "8192Mi"
    ),
    InstanceSize.LARGE: _profile(
        InstanceSize.LARGE, 3, 6, "9728Mi", "7168Mi", "2", "12288Mi"
    ),
    InstanceSize.X_LARGE: _profile(
        InstanceSize.X_LARGE, 5, 10, "19968Mi", "13824Mi", "3", "12288Mi"
    ),
}


class FlavorResolver:
    """Maps size tags to flavor profiles.

    Stateless apart from the catalog it was built with; nothing is cached
    between calls, so re-resolving an edited spec reflects the new tag.
    """

    def __init__(
        self, catalog: Optional[Mapping[InstanceSize, FlavorProfile]] = None
    ) -> None:
        self._catalog = dict(catalog if catalog is not None else DEFAULT_FLAVORS)

    def resolve(self, size: str) -> FlavorProfile:
        """Resolve a size tag (case-insensitive).

        Raises:
            ConfigurationError: If the tag is not in the catalog
        """
        tag = (size or "").strip().lower()
        try:
            flavor = self._catalog.get(InstanceSize(tag))
        except ValueError:
            flavor = None

        if flavor is None:
            raise ConfigurationError(
                f"Invalid flavor type, expected one of "
                f"{', '.join(self.available())}, actual: {size!r}",
                details={"size": size},
            )
        return flavor

    def available(self) -> List[str]:
        """Size tags known to the catalog, in catalog order."""
        return [size.value for size in self._catalog]
