"""Configuration management with environment variable integration and validation."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from pydantic import ValidationError

from .types import HubDeployConfig, InstanceSpec
from .errors import ConfigurationError

ENV_PREFIX = "HUBDEPLOY_"


def load_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Load environment variables with the given prefix as nested overrides.

    ``HUBDEPLOY_POLLING__NODE_PORT__MAX_ATTEMPTS=3`` becomes
    ``{"polling": {"node_port": {"max_attempts": 3}}}``.
    """
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        path = [part for part in key[len(prefix):].lower().split("__") if part]
        if not path:
            continue

        section = overrides
        for part in path[:-1]:
            existing = section.get(part)
            if not isinstance(existing, dict):
                existing = {}
                section[part] = existing
            section = existing
        section[path[-1]] = _convert_env_value(value)

    return overrides


def _convert_env_value(value: str) -> Any:
    """Convert string environment value to appropriate Python type."""
    if not value:
        return None

    # Try to convert to int first (before boolean check)
    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if value.lower() in ("true", "yes", "on"):
        return True
    elif value.lower() in ("false", "no", "off"):
        return False

    # Handle lists (comma-separated)
    if "," in value:
        return [item.strip() for item in value.split(",")]

    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_mapping(path: Path, what: str) -> Dict[str, Any]:
    """Load a YAML file whose top level must be a mapping."""
    if path.suffix.lower() not in (".yml", ".yaml"):
        raise ConfigurationError(f"Unsupported {what} file format: {path.suffix}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load {what} file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{what.capitalize()} file {path} must contain a mapping")
    return data


class ConfigManager:
    """Central configuration management."""

    def __init__(self) -> None:
        self._config: Optional[HubDeployConfig] = None

    def load_config(
        self, config_file: Optional[Path] = None, **overrides: Any
    ) -> HubDeployConfig:
        """Load configuration from file and environment with explicit overrides."""

        # Precedence, lowest first:
        # 1. Model defaults
        # 2. Config file data
        # 3. Environment variables
        # 4. Explicit overrides
        config_data: Dict[str, Any] = {}

        if config_file is not None:
            config_file = Path(config_file)
            if not config_file.exists():
                raise ConfigurationError(f"Config file not found: {config_file}")
            config_data = _deep_merge(config_data, self._load_from_file(config_file))

        config_data = _deep_merge(config_data, load_env_overrides())
        config_data = _deep_merge(
            config_data, {k: v for k, v in overrides.items() if v is not None}
        )

        try:
            self._config = HubDeployConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return self._config

    def get_config(self) -> HubDeployConfig:
        """Get current configuration, loading defaults on first use."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def _load_from_file(self, config_file: Path) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        return _load_yaml_mapping(config_file, "config")


def load_instance_spec(spec_file: Path) -> InstanceSpec:
    """Load an InstanceSpec from a YAML file."""
    spec_file = Path(spec_file)
    if not spec_file.exists():
        raise ConfigurationError(f"Instance spec file not found: {spec_file}")

    data = _load_yaml_mapping(spec_file, "instance spec")
    try:
        return InstanceSpec(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid instance spec in {spec_file}: {e}") from e


# Global config manager instance
_config_manager = ConfigManager()


def load_config(**kwargs: Any) -> HubDeployConfig:
    """Load global configuration."""
    return _config_manager.load_config(**kwargs)


def get_config() -> HubDeployConfig:
    """Get current global configuration."""
    return _config_manager.get_config()
