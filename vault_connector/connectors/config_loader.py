"""Configuration file loader for secret providers.

Supports loading per-provider settings (timeouts, retry policy, TLS
verification) from YAML and JSON files, so that deployments can tune
connectors without code changes.

Example ``providers.yaml``::

    providers:
      - name: SampleVaultConnector
        timeout: 15
        max_retries: 2
      - name: LocalVaultConnector
        timeout: 5
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .registry import ProviderRegistry, get_registry

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ProviderSettings(BaseModel):
    """Constructor overrides for one provider."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    timeout: float | None = Field(default=None, gt=0)
    connect_timeout: float | None = Field(default=None, gt=0)
    max_retries: int | None = Field(default=None, ge=0, le=10)
    retry_delay: float | None = Field(default=None, ge=0)
    verify_ssl: bool | None = None

    def overrides(self) -> dict[str, Any]:
        """Constructor keyword arguments that were set."""
        return self.model_dump(exclude={"name"}, exclude_none=True)


class ConfigLoader:
    """Loads and validates provider settings from files."""

    def load_file(self, file_path: str | Path) -> list[ProviderSettings]:
        """Load provider settings from a single file.

        Args:
            file_path: Path to YAML or JSON config file

        Returns:
            List of ProviderSettings models

        Raises:
            ConfigValidationError: If validation fails
            FileNotFoundError: If file doesn't exist
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f)
        elif suffix == ".json":
            with open(path) as f:
                data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

        return self._parse_config(data, str(path))

    def _parse_config(self, data: Any, source: str) -> list[ProviderSettings]:
        """Parse configuration data into ProviderSettings models.

        Raises:
            ConfigValidationError: If validation fails
        """
        # Handle both a "providers" section and a bare list
        if isinstance(data, dict) and "providers" in data:
            configs = data["providers"]
        elif isinstance(data, list):
            configs = data
        elif isinstance(data, dict):
            configs = [data]
        else:
            raise ConfigValidationError(
                f"Invalid config format in {source}",
                errors=[{"file": source, "error": "Expected dict or list"}],
            )

        if not isinstance(configs, list):
            raise ConfigValidationError(
                f"Invalid config format in {source}",
                errors=[{"file": source, "error": "'providers' must be a list"}],
            )

        settings = []
        errors = []

        for idx, config in enumerate(configs):
            try:
                settings.append(ProviderSettings.model_validate(config))
            except ValidationError as e:
                for error in e.errors():
                    errors.append(
                        {
                            "file": source,
                            "index": idx,
                            "field": ".".join(str(part) for part in error["loc"]),
                            "error": error["msg"],
                        }
                    )

        if errors:
            raise ConfigValidationError(
                f"Validation failed for {len(errors)} item(s) in {source}",
                errors=errors,
            )

        return settings


def apply_settings(
    settings: list[ProviderSettings], registry: ProviderRegistry | None = None
) -> None:
    """Apply provider settings to a registry.

    Raises:
        ConfigValidationError: If a setting names an unregistered provider
    """
    registry = registry or get_registry()
    unknown = [item.name for item in settings if not registry.is_registered(item.name)]
    if unknown:
        raise ConfigValidationError(
            f"Unknown provider(s): {', '.join(unknown)}",
            errors=[{"name": name, "error": "Provider not registered"} for name in unknown],
        )
    for item in settings:
        registry.configure(item.name, **item.overrides())
        logger.info(f"Configured provider {item.name}: {item.overrides()}")


def load_provider_settings(
    file_path: str | Path, registry: ProviderRegistry | None = None
) -> list[ProviderSettings]:
    """Load a settings file and apply it to the registry.

    Returns:
        The applied settings
    """
    settings = ConfigLoader().load_file(file_path)
    apply_settings(settings, registry)
    return settings
