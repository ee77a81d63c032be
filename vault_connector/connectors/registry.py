"""Provider registry for managing available vault connectors.

The registry pattern allows dynamic registration of provider implementations
and provides factory methods for instantiating providers by display name.
Per-provider settings (timeouts, retries) loaded from configuration files are
applied when an instance is created.
"""

from __future__ import annotations

import logging
from typing import Any, Type

from .base import SecretProvider
from .models import ProviderInfo

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry for secret provider implementations.

    Maintains a mapping of display names to provider classes, optional
    per-provider settings, and one shared instance per provider. Sharing
    instances is safe because providers hold only immutable settings.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Type[SecretProvider]] = {}
        self._settings: dict[str, dict[str, Any]] = {}
        self._instances: dict[str, SecretProvider] = {}

    def register(self, provider_class: Type[SecretProvider]) -> None:
        """Register a provider implementation under its display name.

        Args:
            provider_class: The SecretProvider subclass to register
        """
        name = provider_class.display_name
        if name in self._providers:
            logger.warning(f"Overwriting existing provider for {name}")
        self._providers[name] = provider_class
        self._instances.pop(name, None)
        logger.debug(f"Registered provider: {name}")

    def unregister(self, name: str) -> None:
        """Unregister a provider implementation."""
        self._providers.pop(name, None)
        self._settings.pop(name, None)
        self._instances.pop(name, None)

    def configure(self, name: str, **settings: Any) -> None:
        """Set constructor overrides for a provider.

        Args:
            name: Provider display name
            **settings: Keyword arguments passed to the provider constructor
        """
        self._settings[name] = {
            key: value for key, value in settings.items() if value is not None
        }
        self._instances.pop(name, None)

    def get_provider_class(self, name: str) -> Type[SecretProvider] | None:
        """Get the provider class for a display name, or None."""
        return self._providers.get(name)

    def create_provider(self, name: str, **overrides: Any) -> SecretProvider:
        """Create a new provider instance.

        Args:
            name: Provider display name
            **overrides: Constructor arguments taking precedence over
                configured settings

        Returns:
            Instantiated provider

        Raises:
            ValueError: If no provider is registered under ``name``
        """
        provider_class = self._providers.get(name)
        if provider_class is None:
            raise ValueError(f"No provider registered with name: {name}")
        return provider_class(**{**self._settings.get(name, {}), **overrides})

    def get_provider(self, name: str) -> SecretProvider:
        """Get the shared provider instance, creating it on first use."""
        if name not in self._instances:
            self._instances[name] = self.create_provider(name)
        return self._instances[name]

    def get_info(self, name: str) -> ProviderInfo | None:
        """Get information about a registered provider."""
        provider_class = self._providers.get(name)
        if provider_class is None:
            return None
        provider = self.get_provider(name)
        return ProviderInfo(
            name=provider_class.display_name,
            version=provider_class.version,
            description=provider_class.description,
            configuration=provider.describe_configuration(),
        )

    def list_providers(self) -> list[ProviderInfo]:
        """List information for all registered providers."""
        return [
            info
            for info in (self.get_info(name) for name in sorted(self._providers))
            if info is not None
        ]

    def is_registered(self, name: str) -> bool:
        """Check if a provider is registered."""
        return name in self._providers


# Global registry instance
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    return _registry


def register_provider(provider_class: Type[SecretProvider]) -> None:
    """Convenience function to register a provider."""
    _registry.register(provider_class)


def get_provider(name: str) -> SecretProvider:
    """Convenience function to get the shared provider instance."""
    return _registry.get_provider(name)


def list_providers() -> list[ProviderInfo]:
    """Convenience function to list registered providers."""
    return _registry.list_providers()
