"""Base secret provider abstract class.

Defines the interface that all vault connectors must implement, and the
error taxonomy surfaced to the governance host.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from .. import config
from .keys import resolve_storage_key

if TYPE_CHECKING:
    from .models import (
        ConnectionConfig,
        ConnectivityResult,
        OperationResult,
        SecretRequest,
        VaultConfigData,
    )

logger = logging.getLogger(__name__)


class SecretProvider(ABC):
    """Abstract base class for all vault connectors.

    The host invokes a provider at defined lifecycle points:

    - ``describe_configuration``: which attributes to collect for a connection
    - ``remap_configuration``: optional rewrite of key mappings before use
    - ``put_secret`` / ``get_secret``: store and fetch secret values
    - ``test_connectivity``: the "test connection" action
    - ``seal`` / ``unseal``: reserved, no behavior yet

    Providers keep no state between calls. Every call receives its key
    mappings and connection attributes fresh, opens its own vault session
    and releases it before returning, so one instance may serve concurrent
    calls for different connections.
    """

    display_name: ClassVar[str] = "SecretProvider"
    version: ClassVar[str] = "1.0"
    description: ClassVar[str] = ""

    def __init__(
        self,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            timeout: Upper bound in seconds for a single vault call
            connect_timeout: Upper bound for establishing a connection
            max_retries: Retry attempts for read operations
            retry_delay: Initial backoff delay in seconds
        """
        self.timeout = config.VAULT_TIMEOUT_SECONDS if timeout is None else timeout
        self.connect_timeout = (
            config.VAULT_CONNECT_TIMEOUT_SECONDS
            if connect_timeout is None
            else connect_timeout
        )
        self.max_retries = (
            config.VAULT_MAX_RETRIES if max_retries is None else max_retries
        )
        self.retry_delay = (
            config.VAULT_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        )

    @abstractmethod
    def describe_configuration(self) -> "ConnectionConfig":
        """Declare the connection attributes the host must collect.

        Returns:
            ConnectionConfig with attribute names, encrypted and required
            subsets, and descriptions shown to the operator
        """
        pass

    @abstractmethod
    def put_secret(
        self, vault_config: "VaultConfigData", request: "SecretRequest"
    ) -> "OperationResult":
        """Store every value of ``request.encrypted_conn_attr`` in the vault.

        Either all values are accepted or an error is raised. Keys written
        before a failure are rolled back.

        Raises:
            ConnectorError: Or one of its subclasses on any failure
        """
        pass

    @abstractmethod
    def get_secret(
        self, vault_config: "VaultConfigData", request: "SecretRequest"
    ) -> "OperationResult":
        """Fetch a value for every key of ``request.encrypted_conn_attr``.

        Returns:
            OperationResult whose ``encrypted_conn_attr`` maps each attribute
            name to its value from the vault

        Raises:
            MissingKeyError: A requested key does not exist
            InvalidCredentialError: The vault rejected the credentials
            OperationTimeoutError: The vault did not answer in time
        """
        pass

    @abstractmethod
    def test_connectivity(
        self, connection_attributes: Mapping[str, Any]
    ) -> "ConnectivityResult":
        """Authenticate against the vault without touching secret values."""
        pass

    def remap_configuration(
        self, vault_config: "VaultConfigData"
    ) -> "VaultConfigData | None":
        """Rewrite key mappings before they reach put/get.

        Returns:
            A replacement VaultConfigData, or None to use the input unchanged
        """
        return None

    def seal(
        self, vault_config: "VaultConfigData", request: "SecretRequest"
    ) -> None:
        """Reserved by the host for a future contract."""
        return None

    def unseal(
        self, vault_config: "VaultConfigData", request: "SecretRequest"
    ) -> None:
        """Reserved by the host for a future contract."""
        return None

    def resolve_config(self, vault_config: "VaultConfigData") -> "VaultConfigData":
        """Apply ``remap_configuration``, keeping the input when it returns None."""
        remapped = self.remap_configuration(vault_config)
        return vault_config if remapped is None else remapped

    def check_connection_attributes(
        self, connection_attributes: Mapping[str, Any]
    ) -> None:
        """Ensure every required connection attribute has a value.

        Raises:
            InvalidAttributeValueError: Naming all missing attributes
        """
        required = self.describe_configuration().required_attributes
        missing = [
            name
            for name in required
            if connection_attributes.get(name) is None
            or not str(connection_attributes.get(name)).strip()
        ]
        if missing:
            raise InvalidAttributeValueError(
                f"Missing required connection attribute(s): {', '.join(missing)}",
                provider=self.display_name,
            )

    def _storage_keys(
        self, vault_config: "VaultConfigData", attribute_names: list[str]
    ) -> dict[str, str]:
        """Map each attribute name to the vault key it is stored under.

        Raises:
            InvalidAttributeValueError: If an attribute has no key mapping
        """
        unmapped = [
            name for name in attribute_names if name not in vault_config.key_mapping
        ]
        if unmapped:
            raise InvalidAttributeValueError(
                f"No keyMapping entry for encrypted attribute(s): {', '.join(unmapped)}",
                provider=self.display_name,
                keys=unmapped,
            )
        return {
            name: resolve_storage_key(
                vault_config.key_mapping[name], vault_config.connection_name
            )
            for name in attribute_names
        }

    def _log(self, level: str, message: str, **context: Any) -> None:
        """Log a message with provider context.

        Args:
            level: Log level (debug, info, warning, error)
            message: Log message
            **context: Additional context to include
        """
        log_fn = getattr(logger, level.lower(), logger.info)
        log_fn(
            f"[{self.display_name}] {message}",
            extra={"provider": self.display_name, **context},
        )


class ConnectorError(Exception):
    """Generic or unclassified connector failure."""

    kind = "ConnectorError"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        keys: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.keys = keys or []


class InvalidCredentialError(ConnectorError):
    """The vault rejected the supplied connection credentials."""

    kind = "InvalidCredentialError"


class InvalidAttributeValueError(ConnectorError):
    """A supplied attribute value is malformed or out of range."""

    kind = "InvalidAttributeValueError"


class OperationTimeoutError(ConnectorError):
    """The vault did not respond within the configured bound."""

    kind = "OperationTimeoutError"


class MissingKeyError(ConnectorError):
    """A requested key does not exist in the vault."""

    kind = "MissingKeyError"
