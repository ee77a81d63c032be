"""Vault Connector Framework.

Provides a unified interface between the governance host and external
secret vaults:
- HTTP vaults (the sample vault REST API)
- Local vaults (Fernet-encrypted SQLite)

Example usage:
    from vault_connector.connectors import (
        SecretRequest,
        VaultConfigData,
        get_provider,
    )

    provider = get_provider("SampleVaultConnector")
    vault_config = provider.resolve_config(
        VaultConfigData.model_validate({
            "connectionName": "MyADConnector",
            "keyMapping": {
                "PASSWORD": {"keyName": "abcd215", "encryptionmechanism": "None"},
            },
        })
    )
    request = SecretRequest.model_validate({
        "vaultConnectionAttributes": {
            "AUTH_URL": "https://sampleVault/session/auth",
            "username": "abcd@xyz.com",
            "password": "password@vault",
            "ACCOUNT_URL": "https://sampleVault/select_account",
            "KEY_URL": "https://sampleVault/keys",
        },
        "encryptedConnAttr": {"PASSWORD": None},
    })
    result = provider.get_secret(vault_config, request)
    # result.encrypted_conn_attr == {"PASSWORD": "..."}
"""

from .base import (
    ConnectorError,
    InvalidAttributeValueError,
    InvalidCredentialError,
    MissingKeyError,
    OperationTimeoutError,
    SecretProvider,
)
from .models import (
    CONNECTION_NAME_SEPARATOR,
    ConnectionConfig,
    ConnectivityResult,
    EncryptionMechanism,
    KeyMappingEntry,
    OperationResult,
    OperationStatus,
    ProviderInfo,
    SecretRequest,
    VaultConfigData,
)
from .keys import resolve_mapping, resolve_storage_key
from .registry import (
    ProviderRegistry,
    get_provider,
    get_registry,
    list_providers,
    register_provider,
)
from .config_loader import (
    ConfigLoader,
    ConfigValidationError,
    ProviderSettings,
    load_provider_settings,
)

# Import providers to trigger their registration with the registry
from .http import SampleVaultConnector
from .local import LocalVaultConnector

__all__ = [
    # Base classes and errors
    "SecretProvider",
    "ConnectorError",
    "InvalidAttributeValueError",
    "InvalidCredentialError",
    "MissingKeyError",
    "OperationTimeoutError",
    # Models
    "CONNECTION_NAME_SEPARATOR",
    "ConnectionConfig",
    "ConnectivityResult",
    "EncryptionMechanism",
    "KeyMappingEntry",
    "OperationResult",
    "OperationStatus",
    "ProviderInfo",
    "SecretRequest",
    "VaultConfigData",
    # Key resolution
    "resolve_mapping",
    "resolve_storage_key",
    # Registry
    "ProviderRegistry",
    "get_provider",
    "get_registry",
    "list_providers",
    "register_provider",
    # Config loader
    "ConfigLoader",
    "ConfigValidationError",
    "ProviderSettings",
    "load_provider_settings",
    # Providers
    "SampleVaultConnector",
    "LocalVaultConnector",
]
