"""JSON callback contract between the governance host and a provider.

The host exchanges plain JSON objects with a connector. These functions are
the only place raw payloads are handled: they validate the payloads into
models, apply ``remap_configuration`` (the host's ``dataFormatting`` step),
invoke the provider and serialize the result back into the map the host
expects. Payloads are logged at debug level with secret values masked.

Example:
    from vault_connector.connectors import contract, get_provider

    provider = get_provider("SampleVaultConnector")
    contract.set_secret(
        provider,
        {"keyMapping": {"PASSWORD": {"keyName": "abcd215", "encryptionmechanism": "None"}},
         "connectionName": "MyADConnector"},
        {"vaultConnectionAttributes": {...}, "encryptedConnAttr": {"PASSWORD": "password@1234"}},
    )
    # -> {"status": "success"}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..utils import redact_payload
from .base import InvalidAttributeValueError, SecretProvider
from .models import SecretRequest, VaultConfigData

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(
    model: Type[ModelT],
    payload: Mapping[str, Any] | None,
    provider: SecretProvider,
    wrapper: str | None = None,
) -> ModelT:
    """Validate a host payload into a model.

    Args:
        model: Target pydantic model
        payload: Raw JSON object from the host
        provider: Provider the payload is addressed to (for error context)
        wrapper: Optional key the host may nest the payload under
            (e.g. ``vaultConfigData``)

    Raises:
        InvalidAttributeValueError: If the payload does not match the model
    """
    data: Any = payload or {}
    if wrapper and isinstance(data, Mapping) and wrapper in data:
        data = data[wrapper]
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or model.__name__}: {error['msg']}"
            for error in e.errors()
        )
        raise InvalidAttributeValueError(
            f"Invalid {model.__name__} payload: {problems}",
            provider=provider.display_name,
        ) from e


def _log_payload(
    provider: SecretProvider, operation: str, label: str, payload: Any
) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    secret_fields = provider.describe_configuration().encrypted_attributes
    redacted = redact_payload(payload, secret_fields=secret_fields)
    logger.debug(
        f"[{provider.display_name}] {operation} {label}: "
        f"{json.dumps(redacted, indent=2, default=str, sort_keys=True)}"
    )


def describe(provider: SecretProvider) -> dict[str, Any]:
    """setVaultConfig: the attributes the host must collect."""
    config = provider.describe_configuration()
    return config.model_dump(by_alias=True)


def data_formatting(
    provider: SecretProvider, vault_config_data: Mapping[str, Any] | None
) -> dict[str, Any] | None:
    """dataFormatting: the rewritten vaultConfigData, or None if unchanged."""
    _log_payload(provider, "dataFormatting", "vaultConfigData", vault_config_data)
    vault_config = parse_payload(
        VaultConfigData, vault_config_data, provider, wrapper="vaultConfigData"
    )
    remapped = provider.remap_configuration(vault_config)
    return None if remapped is None else remapped.to_payload()


def set_secret(
    provider: SecretProvider,
    vault_config_data: Mapping[str, Any] | None,
    data: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """setSecret: store the values of ``data.encryptedConnAttr``."""
    _log_payload(provider, "setSecret", "vaultConfigData", vault_config_data)
    _log_payload(provider, "setSecret", "data", data)
    vault_config = provider.resolve_config(
        parse_payload(VaultConfigData, vault_config_data, provider, "vaultConfigData")
    )
    request = parse_payload(SecretRequest, data, provider, wrapper="data")
    result = provider.put_secret(vault_config, request).to_payload()
    _log_payload(provider, "setSecret", "result", result)
    return result


def get_secret(
    provider: SecretProvider,
    vault_config_data: Mapping[str, Any] | None,
    data: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """getSecret: fetch a value for each key of ``data.encryptedConnAttr``."""
    _log_payload(provider, "getSecret", "vaultConfigData", vault_config_data)
    _log_payload(provider, "getSecret", "data", data)
    vault_config = provider.resolve_config(
        parse_payload(VaultConfigData, vault_config_data, provider, "vaultConfigData")
    )
    request = parse_payload(SecretRequest, data, provider, wrapper="data")
    result = provider.get_secret(vault_config, request).to_payload()
    _log_payload(provider, "getSecret", "result", result)
    return result


def test(provider: SecretProvider, data: Mapping[str, Any] | None) -> dict[str, Any]:
    """test: authenticate against the vault only.

    ``data`` may be the bare connection attributes or a full ``data``
    object carrying ``vaultConnectionAttributes``.
    """
    _log_payload(provider, "test", "data", data)
    payload = data or {}
    if isinstance(payload, Mapping) and "data" in payload:
        payload = payload["data"] or {}
    if not isinstance(payload, Mapping):
        raise InvalidAttributeValueError(
            f"Invalid test payload: expected a JSON object of connection "
            f"attributes, got {type(payload).__name__}",
            provider=provider.display_name,
        )
    if any(
        key in payload
        for key in ("vaultConnectionAttributes", "vaultConnectionAtributes")
    ):
        attributes = parse_payload(
            SecretRequest, payload, provider
        ).vault_connection_attributes
    else:
        attributes = dict(payload)
    return provider.test_connectivity(attributes).to_payload()


def seal(
    provider: SecretProvider,
    vault_config_data: Mapping[str, Any] | None,
    data: Mapping[str, Any] | None,
) -> None:
    """seal: reserved by the host."""
    vault_config = parse_payload(
        VaultConfigData, vault_config_data, provider, "vaultConfigData"
    )
    request = parse_payload(SecretRequest, data, provider, wrapper="data")
    return provider.seal(vault_config, request)


def unseal(
    provider: SecretProvider,
    vault_config_data: Mapping[str, Any] | None,
    data: Mapping[str, Any] | None,
) -> None:
    """unseal: reserved by the host."""
    vault_config = parse_payload(
        VaultConfigData, vault_config_data, provider, "vaultConfigData"
    )
    request = parse_payload(SecretRequest, data, provider, wrapper="data")
    return provider.unseal(vault_config, request)
