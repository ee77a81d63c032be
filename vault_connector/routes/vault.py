"""Vault connector callback routes.

Exposes the connector callbacks to a governance host that calls connectors
over HTTP instead of loading them in-process:
- Listing providers and their connection configuration (setVaultConfig)
- dataFormatting, setSecret, getSecret and test
- seal/unseal, reserved by the host and answered with null

Errors raised by providers are rendered by the ``ConnectorError`` handler
registered in ``vault_connector.app``.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from .. import config
from ..connectors import SecretProvider, contract, get_registry
from ..connectors.models import ProviderInfo

router = APIRouter(prefix="/api/vault", tags=["vault"])

limiter = Limiter(key_func=get_remote_address)


class CallbackRequest(BaseModel):
    """Body of a callback: the host's two parameters."""

    model_config = ConfigDict(populate_by_name=True)

    vault_config_data: dict[str, Any] = Field(
        default_factory=dict, alias="vaultConfigData"
    )
    data: dict[str, Any] = Field(default_factory=dict)


class DataFormattingResponse(BaseModel):
    """Result of dataFormatting. ``vaultConfigData`` is null when unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    changed: bool
    vault_config_data: dict[str, Any] | None = Field(
        default=None, alias="vaultConfigData"
    )


def _get_provider(name: str) -> SecretProvider:
    registry = get_registry()
    if not registry.is_registered(name):
        raise HTTPException(status_code=404, detail=f"Provider not found: {name}")
    return registry.get_provider(name)


@router.get("/providers", response_model=list[ProviderInfo])
def list_providers() -> list[ProviderInfo]:
    """List registered providers with their connection configuration."""
    return get_registry().list_providers()


@router.get("/{provider_name}/config")
@limiter.limit(config.VAULT_RATE_LIMIT)
def describe_configuration(request: Request, provider_name: str) -> dict[str, Any]:
    """setVaultConfig: attributes the host must collect for a connection."""
    return contract.describe(_get_provider(provider_name))


@router.post(
    "/{provider_name}/data-formatting",
    response_model=DataFormattingResponse,
    response_model_by_alias=True,
)
@limiter.limit(config.VAULT_RATE_LIMIT)
def data_formatting(
    request: Request, provider_name: str, body: CallbackRequest
) -> DataFormattingResponse:
    """dataFormatting: rewrite key mappings before setSecret/getSecret."""
    remapped = contract.data_formatting(
        _get_provider(provider_name), body.vault_config_data
    )
    return DataFormattingResponse(
        changed=remapped is not None, vault_config_data=remapped
    )


@router.post("/{provider_name}/secrets/set")
@limiter.limit(config.VAULT_RATE_LIMIT)
def set_secret(
    request: Request, provider_name: str, body: CallbackRequest
) -> dict[str, Any]:
    """setSecret: store secret values in the vault."""
    return contract.set_secret(
        _get_provider(provider_name), body.vault_config_data, body.data
    )


@router.post("/{provider_name}/secrets/get")
@limiter.limit(config.VAULT_RATE_LIMIT)
def get_secret(
    request: Request, provider_name: str, body: CallbackRequest
) -> dict[str, Any]:
    """getSecret: fetch secret values from the vault."""
    return contract.get_secret(
        _get_provider(provider_name), body.vault_config_data, body.data
    )


@router.post("/{provider_name}/test")
@limiter.limit(config.VAULT_RATE_LIMIT)
def test_connection(
    request: Request, provider_name: str, body: CallbackRequest
) -> dict[str, Any]:
    """test: authenticate against the vault without touching secrets."""
    return contract.test(_get_provider(provider_name), body.data)


@router.post("/{provider_name}/seal")
@limiter.limit(config.VAULT_RATE_LIMIT)
def seal(request: Request, provider_name: str, body: CallbackRequest) -> None:
    """seal: reserved by the host."""
    return contract.seal(
        _get_provider(provider_name), body.vault_config_data, body.data
    )


@router.post("/{provider_name}/unseal")
@limiter.limit(config.VAULT_RATE_LIMIT)
def unseal(request: Request, provider_name: str, body: CallbackRequest) -> None:
    """unseal: reserved by the host."""
    return contract.unseal(
        _get_provider(provider_name), body.vault_config_data, body.data
    )
