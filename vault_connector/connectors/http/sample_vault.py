"""Connector for the sample vault REST API.

The sample vault exposes session-based authentication and a flat key space:

    POST   AUTH_URL            {"username", "password"} -> {"token"}
    DELETE AUTH_URL            end the session
    POST   ACCOUNT_URL         select the account the keys live in
    GET    KEY_URL/<key>       -> {"value"}
    PUT    KEY_URL/<key>       {"value"}
    DELETE KEY_URL/<key>

Every call authenticates, selects the account, performs its key operations
and ends the session, whatever the outcome.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping
from urllib.parse import quote

import httpx

from ...utils import sanitize_error_message
from ..base import ConnectorError, InvalidAttributeValueError, MissingKeyError
from ..keys import KEY_NAME_FIELD
from ..models import (
    ConnectionConfig,
    ConnectivityResult,
    KeyMappingEntry,
    OperationResult,
    SecretRequest,
    VaultConfigData,
)
from ..registry import register_provider
from .base_http import BaseHTTPProvider

SAMPLE_VAULT_CONFIG = ConnectionConfig(
    connection_attributes=["AUTH_URL", "username", "password", "ACCOUNT_URL", "KEY_URL"],
    encrypted_attributes=["password"],
    required_attributes=["AUTH_URL", "username", "password", "ACCOUNT_URL", "KEY_URL"],
    attribute_descriptions={
        "AUTH_URL": "AUTHENTICATION URL",
        "username": "USERNAME",
        "password": "PASSWORD",
        "ACCOUNT_URL": "URL TO SELECT ACCOUNT",
        "KEY_URL": "URL OF KEY TO PERFORM SET AND GET SECRET OPERATIONS",
    },
)


class SampleVaultConnector(BaseHTTPProvider):
    """Connector for the sample vault.

    Supports:
    - Session authentication with username and password
    - Account selection before key access
    - Atomic multi-key writes with rollback of already written keys
    - Retried reads; writes are never retried
    - Normalization of legacy key mappings in ``remap_configuration``
    """

    display_name = "SampleVaultConnector"
    version = "1.0"
    description = "Store connection secrets in the sample vault over its REST API"

    def describe_configuration(self) -> ConnectionConfig:
        return SAMPLE_VAULT_CONFIG.model_copy(deep=True)

    def put_secret(
        self, vault_config: VaultConfigData, request: SecretRequest
    ) -> OperationResult:
        values = request.encrypted_conn_attr
        empty = [name for name, value in values.items() if value is None]
        if empty:
            raise InvalidAttributeValueError(
                f"No value supplied for encrypted attribute(s): {', '.join(empty)}",
                provider=self.display_name,
                keys=empty,
            )
        keys = self._storage_keys(vault_config, list(values))
        attributes = request.vault_connection_attributes

        with self._session(attributes, retry=False) as (client, headers):
            key_url = str(attributes["KEY_URL"])
            # (storage key, value before this call; None if it did not exist)
            touched: list[tuple[str, str | None]] = []
            for name, value in values.items():
                storage_key = keys[name]
                try:
                    previous = self._fetch_value(
                        client, key_url, storage_key, headers, retry=False
                    )
                    touched.append((storage_key, previous))
                    self._store_value(client, key_url, storage_key, value, headers)
                except ConnectorError as e:
                    not_restored = self._rollback(client, key_url, touched, headers)
                    raise self._write_failure(
                        e, name, storage_key, len(touched), not_restored
                    ) from e
                self._log("debug", f"Stored {name}", storage_key=storage_key)

        self._log("info", f"Stored {len(values)} secret(s)")
        return OperationResult()

    def get_secret(
        self, vault_config: VaultConfigData, request: SecretRequest
    ) -> OperationResult:
        keys = self._storage_keys(vault_config, list(request.encrypted_conn_attr))
        attributes = request.vault_connection_attributes
        values: dict[str, str | None] = {}

        with self._session(attributes, retry=True) as (client, headers):
            key_url = str(attributes["KEY_URL"])
            for name, storage_key in keys.items():
                value = self._fetch_value(
                    client, key_url, storage_key, headers, retry=True
                )
                if value is None:
                    raise MissingKeyError(
                        f"Key '{storage_key}' for attribute '{name}' does not exist "
                        f"in the vault at {key_url}",
                        provider=self.display_name,
                        keys=[storage_key],
                    )
                values[name] = value

        self._log("info", f"Fetched {len(values)} secret(s)")
        return OperationResult(encrypted_conn_attr=values)

    def test_connectivity(
        self, connection_attributes: Mapping[str, Any]
    ) -> ConnectivityResult:
        start_time = time.time()
        with self._session(connection_attributes, retry=True):
            pass
        latency_ms = (time.time() - start_time) * 1000
        return ConnectivityResult(
            status=True,
            message=f"Successfully authenticated at {connection_attributes['AUTH_URL']}",
            latency_ms=round(latency_ms, 2),
        )

    def remap_configuration(
        self, vault_config: VaultConfigData
    ) -> VaultConfigData | None:
        """Normalize mappings saved by older host releases.

        Trims whitespace around mapping values and canonicalizes the
        spelling of ``ignoreMapping`` entries. Returns None when every
        entry is already normalized.
        """
        key_mapping = {
            name: _normalize_entry(entry)
            for name, entry in vault_config.key_mapping.items()
        }
        if key_mapping == vault_config.key_mapping:
            return None
        return vault_config.model_copy(update={"key_mapping": key_mapping})

    @contextmanager
    def _session(
        self, attributes: Mapping[str, Any], retry: bool
    ) -> Iterator[tuple[httpx.Client, dict[str, str]]]:
        """Authenticate and select the account for the duration of a call.

        Yields:
            The open client and the authorization headers
        """
        self.check_connection_attributes(attributes)
        auth_url = str(attributes["AUTH_URL"])

        with self._open_client() as client:
            response = self._request(
                client,
                "POST",
                auth_url,
                retry=retry,
                json_data={
                    "username": attributes["username"],
                    "password": attributes["password"],
                },
            )
            if response.status_code == 404:
                raise ConnectorError(
                    f"Authentication endpoint not found: {auth_url}",
                    provider=self.display_name,
                )
            token = self._json(response).get("token")
            if not token:
                raise ConnectorError(
                    f"Malformed response from vault: no session token returned by {auth_url}",
                    provider=self.display_name,
                )
            headers = {"Authorization": f"Bearer {token}"}

            try:
                account_url = str(attributes["ACCOUNT_URL"])
                response = self._request(
                    client, "POST", account_url, retry=retry, headers=headers
                )
                if response.status_code == 404:
                    raise ConnectorError(
                        f"Account selection endpoint not found: {account_url}",
                        provider=self.display_name,
                    )
                yield client, headers
            finally:
                self._logout(client, auth_url, headers)

    def _logout(
        self, client: httpx.Client, auth_url: str, headers: dict[str, str]
    ) -> None:
        """End the vault session. Failures are logged, not raised."""
        try:
            client.delete(auth_url, headers=headers)
        except httpx.HTTPError as e:
            self._log(
                "warning",
                f"Failed to end vault session: {sanitize_error_message(str(e))}",
            )

    def _key_endpoint(self, key_url: str, storage_key: str) -> str:
        return f"{key_url.rstrip('/')}/{quote(storage_key, safe='')}"

    def _fetch_value(
        self,
        client: httpx.Client,
        key_url: str,
        storage_key: str,
        headers: dict[str, str],
        retry: bool,
    ) -> str | None:
        """Read one key. Returns None if the key does not exist."""
        response = self._request(
            client,
            "GET",
            self._key_endpoint(key_url, storage_key),
            retry=retry,
            headers=headers,
        )
        if response.status_code == 404:
            return None
        value = self._json(response).get("value")
        if not isinstance(value, str):
            raise ConnectorError(
                f"Malformed response from vault: key '{storage_key}' has no string value",
                provider=self.display_name,
                keys=[storage_key],
            )
        return value

    def _store_value(
        self,
        client: httpx.Client,
        key_url: str,
        storage_key: str,
        value: str,
        headers: dict[str, str],
    ) -> None:
        """Write one key. Writes are never retried."""
        response = self._request(
            client,
            "PUT",
            self._key_endpoint(key_url, storage_key),
            retry=False,
            json_data={"value": value},
            headers=headers,
        )
        if response.status_code == 404:
            raise ConnectorError(
                f"Key endpoint not found: {key_url}",
                provider=self.display_name,
                keys=[storage_key],
            )

    def _rollback(
        self,
        client: httpx.Client,
        key_url: str,
        touched: list[tuple[str, str | None]],
        headers: dict[str, str],
    ) -> list[str]:
        """Restore keys touched by a failed write.

        Returns:
            Storage keys that could not be restored
        """
        not_restored: list[str] = []
        for storage_key, previous in reversed(touched):
            endpoint = self._key_endpoint(key_url, storage_key)
            try:
                if previous is None:
                    self._request(
                        client, "DELETE", endpoint, retry=False, headers=headers
                    )
                else:
                    self._store_value(client, key_url, storage_key, previous, headers)
            except ConnectorError as e:
                self._log(
                    "error",
                    f"Rollback failed for key {storage_key}: {e}",
                    storage_key=storage_key,
                )
                not_restored.append(storage_key)
        return not_restored

    def _write_failure(
        self,
        error: ConnectorError,
        name: str,
        storage_key: str,
        touched: int,
        not_restored: list[str],
    ) -> ConnectorError:
        """Build the error raised when a multi-key write fails."""
        message = f"Failed to store '{name}' under key '{storage_key}': {error}."
        if touched:
            message += f" Rolled back {touched - len(not_restored)} of {touched} key(s)."
        if not_restored:
            message += f" Could not roll back: {', '.join(not_restored)}."
        return type(error)(
            message,
            provider=self.display_name,
            keys=[storage_key, *[k for k in not_restored if k != storage_key]],
        )


def _normalize_entry(entry: KeyMappingEntry) -> KeyMappingEntry:
    """Return a normalized copy of a key mapping entry."""
    payload = entry.to_payload()
    payload["keyName"] = entry.key_name.strip() or entry.key_name
    for field_name, value in entry.extra_fields.items():
        if isinstance(value, str):
            payload[field_name] = value.strip()

    canonical = {name.lower(): name for name in entry.extra_fields}
    canonical[KEY_NAME_FIELD.lower()] = KEY_NAME_FIELD
    ignore_mapping: list[str] = []
    for field_name in entry.ignore_mapping:
        field_name = canonical.get(field_name.strip().lower(), field_name.strip())
        if field_name not in ignore_mapping:
            ignore_mapping.append(field_name)
    payload["ignoreMapping"] = ignore_mapping

    return KeyMappingEntry.model_validate(payload)


def _register_sample_vault() -> None:
    """Register the sample vault connector with the registry."""
    register_provider(SampleVaultConnector)


# Auto-register on import
_register_sample_vault()
