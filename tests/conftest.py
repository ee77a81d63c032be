"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from cryptography.fernet import Fernet

from vault_connector.connectors import SampleVaultConnector

VAULT_USERNAME = "abcd@xyz.com"
VAULT_PASSWORD = "password@vault"


class FakeSampleVault:
    """In-memory sample vault served through ``httpx.MockTransport``.

    Knobs let tests inject failures:
    - ``unreachable``: raise this httpx exception for every request
    - ``fail_put_keys``: answer 500 when writing these keys
    - ``flaky_gets``: answer 503 to this many key reads before succeeding
    """

    def __init__(self) -> None:
        self.secrets: dict[str, str] = {}
        self.sessions: set[str] = set()
        self.requests: list[tuple[str, str]] = []
        self.unreachable: type[httpx.TransportError] | None = None
        self.fail_put_keys: set[str] = set()
        self.flaky_gets = 0
        self._issued = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))

        if self.unreachable is not None:
            raise self.unreachable("vault unreachable", request=request)

        if path == "/session/auth":
            return self._auth(request)

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token not in self.sessions:
            return httpx.Response(401, json={"error": "session expired"})

        if path == "/select_account" and request.method == "POST":
            return httpx.Response(200, json={"account": "default"})

        if path.startswith("/keys/"):
            return self._key(request, path[len("/keys/"):])

        return httpx.Response(404, json={"error": "not found"})

    def _auth(self, request: httpx.Request) -> httpx.Response:
        if request.method == "DELETE":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            self.sessions.discard(token)
            return httpx.Response(204)

        body = json.loads(request.content)
        if body.get("username") != VAULT_USERNAME or body.get("password") != VAULT_PASSWORD:
            return httpx.Response(401, json={"error": "invalid credentials"})
        self._issued += 1
        token = f"token-{self._issued}"
        self.sessions.add(token)
        return httpx.Response(200, json={"token": token})

    def _key(self, request: httpx.Request, key: str) -> httpx.Response:
        if request.method == "GET":
            if self.flaky_gets:
                self.flaky_gets -= 1
                return httpx.Response(503, json={"error": "unavailable"})
            if key not in self.secrets:
                return httpx.Response(404, json={"error": "no such key"})
            return httpx.Response(200, json={"value": self.secrets[key]})

        if request.method == "PUT":
            if key in self.fail_put_keys:
                return httpx.Response(500, json={"error": "write failed"})
            self.secrets[key] = json.loads(request.content)["value"]
            return httpx.Response(200, json={"stored": key})

        if request.method == "DELETE":
            self.secrets.pop(key, None)
            return httpx.Response(204)

        return httpx.Response(405)

    def key_requests(self) -> list[tuple[str, str]]:
        return [entry for entry in self.requests if entry[1].startswith("/keys/")]


@pytest.fixture
def sample_vault() -> FakeSampleVault:
    """Empty fake sample vault."""
    return FakeSampleVault()


@pytest.fixture
def sample_connector(sample_vault: FakeSampleVault) -> SampleVaultConnector:
    """Sample vault connector wired to the fake vault, without backoff delays."""
    return SampleVaultConnector(
        transport=sample_vault.transport(),
        timeout=5,
        max_retries=2,
        retry_delay=0,
    )


@pytest.fixture
def vault_attributes() -> dict[str, Any]:
    """Connection attributes for the sample vault."""
    return {
        "AUTH_URL": "https://sampleVault/session/auth",
        "username": VAULT_USERNAME,
        "password": VAULT_PASSWORD,
        "ACCOUNT_URL": "https://sampleVault/select_account",
        "KEY_URL": "https://sampleVault/keys",
    }


@pytest.fixture
def password_mapping() -> dict[str, Any]:
    """vaultConfigData mapping PASSWORD to abcd215 for MyADConnector."""
    return {
        "connectionName": "MyADConnector",
        "keyMapping": {
            "PASSWORD": {"keyName": "abcd215", "encryptionmechanism": "None"},
        },
    }


@pytest.fixture
def local_attributes(tmp_path) -> dict[str, Any]:
    """Connection attributes for a local vault in a temporary directory."""
    return {
        "DB_PATH": str(tmp_path / "vault.db"),
        "ENCRYPTION_KEY": Fernet.generate_key().decode(),
    }
