"""Local vault backed by an encrypted SQLite file.

Uses Fernet symmetric encryption for the stored values. The Fernet key is
itself an encrypted connection attribute, so the host keeps it in its own
secret storage. Generate one with:
    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping

from cryptography.fernet import Fernet, InvalidToken

from ..base import (
    ConnectorError,
    InvalidAttributeValueError,
    InvalidCredentialError,
    MissingKeyError,
    OperationTimeoutError,
    SecretProvider,
)
from ..models import (
    ConnectionConfig,
    ConnectivityResult,
    OperationResult,
    SecretRequest,
    VaultConfigData,
)
from ..registry import register_provider

LOCAL_VAULT_CONFIG = ConnectionConfig(
    connection_attributes=["DB_PATH", "ENCRYPTION_KEY"],
    encrypted_attributes=["ENCRYPTION_KEY"],
    required_attributes=["DB_PATH", "ENCRYPTION_KEY"],
    attribute_descriptions={
        "DB_PATH": "Path of the SQLite file holding the secrets",
        "ENCRYPTION_KEY": "Fernet key (32 url-safe base64-encoded bytes)",
    },
)


class LocalVaultConnector(SecretProvider):
    """Stores secrets Fernet-encrypted in a SQLite database.

    All values of a put are written in one transaction. A wrong
    encryption key surfaces as InvalidCredentialError on read.
    """

    display_name = "LocalVaultConnector"
    version = "1.0"
    description = "Store connection secrets Fernet-encrypted in a local SQLite file"

    def describe_configuration(self) -> ConnectionConfig:
        return LOCAL_VAULT_CONFIG.model_copy(deep=True)

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
        attributes = request.vault_connection_attributes
        self.check_connection_attributes(attributes)
        keys = self._storage_keys(vault_config, list(values))
        fernet = self._fernet(attributes)
        now = datetime.now(timezone.utc).isoformat()

        with self._connect(attributes, create=True) as conn:
            with conn:
                for name, value in values.items():
                    conn.execute(
                        """
                        INSERT INTO vault_secrets
                            (storage_key, encrypted_value, created_at, updated_at)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT(storage_key) DO UPDATE SET
                            encrypted_value = excluded.encrypted_value,
                            updated_at = excluded.updated_at
                        """,
                        (keys[name], fernet.encrypt(value.encode()).decode(), now, now),
                    )

        self._log("info", f"Stored {len(values)} secret(s)")
        return OperationResult()

    def get_secret(
        self, vault_config: VaultConfigData, request: SecretRequest
    ) -> OperationResult:
        attributes = request.vault_connection_attributes
        self.check_connection_attributes(attributes)
        keys = self._storage_keys(vault_config, list(request.encrypted_conn_attr))
        fernet = self._fernet(attributes)
        values: dict[str, str | None] = {}

        with self._connect(attributes, create=False) as conn:
            has_table = self._has_table(conn)
            for name, storage_key in keys.items():
                row = None
                if has_table:
                    row = conn.execute(
                        "SELECT encrypted_value FROM vault_secrets WHERE storage_key = ?",
                        (storage_key,),
                    ).fetchone()
                if row is None:
                    raise MissingKeyError(
                        f"Key '{storage_key}' for attribute '{name}' does not exist "
                        f"in {attributes['DB_PATH']}",
                        provider=self.display_name,
                        keys=[storage_key],
                    )
                values[name] = self._decrypt(fernet, row[0], storage_key)

        self._log("info", f"Fetched {len(values)} secret(s)")
        return OperationResult(encrypted_conn_attr=values)

    def test_connectivity(
        self, connection_attributes: Mapping[str, Any]
    ) -> ConnectivityResult:
        start_time = time.time()
        self.check_connection_attributes(connection_attributes)
        fernet = self._fernet(connection_attributes)

        with self._connect(connection_attributes, create=False) as conn:
            if self._has_table(conn):
                row = conn.execute(
                    "SELECT storage_key, encrypted_value FROM vault_secrets LIMIT 1"
                ).fetchone()
                if row is not None:
                    self._decrypt(fernet, row[1], row[0])

        latency_ms = (time.time() - start_time) * 1000
        return ConnectivityResult(
            status=True,
            message=f"Opened vault database {connection_attributes['DB_PATH']}",
            latency_ms=round(latency_ms, 2),
        )

    def _fernet(self, attributes: Mapping[str, Any]) -> Fernet:
        try:
            return Fernet(str(attributes["ENCRYPTION_KEY"]).encode())
        except ValueError as e:
            raise InvalidAttributeValueError(
                "ENCRYPTION_KEY is not a valid Fernet key "
                "(expected 32 url-safe base64-encoded bytes)",
                provider=self.display_name,
            ) from e

    def _decrypt(self, fernet: Fernet, token: str, storage_key: str) -> str:
        try:
            return fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            raise InvalidCredentialError(
                f"ENCRYPTION_KEY cannot decrypt key '{storage_key}'; "
                "the key does not match the one used to store it",
                provider=self.display_name,
                keys=[storage_key],
            ) from e

    def _has_table(self, conn: sqlite3.Connection) -> bool:
        row = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'vault_secrets'"
        ).fetchone()
        return row is not None

    @contextmanager
    def _connect(
        self, attributes: Mapping[str, Any], create: bool
    ) -> Iterator[sqlite3.Connection]:
        """Open the vault database for one call.

        Args:
            attributes: Connection attributes holding DB_PATH
            create: Create the file and table if missing (writes only)

        Raises:
            ConnectorError: If the database cannot be opened
            OperationTimeoutError: If the database stays locked past the timeout
        """
        db_path = str(attributes["DB_PATH"])
        if not create and not Path(db_path).exists():
            raise ConnectorError(
                f"Vault database not found: {db_path}",
                provider=self.display_name,
            )

        try:
            conn = sqlite3.connect(db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise ConnectorError(
                f"Could not open vault database {db_path}: {e}",
                provider=self.display_name,
            ) from e

        with closing(conn):
            try:
                if create:
                    with conn:
                        conn.execute("""
                            CREATE TABLE IF NOT EXISTS vault_secrets (
                                storage_key TEXT PRIMARY KEY,
                                encrypted_value TEXT NOT NULL,
                                created_at TEXT NOT NULL,
                                updated_at TEXT NOT NULL
                            )
                        """)
                yield conn
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower():
                    raise OperationTimeoutError(
                        f"Vault database {db_path} stayed locked for more than "
                        f"{self.timeout}s",
                        provider=self.display_name,
                    ) from e
                raise ConnectorError(
                    f"Vault database error in {db_path}: {e}",
                    provider=self.display_name,
                ) from e
            except sqlite3.Error as e:
                raise ConnectorError(
                    f"Vault database error in {db_path}: {e}",
                    provider=self.display_name,
                ) from e


def _register_local_vault() -> None:
    """Register the local vault connector with the registry."""
    register_provider(LocalVaultConnector)


# Auto-register on import
_register_local_vault()
