"""Local vault connector storing Fernet-encrypted secrets in SQLite."""

from .sqlite_vault import LOCAL_VAULT_CONFIG, LocalVaultConnector

__all__ = ["LOCAL_VAULT_CONFIG", "LocalVaultConnector"]
