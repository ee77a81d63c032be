"""Vault Connector Package.

This package implements secret vault connectors for an identity-governance
host platform. The host calls a connector to store and fetch the encrypted
attributes of its connections in an external vault.

Usage:
    # In-process, through the provider interface:
    from vault_connector.connectors import get_provider

    # Out-of-process, as an HTTP service:
    uvicorn vault_connector.app:app --host 0.0.0.0 --port 8080

Modules:
    app: FastAPI application entry point
    connectors: SecretProvider interface, models, registry and providers
    routes: HTTP callback routes
    utils: Log and error message sanitization
    config: Environment configuration
"""

__version__ = "0.1.0"
