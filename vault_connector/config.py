"""Shared configuration for the vault connector.

Environment variables read at import time, each with its default.
"""

import os

# Network bounds applied to every vault call
VAULT_TIMEOUT_SECONDS = float(os.getenv("VAULT_TIMEOUT_SECONDS", "30"))
VAULT_CONNECT_TIMEOUT_SECONDS = float(os.getenv("VAULT_CONNECT_TIMEOUT_SECONDS", "10"))

# Retry policy for read operations (getSecret, test)
VAULT_MAX_RETRIES = int(os.getenv("VAULT_MAX_RETRIES", "3"))
VAULT_RETRY_DELAY_SECONDS = float(os.getenv("VAULT_RETRY_DELAY_SECONDS", "1"))

# HTTP service
VAULT_RATE_LIMIT = os.getenv("VAULT_RATE_LIMIT", "120/minute")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Optional YAML/JSON file with per-provider overrides
VAULT_CONNECTOR_CONFIG = os.getenv("VAULT_CONNECTOR_CONFIG")
