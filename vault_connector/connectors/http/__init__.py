"""HTTP vault connectors.

These connectors use httpx with per-call clients, bounded timeouts and
retry of read operations.
"""

from .base_http import BaseHTTPProvider
from .sample_vault import SAMPLE_VAULT_CONFIG, SampleVaultConnector

__all__ = [
    "BaseHTTPProvider",
    "SAMPLE_VAULT_CONFIG",
    "SampleVaultConnector",
]
