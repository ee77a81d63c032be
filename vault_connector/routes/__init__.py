"""API route modules for the vault connector service.

Routers:
- vault: connector callbacks (setVaultConfig, dataFormatting, setSecret,
  getSecret, test, seal, unseal)
"""

from .vault import limiter
from .vault import router as vault_router

__all__ = ["vault_router", "limiter"]
