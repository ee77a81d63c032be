"""FastAPI service exposing vault connector callbacks to the governance host."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__, config
from .connectors import ConnectorError, list_providers, load_provider_settings
from .routes import limiter, vault_router
from .utils import sanitize_error_message

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# HTTP status per error kind surfaced to the host
ERROR_STATUS_CODES: dict[str, int] = {
    "InvalidCredentialError": 401,
    "MissingKeyError": 404,
    "InvalidAttributeValueError": 422,
    "OperationTimeoutError": 504,
    "ConnectorError": 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load provider settings on startup."""
    if config.VAULT_CONNECTOR_CONFIG:
        settings = load_provider_settings(config.VAULT_CONNECTOR_CONFIG)
        logger.info(
            f"Loaded settings for {len(settings)} provider(s) from {config.VAULT_CONNECTOR_CONFIG}"
        )
    logger.info(
        f"Vault connector service started with providers: "
        f"{', '.join(info.name for info in list_providers())}"
    )
    yield


app = FastAPI(
    title="Vault Connector",
    description="Secret vault connector callbacks for identity-governance hosts",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting configuration
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def connector_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a classified connector error for the host."""
    kind = getattr(exc, "kind", "ConnectorError")
    status_code = ERROR_STATUS_CODES.get(kind, 502)
    message = sanitize_error_message(str(exc))
    log_fn = logger.warning if status_code < 500 else logger.error
    log_fn(f"{request.method} {request.url.path} failed with {kind}: {message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": kind,
            "message": message,
            "keys": list(getattr(exc, "keys", []) or []),
        },
    )


app.add_exception_handler(ConnectorError, connector_error_handler)

# Register API routers
app.include_router(vault_router)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
