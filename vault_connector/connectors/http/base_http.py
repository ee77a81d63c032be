"""Base HTTP secret provider with bounded timeouts and retry.

Provides common functionality for vault connectors that speak HTTP:
- A fresh httpx client per call, closed before the call returns
- Per-request timeouts (overall and connect)
- Exponential backoff retry, only for operations that are safe to repeat
- Mapping of transport failures and status codes to connector errors
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from ...utils import sanitize_error_message
from ..base import (
    ConnectorError,
    InvalidAttributeValueError,
    InvalidCredentialError,
    OperationTimeoutError,
    SecretProvider,
)


class BaseHTTPProvider(SecretProvider):
    """Base class for HTTP-based vault connectors.

    Provides:
    - ``_open_client``: scoped httpx client with configured timeouts
    - ``_request``: request execution with optional retry and error mapping
    """

    def __init__(
        self,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        verify_ssl: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize HTTP provider.

        Args:
            timeout: Request timeout in seconds
            connect_timeout: Connect timeout in seconds
            max_retries: Maximum retry attempts for reads
            retry_delay: Initial retry delay in seconds
            verify_ssl: Verify TLS certificates
            transport: Custom httpx transport (proxies, mTLS, tests)
        """
        super().__init__(timeout, connect_timeout, max_retries, retry_delay)
        self.verify_ssl = verify_ssl
        self._transport = transport

    def _open_client(self) -> httpx.Client:
        """Create a client for a single call. Use as a context manager."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            verify=self.verify_ssl,
            transport=self._transport,
            follow_redirects=True,
        )

    def _request(
        self,
        client: httpx.Client,
        method: str,
        url: str,
        *,
        retry: bool,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request, retrying if the operation allows it.

        A 404 response is returned to the caller, which decides whether a
        missing resource is an error.

        Args:
            client: Client opened by ``_open_client``
            method: HTTP method
            url: Absolute URL
            retry: Whether the request may be repeated
            json_data: JSON request body
            headers: Request headers

        Returns:
            HTTP response with a status below 400, or 404

        Raises:
            InvalidCredentialError: On 401 or 403
            InvalidAttributeValueError: On other 4xx responses
            OperationTimeoutError: If every attempt timed out
            ConnectorError: On connection failures and 5xx responses
        """
        attempts = self.max_retries + 1 if retry else 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = client.request(
                    method, url, json=json_data, headers=headers
                )
            except httpx.TransportError as e:
                last_error = e
            else:
                status = response.status_code
                if status < 400 or status == 404:
                    return response
                detail = sanitize_error_message(response.text[:200])
                if status in (401, 403):
                    raise InvalidCredentialError(
                        f"Vault rejected the credentials ({status}) for {method} {url}"
                        + (f": {detail}" if detail else ""),
                        provider=self.display_name,
                    )
                if status != 429 and status < 500:
                    raise InvalidAttributeValueError(
                        f"Vault rejected {method} {url} with status {status}"
                        + (f": {detail}" if detail else ""),
                        provider=self.display_name,
                    )
                last_error = ConnectorError(
                    f"Vault returned status {status} for {method} {url}",
                    provider=self.display_name,
                )

            if attempt < attempts - 1:
                delay = self.retry_delay * (2**attempt)
                self._log(
                    "warning",
                    f"Request failed, retrying in {delay}s: {sanitize_error_message(str(last_error))}",
                )
                time.sleep(delay)

        if isinstance(last_error, httpx.TimeoutException):
            raise OperationTimeoutError(
                f"Vault did not respond within {self.timeout}s for {method} {url}",
                provider=self.display_name,
            ) from last_error
        if isinstance(last_error, ConnectorError):
            raise last_error
        raise ConnectorError(
            f"Could not reach vault for {method} {url} after {attempts} attempt(s): "
            f"{sanitize_error_message(str(last_error))}",
            provider=self.display_name,
        ) from last_error

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body.

        Raises:
            ConnectorError: If the body is not a JSON object
        """
        try:
            body = response.json()
        except ValueError as e:
            raise ConnectorError(
                f"Malformed response from vault ({response.request.method} "
                f"{response.request.url}): body is not JSON",
                provider=self.display_name,
            ) from e
        if not isinstance(body, dict):
            raise ConnectorError(
                f"Malformed response from vault ({response.request.method} "
                f"{response.request.url}): expected a JSON object",
                provider=self.display_name,
            )
        return body
