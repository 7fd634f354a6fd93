"""
HTTP transport for the Imperva API.

Performs one authenticated exchange per call: attaches the credential
headers, serializes an optional JSON body, and returns the raw response
bytes. Status codes of 400 and above, timeouts and connection failures are
raised as classified errors. Nothing is retried.
"""

import json
from typing import Any, Optional

import httpx

from .audit_logger import AuditLogger
from .config import ClientConfig, REQUEST_TIMEOUT_SECONDS
from .enums import ErrorCode
from .exceptions import HTTPStatusError, TransportError


COMPONENT = "transport"


class Transport:
    """
    Async HTTP transport bound to one credential set.

    A single httpx.AsyncClient is created lazily and reused for every call
    until close() is called.
    """

    def __init__(
        self,
        config: ClientConfig,
        logger: Optional[AuditLogger] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            config: Credentials and host
            logger: Optional audit logger
            http_transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self._config = config
        self._logger = logger
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _auth_headers(self) -> dict[str, str]:
        return {
            "x-API-Id": self._config.api_id,
            "x-API-Key": self._config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS),
                transport=self._http_transport,
            )
        return self._client

    async def request(self, method: str, path: str, body: Any = None) -> bytes:
        """
        Perform one request.

        Args:
            method: HTTP method
            path: Path relative to the host, including any encoded query string
            body: Value to send as JSON; None sends no body at all

        Returns:
            Raw response body

        Raises:
            TransportError: On timeout or connection failure
            HTTPStatusError: On a status code of 400 or above
        """
        url = self.base_url + path
        content = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")

        if self._logger:
            self._logger.debug(COMPONENT, "Sending request", {
                "method": method,
                "path": path,
                "has_body": content is not None,
            })

        client = self._ensure_client()
        try:
            response = await client.request(
                method,
                url,
                content=content,
                headers=self._auth_headers(),
            )
        except httpx.TimeoutException as e:
            error = TransportError(
                code=ErrorCode.TIMEOUT.value,
                message=f"Request timed out after {REQUEST_TIMEOUT_SECONDS:.0f}s: {method} {path}",
                details={"method": method, "path": path},
            )
            self._log_failure(error, path)
            raise error from e
        except httpx.HTTPError as e:
            error = TransportError(
                code=ErrorCode.NETWORK_ERROR.value,
                message=f"Request failed: {method} {path}: {e}",
                details={"method": method, "path": path},
            )
            self._log_failure(error, path)
            raise error from e

        if response.status_code >= 400:
            error = HTTPStatusError(response.status_code, response.content, url=path)
            self._log_failure(error, path, response.status_code)
            raise error

        if self._logger:
            self._logger.debug(COMPONENT, "Received response", {
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "bytes": len(response.content),
            })
        return response.content

    async def get(self, path: str) -> bytes:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any = None) -> bytes:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any = None) -> bytes:
        return await self.request("PUT", path, body)

    async def delete(self, path: str, body: Any = None) -> bytes:
        return await self.request("DELETE", path, body)

    def _log_failure(
        self,
        error: Exception,
        path: str,
        status_code: Optional[int] = None,
    ) -> None:
        if self._logger:
            self._logger.log_error(
                COMPONENT,
                "API request failed",
                error=error,
                request_url=path,
                response_status_code=status_code,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "Transport":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
