"""
Base HTTP Client

Shared transport handling for the greeting service clients.
"""

import logging
from typing import Any, Optional

import httpx

from ..main import ClientError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECS = 30.0


class BaseServiceClient:
    """
    Thin wrapper around an ``httpx.AsyncClient`` bound to one base URL.

    The client is created lazily and closed by ``aclose()`` or the async
    context manager. An injected ``httpx.AsyncClient`` is borrowed and left
    open.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping transport failures to ClientError"""
        try:
            return await self.client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            raise ClientError(f"{self.service_name} {method} {path} failed: {e}") from e

    def _error(self, response: httpx.Response, path: str) -> ClientError:
        """Log an unexpected response and build the error for it"""
        body = response.text
        logger.error(
            f"{self.service_name} {response.request.method} {path} "
            f"returned HTTP {response.status_code}: {body}"
        )
        return ClientError(
            f"{self.service_name} returned HTTP {response.status_code} for {path}",
            status_code=response.status_code,
            body=body,
        )

    def _json(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(
                f"{self.service_name} returned invalid JSON for {path}: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e
