"""Async HTTP client with retry logic.

httpx + tenacity for the racetime REST endpoints (race listing, race detail,
OAuth token).

Features:
- Async HTTP client with connection pooling
- Automatic retry with exponential backoff on timeouts and network errors
- Non-2xx responses raise ``httpx.HTTPStatusError`` without retrying
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 10  # seconds

_retry_transient = retry(
    stop=stop_after_attempt(DEFAULT_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=DEFAULT_MIN_WAIT, max=DEFAULT_MAX_WAIT),
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class AsyncHttpClient:
    """Async HTTP client with retry logic and connection pooling.

    Usage:
        async with AsyncHttpClient() as client:
            data = await client.get_json("https://racetime.gg/smr/data")
    """

    def __init__(
        self,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Total request timeout in seconds
            connect_timeout: Connection timeout in seconds
            max_connections: Maximum concurrent connections
            transport: Optional httpx transport (``httpx.MockTransport`` in tests)
        """
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._limits = httpx.Limits(max_connections=max_connections)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncHttpClient":
        """Async context manager entry."""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def open(self) -> None:
        """Create the underlying httpx client if not already open."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=self._limits,
                follow_redirects=True,
                transport=self._transport,
            )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' or open().")
        return self._client

    @_retry_transient
    async def get(self, url: str, **kwargs) -> httpx.Response:
        """GET request with retry.

        Args:
            url: Request URL
            **kwargs: Additional httpx request arguments

        Returns:
            HTTP response (2xx only)
        """
        response = await self.client.get(url, **kwargs)
        response.raise_for_status()
        return response

    @_retry_transient
    async def post(self, url: str, **kwargs) -> httpx.Response:
        """POST request with retry.

        Args:
            url: Request URL
            **kwargs: Additional httpx request arguments

        Returns:
            HTTP response (2xx only)
        """
        response = await self.client.post(url, **kwargs)
        response.raise_for_status()
        return response

    async def get_json(self, url: str, **kwargs) -> Any:
        """GET request returning parsed JSON."""
        response = await self.get(url, **kwargs)
        return response.json()

    async def post_form(self, url: str, data: dict[str, str], **kwargs) -> Any:
        """POST an urlencoded form body returning parsed JSON.

        Args:
            url: Request URL
            data: Form fields
            **kwargs: Additional httpx request arguments

        Returns:
            Parsed JSON response
        """
        response = await self.post(url, data=data, **kwargs)
        return response.json()
