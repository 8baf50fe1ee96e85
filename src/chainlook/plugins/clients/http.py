# src/chainlook/plugins/clients/http.py
"""Logged async HTTP client shared by all providers.

Wraps httpx.AsyncClient: every request is logged with its latency, HTTP and
network failures become TransportError, and JSON bodies are decoded.
Sensitive headers are never logged, and callers pass ``log_url`` when the
URL itself carries a secret (The Graph gateway keys live in the path).
"""

import time
from typing import Any

import httpx

from chainlook.contracts.errors import TransportError
from chainlook.core.config import HTTPSettings
from chainlook.core.logging import get_logger

logger = get_logger(__name__)


class HTTPClient:
    """JSON-over-HTTP transport.

    Example:
        async with HTTPClient.from_settings(settings.http) as http:
            data = await http.request_json("GET", "https://ipfs.io/ipfs/Qm...")
    """

    _SENSITIVE_HEADERS = frozenset(
        {"authorization", "proxy-authorization", "x-api-key", "api-key", "cookie"}
    )

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        user_agent: str = "chainlook",
    ) -> None:
        """Initialize the transport.

        Args:
            client: Injected httpx client (not closed by this wrapper); a
                private one is created when omitted
            timeout: Request timeout for a private client, in seconds
            user_agent: User-Agent sent with every request
        """
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._user_agent = user_agent

    @classmethod
    def from_settings(
        cls,
        settings: HTTPSettings,
        client: httpx.AsyncClient | None = None,
    ) -> "HTTPClient":
        return cls(client, timeout=settings.timeout_seconds, user_agent=settings.user_agent)

    async def __aenter__(self) -> "HTTPClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this wrapper created it."""
        if self._owns_client:
            await self._client.aclose()

    def _filter_request_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Drop auth headers before they reach the log."""
        return {k: v for k, v in headers.items() if k.lower() not in self._SENSITIVE_HEADERS}

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        log_url: str | None = None,
    ) -> Any:
        """Send a request and decode the JSON response body.

        Args:
            method: HTTP method
            url: Full request URL
            params: Query parameters
            json: JSON request body
            headers: Extra request headers
            log_url: URL to log and report in errors instead of ``url``

        Returns:
            Decoded JSON body

        Raises:
            TransportError: On a malformed URL or network failure, on HTTP
                status >= 400, and when the body is not JSON
        """
        display_url = log_url or url
        request_headers = {"User-Agent": self._user_agent, **(headers or {})}

        start = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                "http_request_failed",
                method=method,
                url=display_url,
                latency_ms=round(latency_ms, 1),
                error_type=type(e).__name__,
            )
            raise TransportError(
                f"Request to {display_url} failed: {type(e).__name__}: {e}",
                url=display_url,
            ) from e
        except httpx.InvalidURL as e:
            logger.warning("http_request_failed", method=method, url=display_url, error_type="InvalidURL")
            raise TransportError(f"Invalid URL {display_url}", url=display_url) from e

        latency_ms = (time.perf_counter() - start) * 1000
        log = logger.bind(
            method=method,
            url=display_url,
            status_code=response.status_code,
            latency_ms=round(latency_ms, 1),
            headers=self._filter_request_headers(request_headers),
        )

        if response.status_code >= 400:
            log.warning("http_request_rejected")
            raise TransportError(
                f"HTTP {response.status_code} from {display_url}",
                url=display_url,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            log.warning("http_response_not_json")
            raise TransportError(
                f"Response from {display_url} is not valid JSON",
                url=display_url,
                status_code=response.status_code,
            ) from e

        log.debug("http_request_completed")
        return data
