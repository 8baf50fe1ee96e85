# tests/plugins/clients/test_http_client.py
"""Tests for the logged JSON HTTP client."""

import json
from collections.abc import Callable

import httpx
import pytest

from chainlook.contracts.errors import TransportError
from chainlook.core.config import HTTPSettings
from chainlook.plugins.clients.http import HTTPClient

MockHttp = Callable[[Callable[[httpx.Request], httpx.Response]], HTTPClient]


class TestRequestJson:
    async def test_decodes_json(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(200, json={"ok": True}))
        assert await http.request_json("GET", "https://example.com/data") == {"ok": True}

    async def test_sends_params_body_and_headers(self, mock_http: MockHttp) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        http = mock_http(handler)
        await http.request_json(
            "POST",
            "https://example.com/q",
            params={"page": 2},
            json={"query": "{ x }"},
            headers={"Authorization": "Bearer secret"},
        )

        request = seen[0]
        assert request.method == "POST"
        assert request.url.params["page"] == "2"
        assert json.loads(request.content) == {"query": "{ x }"}
        assert request.headers["authorization"] == "Bearer secret"
        assert request.headers["user-agent"] == "chainlook"

    async def test_custom_user_agent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http = HTTPClient.from_settings(HTTPSettings(user_agent="dash/1.0"), client)
        await http.request_json("GET", "https://example.com")
        assert seen[0].headers["user-agent"] == "dash/1.0"
        await client.aclose()

    async def test_not_found(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(404, text="no link named"))

        with pytest.raises(TransportError, match="HTTP 404 from https://ipfs.io/ipfs/Qm") as exc_info:
            await http.request_json("GET", "https://ipfs.io/ipfs/Qm")
        assert exc_info.value.status_code == 404
        assert exc_info.value.not_found

    async def test_server_error(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(503))

        with pytest.raises(TransportError) as exc_info:
            await http.request_json("GET", "https://example.com")
        assert exc_info.value.status_code == 503
        assert not exc_info.value.not_found

    async def test_invalid_json(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(TransportError, match="not valid JSON"):
            await http.request_json("GET", "https://example.com")

    async def test_connection_error(self, mock_http: MockHttp) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http = mock_http(handler)
        with pytest.raises(TransportError, match="ConnectError") as exc_info:
            await http.request_json("GET", "https://example.com")
        assert exc_info.value.status_code is None

    async def test_invalid_url(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(200, json={}))

        with pytest.raises(TransportError, match="Invalid URL") as exc_info:
            await http.request_json("GET", "https://example.com:notaport/data")
        assert exc_info.value.status_code is None
        assert exc_info.value.url == "https://example.com:notaport/data"

    async def test_log_url_replaces_url_in_errors(self, mock_http: MockHttp) -> None:
        http = mock_http(lambda request: httpx.Response(500))

        with pytest.raises(TransportError) as exc_info:
            await http.request_json(
                "POST",
                "https://gateway/api/SECRET/subgraphs/id/Qm",
                log_url="https://gateway/api/***/subgraphs/id/Qm",
            )
        assert "SECRET" not in str(exc_info.value)
        assert exc_info.value.url == "https://gateway/api/***/subgraphs/id/Qm"


class TestLifecycle:
    async def test_injected_client_left_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        async with HTTPClient(client):
            pass
        assert not client.is_closed
        await client.aclose()

    async def test_private_client_closed(self) -> None:
        http = HTTPClient()
        async with http:
            pass
        assert http._client.is_closed

    def test_sensitive_headers_filtered(self) -> None:
        http = HTTPClient(httpx.AsyncClient())
        filtered = http._filter_request_headers({"Authorization": "x", "X-Api-Key": "y", "Accept": "json"})
        assert filtered == {"Accept": "json"}
