"""Pytest configuration and fixtures.

Provides common fixtures for all tests including:
- A mocked Zoho Analytics / Zoho accounts server
- Node execution contexts
- An HTTP client for the API
"""

import os

os.environ.setdefault("ZOHO_CLIENT_ID", "test-client-id")
os.environ.setdefault("ZOHO_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("ZOHO_DEFAULT_COUNTRY", "eu")

import json
from typing import Any, AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from zoho_analytics.api.deps import get_http_transport, get_nodes
from zoho_analytics.main import app
from zoho_analytics.nodes.base import NodeContext
from zoho_analytics.nodes.registry import NodeRegistry
from zoho_analytics.nodes.zoho_analytics import ZohoAnalyticsNode, ZohoAnalyticsReportNode

API_URL = "https://analyticsapi.zoho.eu"
TOKEN_URL = "https://accounts.zoho.eu/oauth/v2/token"

Responder = Callable[[httpx.Request], httpx.Response]


class MockZoho:
    """Routes requests by method and path and records every request.

    Unknown routes answer 404 with a Zoho style error body.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Responder]] = {}

    def add(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status_code: int = 200,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Queue a response; the last queued response repeats."""

        def respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content, headers=headers)
            return httpx.Response(status_code, json=json_body, headers=headers)

        self.add_responder(method, path, respond)

    def add_responder(self, method: str, path: str, responder: Responder) -> None:
        self._routes.setdefault((method.upper(), path), []).append(responder)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responders = self._routes.get((request.method, request.url.path))
        if not responders:
            return httpx.Response(
                404,
                json={"status": "failure", "data": {"errorMessage": "Not found"}},
            )
        responder = responders.pop(0) if len(responders) > 1 else responders[0]
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def last(self) -> httpx.Request:
        return self.requests[-1]

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host != "accounts.zoho.eu"]


def config_of(request: httpx.Request) -> dict[str, Any]:
    """Decode the CONFIG query parameter of a request."""
    return json.loads(request.url.params["CONFIG"])


@pytest.fixture
def zoho() -> MockZoho:
    """Mocked Zoho servers."""
    return MockZoho()


@pytest.fixture
def credentials() -> dict[str, Any]:
    return {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "country": "eu",
    }


@pytest.fixture
def context(credentials: dict[str, Any]) -> NodeContext:
    """Execution context with a valid OAuth2 credential."""
    return NodeContext(
        user_id="user-1",
        execution_id="exec-1",
        credentials=credentials,
    )


@pytest.fixture
def node(zoho: MockZoho) -> ZohoAnalyticsNode:
    return ZohoAnalyticsNode(transport=zoho.transport)


@pytest.fixture
def report_node(zoho: MockZoho) -> ZohoAnalyticsReportNode:
    return ZohoAnalyticsReportNode(transport=zoho.transport)


@pytest_asyncio.fixture
async def client(zoho: MockZoho) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client wired to the mocked Zoho servers."""
    registry = NodeRegistry()
    registry.register(ZohoAnalyticsNode(transport=zoho.transport))
    registry.register(ZohoAnalyticsReportNode(transport=zoho.transport))

    app.dependency_overrides[get_nodes] = lambda: registry
    app.dependency_overrides[get_http_transport] = lambda: zoho.transport

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
