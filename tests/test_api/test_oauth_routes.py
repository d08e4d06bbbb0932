"""Tests for OAuth API endpoints."""

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from conftest import MockZoho

TOKEN_RESPONSE = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "api_domain": "https://www.zohoapis.com.au",
}


async def authorize(client: AsyncClient, country: str | None = "com.au") -> str:
    params = {"country": country} if country else {}
    response = await client.get("/api/v1/oauth/zoho_analytics/authorize", params=params)
    assert response.status_code == 200
    return response.json()["state"]


class TestOAuthRoutes:
    """Tests for the authorization code flow."""

    @pytest.mark.asyncio
    async def test_list_providers(self, client: AsyncClient):
        """Test listing providers."""
        response = await client.get("/api/v1/oauth/providers")

        assert response.status_code == 200
        assert [p["provider_id"] for p in response.json()] == ["zoho_analytics"]

    @pytest.mark.asyncio
    async def test_authorize_url_for_country(self, client: AsyncClient):
        """Test that the consent URL targets the chosen data center."""
        response = await client.get(
            "/api/v1/oauth/zoho_analytics/authorize", params={"country": "com.au"}
        )

        assert response.status_code == 200
        body = response.json()
        parsed = urlparse(body["authorization_url"])
        query = parse_qs(parsed.query)
        assert parsed.netloc == "accounts.zoho.com.au"
        assert query["state"] == [body["state"]]
        assert query["access_type"] == ["offline"]
        assert query["scope"] == ["ZohoAnalytics.fullaccess.all"]

    @pytest.mark.asyncio
    async def test_authorize_unknown_country(self, client: AsyncClient):
        """Test that an unknown data center is a 400."""
        response = await client.get(
            "/api/v1/oauth/zoho_analytics/authorize", params={"country": "mars"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_authorize_unknown_provider(self, client: AsyncClient):
        """Test that an unknown provider is a 404."""
        response = await client.get("/api/v1/oauth/github/authorize")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_token_exchange(self, client: AsyncClient, zoho: MockZoho):
        """Test exchanging a code returns the credential data."""
        zoho.add("POST", "/oauth/v2/token", TOKEN_RESPONSE)
        state = await authorize(client)

        response = await client.post(
            "/api/v1/oauth/zoho_analytics/token",
            json={"code": "code-1", "state": state},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["credential_type"] == "zoho_analytics_oauth2"
        assert body["data"]["access_token"] == "access-1"
        assert body["data"]["refresh_token"] == "refresh-1"
        assert body["data"]["country"] == "au"
        assert zoho.last().url.host == "accounts.zoho.com.au"

    @pytest.mark.asyncio
    async def test_state_is_single_use(self, client: AsyncClient, zoho: MockZoho):
        """Test that a state cannot be replayed."""
        zoho.add("POST", "/oauth/v2/token", TOKEN_RESPONSE)
        state = await authorize(client)

        first = await client.post(
            "/api/v1/oauth/zoho_analytics/token", json={"code": "c", "state": state}
        )
        second = await client.post(
            "/api/v1/oauth/zoho_analytics/token", json={"code": "c", "state": state}
        )

        assert first.status_code == 200
        assert second.status_code == 400

    @pytest.mark.asyncio
    async def test_exchange_failure(self, client: AsyncClient, zoho: MockZoho):
        """Test that Zoho refusing the code is a 502."""
        zoho.add("POST", "/oauth/v2/token", {"error": "invalid_code"})
        state = await authorize(client, country=None)

        response = await client.post(
            "/api/v1/oauth/zoho_analytics/token", json={"code": "c", "state": state}
        )

        assert response.status_code == 502
        assert "invalid_code" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_callback(self, client: AsyncClient, zoho: MockZoho):
        """Test the redirect target completes the flow."""
        zoho.add("POST", "/oauth/v2/token", TOKEN_RESPONSE)
        state = await authorize(client)

        response = await client.get(
            "/api/v1/oauth/zoho_analytics/callback",
            params={"code": "code-1", "state": state},
        )

        assert response.status_code == 200
        assert response.json()["data"]["access_token"] == "access-1"

    @pytest.mark.asyncio
    async def test_callback_denied(self, client: AsyncClient, zoho: MockZoho):
        """Test that a denied consent is a 400 and burns the state."""
        state = await authorize(client)

        response = await client.get(
            "/api/v1/oauth/zoho_analytics/callback",
            params={"error": "access_denied", "state": state},
        )

        assert response.status_code == 400
        assert "access_denied" in response.json()["detail"]
        assert zoho.requests == []
