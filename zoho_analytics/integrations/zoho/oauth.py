"""Zoho Analytics OAuth integration.

Implements OAuth 2.0 flow for Zoho accounts servers.
Docs: https://www.zoho.com/analytics/api/v2/authentication.html
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from zoho_analytics.config import settings
from zoho_analytics.integrations.base import BaseIntegration, OAuthConfig, OAuthTokens
from zoho_analytics.integrations.zoho.config import (
    AUTH_QUERY_PARAMETERS,
    AUTHENTICATION,
    CREDENTIAL_TYPE,
    GRANT_TYPE,
    PROVIDER_ID,
    SCOPE,
    Country,
    derive_urls,
)

logger = structlog.get_logger()


class ZohoOAuthError(Exception):
    """Zoho OAuth error."""

    pass


class ZohoIntegration(BaseIntegration):
    """Zoho Analytics integration implementation."""

    @property
    def provider_id(self) -> str:
        return PROVIDER_ID

    @property
    def display_name(self) -> str:
        return "Zoho Analytics"

    def get_oauth_config(self, region: str | None = None) -> OAuthConfig:
        country = Country.parse(region or settings.zoho_default_country)
        urls = derive_urls(country)
        return OAuthConfig(
            provider_id=self.provider_id,
            display_name=self.display_name,
            client_id=settings.zoho_client_id,
            client_secret=(
                settings.zoho_client_secret.get_secret_value()
                if settings.zoho_client_secret
                else None
            ),
            redirect_uri=settings.zoho_redirect_uri,
            authorize_url=urls.auth_url,
            token_url=urls.access_token_url,
            scopes=[SCOPE],
            credential_type=CREDENTIAL_TYPE,
            auth_query_params=dict(AUTH_QUERY_PARAMETERS),
            grant_type=GRANT_TYPE,
            authentication=AUTHENTICATION,
        )

    def build_authorization_params(
        self,
        config: OAuthConfig,
        state: str,
        extra_scopes: list[str] | None = None,
    ) -> dict[str, str]:
        scopes = config.scopes.copy()
        if extra_scopes:
            scopes.extend(extra_scopes)

        return {
            "response_type": "code",
            "client_id": config.client_id or "",
            "redirect_uri": config.redirect_uri,
            "state": state,
            "scope": ",".join(scopes),  # Zoho uses comma-separated scopes
            # consent forces a refresh token on every grant
            "prompt": "consent",
            **config.auth_query_params,
        }

    async def exchange_code(
        self,
        client: httpx.AsyncClient,
        config: OAuthConfig,
        code: str,
    ) -> OAuthTokens:
        """Exchange Zoho authorization code for tokens."""
        return await self._request_tokens(
            client,
            config,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_uri,
            },
            include_credentials_in_body=config.authentication == "body",
            event="zoho_oauth_exchange",
        )

    async def refresh_tokens(
        self,
        client: httpx.AsyncClient,
        config: OAuthConfig,
        refresh_token: str,
        include_credentials_in_body: bool = True,
    ) -> OAuthTokens:
        """Trade a Zoho refresh token for a new access token.

        Zoho does not rotate refresh tokens; the old one is kept.
        """
        tokens = await self._request_tokens(
            client,
            config,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            include_credentials_in_body=include_credentials_in_body,
            event="zoho_oauth_refresh",
        )
        if tokens.refresh_token is None:
            tokens.refresh_token = refresh_token
        return tokens

    async def _request_tokens(
        self,
        client: httpx.AsyncClient,
        config: OAuthConfig,
        form: dict[str, str],
        include_credentials_in_body: bool,
        event: str,
    ) -> OAuthTokens:
        auth: httpx.BasicAuth | None = None
        if include_credentials_in_body:
            form = {
                **form,
                "client_id": config.client_id or "",
                "client_secret": config.client_secret or "",
            }
        else:
            auth = httpx.BasicAuth(config.client_id or "", config.client_secret or "")

        try:
            response = await client.post(
                config.token_url,
                data=form,
                auth=auth,
                headers={"Accept": "application/json"},
                timeout=settings.http_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"{event}_http_error", error=str(e))
            raise ZohoOAuthError(f"HTTP error during Zoho token request: {e}") from e

        # Zoho reports grant errors with HTTP 200 and an "error" key
        if "error" in data:
            logger.error(f"{event}_failed", error=data["error"])
            raise ZohoOAuthError(f"Zoho token request failed: {data['error']}")

        access_token = data.get("access_token")
        if not access_token:
            raise ZohoOAuthError("No access token in Zoho response")

        expires_at = None
        if data.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(
                seconds=int(data["expires_in"])
            )

        logger.info(f"{event}_success", api_domain=data.get("api_domain"))

        return OAuthTokens(
            access_token=access_token,
            token_type=data.get("token_type", "Bearer"),
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            scope=data.get("scope"),
            raw_response=data,
        )

    def build_credential_data(
        self,
        tokens: OAuthTokens,
        region: str | None = None,
    ) -> dict[str, Any]:
        country = Country.parse(region or settings.zoho_default_country)
        data: dict[str, Any] = {
            "access_token": tokens.access_token,
            "country": country.value,
        }
        if tokens.refresh_token:
            data["refresh_token"] = tokens.refresh_token
        if tokens.expires_at:
            data["expires_at"] = tokens.expires_at.isoformat()
        if tokens.raw_response and tokens.raw_response.get("api_domain"):
            data["api_domain"] = tokens.raw_response["api_domain"]
        return data
