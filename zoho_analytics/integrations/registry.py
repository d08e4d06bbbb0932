"""Integration registry.

Central registry for all OAuth integrations.
"""

from functools import lru_cache
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from zoho_analytics.integrations.base import BaseIntegration, OAuthConfig, OAuthTokens
from zoho_analytics.integrations.zoho import ZohoIntegration

logger = structlog.get_logger()


class IntegrationNotFoundError(Exception):
    """Integration not found."""

    pass


class IntegrationNotConfiguredError(Exception):
    """Integration not configured (missing client_id/secret)."""

    pass


class IntegrationCodeExchangeError(Exception):
    """Failed to exchange authorization code for tokens."""

    pass


class IntegrationRegistry:
    """Registry for managing OAuth integrations.

    Provides:
    - Integration discovery and lookup
    - Authorization URL generation
    - Token exchange
    - Credential data building

    Example usage:
        registry = IntegrationRegistry()

        auth_url = registry.get_authorization_url(
            "zoho_analytics", state="abc123", region="eu"
        )
        tokens = await registry.exchange_code("zoho_analytics", code="xyz789", region="eu")
        cred_data = registry.build_credential_data("zoho_analytics", tokens, region="eu")
    """

    def __init__(self) -> None:
        """Initialize registry with all known integrations."""
        self._integrations: dict[str, BaseIntegration] = {}
        self._load_integrations()

    def _load_integrations(self) -> None:
        """Load all known integrations."""
        integrations: list[BaseIntegration] = [
            ZohoIntegration(),
        ]

        for integration in integrations:
            self._integrations[integration.provider_id] = integration
            logger.debug(
                "integration_registered",
                provider_id=integration.provider_id,
                configured=integration.is_configured(),
            )

    def get_integration(self, provider_id: str) -> BaseIntegration:
        """Get integration by provider ID.

        Raises:
            IntegrationNotFoundError: If provider not found
        """
        integration = self._integrations.get(provider_id.lower())
        if integration is None:
            raise IntegrationNotFoundError(
                f"Integration not found: {provider_id}. "
                f"Available: {list(self._integrations.keys())}"
            )
        return integration

    def get_oauth_config(
        self,
        provider_id: str,
        region: str | None = None,
    ) -> OAuthConfig:
        """Get OAuth configuration for a provider.

        Raises:
            IntegrationNotFoundError: If provider not found
            IntegrationNotConfiguredError: If not configured
        """
        integration = self.get_integration(provider_id)
        config = integration.get_oauth_config(region)

        if not config.client_id or not config.client_secret:
            raise IntegrationNotConfiguredError(
                f"Integration {provider_id} is not configured. "
                f"Set ZOHO_CLIENT_ID and ZOHO_CLIENT_SECRET."
            )

        return config

    def get_authorization_url(
        self,
        provider_id: str,
        state: str,
        region: str | None = None,
        extra_scopes: list[str] | None = None,
    ) -> str:
        """Generate OAuth authorization URL.

        Raises:
            IntegrationNotFoundError: If provider not found
            IntegrationNotConfiguredError: If not configured
        """
        integration = self.get_integration(provider_id)
        config = self.get_oauth_config(provider_id, region)

        params = integration.build_authorization_params(config, state, extra_scopes)
        auth_url = f"{config.authorize_url}?{urlencode(params)}"

        logger.info(
            "oauth_authorization_url_generated",
            provider=provider_id,
            region=region,
            redirect_uri=config.redirect_uri,
        )

        return auth_url

    async def exchange_code(
        self,
        provider_id: str,
        code: str,
        region: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OAuthTokens:
        """Exchange authorization code for tokens.

        Raises:
            IntegrationNotFoundError: If provider not found
            IntegrationNotConfiguredError: If not configured
            IntegrationCodeExchangeError: If exchange fails
        """
        integration = self.get_integration(provider_id)
        config = self.get_oauth_config(provider_id, region)

        try:
            async with httpx.AsyncClient(transport=transport) as client:
                return await integration.exchange_code(client, config, code)
        except Exception as e:
            raise IntegrationCodeExchangeError(
                f"Token exchange failed for {provider_id}: {e}"
            ) from e

    def build_credential_data(
        self,
        provider_id: str,
        tokens: OAuthTokens,
        region: str | None = None,
    ) -> dict[str, Any]:
        """Build credential data from OAuth tokens."""
        integration = self.get_integration(provider_id)
        return integration.build_credential_data(tokens, region)

    def list_integrations(self) -> list[dict[str, Any]]:
        """List all available integrations."""
        result = []
        for provider_id, integration in self._integrations.items():
            config = integration.get_oauth_config()
            result.append({
                "provider_id": provider_id,
                "display_name": integration.display_name,
                "configured": integration.is_configured(),
                "credential_type": config.credential_type,
                "grant_type": config.grant_type,
                "scopes": config.scopes,
            })
        return result


@lru_cache
def get_integration_registry() -> IntegrationRegistry:
    """Get cached integration registry instance."""
    return IntegrationRegistry()
