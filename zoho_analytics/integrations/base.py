"""Base classes for integrations.

Defines the interface that all integrations must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx


@dataclass
class OAuthConfig:
    """OAuth configuration for an integration."""

    provider_id: str
    display_name: str
    client_id: str | None
    client_secret: str | None
    redirect_uri: str
    authorize_url: str
    token_url: str
    scopes: list[str]
    credential_type: str
    auth_query_params: dict[str, str] = field(default_factory=dict)
    grant_type: str = "authorizationCode"
    # "body" sends client id/secret in the token request, "header" uses Basic auth
    authentication: str = "body"


@dataclass
class OAuthTokens:
    """OAuth tokens returned from token exchange."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None
    expires_at: datetime | None = None
    scope: str | None = None
    raw_response: dict[str, Any] | None = None


class BaseIntegration(ABC):
    """Base class for all integrations.

    Each integration must implement:
    - get_oauth_config(): Return OAuth configuration
    - build_authorization_params(): Build provider-specific auth params
    - exchange_code(): Exchange authorization code for tokens
    - refresh_tokens(): Trade a refresh token for a new access token
    - build_credential_data(): Build credential data from tokens
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique provider identifier (e.g., 'zoho_analytics')."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable provider name."""
        ...

    @abstractmethod
    def get_oauth_config(self, region: str | None = None) -> OAuthConfig:
        """Get OAuth configuration for this provider.

        `region` selects the provider's data center where it has several.
        """
        ...

    @abstractmethod
    def build_authorization_params(
        self,
        config: OAuthConfig,
        state: str,
        extra_scopes: list[str] | None = None,
    ) -> dict[str, str]:
        """Build provider-specific authorization URL parameters."""
        ...

    @abstractmethod
    async def exchange_code(
        self,
        client: httpx.AsyncClient,
        config: OAuthConfig,
        code: str,
    ) -> OAuthTokens:
        """Exchange authorization code for tokens."""
        ...

    @abstractmethod
    async def refresh_tokens(
        self,
        client: httpx.AsyncClient,
        config: OAuthConfig,
        refresh_token: str,
        include_credentials_in_body: bool = True,
    ) -> OAuthTokens:
        """Obtain a new access token from a refresh token."""
        ...

    @abstractmethod
    def build_credential_data(
        self,
        tokens: OAuthTokens,
        region: str | None = None,
    ) -> dict[str, Any]:
        """Build credential data from OAuth tokens."""
        ...

    def is_configured(self) -> bool:
        """Check if the integration is properly configured."""
        config = self.get_oauth_config()
        return bool(config.client_id and config.client_secret)
