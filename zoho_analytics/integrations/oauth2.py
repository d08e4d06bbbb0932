"""Generic OAuth2 request helper.

Sends a request with the access token stored in a credential mapping and
refreshes the token when it has expired or the provider rejects it.
Refreshed tokens are written back into the mapping so the host can persist
them after the run.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from zoho_analytics.integrations.base import BaseIntegration

logger = structlog.get_logger()

# Refresh slightly ahead of the provider's expiry
EXPIRY_LEEWAY = timedelta(seconds=60)


class OAuth2RefreshError(Exception):
    """The access token is expired and cannot be refreshed."""

    pass


def _is_expired(credential: dict[str, Any]) -> bool:
    expires_at = credential.get("expires_at")
    if not expires_at:
        return False
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at - EXPIRY_LEEWAY <= datetime.now(timezone.utc)


async def refresh_credential(
    client: httpx.AsyncClient,
    integration: BaseIntegration,
    credential: dict[str, Any],
    include_credentials_on_refresh_in_body: bool = True,
    region_key: str = "country",
) -> None:
    """Refresh the access token stored in `credential` in place.

    Raises:
        OAuth2RefreshError: If there is no refresh token or the provider refuses it
    """
    refresh_token = credential.get("refresh_token")
    if not refresh_token:
        raise OAuth2RefreshError("Access token expired and no refresh token is stored")

    region = credential.get(region_key)
    config = integration.get_oauth_config(region)
    if credential.get("client_id"):
        config.client_id = credential["client_id"]
    if credential.get("client_secret"):
        config.client_secret = credential["client_secret"]

    try:
        tokens = await integration.refresh_tokens(
            client,
            config,
            refresh_token,
            include_credentials_in_body=include_credentials_on_refresh_in_body,
        )
    except Exception as e:
        raise OAuth2RefreshError(f"Token refresh failed: {e}") from e

    credential.update(integration.build_credential_data(tokens, region))
    logger.info(
        "oauth2_token_refreshed",
        provider=integration.provider_id,
        expires_at=credential.get("expires_at"),
    )


async def request_oauth2(
    client: httpx.AsyncClient,
    integration: BaseIntegration,
    credential: dict[str, Any],
    method: str,
    url: str,
    token_type: str = "Bearer",
    include_credentials_on_refresh_in_body: bool = True,
    **kwargs: Any,
) -> httpx.Response:
    """Send an authenticated request, refreshing the token at most once.

    Args:
        client: HTTP client used for both the request and the refresh
        integration: Provider that knows how to refresh tokens
        credential: Stored credential mapping, updated in place on refresh
        method: HTTP method
        url: Absolute request URL
        token_type: Authorization scheme placed before the token
        include_credentials_on_refresh_in_body: Send client id/secret in the
            refresh request body instead of a Basic header
        **kwargs: Passed through to ``httpx.AsyncClient.request``

    Returns:
        The provider response, whatever its status

    Raises:
        OAuth2RefreshError: If a needed refresh fails
        httpx.RequestError: On network failures
    """
    refreshed = False
    if _is_expired(credential):
        await refresh_credential(
            client,
            integration,
            credential,
            include_credentials_on_refresh_in_body,
        )
        refreshed = True

    headers = dict(kwargs.pop("headers", None) or {})

    while True:
        headers["Authorization"] = f"{token_type} {credential['access_token']}"
        response = await client.request(method, url, headers=headers, **kwargs)

        if response.status_code != 401 or refreshed or not credential.get("refresh_token"):
            return response

        logger.info(
            "oauth2_token_rejected",
            provider=integration.provider_id,
            url=url,
        )
        await refresh_credential(
            client,
            integration,
            credential,
            include_credentials_on_refresh_in_body,
        )
        refreshed = True
