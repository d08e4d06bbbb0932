"""OAuth routes.

Handles the authorization code flow for Zoho accounts. The resulting
credential data is returned to the caller; storing it is up to the host.
"""

import secrets
from typing import Any

import httpx
import structlog
from fastapi import APIRouter, HTTPException, Query, status

from zoho_analytics.api.deps import HttpTransportDep, IntegrationRegistryDep
from zoho_analytics.integrations import IntegrationRegistry
from zoho_analytics.integrations.registry import (
    IntegrationCodeExchangeError,
    IntegrationNotConfiguredError,
    IntegrationNotFoundError,
)
from zoho_analytics.models.requests import TokenRequest

logger = structlog.get_logger()

router = APIRouter(prefix="/oauth", tags=["oauth"])

# In-memory state storage (single process only)
# Maps state -> {provider, country}
_oauth_states: dict[str, dict[str, str]] = {}


def generate_state() -> str:
    """Generate a secure random state parameter."""
    return secrets.token_urlsafe(32)


@router.get(
    "/providers",
    summary="List OAuth providers",
    description="Get list of available OAuth providers and their configuration status.",
)
async def list_providers(
    registry: IntegrationRegistryDep,
) -> list[dict[str, Any]]:
    return registry.list_integrations()


@router.get(
    "/{provider}/authorize",
    summary="Get authorization URL",
    description="Generate OAuth authorization URL for the data center of the given country.",
)
async def get_authorization_url(
    provider: str,
    registry: IntegrationRegistryDep,
    country: str | None = Query(
        default=None,
        description="Data center country code (au, cn, eu, in, jp, us)",
    ),
) -> dict[str, str]:
    """Generate OAuth authorization URL.

    Raises:
        HTTPException 404: If provider is unknown
        HTTPException 400: If provider is not configured or the country is unknown
    """
    try:
        state = generate_state()
        auth_url = registry.get_authorization_url(
            provider_id=provider,
            state=state,
            region=country,
        )
    except IntegrationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except (IntegrationNotConfiguredError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    _oauth_states[state] = {"provider": provider, "country": country or ""}

    logger.info(
        "oauth_authorization_initiated",
        provider=provider,
        country=country,
    )

    return {
        "authorization_url": auth_url,
        "state": state,
    }


async def _complete_authorization(
    provider: str,
    code: str,
    state: str,
    registry: IntegrationRegistry,
    transport: httpx.AsyncBaseTransport | None,
) -> dict[str, Any]:
    state_data = _oauth_states.pop(state, None)
    if state_data is None or state_data["provider"] != provider:
        logger.warning("oauth_callback_invalid_state", provider=provider)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired state",
        )

    region = state_data["country"] or None

    try:
        config = registry.get_oauth_config(provider, region)
        tokens = await registry.exchange_code(
            provider_id=provider,
            code=code,
            region=region,
            transport=transport,
        )
    except IntegrationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except IntegrationNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except IntegrationCodeExchangeError as e:
        logger.error(
            "oauth_token_exchange_failed",
            provider=provider,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        ) from e

    logger.info("oauth_credential_created", provider=provider, country=region)

    return {
        "credential_type": config.credential_type,
        "data": registry.build_credential_data(provider, tokens, region),
    }


@router.post(
    "/{provider}/token",
    summary="Exchange authorization code",
    description="Exchange an authorization code for tokens and return the credential data.",
)
async def exchange_token(
    provider: str,
    data: TokenRequest,
    registry: IntegrationRegistryDep,
    transport: HttpTransportDep,
) -> dict[str, Any]:
    return await _complete_authorization(
        provider, data.code, data.state, registry, transport
    )


@router.get(
    "/{provider}/callback",
    summary="OAuth callback",
    description="Redirect target of the Zoho consent screen.",
)
async def oauth_callback(
    provider: str,
    registry: IntegrationRegistryDep,
    transport: HttpTransportDep,
    code: str | None = Query(default=None, description="Authorization code from provider"),
    state: str = Query(..., description="State parameter for CSRF validation"),
    error: str | None = Query(default=None, description="Error from provider"),
) -> dict[str, Any]:
    """Handle the redirect from Zoho accounts.

    Zoho reports a denied consent through `error` instead of `code`.
    """
    if error or not code:
        _oauth_states.pop(state, None)
        logger.warning(
            "oauth_callback_error_from_provider",
            provider=provider,
            error=error,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Authorization failed: {error or 'no code returned'}",
        )

    return await _complete_authorization(provider, code, state, registry, transport)
