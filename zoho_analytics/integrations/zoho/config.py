"""Zoho Analytics credential configuration.

Zoho runs one accounts server and one Analytics API server per data
center. The credential stores the chosen data center; every URL is derived
from it.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

PROVIDER_ID = "zoho_analytics"
CREDENTIAL_TYPE = "zoho_analytics_oauth2"
TOKEN_CREDENTIAL_TYPE = "zoho_analytics_token"

SCOPE = "ZohoAnalytics.fullaccess.all"
GRANT_TYPE = "authorizationCode"
AUTH_QUERY_PARAMETERS = {"access_type": "offline"}
# Client id/secret go in the token request body, not a Basic header
AUTHENTICATION = "body"


class Country(str, Enum):
    """Zoho data center selectable on the credential."""

    AU = "au"
    CN = "cn"
    EU = "eu"
    IN = "in"
    JP = "jp"
    US = "us"

    @property
    def domain_suffix(self) -> str:
        return _DOMAIN_SUFFIXES[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: "str | Country") -> "Country":
        """Accept either the country code or the Zoho domain suffix."""
        if isinstance(value, Country):
            return value
        normalized = value.strip().lower()
        for country, suffix in _DOMAIN_SUFFIXES.items():
            if normalized in (country.value, suffix):
                return country
        raise ValueError(f"Unknown Zoho data center: {value!r}")


_DOMAIN_SUFFIXES: dict[Country, str] = {
    Country.AU: "com.au",
    Country.CN: "com.cn",
    Country.EU: "eu",
    Country.IN: "in",
    Country.JP: "jp",
    Country.US: "com",
}

_DISPLAY_NAMES: dict[Country, str] = {
    Country.AU: "Australia",
    Country.CN: "China",
    Country.EU: "Europe",
    Country.IN: "India",
    Country.JP: "Japan",
    Country.US: "United States",
}


@dataclass(frozen=True)
class CredentialUrls:
    """URLs derived from the credential's data center."""

    accounts_url: str
    auth_url: str
    access_token_url: str
    api_url: str


def derive_urls(country: str | Country) -> CredentialUrls:
    """Build the OAuth and API URLs for a data center."""
    suffix = Country.parse(country).domain_suffix
    accounts_url = f"https://accounts.zoho.{suffix}"
    return CredentialUrls(
        accounts_url=accounts_url,
        auth_url=f"{accounts_url}/oauth/v2/auth",
        access_token_url=f"{accounts_url}/oauth/v2/token",
        api_url=f"https://analyticsapi.zoho.{suffix}",
    )


@dataclass
class ZohoOAuth2Credential:
    """OAuth2 credential created by the host's OAuth flow."""

    credential_type = CREDENTIAL_TYPE

    country: Country
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    client_id: str | None = None
    client_secret: str | None = None

    @property
    def urls(self) -> CredentialUrls:
        return derive_urls(self.country)

    @property
    def api_url(self) -> str:
        return self.urls.api_url


@dataclass
class ZohoTokenCredential:
    """Pre-issued token bound to an API domain."""

    credential_type = TOKEN_CREDENTIAL_TYPE

    domain: str
    oauth_token: str
    email: str | None = None

    @property
    def api_url(self) -> str:
        return self.domain.rstrip("/")


ZohoCredential = ZohoOAuth2Credential | ZohoTokenCredential


def resolve_credential(
    data: dict[str, Any],
    default_country: str = "eu",
) -> ZohoCredential:
    """Build the typed credential from the stored credential mapping.

    Raises:
        ValueError: If the mapping holds neither credential variant
    """
    if data.get("oauth_token"):
        domain = data.get("domain")
        if not domain:
            raise ValueError("Token credential has no API domain")
        return ZohoTokenCredential(
            domain=domain,
            oauth_token=data["oauth_token"],
            email=data.get("email"),
        )

    access_token = data.get("access_token")
    if not access_token:
        raise ValueError("Zoho Analytics credential has no access token")

    expires_at = data.get("expires_at")
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)

    return ZohoOAuth2Credential(
        country=Country.parse(data.get("country") or default_country),
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        expires_at=expires_at,
        client_id=data.get("client_id"),
        client_secret=data.get("client_secret"),
    )
