"""Zoho Analytics integration."""

from zoho_analytics.integrations.zoho.oauth import ZohoIntegration, ZohoOAuthError

__all__ = [
    "ZohoIntegration",
    "ZohoOAuthError",
]
