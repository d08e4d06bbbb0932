"""Integrations module.

Each integration has its own folder with:
- oauth.py: OAuth provider configuration and token exchange
- config.py: Integration-specific configuration
- __init__.py: Exports
"""

from zoho_analytics.integrations.registry import IntegrationRegistry, get_integration_registry

__all__ = [
    "IntegrationRegistry",
    "get_integration_registry",
]
