"""FastAPI dependencies.

Tests override these through ``app.dependency_overrides``.
"""

from typing import Annotated

import httpx
from fastapi import Depends

from zoho_analytics.integrations import IntegrationRegistry, get_integration_registry
from zoho_analytics.nodes.registry import NodeRegistry, get_node_registry


def get_nodes() -> NodeRegistry:
    """Get node registry instance."""
    return get_node_registry()


def get_integrations() -> IntegrationRegistry:
    """Get integration registry instance."""
    return get_integration_registry()


def get_http_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for outbound OAuth calls; None means the network."""
    return None


NodeRegistryDep = Annotated[NodeRegistry, Depends(get_nodes)]
IntegrationRegistryDep = Annotated[IntegrationRegistry, Depends(get_integrations)]
HttpTransportDep = Annotated[httpx.AsyncBaseTransport | None, Depends(get_http_transport)]
