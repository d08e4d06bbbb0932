"""API route handlers."""

from zoho_analytics.api.routes.nodes import router as nodes_router
from zoho_analytics.api.routes.oauth import router as oauth_router

__all__ = [
    "nodes_router",
    "oauth_router",
]
