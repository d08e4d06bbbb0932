"""Workflow nodes for Zoho Analytics."""

from zoho_analytics.nodes.base import BaseNode, ItemNode
from zoho_analytics.nodes.registry import NodeRegistry, get_node_registry

__all__ = [
    "BaseNode",
    "ItemNode",
    "NodeRegistry",
    "get_node_registry",
]
