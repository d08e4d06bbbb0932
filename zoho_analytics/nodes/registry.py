"""Node registry.

Central registry for the nodes this plugin provides.
"""

from typing import Type

import structlog

from zoho_analytics.models.node import NodeCategory, NodeDefinition
from zoho_analytics.nodes.base import BaseNode

logger = structlog.get_logger()


class NodeRegistryError(Exception):
    """Error in node registry operations."""

    pass


class NodeRegistry:
    """Central registry for workflow nodes.

    Manages node registration and discovery.

    Example usage:
        registry = NodeRegistry()
        registry.register(ZohoAnalyticsNode)
        registry.register(ZohoAnalyticsReportNode(transport=transport))

        node = registry.get("zoho_analytics")
        result = await node.run({"parameters": {...}, "items": [...]}, context)
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._instances: dict[str, BaseNode] = {}

    def register(self, node: Type[BaseNode] | BaseNode) -> None:
        """Register a node class or a ready-made node instance.

        Args:
            node: Node class (instantiated without arguments) or instance

        Raises:
            NodeRegistryError: If node with same name exists
        """
        instance = node() if isinstance(node, type) else node
        definition = instance.get_definition()

        if definition.name in self._instances:
            raise NodeRegistryError(
                f"Node '{definition.name}' already registered"
            )

        self._instances[definition.name] = instance

        logger.debug(
            "node_registered",
            name=definition.name,
            category=definition.category.value,
        )

    def unregister(self, name: str) -> None:
        """Remove a node from the registry."""
        self._instances.pop(name, None)

    def get(self, name: str) -> BaseNode | None:
        """Get a node instance by name.

        Returns:
            Node instance or None if not found
        """
        return self._instances.get(name)

    def get_definition(self, name: str) -> NodeDefinition | None:
        instance = self._instances.get(name)
        if instance is None:
            return None
        return instance.get_definition()

    def list_all(self) -> list[NodeDefinition]:
        """List all registered node definitions."""
        return [inst.get_definition() for inst in self._instances.values()]

    def list_by_category(self, category: NodeCategory) -> list[NodeDefinition]:
        return [
            inst.get_definition()
            for inst in self._instances.values()
            if inst.category == category
        ]

    def list_by_credential(self, credential_type: str) -> list[NodeDefinition]:
        """List nodes requiring a specific credential type."""
        return [
            inst.get_definition()
            for inst in self._instances.values()
            if inst.credential_type == credential_type
        ]

    def load_builtin_nodes(self) -> int:
        """Load the Zoho Analytics nodes.

        Returns:
            Number of nodes loaded
        """
        from zoho_analytics.nodes.zoho_analytics import (
            ZohoAnalyticsNode,
            ZohoAnalyticsReportNode,
        )

        builtin_nodes = [
            ZohoAnalyticsNode,
            ZohoAnalyticsReportNode,
        ]

        count = 0
        for node_class in builtin_nodes:
            try:
                self.register(node_class)
                count += 1
            except NodeRegistryError as e:
                logger.warning(
                    "builtin_node_registration_failed",
                    error=str(e),
                )

        logger.info("builtin_nodes_loaded", count=count)
        return count


# Singleton instance
_registry: NodeRegistry | None = None


def get_node_registry() -> NodeRegistry:
    """Get or create the singleton node registry.

    Returns:
        NodeRegistry instance with builtin nodes loaded
    """
    global _registry
    if _registry is None:
        _registry = NodeRegistry()
        _registry.load_builtin_nodes()
    return _registry
