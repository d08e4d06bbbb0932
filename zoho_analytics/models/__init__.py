"""Data models - runtime models for nodes and items."""

from zoho_analytics.models.item import BinaryData, ItemBatch, NodeItem
from zoho_analytics.models.node import (
    NodeCategory,
    NodeDefinition,
    NodeInput,
    NodeOption,
    NodeOutput,
)

__all__ = [
    "BinaryData",
    "ItemBatch",
    "NodeCategory",
    "NodeDefinition",
    "NodeInput",
    "NodeItem",
    "NodeOption",
    "NodeOutput",
]
