"""Item models.

Items are the records flowing between workflow nodes. A node receives a
batch of items together with its configured parameters and emits one
output item per input item.
"""

import base64
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zoho_analytics.nodes.base import NodeExecutionError

_MISSING = object()


@dataclass
class BinaryData:
    """Binary payload attached to an item (templates, rendered reports)."""

    data: bytes
    file_name: str | None = None
    mime_type: str = "application/octet-stream"

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "file_size": len(self.data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BinaryData":
        """Create from a dictionary carrying base64 encoded `data`."""
        return cls(
            data=base64.b64decode(data.get("data", "")),
            file_name=data.get("file_name"),
            mime_type=data.get("mime_type") or "application/octet-stream",
        )


@dataclass
class NodeItem:
    """A single record passed into or out of a node."""

    json: dict[str, Any] = field(default_factory=dict)
    binary: dict[str, BinaryData] = field(default_factory=dict)
    error: "NodeExecutionError | None" = None
    paired_item: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        data: dict[str, Any] = {"json": self.json}
        if self.binary:
            data["binary"] = {
                name: value.to_dict() for name, value in self.binary.items()
            }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.paired_item is not None:
            data["paired_item"] = self.paired_item
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeItem":
        """Create from dictionary."""
        return cls(
            json=dict(data.get("json") or {}),
            binary={
                name: BinaryData.from_dict(value)
                for name, value in (data.get("binary") or {}).items()
            },
        )


@dataclass
class ItemBatch:
    """Input items plus the parameters resolved for each of them.

    `parameters` holds the node-level values. `item_parameters[i]` holds
    the values resolved against item `i` (expressions already evaluated by
    the host) and takes precedence over the node-level ones.
    """

    items: list[NodeItem]
    parameters: dict[str, Any] = field(default_factory=dict)
    item_parameters: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def get_parameter(self, name: str, index: int, default: Any = None) -> Any:
        """Resolve a parameter for item `index`.

        Dotted names walk nested collections, e.g. ``columns.column``.
        """
        if index < len(self.item_parameters):
            value = _lookup(self.item_parameters[index], name)
            if value is not _MISSING:
                return value
        value = _lookup(self.parameters, name)
        if value is _MISSING:
            return default
        return value

    def get_binary(self, index: int, property_name: str) -> BinaryData | None:
        return self.items[index].binary.get(property_name)


def _lookup(source: dict[str, Any], path: str) -> Any:
    current: Any = source
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current
