"""Node definition model.

Runtime model for workflow nodes (not persisted to database).
Defines the structure and metadata for available workflow nodes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeCategory(str, Enum):
    """Node category for organization and filtering."""

    API = "api"  # External APIs, OAuth2 credential required


class NodeInputType(str, Enum):
    """Supported input types for node inputs."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
    OPTIONS = "options"
    COLLECTION = "collection"  # Repeatable group of sub-inputs
    ANY = "any"


class NodeOutputType(str, Enum):
    """Supported output types for node outputs."""

    STRING = "string"
    JSON = "json"
    FILE = "file"
    ANY = "any"


@dataclass
class NodeOption:
    """A single dropdown entry shown in the editor."""

    name: str
    value: Any
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "value": self.value}
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class NodeInput:
    """Definition of a node input parameter."""

    name: str
    display_name: str
    type: NodeInputType
    description: str = ""
    required: bool = True
    default: Any = None
    options: list[str] | None = None  # For enum-like inputs
    options_loader: str | None = None  # Name of the loader feeding the dropdown
    options_depends_on: list[str] = field(default_factory=list)
    # {"show": {"operation": [...]}} / {"hide": {...}}
    display_options: dict[str, dict[str, list[Any]]] | None = None
    fields: list["NodeInput"] = field(default_factory=list)  # For COLLECTION

    def is_visible(self, parameters: dict[str, Any]) -> bool:
        """Whether the input is shown for the given parameter values."""
        if not self.display_options:
            return True
        for name, values in self.display_options.get("show", {}).items():
            if parameters.get(name) not in values:
                return False
        for name, values in self.display_options.get("hide", {}).items():
            if parameters.get(name) in values:
                return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "type": self.type.value,
            "description": self.description,
            "required": self.required,
            "default": self.default,
            "options": self.options,
            "options_loader": self.options_loader,
            "options_depends_on": self.options_depends_on,
            "display_options": self.display_options,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass
class NodeOutput:
    """Definition of a node output parameter."""

    name: str
    display_name: str
    type: NodeOutputType
    description: str = ""


@dataclass
class NodeDefinition:
    """Complete node definition with metadata and schema.

    This is a runtime model used for node discovery and catalog.
    Not persisted to database - loaded from node implementations.
    """

    name: str  # Unique identifier (e.g., 'zoho_analytics')
    display_name: str  # Human-readable name (e.g., 'Zoho Analytics')
    description: str
    category: NodeCategory
    inputs: list[NodeInput] = field(default_factory=list)
    outputs: list[NodeOutput] = field(default_factory=list)
    credential_type: str | None = None  # Required credential type
    icon: str | None = None  # Icon identifier or URL
    version: str = "1.0.0"
    deprecated: bool = False
    tags: list[str] = field(default_factory=list)

    def get_input(self, name: str) -> NodeInput | None:
        """Find an input definition by name."""
        for inp in self.inputs:
            if inp.name == name:
                return inp
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category.value,
            "inputs": [inp.to_dict() for inp in self.inputs],
            "outputs": [
                {
                    "name": out.name,
                    "display_name": out.display_name,
                    "type": out.type.value,
                    "description": out.description,
                }
                for out in self.outputs
            ],
            "credential_type": self.credential_type,
            "icon": self.icon,
            "version": self.version,
            "deprecated": self.deprecated,
            "tags": self.tags,
        }
