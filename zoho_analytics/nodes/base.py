"""Base node interface.

Defines the abstract base class for all workflow nodes and the item-wise
node used by integrations that process one record at a time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog

from zoho_analytics.models.item import ItemBatch, NodeItem
from zoho_analytics.models.node import NodeCategory, NodeDefinition

logger = structlog.get_logger()

# Type variables for input/output schemas
InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class NodeExecutionError(Exception):
    """Error during node execution.

    `error_code` tells the kind of failure (API_ERROR, VALIDATION_ERROR,
    CONFIGURATION_ERROR, EXECUTION_ERROR). `item_index` is the input item
    the failure belongs to, when known.
    """

    def __init__(
        self,
        message: str,
        node_name: str,
        error_code: str = "NODE_ERROR",
        details: dict[str, Any] | None = None,
        item_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.node_name = node_name
        self.error_code = error_code
        self.details = details or {}
        self.item_index = item_index

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "message": self.message,
            "node_name": self.node_name,
            "error_code": self.error_code,
            "item_index": self.item_index,
        }
        if self.details:
            data["details"] = self.details
        return data


class NodeApiError(NodeExecutionError):
    """The remote API could not be reached or answered with an error."""

    def __init__(
        self,
        message: str,
        node_name: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        item_index: int | None = None,
    ) -> None:
        super().__init__(
            message,
            node_name=node_name,
            error_code="API_ERROR",
            details=details,
            item_index=item_index,
        )
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class NodeOperationError(NodeExecutionError):
    """The item or the node parameters cannot be processed as given."""

    def __init__(
        self,
        message: str,
        node_name: str,
        details: dict[str, Any] | None = None,
        item_index: int | None = None,
    ) -> None:
        super().__init__(
            message,
            node_name=node_name,
            error_code="EXECUTION_ERROR",
            details=details,
            item_index=item_index,
        )


class NodeValidationError(Exception):
    """Error validating node input."""

    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        item_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.item_index = item_index


class NodeConfigurationError(NodeValidationError):
    """A dependent selection (organisation, workspace, view) is missing."""

    error_code = "CONFIGURATION_ERROR"


@dataclass
class NodeContext:
    """Context passed to node during execution.

    Contains user credentials, execution metadata, and shared state.
    A node may write refreshed tokens back into `credentials`; the host
    persists them after the run.
    """

    user_id: str
    execution_id: str
    credentials: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    trace_id: str | None = None
    continue_on_fail: bool = False


class BaseNode(ABC, Generic[InputT, OutputT]):
    """Abstract base class for workflow nodes.

    All nodes must implement:
    - get_definition(): Returns node metadata
    - execute(): Performs the node's operation
    """

    @abstractmethod
    def get_definition(self) -> NodeDefinition:
        """Get the node definition with metadata.

        Returns:
            NodeDefinition with name, category, inputs, outputs, etc.
        """
        pass

    @abstractmethod
    async def execute(
        self,
        input_data: InputT,
        context: NodeContext,
    ) -> OutputT:
        """Execute the node's operation.

        Args:
            input_data: Validated input data
            context: Execution context with credentials and metadata

        Returns:
            Node output

        Raises:
            NodeExecutionError: If execution fails
            NodeValidationError: If input validation fails
        """
        pass

    def validate_input(self, input_data: dict[str, Any]) -> InputT:
        """Validate and transform input data.

        Override this method to implement custom validation.
        """
        return input_data  # type: ignore

    def validate_output(self, output_data: OutputT) -> dict[str, Any]:
        """Validate and transform output data.

        Override this method to implement custom output validation.
        """
        if isinstance(output_data, dict):
            return output_data
        return {"result": output_data}

    async def load_options(
        self,
        loader: str,
        parameters: dict[str, Any],
        context: NodeContext,
    ) -> list[dict[str, Any]]:
        """Populate a dropdown declared with `options_loader`.

        Nodes without dynamic dropdowns keep this default.
        """
        raise NodeValidationError(
            f"Node '{self.name}' has no options loader '{loader}'",
            field=loader,
        )

    async def run(
        self,
        input_data: Any,
        context: NodeContext,
    ) -> dict[str, Any]:
        """Run the node with full lifecycle.

        This method handles:
        1. Input validation
        2. Execution
        3. Output validation

        Raises:
            NodeExecutionError: If execution or validation fails
        """
        definition = self.get_definition()

        logger.debug(
            "node_execution_starting",
            node_name=definition.name,
            execution_id=context.execution_id,
        )

        try:
            validated_input = self.validate_input(input_data)
            output = await self.execute(validated_input, context)
            result = self.validate_output(output)

            logger.debug(
                "node_execution_completed",
                node_name=definition.name,
                execution_id=context.execution_id,
            )

            return result

        except NodeExecutionError:
            raise
        except NodeValidationError as e:
            raise NodeExecutionError(
                message=str(e),
                node_name=definition.name,
                error_code=e.error_code,
                details={"field": e.field},
                item_index=e.item_index,
            ) from e
        except Exception as e:
            logger.exception(
                "node_execution_failed",
                node_name=definition.name,
                execution_id=context.execution_id,
            )
            raise NodeExecutionError(
                message=str(e),
                node_name=definition.name,
                error_code="EXECUTION_ERROR",
            ) from e

    @property
    def name(self) -> str:
        """Get node name."""
        return self.get_definition().name

    @property
    def category(self) -> NodeCategory:
        """Get node category."""
        return self.get_definition().category

    @property
    def credential_type(self) -> str | None:
        """Get required credential type."""
        return self.get_definition().credential_type


ItemHandler = Callable[[int], Awaitable[list[NodeItem]]]


class ItemNode(BaseNode[ItemBatch, list[NodeItem]]):
    """Node that processes its input batch one item at a time.

    Items are handled strictly in order; each item's call is awaited
    before the next one starts.
    """

    def validate_input(self, input_data: Any) -> ItemBatch:
        if isinstance(input_data, ItemBatch):
            return input_data
        if not isinstance(input_data, dict):
            raise NodeValidationError("Input must be an item batch", field="items")

        # No item list runs the node once; an explicit empty list runs nothing
        raw_items = input_data.get("items")
        if raw_items is None:
            raw_items = [{"json": {}}]
        if not isinstance(raw_items, list):
            raise NodeValidationError("Items must be a list", field="items")

        return ItemBatch(
            items=[
                item if isinstance(item, NodeItem) else NodeItem.from_dict(item)
                for item in raw_items
            ],
            parameters=dict(input_data.get("parameters") or {}),
            item_parameters=list(input_data.get("item_parameters") or []),
        )

    def validate_output(self, output_data: list[NodeItem]) -> dict[str, Any]:
        return {"items": [item.to_dict() for item in output_data]}

    async def process_items(
        self,
        batch: ItemBatch,
        context: NodeContext,
        handler: ItemHandler,
    ) -> list[NodeItem]:
        """Call `handler` for every item and collect the output items.

        With `context.continue_on_fail` a failing item becomes an output
        item carrying the error; otherwise the first failure is raised with
        its item index.
        """
        results: list[NodeItem] = []

        for index in range(len(batch)):
            try:
                results.extend(await handler(index))
            except Exception as e:
                error = self._item_error(e, index)
                if not context.continue_on_fail:
                    if error is e:
                        raise
                    raise error from e

                logger.warning(
                    "node_item_failed",
                    node_name=self.name,
                    item_index=index,
                    error_code=error.error_code,
                    error=error.message,
                )
                results.append(
                    NodeItem(
                        json=dict(batch.items[index].json),
                        error=error,
                        paired_item=index,
                    )
                )

        return results

    def _item_error(self, error: Exception, index: int) -> NodeExecutionError:
        """Attach the item index to an error without wrapping it twice."""
        if isinstance(error, NodeExecutionError):
            if error.item_index is None:
                error.item_index = index
            return error
        if isinstance(error, NodeValidationError):
            return NodeExecutionError(
                message=str(error),
                node_name=self.name,
                error_code=error.error_code,
                details={"field": error.field},
                item_index=index if error.item_index is None else error.item_index,
            )
        return NodeOperationError(
            message=str(error),
            node_name=self.name,
            item_index=index,
        )
