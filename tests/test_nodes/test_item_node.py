"""Tests for the item-wise node base, item models and node registry."""

import pytest

from zoho_analytics.models.item import BinaryData, ItemBatch, NodeItem
from zoho_analytics.models.node import NodeCategory, NodeDefinition, NodeInput, NodeInputType
from zoho_analytics.nodes.base import (
    ItemNode,
    NodeApiError,
    NodeContext,
    NodeExecutionError,
    NodeValidationError,
)
from zoho_analytics.nodes.registry import NodeRegistry, NodeRegistryError, get_node_registry


class EchoNode(ItemNode):
    """Echoes item json; items whose json has 'fail' raise."""

    def __init__(self, failure: Exception | None = None) -> None:
        self.failure = failure

    def get_definition(self) -> NodeDefinition:
        return NodeDefinition(
            name="echo",
            display_name="Echo",
            description="Echo items",
            category=NodeCategory.API,
        )

    async def execute(self, input_data: ItemBatch, context: NodeContext) -> list[NodeItem]:
        async def handle(index: int) -> list[NodeItem]:
            item = input_data.items[index]
            if item.json.get("fail"):
                raise self.failure or RuntimeError("boom")
            return [NodeItem(json={"echo": item.json})]

        return await self.process_items(input_data, context, handle)


def make_context(continue_on_fail: bool = False) -> NodeContext:
    return NodeContext(user_id="u", execution_id="e", continue_on_fail=continue_on_fail)


class TestItemBatch:
    """Tests for parameter and binary lookups."""

    def test_item_parameters_take_precedence(self):
        """Test per-item values over node values, with dotted paths."""
        batch = ItemBatch(
            items=[NodeItem(), NodeItem()],
            parameters={"criteria": "all", "columns": {"column": [{"columnName": "A"}]}},
            item_parameters=[{"criteria": "one"}],
        )

        assert batch.get_parameter("criteria", 0) == "one"
        assert batch.get_parameter("criteria", 1) == "all"
        assert batch.get_parameter("columns.column", 1) == [{"columnName": "A"}]
        assert batch.get_parameter("columns.missing", 0, "d") == "d"
        assert batch.get_parameter("criteria.deeper", 0, None) is None

    def test_falsy_item_value_is_kept(self):
        """Test that an explicit per-item False is not replaced."""
        batch = ItemBatch(
            items=[NodeItem()],
            parameters={"modifyAll": True},
            item_parameters=[{"modifyAll": False}],
        )

        assert batch.get_parameter("modifyAll", 0) is False

    def test_get_binary(self):
        """Test binary property lookup."""
        binary = BinaryData(data=b"x")
        batch = ItemBatch(items=[NodeItem(binary={"data": binary})])

        assert batch.get_binary(0, "data") is binary
        assert batch.get_binary(0, "other") is None

    def test_item_from_dict_decodes_binary(self):
        """Test that items received over JSON carry base64 binaries."""
        item = NodeItem.from_dict(
            {
                "json": {"a": 1},
                "binary": {"data": {"data": "aGk=", "file_name": "hi.txt", "mime_type": "text/plain"}},
            }
        )

        assert item.json == {"a": 1}
        assert item.binary["data"].data == b"hi"
        assert item.binary["data"].to_dict() == {
            "data": "aGk=",
            "file_name": "hi.txt",
            "mime_type": "text/plain",
            "file_size": 2,
        }


class TestItemNode:
    """Tests for per-item processing and the failure policy."""

    @pytest.mark.asyncio
    async def test_items_in_order(self):
        """Test one output per input, in input order."""
        result = await EchoNode().run(
            {"items": [{"json": {"i": 0}}, {"json": {"i": 1}}]}, make_context()
        )

        assert result == {"items": [{"json": {"echo": {"i": 0}}}, {"json": {"echo": {"i": 1}}}]}

    @pytest.mark.asyncio
    async def test_default_single_empty_item(self):
        """Test that a missing item list runs once."""
        result = await EchoNode().run({"parameters": {}}, make_context())

        assert result == {"items": [{"json": {"echo": {}}}]}

    @pytest.mark.asyncio
    async def test_explicit_empty_item_list(self):
        """Test that an empty item list produces no output items."""
        result = await EchoNode().run({"items": []}, make_context())

        assert result == {"items": []}

    @pytest.mark.asyncio
    async def test_invalid_input(self):
        """Test that a malformed batch is a validation error."""
        with pytest.raises(NodeExecutionError) as exc_info:
            await EchoNode().run({"items": "nope"}, make_context())

        assert exc_info.value.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped_with_index(self):
        """Test that foreign exceptions get node context."""
        with pytest.raises(NodeExecutionError) as exc_info:
            await EchoNode().run(
                {"items": [{"json": {}}, {"json": {"fail": True}}]}, make_context()
            )

        assert exc_info.value.error_code == "EXECUTION_ERROR"
        assert exc_info.value.item_index == 1
        assert exc_info.value.node_name == "echo"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_node_error_is_not_wrapped_again(self):
        """Test that an error with node context keeps its identity."""
        failure = NodeApiError("down", node_name="echo", status_code=503)

        with pytest.raises(NodeApiError) as exc_info:
            await EchoNode(failure).run({"items": [{"json": {"fail": True}}]}, make_context())

        assert exc_info.value is failure
        assert failure.item_index == 0

    @pytest.mark.asyncio
    async def test_existing_item_index_is_preserved(self):
        """Test that an index already on the error is kept."""
        failure = NodeApiError("down", node_name="echo", item_index=5)

        with pytest.raises(NodeApiError):
            await EchoNode(failure).run(
                {"items": [{"json": {}}, {"json": {"fail": True}}]}, make_context()
            )

        assert failure.item_index == 5

    @pytest.mark.asyncio
    async def test_validation_error_keeps_its_code(self):
        """Test that a validation failure inside an item keeps its code."""
        failure = NodeValidationError("bad field", field="criteria")

        with pytest.raises(NodeExecutionError) as exc_info:
            await EchoNode(failure).run({"items": [{"json": {"fail": True}}]}, make_context())

        assert exc_info.value.error_code == "VALIDATION_ERROR"
        assert exc_info.value.details == {"field": "criteria"}
        assert exc_info.value.item_index == 0

    @pytest.mark.asyncio
    async def test_continue_on_fail_outputs_error_items(self):
        """Test that failing items are appended to the output, not the input."""
        batch = ItemBatch(
            items=[NodeItem(json={"i": 0}), NodeItem(json={"fail": True}), NodeItem(json={"i": 2})]
        )

        output = await EchoNode().execute(batch, make_context(continue_on_fail=True))

        assert len(output) == 3
        assert len(batch.items) == 3
        assert output[1].json == {"fail": True}
        assert output[1].paired_item == 1
        assert output[1].error is not None
        assert output[1].error.item_index == 1
        assert output[2].json == {"echo": {"i": 2}}


class TestNodeInput:
    """Tests for input visibility rules."""

    def test_show_and_hide(self):
        """Test display options against parameter values."""
        shown = NodeInput(
            name="criteria",
            display_name="Criteria",
            type=NodeInputType.STRING,
            display_options={"show": {"operation": ["deleteData"]}},
        )
        hidden = NodeInput(
            name="view",
            display_name="Table",
            type=NodeInputType.OPTIONS,
            display_options={"hide": {"operation": ["importNewTable"]}},
        )

        assert shown.is_visible({"operation": "deleteData"})
        assert not shown.is_visible({"operation": "addRow"})
        assert hidden.is_visible({"operation": "addRow"})
        assert not hidden.is_visible({"operation": "importNewTable"})


class TestNodeRegistry:
    """Tests for NodeRegistry."""

    def test_load_builtin_nodes(self):
        """Test loading both Zoho Analytics nodes."""
        registry = NodeRegistry()

        assert registry.load_builtin_nodes() == 2
        assert {d.name for d in registry.list_all()} == {"zoho_analytics", "zoho_analytics_report"}

    def test_lookup(self):
        """Test lookups by name, category and credential."""
        registry = get_node_registry()

        assert registry.get("zoho_analytics") is not None
        assert registry.get("missing") is None
        assert registry.get_definition("zoho_analytics_report").display_name == "Zoho Analytics Report"
        assert len(registry.list_by_category(NodeCategory.API)) == 2
        assert len(registry.list_by_credential("zoho_analytics_oauth2")) == 2
        assert registry.list_by_credential("other") == []

    def test_register_instance_and_duplicates(self):
        """Test registering instances and rejecting duplicate names."""
        registry = NodeRegistry()
        node = EchoNode()
        registry.register(node)

        assert registry.get("echo") is node
        with pytest.raises(NodeRegistryError):
            registry.register(EchoNode)

        registry.unregister("echo")
        assert registry.get("echo") is None
