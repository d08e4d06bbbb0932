"""Zoho Analytics node.

Adds, updates, deletes, exports and imports rows of a Zoho Analytics table.
The organisation, workspace and view are picked once for the node from
cascading dropdowns; the remaining parameters are resolved per item.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
import structlog

from zoho_analytics.integrations.zoho.config import CREDENTIAL_TYPE
from zoho_analytics.models.item import ItemBatch, NodeItem
from zoho_analytics.models.node import (
    NodeCategory,
    NodeDefinition,
    NodeInput,
    NodeInputType,
    NodeOutput,
    NodeOutputType,
)
from zoho_analytics.nodes.base import (
    ItemNode,
    NodeConfigurationError,
    NodeContext,
    NodeOperationError,
    NodeValidationError,
)
from zoho_analytics.nodes.zoho_analytics import payloads
from zoho_analytics.nodes.zoho_analytics.options import LOADERS
from zoho_analytics.nodes.zoho_analytics.transport import ORG_HEADER, ZohoAnalyticsClient

logger = structlog.get_logger()

NODE_NAME = "zoho_analytics"

OPERATIONS = [
    "addRow",
    "deleteData",
    "exportData",
    "importData",
    "importNewTable",
    "updateData",
]


def json_output(response: Any) -> dict[str, Any]:
    """Shape an API response as the json of an output item."""
    if isinstance(response, dict):
        return response
    if response is None:
        return {}
    return {"data": response}


class ZohoAnalyticsBaseNode(ItemNode):
    """Shared plumbing for the Zoho Analytics nodes.

    `transport` replaces the network transport, e.g. with
    ``httpx.MockTransport`` in tests.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def open_client(self, context: NodeContext) -> ZohoAnalyticsClient:
        return ZohoAnalyticsClient(context, self.name, transport=self._transport)

    def read_operation(self, batch: ItemBatch, operations: list[str]) -> str:
        operation = batch.get_parameter("operation", 0, "")
        if operation not in operations:
            raise NodeValidationError(
                f"Unknown operation: {operation!r}. Must be one of {', '.join(operations)}",
                field="operation",
            )
        return operation


@dataclass(frozen=True)
class TableSelection:
    """Organisation, workspace and view chosen for the whole run."""

    organisation_id: str
    workspace_id: str
    view_id: str

    @property
    def headers(self) -> dict[str, str]:
        return {ORG_HEADER: self.organisation_id}

    @property
    def view_endpoint(self) -> str:
        return f"/restapi/v2/workspaces/{self.workspace_id}/views/{self.view_id}"

    @property
    def workspace_endpoint(self) -> str:
        return f"/restapi/v2/workspaces/{self.workspace_id}"


OperationHandler = Callable[
    [ZohoAnalyticsClient, ItemBatch, TableSelection, int],
    Awaitable[list[NodeItem]],
]


class ZohoAnalyticsNode(ZohoAnalyticsBaseNode):
    """Row and table operations on Zoho Analytics.

    Requires 'zoho_analytics_oauth2' credential.

    Example:
        result = await node.run(
            {
                "parameters": {
                    "operation": "addRow",
                    "organisation": "6000",
                    "workspace": "1700",
                    "view": "1800",
                    "columns": {"column": [{"columnName": "Region", "columnValue": "East"}]},
                },
                "items": [{"json": {}}],
            },
            context,
        )
    """

    def get_definition(self) -> NodeDefinition:
        """Get node definition."""
        row_operations = {"operation": ["addRow", "updateData"]}
        return NodeDefinition(
            name=NODE_NAME,
            display_name="Zoho Analytics",
            description="Consume the Zoho Analytics API",
            category=NodeCategory.API,
            credential_type=CREDENTIAL_TYPE,
            icon="file:AnalyticsLogo.svg",
            inputs=[
                NodeInput(
                    name="operation",
                    display_name="Operation",
                    type=NodeInputType.OPTIONS,
                    description="Operation to run for every item",
                    default="addRow",
                    options=OPERATIONS,
                ),
                NodeInput(
                    name="organisation",
                    display_name="Organisation",
                    type=NodeInputType.OPTIONS,
                    options_loader="listOrganisations",
                ),
                NodeInput(
                    name="workspace",
                    display_name="Workspace",
                    type=NodeInputType.OPTIONS,
                    options_loader="listWorkspaces",
                    options_depends_on=["organisation"],
                ),
                NodeInput(
                    name="view",
                    display_name="Table",
                    type=NodeInputType.OPTIONS,
                    description="Only tables are listed",
                    options_loader="listViews",
                    options_depends_on=["organisation", "workspace"],
                    display_options={"hide": {"operation": ["importNewTable"]}},
                ),
                NodeInput(
                    name="columns",
                    display_name="Columns",
                    type=NodeInputType.COLLECTION,
                    description="Column values for the row",
                    required=False,
                    default={},
                    display_options={"show": row_operations},
                    fields=[
                        NodeInput(
                            name="columnName",
                            display_name="Column Name",
                            type=NodeInputType.OPTIONS,
                            options_loader="listColumns",
                            options_depends_on=["view"],
                        ),
                        NodeInput(
                            name="dataType",
                            display_name="Data Type",
                            type=NodeInputType.STRING,
                            required=False,
                            default="string",
                        ),
                        NodeInput(
                            name="columnValue",
                            display_name="Column Value",
                            type=NodeInputType.STRING,
                            default="",
                        ),
                    ],
                ),
                NodeInput(
                    name="modifyAll",
                    display_name="Modify All Rows",
                    type=NodeInputType.BOOLEAN,
                    description="Apply to every row; the criteria is ignored",
                    required=False,
                    default=False,
                    display_options={"show": {"operation": ["deleteData", "updateData"]}},
                ),
                NodeInput(
                    name="criteria",
                    display_name="Criteria",
                    type=NodeInputType.STRING,
                    description='Filter such as "Region"=\'East\'',
                    required=False,
                    default="",
                    display_options={
                        "show": {"operation": ["deleteData", "exportData", "updateData"]}
                    },
                ),
                NodeInput(
                    name="importType",
                    display_name="Import Type",
                    type=NodeInputType.OPTIONS,
                    default="append",
                    options=payloads.IMPORT_TYPES,
                    display_options={"show": {"operation": ["importData"]}},
                ),
                NodeInput(
                    name="tableName",
                    display_name="Table Name",
                    type=NodeInputType.STRING,
                    description="Name of the table to create",
                    default="",
                    display_options={"show": {"operation": ["importNewTable"]}},
                ),
                NodeInput(
                    name="data",
                    display_name="Data",
                    type=NodeInputType.JSON,
                    description="JSON array of rows to import",
                    default="",
                    display_options={"show": {"operation": ["importData", "importNewTable"]}},
                ),
            ],
            outputs=[
                NodeOutput(
                    name="items",
                    display_name="Items",
                    type=NodeOutputType.JSON,
                    description="Zoho Analytics response for every input item",
                ),
            ],
            tags=["zoho", "analytics", "table", "api"],
        )

    async def load_options(
        self,
        loader: str,
        parameters: dict[str, Any],
        context: NodeContext,
    ) -> list[dict[str, Any]]:
        load = LOADERS.get(loader)
        if load is None:
            return await super().load_options(loader, parameters, context)

        async with self.open_client(context) as client:
            options = await load(client, parameters)

        logger.debug("zoho_options_loaded", loader=loader, count=len(options))
        return [option.to_dict() for option in options]

    async def execute(
        self,
        input_data: ItemBatch,
        context: NodeContext,
    ) -> list[NodeItem]:
        """Run the selected operation for every item."""
        operation = self.read_operation(input_data, OPERATIONS)
        if not input_data.items:
            return []
        selection = self._read_selection(input_data, operation)
        handler = self._handlers()[operation]

        logger.info(
            "zoho_analytics_execution_starting",
            operation=operation,
            item_count=len(input_data),
            workspace_id=selection.workspace_id,
            view_id=selection.view_id or None,
        )

        async with self.open_client(context) as client:
            return await self.process_items(
                input_data,
                context,
                lambda index: handler(client, input_data, selection, index),
            )

    def _read_selection(self, batch: ItemBatch, operation: str) -> TableSelection:
        # Node-level settings: resolved against the first item only
        organisation_id = batch.get_parameter("organisation", 0, "")
        workspace_id = batch.get_parameter("workspace", 0, "")
        view_id = batch.get_parameter("view", 0, "")

        if not organisation_id:
            raise NodeConfigurationError(
                "Organisation is required", field="organisation", item_index=0
            )
        if not workspace_id:
            raise NodeConfigurationError(
                "Workspace is required", field="workspace", item_index=0
            )
        if not view_id and operation != "importNewTable":
            raise NodeConfigurationError("Table is required", field="view", item_index=0)

        return TableSelection(
            organisation_id=str(organisation_id),
            workspace_id=str(workspace_id),
            view_id=str(view_id),
        )

    def _handlers(self) -> dict[str, OperationHandler]:
        return {
            "addRow": self._add_row,
            "deleteData": self._delete_data,
            "exportData": self._export_data,
            "importData": self._import_data,
            "importNewTable": self._import_new_table,
            "updateData": self._update_data,
        }

    def _columns(self, batch: ItemBatch, index: int) -> dict[str, Any]:
        return payloads.columns_from_entries(
            batch.get_parameter("columns.column", index, [])
        )

    def _import_body(self, batch: ItemBatch, index: int) -> dict[str, Any]:
        data = batch.get_parameter("data", index, "")
        if not data:
            raise NodeOperationError(
                "Data to import is empty",
                node_name=self.name,
                item_index=index,
            )
        return {"DATA": data}

    async def _add_row(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        config = payloads.add_row_config(self._columns(batch, index))
        response = await client.request(
            "POST",
            f"{selection.view_endpoint}/rows",
            headers=selection.headers,
            qs=payloads.config_query(config),
        )
        return [NodeItem(json=json_output(response))]

    async def _delete_data(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        config = payloads.delete_data_config(
            batch.get_parameter("criteria", index, ""),
            bool(batch.get_parameter("modifyAll", index, False)),
        )
        response = await client.request(
            "DELETE",
            f"{selection.view_endpoint}/rows",
            headers=selection.headers,
            qs=payloads.config_query(config),
        )
        return [NodeItem(json=json_output(response))]

    async def _update_data(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        config = payloads.update_data_config(
            self._columns(batch, index),
            batch.get_parameter("criteria", index, ""),
            bool(batch.get_parameter("modifyAll", index, False)),
        )
        response = await client.request(
            "PUT",
            f"{selection.view_endpoint}/rows",
            headers=selection.headers,
            qs=payloads.config_query(config),
        )
        return [NodeItem(json=json_output(response))]

    async def _export_data(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        config = payloads.export_data_config(batch.get_parameter("criteria", index, ""))
        response = await client.request(
            "GET",
            f"{selection.view_endpoint}/data",
            headers=selection.headers,
            qs=payloads.config_query(config),
        )
        return [NodeItem(json=json_output(response))]

    async def _import_data(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        config = payloads.import_data_config(
            batch.get_parameter("importType", index, "append")
        )
        response = await client.upload(
            "POST",
            f"{selection.view_endpoint}/data",
            body=self._import_body(batch, index),
            qs=payloads.config_query(config),
            headers=selection.headers,
        )
        return [NodeItem(json=json_output(response))]

    async def _import_new_table(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        selection: TableSelection,
        index: int,
    ) -> list[NodeItem]:
        table_name = batch.get_parameter("tableName", index, "")
        if not table_name:
            raise NodeOperationError(
                "Table name is required",
                node_name=self.name,
                item_index=index,
            )
        response = await client.upload(
            "POST",
            f"{selection.workspace_endpoint}/data",
            body=self._import_body(batch, index),
            qs=payloads.config_query(payloads.import_new_table_config(table_name)),
            headers=selection.headers,
        )
        return [NodeItem(json=json_output(response))]
