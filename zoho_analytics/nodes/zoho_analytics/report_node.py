"""Zoho Analytics report node.

Manages report templates and renders reports from them. Templates travel as
binary item properties in both directions.
"""

import json
from typing import Any

import structlog

from zoho_analytics.integrations.zoho.config import CREDENTIAL_TYPE
from zoho_analytics.models.item import BinaryData, ItemBatch, NodeItem
from zoho_analytics.models.node import (
    NodeCategory,
    NodeDefinition,
    NodeInput,
    NodeInputType,
    NodeOutput,
    NodeOutputType,
)
from zoho_analytics.nodes.base import NodeContext, NodeOperationError
from zoho_analytics.nodes.zoho_analytics.node import ZohoAnalyticsBaseNode, json_output
from zoho_analytics.nodes.zoho_analytics.transport import ZohoAnalyticsClient

logger = structlog.get_logger()

NODE_NAME = "zoho_analytics_report"

OPERATIONS = [
    "addTemplate",
    "deleteTemplate",
    "downloadReport",
    "getTemplate",
    "renderReport",
]

TEMPLATE_PART = "template"
RENDER_FORMAT = "pdf"


class ZohoAnalyticsReportNode(ZohoAnalyticsBaseNode):
    """Template and report operations on Zoho Analytics.

    Requires 'zoho_analytics_oauth2' credential.
    """

    def get_definition(self) -> NodeDefinition:
        """Get node definition."""
        return NodeDefinition(
            name=NODE_NAME,
            display_name="Zoho Analytics Report",
            description="Manage report templates and render reports",
            category=NodeCategory.API,
            credential_type=CREDENTIAL_TYPE,
            icon="file:AnalyticsLogo.svg",
            inputs=[
                NodeInput(
                    name="operation",
                    display_name="Operation",
                    type=NodeInputType.OPTIONS,
                    default="renderReport",
                    options=OPERATIONS,
                ),
                NodeInput(
                    name="id",
                    display_name="ID",
                    type=NodeInputType.STRING,
                    description="ID of the template or report",
                    default="",
                    display_options={"hide": {"operation": ["addTemplate"]}},
                ),
                NodeInput(
                    name="bodyType",
                    display_name="Body Type",
                    type=NodeInputType.OPTIONS,
                    description="How the report data is given",
                    default="json",
                    options=["json", "perField"],
                    display_options={"show": {"operation": ["renderReport"]}},
                ),
                NodeInput(
                    name="body",
                    display_name="Body",
                    type=NodeInputType.JSON,
                    description="JSON document holding the report data",
                    required=False,
                    default="",
                    display_options={
                        "show": {"operation": ["renderReport"], "bodyType": ["json"]}
                    },
                ),
                NodeInput(
                    name="binaryPropertyName",
                    display_name="Binary Property",
                    type=NodeInputType.STRING,
                    description=(
                        "Binary property holding the file. Several properties "
                        "can be given comma separated when uploading"
                    ),
                    default="data",
                    display_options={
                        "show": {
                            "operation": ["addTemplate", "getTemplate", "downloadReport"]
                        }
                    },
                ),
                NodeInput(
                    name="data",
                    display_name="Field Data",
                    type=NodeInputType.COLLECTION,
                    required=False,
                    default={},
                    display_options={
                        "show": {"operation": ["renderReport"], "bodyType": ["perField"]}
                    },
                    fields=[
                        NodeInput(
                            name="fieldName",
                            display_name="Field Name",
                            type=NodeInputType.STRING,
                            default="",
                        ),
                        NodeInput(
                            name="fieldType",
                            display_name="Field Type",
                            type=NodeInputType.OPTIONS,
                            default="string",
                            options=["string", "array"],
                        ),
                        NodeInput(
                            name="fieldValue",
                            display_name="Field Value",
                            type=NodeInputType.STRING,
                            default="",
                        ),
                    ],
                ),
            ],
            outputs=[
                NodeOutput(
                    name="items",
                    display_name="Items",
                    type=NodeOutputType.ANY,
                    description="Response json, or the input item with the downloaded file",
                ),
            ],
            tags=["zoho", "analytics", "report", "template"],
        )

    async def execute(
        self,
        input_data: ItemBatch,
        context: NodeContext,
    ) -> list[NodeItem]:
        """Run the selected operation for every item."""
        operation = self.read_operation(input_data, OPERATIONS)
        if not input_data.items:
            return []
        handlers = {
            "addTemplate": self._add_template,
            "deleteTemplate": self._delete_template,
            "downloadReport": self._download_report,
            "getTemplate": self._get_template,
            "renderReport": self._render_report,
        }
        handler = handlers[operation]

        logger.info(
            "zoho_report_execution_starting",
            operation=operation,
            item_count=len(input_data),
        )

        async with self.open_client(context) as client:
            return await self.process_items(
                input_data,
                context,
                lambda index: handler(client, input_data, index),
            )

    def _fail(self, message: str, index: int) -> NodeOperationError:
        return NodeOperationError(message, node_name=self.name, item_index=index)

    def _template_parts(self, batch: ItemBatch, index: int) -> dict[str, BinaryData]:
        item = batch.items[index]
        if not item.binary:
            raise self._fail("No binary data exists on item!", index)

        names = str(batch.get_parameter("binaryPropertyName", index, "data")).split(",")
        parts: dict[str, BinaryData] = {}
        for name in (name.strip() for name in names):
            binary = batch.get_binary(index, name)
            if binary is None:
                raise self._fail(
                    f'No binary data property "{name}" does not exists on item!', index
                )
            # Every property is sent under the same part; the last one listed wins
            parts[TEMPLATE_PART] = binary
        return parts

    async def _add_template(
        self, client: ZohoAnalyticsClient, batch: ItemBatch, index: int
    ) -> list[NodeItem]:
        response = await client.upload(
            "POST", "/template", body=self._template_parts(batch, index)
        )
        data = response.get("data") if isinstance(response, dict) else response
        return [NodeItem(json=json_output(data))]

    async def _delete_template(
        self, client: ZohoAnalyticsClient, batch: ItemBatch, index: int
    ) -> list[NodeItem]:
        template_id = batch.get_parameter("id", index, "")
        response = await client.request("DELETE", f"/template/{template_id}")
        return [NodeItem(json=json_output(response))]

    async def _download(
        self,
        client: ZohoAnalyticsClient,
        batch: ItemBatch,
        index: int,
        endpoint: str,
        file_name: str,
    ) -> list[NodeItem]:
        property_name = batch.get_parameter("binaryPropertyName", index, "data")
        source = batch.items[index]

        response = await client.download("GET", endpoint)

        binary = dict(source.binary)
        binary[property_name] = BinaryData(
            data=response.body,
            file_name=file_name,
            mime_type=response.content_type,
        )
        return [NodeItem(json=dict(source.json), binary=binary)]

    async def _get_template(
        self, client: ZohoAnalyticsClient, batch: ItemBatch, index: int
    ) -> list[NodeItem]:
        template_id = batch.get_parameter("id", index, "")
        return await self._download(
            client, batch, index, f"/template/{template_id}", "Template"
        )

    async def _download_report(
        self, client: ZohoAnalyticsClient, batch: ItemBatch, index: int
    ) -> list[NodeItem]:
        report_id = batch.get_parameter("id", index, "")
        return await self._download(client, batch, index, f"/render/{report_id}", "Report")

    def _render_data(self, batch: ItemBatch, index: int) -> Any:
        body_type = batch.get_parameter("bodyType", index, "json")

        if body_type == "json":
            raw = batch.get_parameter("body", index, "")
            if not isinstance(raw, str):
                return raw
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise self._fail(f"Body is not valid JSON: {e}", index) from e

        data: dict[str, Any] = {}
        for entry in batch.get_parameter("data.field", index, []) or []:
            name = entry.get("fieldName")
            value = entry.get("fieldValue", "")
            if entry.get("fieldType") == "array":
                try:
                    data[name] = json.loads(value)
                except json.JSONDecodeError as e:
                    raise self._fail(f'Field "{name}" is not a valid JSON array: {e}', index) from e
            elif entry.get("fieldType", "string") == "string":
                data[name] = value
        return data

    async def _render_report(
        self, client: ZohoAnalyticsClient, batch: ItemBatch, index: int
    ) -> list[NodeItem]:
        template_id = batch.get_parameter("id", index, "")
        body = {"data": self._render_data(batch, index), "convertTo": RENDER_FORMAT}
        response = await client.request("POST", f"/render/{template_id}", body=body)
        return [NodeItem(json=json_output(response))]
