"""Tests for the cascading dropdown loaders."""

import pytest

from zoho_analytics.nodes.base import (
    NodeApiError,
    NodeConfigurationError,
    NodeContext,
    NodeValidationError,
)
from zoho_analytics.nodes.zoho_analytics import ZohoAnalyticsNode
from zoho_analytics.nodes.zoho_analytics.options import LOADERS, list_workspaces
from zoho_analytics.nodes.zoho_analytics.transport import ORG_HEADER, ZohoAnalyticsClient

from conftest import MockZoho, config_of


class TestOptionLoaders:
    """Tests for organisation, workspace, view and column loaders."""

    @pytest.mark.asyncio
    async def test_list_organisations(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test listing organisations."""
        zoho.add(
            "GET",
            "/restapi/v2/orgs",
            {"data": {"orgs": [{"orgId": "60", "orgName": "Acme"}, {"orgId": "61", "orgName": "Beta"}]}},
        )

        options = await node.load_options("listOrganisations", {}, context)

        assert options == [{"name": "Acme", "value": "60"}, {"name": "Beta", "value": "61"}]
        assert ORG_HEADER not in zoho.last().headers

    @pytest.mark.asyncio
    async def test_list_workspaces_keeps_duplicates(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test that owned then shared workspaces are concatenated as is."""
        owned = [{"workspaceId": "1", "workspaceName": "Sales"}]
        shared = [
            {"workspaceId": "2", "workspaceName": "Ops"},
            {"workspaceId": "1", "workspaceName": "Sales"},
        ]
        zoho.add(
            "GET",
            "/restapi/v2/workspaces",
            {"data": {"ownedWorkspaces": owned, "sharedWorkspaces": shared}},
        )

        options = await node.load_options("listWorkspaces", {"organisation": "60"}, context)

        assert [o["value"] for o in options] == ["1", "2", "1"]
        assert zoho.last().headers[ORG_HEADER] == "60"

    @pytest.mark.asyncio
    async def test_list_workspaces_missing_lists(self, zoho: MockZoho, context: NodeContext):
        """Test that absent workspace lists count as empty."""
        zoho.add("GET", "/restapi/v2/workspaces", {"data": {"ownedWorkspaces": []}})

        async with ZohoAnalyticsClient(context, "zoho_analytics", transport=zoho.transport) as client:
            assert await list_workspaces(client, "60") == []

    @pytest.mark.asyncio
    async def test_list_views_only_tables(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test that only views of type Table are offered."""
        zoho.add(
            "GET",
            "/restapi/v2/workspaces/1/views",
            {
                "data": {
                    "views": [
                        {"viewId": "10", "viewName": "Deals", "viewType": "Table"},
                        {"viewId": "11", "viewName": "Deal Chart", "viewType": "AnalysisView"},
                        {"viewId": "12", "viewName": "Leads", "viewType": "Table"},
                        {"viewId": "13", "viewName": "Q", "viewType": "QueryTable"},
                    ]
                }
            },
        )

        options = await node.load_options(
            "listViews", {"organisation": "60", "workspace": "1"}, context
        )

        assert options == [{"name": "Deals", "value": "10"}, {"name": "Leads", "value": "12"}]
        assert zoho.last().headers[ORG_HEADER] == "60"

    @pytest.mark.asyncio
    async def test_list_columns(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test that column names serve as label and value."""
        zoho.add(
            "GET",
            "/restapi/v2/views/10",
            {
                "data": {
                    "views": {
                        "viewId": "10",
                        "columns": [
                            {"columnName": "Region", "dataType": "PLAIN"},
                            {"columnName": "Amount", "dataType": "CURRENCY"},
                        ],
                    }
                }
            },
        )

        options = await node.load_options(
            "listColumns", {"organisation": "60", "workspace": "1", "view": "10"}, context
        )

        assert options == [
            {"name": "Region", "value": "Region"},
            {"name": "Amount", "value": "Amount"},
        ]
        assert config_of(zoho.last()) == {"withInvolvedMetaInfo": True}
        assert zoho.last().headers[ORG_HEADER] == "60"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("loader", "parameters", "field"),
        [
            ("listWorkspaces", {}, "organisation"),
            ("listViews", {"organisation": "60"}, "workspace"),
            ("listViews", {"workspace": "1"}, "organisation"),
            ("listColumns", {"organisation": "60", "view": ""}, "view"),
        ],
    )
    async def test_missing_selection_is_configuration_error(
        self,
        zoho: MockZoho,
        node: ZohoAnalyticsNode,
        context: NodeContext,
        loader: str,
        parameters: dict,
        field: str,
    ):
        """Test that a loader refuses to run without its dependencies."""
        with pytest.raises(NodeConfigurationError) as exc_info:
            await node.load_options(loader, parameters, context)

        assert exc_info.value.error_code == "CONFIGURATION_ERROR"
        assert exc_info.value.field == field
        assert zoho.requests == []

    @pytest.mark.asyncio
    async def test_api_failure_propagates(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test that transport failures surface as API errors."""
        zoho.add("GET", "/restapi/v2/orgs", {"summary": "Server down"}, status_code=500)

        with pytest.raises(NodeApiError) as exc_info:
            await node.load_options("listOrganisations", {}, context)

        assert exc_info.value.status_code == 500
        assert "Server down" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_null_data_is_empty(
        self, zoho: MockZoho, node: ZohoAnalyticsNode, context: NodeContext
    ):
        """Test that a null data payload gives no options."""
        zoho.add("GET", "/restapi/v2/orgs", {"status": "success", "data": None})

        assert await node.load_options("listOrganisations", {}, context) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("loader", "parameters", "path", "body"),
        [
            ("listOrganisations", {}, "/restapi/v2/orgs", {"data": "oops"}),
            ("listOrganisations", {}, "/restapi/v2/orgs", {"data": {"orgs": [{"orgId": "60"}]}}),
            (
                "listWorkspaces",
                {"organisation": "60"},
                "/restapi/v2/workspaces",
                {"data": {"ownedWorkspaces": "nope"}},
            ),
            (
                "listColumns",
                {"organisation": "60", "view": "10"},
                "/restapi/v2/views/10",
                {"data": {"views": {"columns": [{"dataType": "PLAIN"}]}}},
            ),
        ],
    )
    async def test_unexpected_payload_is_api_error(
        self,
        zoho: MockZoho,
        node: ZohoAnalyticsNode,
        context: NodeContext,
        loader: str,
        parameters: dict,
        path: str,
        body: dict,
    ):
        """Test that malformed payloads surface as API errors."""
        zoho.add("GET", path, body)

        with pytest.raises(NodeApiError) as exc_info:
            await node.load_options(loader, parameters, context)

        assert exc_info.value.message == "Unexpected Zoho Analytics response"
        assert exc_info.value.node_name == "zoho_analytics"

    @pytest.mark.asyncio
    async def test_unknown_loader(self, node: ZohoAnalyticsNode, context: NodeContext):
        """Test that an unknown loader name is rejected."""
        with pytest.raises(NodeValidationError):
            await node.load_options("listDashboards", {}, context)

    def test_loaders_match_definition(self, node: ZohoAnalyticsNode):
        """Test that every loader named in the definition exists."""
        definition = node.get_definition()
        named = {inp.options_loader for inp in definition.inputs if inp.options_loader}
        for inp in definition.inputs:
            named.update(f.options_loader for f in inp.fields if f.options_loader)

        assert named == set(LOADERS)
