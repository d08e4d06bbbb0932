"""Dropdown loaders for the Zoho Analytics node.

The editor resolves organisation, workspace, view and column one after the
other; each loader needs the selections made before it. Loaders are called
whenever a dropdown is opened and never cache.
"""

from typing import Any, Awaitable, Callable, TypeVar

import structlog

from zoho_analytics.models.node import NodeOption
from zoho_analytics.nodes.base import NodeApiError, NodeConfigurationError
from zoho_analytics.nodes.zoho_analytics.payloads import config_query, view_metadata_config
from zoho_analytics.nodes.zoho_analytics.transport import (
    ORG_HEADER,
    ZohoAnalyticsClient,
    to_organisation_options,
    to_view_options,
    to_workspace_options,
)

logger = structlog.get_logger()

TABLE_VIEW_TYPE = "Table"

T = TypeVar("T")


def _require(parameters: dict[str, Any], name: str, label: str) -> str:
    value = parameters.get(name)
    if value in (None, ""):
        raise NodeConfigurationError(f"Select {label} first", field=name)
    return str(value)


def _unexpected(client: ZohoAnalyticsClient, key: str) -> NodeApiError:
    return NodeApiError(
        message="Unexpected Zoho Analytics response",
        node_name=client.node_name,
        details={"key": key},
    )


def _data(client: ZohoAnalyticsClient, response: Any, key: str) -> Any:
    """Read `data.<key>` from a response; a null `data` counts as empty."""
    if not isinstance(response, dict):
        raise _unexpected(client, key)
    data = response.get("data") or {}
    if not isinstance(data, dict):
        raise _unexpected(client, key)
    return data.get(key)


def _entries(client: ZohoAnalyticsClient, value: Any, key: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise _unexpected(client, key)
    return value


def _project(
    client: ZohoAnalyticsClient,
    project: Callable[[list[dict[str, Any]]], T],
    entries: list[dict[str, Any]],
    key: str,
) -> T:
    try:
        return project(entries)
    except KeyError as e:
        raise _unexpected(client, key) from e


async def list_organisations(client: ZohoAnalyticsClient) -> list[NodeOption]:
    response = await client.request("GET", "/restapi/v2/orgs")
    orgs = _entries(client, _data(client, response, "orgs"), "orgs")
    return _project(client, to_organisation_options, orgs, "orgs")


async def list_workspaces(
    client: ZohoAnalyticsClient,
    organisation_id: str,
) -> list[NodeOption]:
    """List owned workspaces followed by shared ones.

    The two lists are concatenated as returned; a workspace present in both
    shows up twice.
    """
    response = await client.request(
        "GET",
        "/restapi/v2/workspaces",
        headers={ORG_HEADER: organisation_id},
    )
    workspaces = [
        *_entries(client, _data(client, response, "ownedWorkspaces"), "ownedWorkspaces"),
        *_entries(client, _data(client, response, "sharedWorkspaces"), "sharedWorkspaces"),
    ]
    return _project(client, to_workspace_options, workspaces, "workspaces")


async def list_views(
    client: ZohoAnalyticsClient,
    organisation_id: str,
    workspace_id: str,
) -> list[NodeOption]:
    """List the tables of a workspace. Reports and dashboards are skipped."""
    response = await client.request(
        "GET",
        f"/restapi/v2/workspaces/{workspace_id}/views",
        headers={ORG_HEADER: organisation_id},
    )
    views = _entries(client, _data(client, response, "views"), "views")
    tables = [view for view in views if view.get("viewType") == TABLE_VIEW_TYPE]
    return _project(client, to_view_options, tables, "views")


async def list_columns(
    client: ZohoAnalyticsClient,
    organisation_id: str,
    view_id: str,
) -> list[NodeOption]:
    """List the columns of a view. Columns are addressed by name."""
    response = await client.request(
        "GET",
        f"/restapi/v2/views/{view_id}",
        headers={ORG_HEADER: organisation_id},
        qs=config_query(view_metadata_config()),
    )
    view = _data(client, response, "views") or {}
    if not isinstance(view, dict):
        raise _unexpected(client, "views")
    columns = _entries(client, view.get("columns"), "columns")
    return _project(
        client,
        lambda entries: [
            NodeOption(name=column["columnName"], value=column["columnName"])
            for column in entries
        ],
        columns,
        "columns",
    )


async def _load_organisations(
    client: ZohoAnalyticsClient, parameters: dict[str, Any]
) -> list[NodeOption]:
    return await list_organisations(client)


async def _load_workspaces(
    client: ZohoAnalyticsClient, parameters: dict[str, Any]
) -> list[NodeOption]:
    return await list_workspaces(
        client,
        _require(parameters, "organisation", "an organisation"),
    )


async def _load_views(
    client: ZohoAnalyticsClient, parameters: dict[str, Any]
) -> list[NodeOption]:
    return await list_views(
        client,
        _require(parameters, "organisation", "an organisation"),
        _require(parameters, "workspace", "a workspace"),
    )


async def _load_columns(
    client: ZohoAnalyticsClient, parameters: dict[str, Any]
) -> list[NodeOption]:
    return await list_columns(
        client,
        _require(parameters, "organisation", "an organisation"),
        _require(parameters, "view", "a view"),
    )


OptionsLoader = Callable[[ZohoAnalyticsClient, dict[str, Any]], Awaitable[list[NodeOption]]]

LOADERS: dict[str, OptionsLoader] = {
    "listOrganisations": _load_organisations,
    "listWorkspaces": _load_workspaces,
    "listViews": _load_views,
    "listColumns": _load_columns,
}
