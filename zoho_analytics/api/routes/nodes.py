"""Node API endpoints.

Lists the nodes, feeds their dropdowns and runs item batches through them.
"""

import uuid
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, HTTPException, Query, status

from zoho_analytics.api.deps import NodeRegistryDep
from zoho_analytics.models.node import NodeCategory
from zoho_analytics.models.requests import ExecuteRequest, ExecuteResponse, OptionsRequest
from zoho_analytics.nodes.base import BaseNode, NodeContext, NodeExecutionError, NodeValidationError

logger = structlog.get_logger()

router = APIRouter()

API_USER = "api"

_ERROR_STATUS = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "CONFIGURATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "MISSING_CREDENTIAL": status.HTTP_400_BAD_REQUEST,
    "API_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def _error_response(error: NodeExecutionError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(
            error.error_code, status.HTTP_422_UNPROCESSABLE_ENTITY
        ),
        detail=error.to_dict(),
    )


def _get_node(registry: NodeRegistryDep, node_name: str) -> BaseNode:
    node = registry.get(node_name)
    if node is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Node '{node_name}' not found",
        )
    return node


@router.get("", response_model=list[dict[str, Any]])
async def list_nodes(
    registry: NodeRegistryDep,
    category: Annotated[NodeCategory | None, Query()] = None,
    credential_type: Annotated[str | None, Query()] = None,
) -> list[dict[str, Any]]:
    """List the available nodes.

    Args:
        registry: Node registry
        category: Filter by category
        credential_type: Filter by required credential type

    Returns:
        Node definitions
    """
    if credential_type is not None:
        definitions = registry.list_by_credential(credential_type)
        if category is not None:
            definitions = [d for d in definitions if d.category == category]
    elif category is not None:
        definitions = registry.list_by_category(category)
    else:
        definitions = registry.list_all()

    return [d.to_dict() for d in definitions]


@router.get("/{node_name}", response_model=dict[str, Any])
async def get_node(
    node_name: str,
    registry: NodeRegistryDep,
) -> dict[str, Any]:
    """Get a specific node by name."""
    return _get_node(registry, node_name).get_definition().to_dict()


@router.post("/{node_name}/options/{loader}", response_model=list[dict[str, Any]])
async def load_options(
    node_name: str,
    loader: str,
    data: OptionsRequest,
    registry: NodeRegistryDep,
) -> list[dict[str, Any]]:
    """Populate a dropdown from the Zoho Analytics API.

    Raises:
        HTTPException 400: A selection the loader depends on is missing
        HTTPException 502: Zoho Analytics failed
    """
    node = _get_node(registry, node_name)
    context = NodeContext(
        user_id=API_USER,
        execution_id=str(uuid.uuid4()),
        credentials=dict(data.credentials),
    )

    try:
        return await node.load_options(loader, data.parameters, context)
    except NodeValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "error_code": e.error_code, "field": e.field},
        ) from e
    except NodeExecutionError as e:
        logger.warning(
            "options_load_failed",
            node_name=node_name,
            loader=loader,
            error_code=e.error_code,
            error=e.message,
        )
        raise _error_response(e) from e


@router.post("/{node_name}/execute", response_model=ExecuteResponse)
async def execute_node(
    node_name: str,
    data: ExecuteRequest,
    registry: NodeRegistryDep,
) -> ExecuteResponse:
    """Run a batch of items through a node.

    The credential is echoed back so the host can persist tokens that were
    refreshed during the run.
    """
    node = _get_node(registry, node_name)
    context = NodeContext(
        user_id=API_USER,
        execution_id=data.execution_id or str(uuid.uuid4()),
        credentials=dict(data.credentials),
        continue_on_fail=data.continue_on_fail,
    )

    try:
        result = await node.run(
            {
                "parameters": data.parameters,
                "items": data.items,
                "item_parameters": data.item_parameters,
            },
            context,
        )
    except NodeExecutionError as e:
        logger.warning(
            "node_execution_rejected",
            node_name=node_name,
            execution_id=context.execution_id,
            error_code=e.error_code,
            item_index=e.item_index,
        )
        raise _error_response(e) from e

    return ExecuteResponse(items=result["items"], credentials=context.credentials)
