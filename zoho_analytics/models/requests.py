"""Request and response bodies of the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field


class OptionsRequest(BaseModel):
    """Current editor values used to populate a dropdown."""

    parameters: dict[str, Any] = Field(default_factory=dict)
    credentials: dict[str, Any] = Field(default_factory=dict)


class ExecuteRequest(BaseModel):
    """A batch of items to run through a node."""

    parameters: dict[str, Any] = Field(default_factory=dict)
    items: list[dict[str, Any]] | None = Field(
        default=None,
        description="Input items; omitted runs the node once, an empty list runs nothing",
    )
    item_parameters: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Per-item parameter values, already resolved by the host",
    )
    credentials: dict[str, Any] = Field(default_factory=dict)
    continue_on_fail: bool = False
    execution_id: str | None = None


class ExecuteResponse(BaseModel):
    items: list[dict[str, Any]]
    credentials: dict[str, Any] = Field(
        default_factory=dict,
        description="Credential data after the run, refreshed tokens included",
    )


class TokenRequest(BaseModel):
    """Authorization code returned to the redirect URI."""

    code: str = Field(min_length=1)
    state: str = Field(min_length=1)
