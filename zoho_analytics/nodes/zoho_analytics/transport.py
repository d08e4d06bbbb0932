"""Zoho Analytics request builder.

Turns a method, an endpoint and the node parameters into an authenticated
HTTP call against the Analytics API of the credential's data center.
Every transport failure leaves this module as a `NodeApiError`.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from zoho_analytics.config import settings
from zoho_analytics.integrations.oauth2 import OAuth2RefreshError, request_oauth2
from zoho_analytics.integrations.zoho import ZohoIntegration
from zoho_analytics.integrations.zoho.config import (
    AUTHENTICATION,
    ZohoCredential,
    ZohoTokenCredential,
    resolve_credential,
)
from zoho_analytics.models.item import BinaryData
from zoho_analytics.models.node import NodeOption
from zoho_analytics.nodes.base import NodeApiError, NodeContext, NodeExecutionError

logger = structlog.get_logger()

JSON_CONTENT_TYPE = "application/json"
MULTIPART_CONTENT_TYPE = "multipart/form-data"
ORG_HEADER = "ZANALYTICS-ORGID"
TOKEN_SCHEME = "Zoho-oauthtoken"


@dataclass
class RequestDescriptor:
    """Everything needed for one HTTP call. Built per call, never stored."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: dict[str, Any] | None = None
    files: dict[str, tuple[str | None, Any, str | None]] | None = None
    content_type: str = JSON_CONTENT_TYPE

    def to_request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.request``.

        Fields that are not set are left out entirely.
        """
        kwargs: dict[str, Any] = {"headers": dict(self.headers)}
        if self.params is not None:
            kwargs["params"] = self.params
        if self.json is not None:
            kwargs["json"] = self.json
        if self.files is not None:
            kwargs["files"] = self.files
        return kwargs


@dataclass
class FileResponse:
    """Raw response of a file download."""

    body: bytes
    headers: dict[str, str]
    status_code: int

    @property
    def content_type(self) -> str:
        value = self.headers.get("content-type", "application/octet-stream")
        return value.split(";", 1)[0].strip()


def _multipart_part(value: Any) -> tuple[str | None, Any, str | None]:
    if isinstance(value, BinaryData):
        return (value.file_name, value.data, value.mime_type)
    if isinstance(value, tuple):
        return value
    # Plain form field
    return (None, value if isinstance(value, (str, bytes)) else str(value), None)


def build_request(
    method: str,
    endpoint: str,
    api_url: str,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
    qs: dict[str, Any] | None = None,
    override_url: str = "",
    is_multipart: bool = False,
) -> RequestDescriptor:
    """Assemble the request for `endpoint` below `api_url`.

    `override_url` (a provider-issued next page link) replaces the
    computed URL verbatim. Empty body and query mappings are omitted.
    """
    content_type = MULTIPART_CONTENT_TYPE if is_multipart else JSON_CONTENT_TYPE
    request_headers: dict[str, str] = {}
    if not is_multipart:
        # httpx writes the multipart header itself, boundary included
        request_headers["Content-Type"] = JSON_CONTENT_TYPE
    request_headers.update(headers or {})

    descriptor = RequestDescriptor(
        method=method.upper(),
        url=override_url or f"{api_url}{endpoint}",
        headers=request_headers,
        content_type=content_type,
    )

    if qs:
        descriptor.params = dict(qs)

    if body:
        if is_multipart:
            descriptor.files = {
                name: _multipart_part(value) for name, value in body.items()
            }
        else:
            descriptor.json = dict(body)

    return descriptor


def _error_message(response: httpx.Response) -> str:
    """Pull Zoho's error text out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict) and data.get("errorMessage"):
            return str(data["errorMessage"])
        for key in ("summary", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.text


class ZohoAnalyticsClient:
    """Authenticated client for one node run.

    Example:
        async with ZohoAnalyticsClient(context, "zoho_analytics") as client:
            orgs = await client.request("GET", "/restapi/v2/orgs")
    """

    def __init__(
        self,
        context: NodeContext,
        node_name: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self._context = context
        self._node_name = node_name
        self._transport = transport
        self._timeout = timeout or settings.http_timeout
        self._integration = ZohoIntegration()
        self._client: httpx.AsyncClient | None = None
        self._credential: ZohoCredential | None = None

    async def __aenter__(self) -> "ZohoAnalyticsClient":
        self._client = httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def node_name(self) -> str:
        return self._node_name

    @property
    def credential(self) -> ZohoCredential:
        if self._credential is None:
            try:
                self._credential = resolve_credential(
                    self._context.credentials,
                    default_country=settings.zoho_default_country,
                )
            except ValueError as e:
                raise NodeExecutionError(
                    message=f"Zoho Analytics credential is invalid: {e}",
                    node_name=self._node_name,
                    error_code="MISSING_CREDENTIAL",
                ) from e
        return self._credential

    async def request(
        self,
        method: str,
        endpoint: str,
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        qs: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
        next_page_url: str = "",
        is_form_data: bool = False,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            NodeApiError: On network failures, non-2xx answers or a body
                that is not JSON
        """
        descriptor = build_request(
            method,
            endpoint,
            self.credential.api_url,
            headers=headers,
            body=body,
            qs=qs,
            override_url=next_page_url,
            is_multipart=is_form_data,
        )
        response = await self._send(descriptor, options)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise NodeApiError(
                message="Zoho Analytics returned a response that is not JSON",
                node_name=self._node_name,
                status_code=response.status_code,
            ) from e

    async def upload(
        self,
        method: str,
        endpoint: str,
        body: dict[str, Any],
        qs: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send `body` as multipart form data and return the decoded JSON."""
        return await self.request(
            method,
            endpoint,
            headers=headers,
            body=body,
            qs=qs,
            is_form_data=True,
        )

    async def download(
        self,
        method: str,
        endpoint: str,
        qs: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> FileResponse:
        """Fetch a file; the body is returned undecoded with its headers."""
        descriptor = build_request(
            method,
            endpoint,
            self.credential.api_url,
            headers={**(headers or {}), "accept": "*/*"},
            qs=qs,
        )
        descriptor.headers.pop("Content-Type", None)
        response = await self._send(descriptor)
        return FileResponse(
            body=response.content,
            headers=dict(response.headers),
            status_code=response.status_code,
        )

    async def _send(
        self,
        descriptor: RequestDescriptor,
        options: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("ZohoAnalyticsClient must be used as an async context manager")

        kwargs = descriptor.to_request_kwargs()
        kwargs.update(options or {})
        credential = self.credential

        try:
            if isinstance(credential, ZohoTokenCredential):
                kwargs["headers"]["Authorization"] = f"{TOKEN_SCHEME} {credential.oauth_token}"
                response = await self._client.request(
                    descriptor.method, descriptor.url, **kwargs
                )
            else:
                response = await request_oauth2(
                    self._client,
                    self._integration,
                    self._context.credentials,
                    descriptor.method,
                    descriptor.url,
                    token_type=TOKEN_SCHEME,
                    include_credentials_on_refresh_in_body=AUTHENTICATION == "body",
                    **kwargs,
                )
        except OAuth2RefreshError as e:
            raise NodeApiError(
                message=str(e),
                node_name=self._node_name,
                status_code=401,
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "zoho_request_failed",
                method=descriptor.method,
                url=descriptor.url,
                error=str(e),
            )
            raise NodeApiError(
                message=f"Request failed: {e}",
                node_name=self._node_name,
            ) from e

        logger.debug(
            "zoho_request_sent",
            method=descriptor.method,
            url=descriptor.url,
            status_code=response.status_code,
            credential_type=credential.credential_type,
        )

        if response.is_error:
            raise NodeApiError(
                message=f"Zoho Analytics API error: {_error_message(response)}",
                node_name=self._node_name,
                status_code=response.status_code,
                details={"url": descriptor.url},
            )

        return response


def to_organisation_options(items: list[dict[str, Any]]) -> list[NodeOption]:
    return [NodeOption(name=item["orgName"], value=item["orgId"]) for item in items]


def to_workspace_options(items: list[dict[str, Any]]) -> list[NodeOption]:
    return [
        NodeOption(name=item["workspaceName"], value=item["workspaceId"])
        for item in items
    ]


def to_view_options(items: list[dict[str, Any]]) -> list[NodeOption]:
    return [NodeOption(name=item["viewName"], value=item["viewId"]) for item in items]
