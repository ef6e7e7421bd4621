"""
Scraper API client using httpx.

Wraps every remote operation the client consumes and turns failures
into the transport error taxonomy:
- NetworkError when no response arrives
- HttpError for non-2xx statuses
- DecodeError for bodies that are not the expected JSON

No retries are performed here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mapleads.core.errors import DecodeError, HttpError, NetworkError
from mapleads.core.logging import get_logger
from mapleads.core.models import (
    Business,
    BusinessList,
    BusinessPage,
    ExportRequest,
    ExportResult,
    JobKey,
    JobSnapshot,
)

logger = get_logger("client")

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ApiCall:
    """Specification of one logical API operation."""

    operation: str
    path: str
    method: str = "GET"
    params: dict[str, Any] = field(default_factory=dict)
    json_data: dict[str, Any] | None = None


class ScraperApiClient:
    """Async client for the scraper service.

    Features:
    - Persistent connection pooling
    - Typed operations returning pydantic models
    - Failures mapped onto NetworkError / HttpError / DecodeError
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            base_url: API root, e.g. https://host/api
            timeout: Per-request timeout in seconds (None disables it)
            headers: Extra headers for all requests
            transport: Custom httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.default_headers = {
            "Accept": "application/json",
            **(headers or {}),
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=self.default_headers,
                transport=self._transport,
            )
        return self._client

    # -------------------------------------------------------------------------
    # Generic request
    # -------------------------------------------------------------------------

    async def request(self, call: ApiCall) -> Any:
        """Perform a call and return the decoded JSON body.

        Returns None for an empty body (e.g. 204 No Content).

        Raises:
            NetworkError: No response was received
            HttpError: Non-2xx status
            DecodeError: Body is not valid JSON
        """
        client = self._ensure_client()
        url = f"{self.base_url}{call.path}"
        params = {k: v for k, v in call.params.items() if v is not None}

        logger.debug(
            "%s %s", call.method, call.path,
            extra={"operation": call.operation},
        )

        try:
            response = await client.request(
                call.method,
                call.path,
                params=params or None,
                json=call.json_data,
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"{call.operation} failed: {str(e) or e.__class__.__name__}",
                operation=call.operation,
                url=url,
                cause=e,
            ) from e

        if not response.is_success:
            raise HttpError(
                _error_message(response) or f"{call.operation} failed",
                status=response.status_code,
                operation=call.operation,
                url=url,
            )

        if not response.content.strip():
            return None

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(
                f"{call.operation} returned malformed JSON",
                operation=call.operation,
                url=url,
                cause=e,
            ) from e

    async def _request_model(self, call: ApiCall, model: type[ModelT], *, unwrap: bool = False) -> ModelT:
        payload = await self.request(call)
        if unwrap:
            payload = payload.get("data") if isinstance(payload, dict) else None
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise DecodeError(
                f"{call.operation} returned an unexpected body: {e.error_count()} validation errors",
                operation=call.operation,
                url=f"{self.base_url}{call.path}",
                cause=e,
            ) from e

    # -------------------------------------------------------------------------
    # Scraper operations
    # -------------------------------------------------------------------------

    async def start_scrape(self, key: JobKey) -> JobSnapshot:
        """POST /scraper/scrape - start an asynchronous scrape job."""
        call = ApiCall(
            operation="start_scrape",
            method="POST",
            path="/scraper/scrape",
            json_data={"keyword": key.keyword, "location": key.location, "async": True},
        )
        return await self._request_model(call, JobSnapshot, unwrap=True)

    async def scrape_status(self, key: JobKey) -> JobSnapshot:
        """GET /scraper/status - current progress of a job."""
        call = ApiCall(
            operation="scrape_status",
            path="/scraper/status",
            params={"keyword": key.keyword, "location": key.location},
        )
        return await self._request_model(call, JobSnapshot, unwrap=True)

    async def test_scraper(self) -> Any:
        """GET /scraper/test - service self check."""
        return await self.request(ApiCall(operation="test_scraper", path="/scraper/test"))

    # -------------------------------------------------------------------------
    # Business operations
    # -------------------------------------------------------------------------

    async def list_businesses(
        self,
        page: int,
        limit: int,
        keyword: str | None = None,
        location: str | None = None,
    ) -> BusinessPage:
        """GET /businesses - one page of the full listing."""
        call = ApiCall(
            operation="list_businesses",
            path="/businesses",
            params={
                "page": page,
                "limit": limit,
                "keyword": keyword or None,
                "location": location or None,
            },
        )
        return await self._request_model(call, BusinessPage)

    async def search_businesses(self, key: JobKey) -> list[Business]:
        """GET /businesses/search - every business matching a search."""
        call = ApiCall(
            operation="search_businesses",
            path="/businesses/search",
            params={"keyword": key.keyword, "location": key.location},
        )
        result = await self._request_model(call, BusinessList)
        return result.data

    async def delete_business(self, business_id: str) -> None:
        """DELETE /businesses/{id}."""
        await self.request(
            ApiCall(
                operation="delete_business",
                method="DELETE",
                path=f"/businesses/{quote(business_id, safe='')}",
            )
        )

    async def export_businesses(self, request: ExportRequest) -> ExportResult:
        """POST /businesses/export - write a spreadsheet on the server."""
        call = ApiCall(
            operation="export_businesses",
            method="POST",
            path="/businesses/export",
            json_data=request.to_payload(),
        )
        return await self._request_model(call, ExportResult)

    async def search_history(self) -> list[dict[str, Any]]:
        """GET /businesses/history/searches."""
        payload = await self.request(
            ApiCall(operation="search_history", path="/businesses/history/searches")
        )
        data = payload.get("data") if isinstance(payload, dict) else payload
        if data is None:
            return []
        if not isinstance(data, list):
            raise DecodeError(
                "search_history returned an unexpected body",
                operation="search_history",
            )
        return [entry for entry in data if isinstance(entry, dict)]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ScraperApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _error_message(response: httpx.Response) -> str | None:
    """Pull a human readable message out of an error body."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.reason_phrase or None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or None
