"""
Export coordinator - one tracked export at a time.

A request that starts replaces the tracked request and clears the
previous outcome. Responses are not correlated with requests, so when
two exports overlap, whichever resolves last is the one displayed.
"""

from __future__ import annotations

from mapleads.core.client import ScraperApiClient
from mapleads.core.errors import TransportError, ValidationError, describe_error
from mapleads.core.logging import get_logger
from mapleads.core.models import ExportRequest, ExportResult, ExportType

logger = get_logger("exports")


class ExportCoordinator:
    """Issues export calls and exposes the latest outcome."""

    def __init__(self, client: ScraperApiClient) -> None:
        self._client = client
        self.request: ExportRequest | None = None
        self.result: ExportResult | None = None
        self.error: str | None = None
        self._in_flight = 0

    @property
    def is_exporting(self) -> bool:
        return self._in_flight > 0

    async def request_export(self, request: ExportRequest) -> ExportResult | None:
        """Run one export.

        Raises:
            ValidationError: A search export without keyword and location

        Returns:
            The result, or None if the export failed (see `error`)
        """
        if request.export_type is ExportType.SEARCH and not (request.keyword and request.location):
            raise ValidationError("A search export needs both keyword and location", field="keyword")

        self.request = request
        self.result = None
        self.error = None
        self._in_flight += 1
        try:
            result = await self._client.export_businesses(request)
        except TransportError as e:
            self.error = describe_error(e)
            logger.warning("Export failed: %s", self.error)
            return None
        finally:
            self._in_flight -= 1

        self.result = result
        self.error = None
        logger.info("Exported %d records to %s", result.total_records, result.file_name)
        return result

    def clear_result(self) -> None:
        self.result = None
        self.error = None
