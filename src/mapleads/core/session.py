"""
Scrape session - the orchestration facade callers drive.

Composes the API client, the job/result stores, the poller and the
export coordinator. Transport failures never escape a session operation:
they are recorded on the store of the domain they belong to. Missing
user input raises ValidationError before any call is made.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from mapleads.core.client import ScraperApiClient
from mapleads.core.config import AppConfig
from mapleads.core.errors import HttpError, TransportError, ValidationError, describe_error
from mapleads.core.logging import get_contextual_logger, get_logger
from mapleads.core.models import (
    ExportRequest,
    ExportResult,
    ExportType,
    Job,
    JobKey,
    JobSnapshot,
    JobStatus,
    WebsiteFilter,
)
from mapleads.core.poller import Poller
from mapleads.core.retries import RetryConfig
from mapleads.core.stores import DisplayView, ExportCoordinator, JobStore, ResultStore
from mapleads.core.stores.results import scoped_is_active

logger = get_logger("session")


class SessionState(str, Enum):
    """Lifecycle of the tracked search."""

    IDLE = "idle"
    SEARCHING = "searching"
    OBSERVING = "observing"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapeSession:
    """Entry points for starting, observing and browsing scrape jobs."""

    def __init__(
        self,
        client: ScraperApiClient,
        *,
        poll_interval: float = 1.0,
        status_retries: int = 0,
        refresh_results_on_tick: bool = False,
        default_page: int = 1,
        default_limit: int = 50,
    ) -> None:
        """Initialize the session.

        Args:
            client: API client (closed by aclose)
            poll_interval: Seconds between status checks
            status_retries: Network-error retries inside one status check
            refresh_results_on_tick: Reload scoped results after each status
            default_page: First page of the paginated listing
            default_limit: Page size of the paginated listing
        """
        self.client = client
        self.jobs = JobStore()
        self.results = ResultStore(client, default_limit=default_limit)
        self.exports = ExportCoordinator(client)
        self.poller = Poller(
            client.scrape_status,
            self.jobs,
            interval=poll_interval,
            retry=RetryConfig.for_status_checks(status_retries),
            on_status=self._after_status if refresh_results_on_tick else None,
        )

        self.keyword = ""
        self.location = ""
        self.default_page = default_page
        self.default_limit = default_limit
        self.error: str | None = None
        self._searching = 0
        self._submissions = 0

    @classmethod
    def from_config(cls, config: AppConfig, **client_kwargs: Any) -> "ScrapeSession":
        """Build a session and its API client from application config."""
        client = ScraperApiClient(
            config.api.base_url,
            timeout=config.api.timeout_seconds,
            headers=config.api.headers,
            **client_kwargs,
        )
        return cls(
            client,
            poll_interval=config.polling.interval_seconds,
            status_retries=config.polling.status_retries,
            refresh_results_on_tick=config.polling.refresh_results_on_tick,
            default_page=config.results.default_page,
            default_limit=config.results.default_limit,
        )

    # -------------------------------------------------------------------------
    # Aggregated state
    # -------------------------------------------------------------------------

    @property
    def job(self) -> Job:
        return self.jobs.job

    @property
    def state(self) -> SessionState:
        if self._searching:
            return SessionState.SEARCHING
        status = self.job.status
        if status is JobStatus.COMPLETED:
            return SessionState.COMPLETED
        if status is JobStatus.FAILED:
            return SessionState.FAILED
        if status is JobStatus.RUNNING or self.poller.is_observing:
            return SessionState.OBSERVING
        return SessionState.IDLE

    @property
    def is_loading(self) -> bool:
        return bool(self._searching) or self.results.is_loading or self.exports.is_exporting

    @property
    def errors(self) -> dict[str, str]:
        """Current error per domain; domains without an error are omitted."""
        found = {
            "job": self.job.error,
            "paginated": self.results.paginated.error,
            "scoped": self.results.scoped.error,
            "history": self.results.history.error,
            "export": self.exports.error,
            "session": self.error,
        }
        return {domain: message for domain, message in found.items() if message}

    @property
    def has_search(self) -> bool:
        return scoped_is_active(self.keyword, self.location)

    # -------------------------------------------------------------------------
    # Job operations
    # -------------------------------------------------------------------------

    async def submit_search(self, keyword: str, location: str) -> Job:
        """Start a scrape job for keyword/location and begin observing it.

        Raises:
            ValidationError: If keyword or location is blank
        """
        key = _require_key(keyword, location)
        log = get_contextual_logger("session", keyword=key.keyword, location=key.location)

        # Stop and switch with no await in between
        self.poller.stop_observing()
        self.jobs.record_job_started(key.keyword, key.location)
        self.keyword, self.location = key.keyword, key.location
        self._submissions += 1
        submission = self._submissions

        self._searching += 1
        try:
            snapshot = await self.client.start_scrape(key)
        except TransportError as e:
            error: TransportError | None = e
        else:
            error = None
        finally:
            self._searching -= 1

        if submission != self._submissions or not key.matches(self.jobs.key):
            log.debug("Search was replaced before it started; not observing")
            return self.job

        if error is not None:
            self.jobs.record_failure(error, key=key)
            log.warning("Starting the scrape failed: %s", describe_error(error))
        else:
            self.jobs.record_status(snapshot, key=key)

        self.poller.start_observing(key)
        log.info("Scrape job submitted")
        return self.job

    async def check_status(self, keyword: str | None = None, location: str | None = None) -> Job:
        """Run a manual status check and keep observing the job.

        Defaults to the tracked key; a different key replaces the tracked
        job without starting a scrape.

        Raises:
            ValidationError: If no key is given and none is tracked
        """
        if keyword is None and location is None and self.jobs.key is not None:
            key = self.jobs.key
        else:
            key = _require_key(keyword or "", location or "")

        if not key.matches(self.jobs.key):
            self.poller.stop_observing()
            self.jobs.record_job_started(key.keyword, key.location)
        else:
            self.jobs.mark_observing()
        self.keyword, self.location = key.keyword, key.location

        tick = self.poller.start_observing(key) or self.poller.check_now()
        if tick is not None:
            await tick
        return self.job

    def stop_observing(self) -> None:
        self.poller.stop_observing()

    def dismiss_job(self) -> None:
        """Stop polling and forget the tracked job."""
        self.poller.stop_observing()
        self.jobs.clear()

    def clear_search(self) -> None:
        """Drop the search parameters so the paginated listing is displayed."""
        self.keyword = ""
        self.location = ""

    async def test_scraper(self) -> Any:
        """Ask the service to run its self check; None if unreachable."""
        try:
            return await self.client.test_scraper()
        except TransportError as e:
            self.error = describe_error(e)
            return None

    # -------------------------------------------------------------------------
    # Result operations
    # -------------------------------------------------------------------------

    async def load_results(self, page: int | None = None, limit: int | None = None) -> bool:
        """Load the active result set for the current search parameters."""
        if self.has_search:
            return await self.results.load_scoped(self.keyword, self.location)
        return await self.results.load_paginated(
            page if page is not None else self.results.paginated.pagination.page or self.default_page,
            limit if limit is not None else self.default_limit,
        )

    async def change_page(self, page: int) -> bool:
        """Fetch a page of the full listing; the server decides its bounds."""
        if page < 1:
            raise ValidationError("Page numbers start at 1", field="page")
        return await self.results.load_paginated(page, self.results.paginated.pagination.limit or self.default_limit)

    async def next_page(self) -> bool:
        pagination = self.results.paginated.pagination
        if not pagination.has_next:
            return False
        return await self.change_page(pagination.page + 1)

    async def previous_page(self) -> bool:
        pagination = self.results.paginated.pagination
        if not pagination.has_previous:
            return False
        return await self.change_page(pagination.page - 1)

    def display(self) -> DisplayView:
        return self.results.display(self.keyword, self.location)

    async def delete_business(self, business_id: str) -> bool:
        """Delete a business remotely, then drop it from both result sets.

        A 404 means it is already gone and counts as success.
        """
        try:
            await self.client.delete_business(business_id)
        except HttpError as e:
            if not e.not_found:
                self.error = describe_error(e)
                logger.warning("Deleting %s failed: %s", business_id, self.error)
                return False
        except TransportError as e:
            self.error = describe_error(e)
            logger.warning("Deleting %s failed: %s", business_id, self.error)
            return False

        self.results.remove_record(business_id)
        return True

    async def fetch_search_history(self) -> list[dict[str, Any]]:
        await self.results.load_history()
        return self.results.history.entries

    # -------------------------------------------------------------------------
    # Export operations
    # -------------------------------------------------------------------------

    async def request_export(
        self,
        export_type: ExportType | str = ExportType.SEARCH,
        has_website: WebsiteFilter | str | None = None,
        keyword: str | None = None,
        location: str | None = None,
    ) -> ExportResult | None:
        """Export businesses; search exports default to the current search.

        Raises:
            ValidationError: A search export without keyword and location
        """
        request = ExportRequest(
            export_type=ExportType(export_type),
            keyword=keyword if keyword is not None else (self.keyword or None),
            location=location if location is not None else (self.location or None),
            has_website=WebsiteFilter(has_website) if has_website else None,
        )
        return await self.exports.request_export(request)

    def clear_export_result(self) -> None:
        self.exports.clear_result()

    def clear_errors(self) -> None:
        self.error = None
        self.results.clear_errors()
        self.exports.error = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _after_status(self, key: JobKey, snapshot: JobSnapshot) -> None:
        if key.matches(JobKey(self.keyword, self.location)):
            await self.results.load_scoped(key.keyword, key.location)

    async def aclose(self) -> None:
        await self.poller.aclose()
        await self.client.close()

    async def __aenter__(self) -> "ScrapeSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def _require_key(keyword: str, location: str) -> JobKey:
    if not keyword or not keyword.strip():
        raise ValidationError("Please enter both keyword and location", field="keyword")
    if not location or not location.strip():
        raise ValidationError("Please enter both keyword and location", field="location")
    return JobKey.of(keyword, location)
