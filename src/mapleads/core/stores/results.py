"""
Result store - the two business collections shown to the user.

The paginated set mirrors one server page of the full listing; the
scoped set holds every business matching the current search. Which one
is displayed depends only on the search parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from mapleads.core.client import ScraperApiClient
from mapleads.core.errors import TransportError, describe_error
from mapleads.core.logging import get_logger
from mapleads.core.models import Business, JobKey, Pagination, SearchHistory

logger = get_logger("results")


class ResultSetKind(str, Enum):
    PAGINATED = "paginated"
    SCOPED = "scoped"


@dataclass
class ResultSet:
    """One collection of businesses plus its load state."""

    kind: ResultSetKind
    items: list[Business] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)
    error: str | None = None
    loading: int = 0

    @property
    def is_loading(self) -> bool:
        return self.loading > 0

    def ids(self) -> list[str]:
        return [item.id for item in self.items]


@dataclass
class DisplayView:
    """Display-ready selection of the active result set."""

    title: str
    items: list[Business]
    pagination: Pagination | None
    error: str | None
    is_loading: bool

    @property
    def is_empty(self) -> bool:
        return not self.items


def scoped_is_active(keyword: str | None, location: str | None) -> bool:
    """The scoped set is active iff both search parameters are non-empty."""
    return bool(keyword and keyword.strip()) and bool(location and location.strip())


class ResultStore:
    """Loads and reconciles the paginated and scoped result sets."""

    def __init__(self, client: ScraperApiClient, default_limit: int = 50) -> None:
        self._client = client
        self.paginated = ResultSet(ResultSetKind.PAGINATED)
        self.paginated.pagination.limit = default_limit
        self.scoped = ResultSet(ResultSetKind.SCOPED)
        self.history = SearchHistory()

    @property
    def is_loading(self) -> bool:
        return self.paginated.is_loading or self.scoped.is_loading

    async def load_paginated(
        self,
        page: int,
        limit: int,
        keyword: str | None = None,
        location: str | None = None,
    ) -> bool:
        """Replace the paginated set with one server page.

        Pagination metadata is taken from the response as-is; a response
        without it leaves the current pagination untouched.

        Returns:
            True on success; on failure the previous page is kept
        """
        target = self.paginated
        target.loading += 1
        try:
            result = await self._client.list_businesses(page, limit, keyword, location)
        except TransportError as e:
            target.error = describe_error(e)
            logger.warning("Loading page %d failed: %s", page, target.error)
            return False
        finally:
            target.loading -= 1

        target.items = list(result.data)
        if result.pagination is not None:
            target.pagination = result.pagination
        target.error = None
        logger.debug(
            "Loaded page %d/%d (%d businesses)",
            target.pagination.page, target.pagination.pages, len(result.data),
        )
        return True

    async def load_scoped(self, keyword: str, location: str) -> bool:
        """Replace the scoped set with the businesses matching a search."""
        key = JobKey.of(keyword, location)
        target = self.scoped
        target.loading += 1
        try:
            items = await self._client.search_businesses(key)
        except TransportError as e:
            target.error = describe_error(e)
            logger.warning("Loading results for %s failed: %s", key, target.error)
            return False
        finally:
            target.loading -= 1

        target.items = list(items)
        target.error = None
        return True

    async def load_history(self) -> bool:
        """Replace the list of previously scraped searches."""
        try:
            entries = await self._client.search_history()
        except TransportError as e:
            self.history.error = describe_error(e)
            return False
        self.history = SearchHistory(entries=entries)
        return True

    def remove_record(self, business_id: str) -> bool:
        """Drop a business from both sets; removing an unknown id is a no-op.

        Returns:
            True if the id was present in either set
        """
        removed = False
        for result_set in (self.paginated, self.scoped):
            kept = [item for item in result_set.items if item.id != business_id]
            if len(kept) != len(result_set.items):
                result_set.items = kept
                removed = True
        return removed

    def select_active(self, keyword: str | None, location: str | None) -> ResultSet:
        if scoped_is_active(keyword, location):
            return self.scoped
        return self.paginated

    def display(self, keyword: str | None, location: str | None) -> DisplayView:
        active = self.select_active(keyword, location)
        if active.kind is ResultSetKind.SCOPED:
            title = f'Search Results for "{keyword}" in "{location}"'
            pagination = None
        else:
            title = "All Businesses"
            pagination = active.pagination if active.pagination.pages > 1 else None
        return DisplayView(
            title=title,
            items=list(active.items),
            pagination=pagination,
            error=active.error,
            is_loading=active.is_loading,
        )

    def clear_errors(self) -> None:
        self.paginated.error = None
        self.scoped.error = None
        self.history.error = None
