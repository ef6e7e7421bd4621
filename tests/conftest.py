import asyncio
from collections import defaultdict, deque

import httpx
import pytest

from mapleads.core.client import ScraperApiClient
from mapleads.core.errors import HttpError
from mapleads.core.models import (
    Business,
    BusinessPage,
    ExportResult,
    JobKey,
    JobSnapshot,
    Pagination,
)

BASE_URL = "http://scraper.test/api"


def snapshot(keyword="coffee shop", location="Austin", total_found=0, processed=None, total=None, **extra):
    payload = {"keyword": keyword, "location": location, "totalFound": total_found, **extra}
    if processed is not None or total is not None:
        payload["progress"] = {"processed": processed, "total": total}
    return JobSnapshot.model_validate(payload)


def business(business_id, name=None, website=None, **extra):
    return Business.model_validate(
        {"_id": business_id, "name": name or f"Business {business_id}", "address": "1 Main St", "website": website, **extra}
    )


async def _resolve(response):
    if isinstance(response, asyncio.Future):
        response = await response
    if isinstance(response, BaseException):
        raise response
    return response


class FakeClient:
    """In-memory stand-in for ScraperApiClient.

    Responses are queued per operation; a queued asyncio.Future makes the
    call wait until the test resolves it, a queued exception is raised.
    """

    def __init__(self):
        self.calls = []
        self.start_responses = deque()
        self.status_responses = defaultdict(deque)
        self.page_responses = deque()
        self.search_responses = deque()
        self.export_responses = deque()
        self.delete_responses = deque()
        self.history_responses = deque()
        self.closed = False

    def queue_status(self, key, *responses):
        self.status_responses[(key.keyword, key.location)].extend(responses)

    def status_calls(self, key=None):
        return [
            args[0] for name, args in self.calls
            if name == "scrape_status" and (key is None or args[0].matches(key))
        ]

    async def start_scrape(self, key):
        self.calls.append(("start_scrape", (key,)))
        if self.start_responses:
            return await _resolve(self.start_responses.popleft())
        return snapshot(key.keyword, key.location)

    async def scrape_status(self, key):
        self.calls.append(("scrape_status", (key,)))
        queue = self.status_responses[(key.keyword, key.location)]
        if queue:
            return await _resolve(queue.popleft())
        return snapshot(key.keyword, key.location)

    async def list_businesses(self, page, limit, keyword=None, location=None):
        self.calls.append(("list_businesses", (page, limit, keyword, location)))
        if self.page_responses:
            return await _resolve(self.page_responses.popleft())
        return BusinessPage(data=[], pagination=Pagination(page=page, limit=limit))

    async def search_businesses(self, key):
        self.calls.append(("search_businesses", (key,)))
        if self.search_responses:
            return await _resolve(self.search_responses.popleft())
        return []

    async def delete_business(self, business_id):
        self.calls.append(("delete_business", (business_id,)))
        if self.delete_responses:
            return await _resolve(self.delete_responses.popleft())
        return None

    async def export_businesses(self, request):
        self.calls.append(("export_businesses", (request,)))
        if self.export_responses:
            return await _resolve(self.export_responses.popleft())
        return ExportResult(fileName="export.xlsx", filePath="/exports/export.xlsx", totalRecords=0)

    async def search_history(self):
        self.calls.append(("search_history", ()))
        if self.history_responses:
            return await _resolve(self.history_responses.popleft())
        return []

    async def test_scraper(self):
        self.calls.append(("test_scraper", ()))
        return {"success": True}

    async def close(self):
        self.closed = True


def not_found():
    return HttpError("Business not found", status=404, operation="delete_business")


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def coffee_key():
    return JobKey("coffee shop", "Austin")


@pytest.fixture
def bakery_key():
    return JobKey("bakery", "Austin")


@pytest.fixture
def mock_api():
    """Build a ScraperApiClient whose HTTP traffic goes to a handler."""
    requests = []

    def factory(handler):
        def recording_handler(request):
            requests.append(request)
            return handler(request)

        client = ScraperApiClient(BASE_URL, transport=httpx.MockTransport(recording_handler))
        client.requests = requests
        return client

    return factory
