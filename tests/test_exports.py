import asyncio

import pytest

from mapleads.core.errors import HttpError, ValidationError
from mapleads.core.models import ExportRequest, ExportResult, ExportType, WebsiteFilter
from mapleads.core.stores.exports import ExportCoordinator


def result(name, total):
    return ExportResult(fileName=name, filePath=f"/exports/{name}", totalRecords=total)


def test_successful_export_is_stored(fake_client):
    fake_client.export_responses.append(result("coffee.xlsx", 12))
    coordinator = ExportCoordinator(fake_client)

    outcome = asyncio.run(coordinator.request_export(
        ExportRequest(keyword="coffee shop", location="Austin", has_website=WebsiteFilter.WITH)
    ))

    assert outcome.file_name == "coffee.xlsx"
    assert coordinator.result.total_records == 12
    assert coordinator.error is None
    assert coordinator.is_exporting is False


def test_failed_export_records_error(fake_client):
    fake_client.export_responses.append(HttpError("No businesses to export", status=404))
    coordinator = ExportCoordinator(fake_client)

    outcome = asyncio.run(coordinator.request_export(ExportRequest(export_type=ExportType.ALL)))

    assert outcome is None
    assert coordinator.result is None
    assert "No businesses to export" in coordinator.error


def test_search_export_requires_keyword_and_location(fake_client):
    coordinator = ExportCoordinator(fake_client)

    with pytest.raises(ValidationError):
        asyncio.run(coordinator.request_export(ExportRequest(keyword="coffee shop")))

    assert fake_client.calls == []


def test_is_exporting_while_in_flight(fake_client):
    async def scenario():
        pending = asyncio.get_running_loop().create_future()
        fake_client.export_responses.append(pending)
        coordinator = ExportCoordinator(fake_client)

        task = asyncio.create_task(coordinator.request_export(ExportRequest(export_type=ExportType.ALL)))
        await asyncio.sleep(0)
        during = coordinator.is_exporting
        pending.set_result(result("all.xlsx", 3))
        await task
        return during, coordinator.is_exporting

    assert asyncio.run(scenario()) == (True, False)


def test_last_resolved_export_wins(fake_client):
    """Overlapping exports are not correlated: the later resolution is shown."""

    async def scenario():
        loop = asyncio.get_running_loop()
        first, second = loop.create_future(), loop.create_future()
        fake_client.export_responses.extend([first, second])
        coordinator = ExportCoordinator(fake_client)

        t1 = asyncio.create_task(coordinator.request_export(ExportRequest(export_type=ExportType.ALL)))
        await asyncio.sleep(0)
        t2 = asyncio.create_task(coordinator.request_export(
            ExportRequest(keyword="bakery", location="Austin")
        ))
        await asyncio.sleep(0)

        second.set_result(result("bakery.xlsx", 4))
        await t2
        first.set_result(result("all.xlsx", 100))
        await t1
        return coordinator

    coordinator = asyncio.run(scenario())

    assert coordinator.result.file_name == "all.xlsx"
    assert coordinator.request.keyword == "bakery"


def test_clear_result(fake_client):
    coordinator = ExportCoordinator(fake_client)
    asyncio.run(coordinator.request_export(ExportRequest(export_type=ExportType.ALL)))

    coordinator.clear_result()

    assert coordinator.result is None
    assert coordinator.error is None
