import asyncio

from conftest import snapshot

from mapleads.core.errors import HttpError, NetworkError
from mapleads.core.models import JobStatus
from mapleads.core.poller import Poller
from mapleads.core.retries import RetryConfig
from mapleads.core.stores.jobs import JobStore


def make_poller(fake_client, interval=60.0, **kwargs):
    store = JobStore()
    poller = Poller(fake_client.scrape_status, store, interval=interval, **kwargs)
    return poller, store


def test_start_observing_issues_first_check_immediately(fake_client, coffee_key):
    async def scenario():
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, snapshot(total_found=5, processed=5, total=12))

        first = poller.start_observing(coffee_key)
        applied = await first
        await poller.aclose()
        return applied, store

    applied, store = asyncio.run(scenario())

    assert applied is True
    assert store.job.progress.processed == 5
    assert len(fake_client.status_calls()) == 1


def test_start_observing_same_key_is_a_noop(fake_client, coffee_key):
    async def scenario():
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        await poller.start_observing(coffee_key)
        generation = poller.generation

        again = poller.start_observing(coffee_key)
        after = poller.generation
        await poller.aclose()
        return again, generation, after

    again, generation, after = asyncio.run(scenario())

    assert again is None
    assert generation == after == 1
    assert len(fake_client.status_calls()) == 1


def test_ticks_repeat_on_interval(fake_client, coffee_key):
    async def scenario():
        poller, store = make_poller(fake_client, interval=0.01)
        store.record_job_started(*coffee_key)
        poller.start_observing(coffee_key)
        await asyncio.sleep(0.1)
        await poller.aclose()

    asyncio.run(scenario())

    assert len(fake_client.status_calls(coffee_key)) >= 3


def test_slow_tick_does_not_block_next_tick(fake_client, coffee_key):
    async def scenario():
        loop = asyncio.get_running_loop()
        hung = loop.create_future()
        poller, store = make_poller(fake_client, interval=0.01)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, hung)

        poller.start_observing(coffee_key)
        await asyncio.sleep(0.05)
        calls = len(fake_client.status_calls())
        await poller.aclose()
        return calls

    assert asyncio.run(scenario()) >= 2


def test_stop_observing_discards_in_flight_result(fake_client, coffee_key):
    async def scenario():
        loop = asyncio.get_running_loop()
        pending = loop.create_future()
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, pending)

        tick = poller.start_observing(coffee_key)
        await asyncio.sleep(0)
        poller.stop_observing()
        pending.set_result(snapshot(total_found=5, processed=5, total=12))
        applied = await tick
        return applied, store, poller

    applied, store, poller = asyncio.run(scenario())

    assert applied is False
    assert store.job.progress is None
    assert poller.is_observing is False


def test_retarget_drops_previous_key_responses(fake_client, coffee_key, bakery_key):
    async def scenario():
        loop = asyncio.get_running_loop()
        coffee_pending = loop.create_future()
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, coffee_pending)
        fake_client.queue_status(bakery_key, snapshot("bakery", "Austin", total_found=1, processed=1, total=4))

        coffee_tick = poller.start_observing(coffee_key)
        await asyncio.sleep(0)

        poller.stop_observing()
        store.record_job_started(*bakery_key)
        bakery_tick = poller.start_observing(bakery_key)
        await bakery_tick

        coffee_pending.set_result(snapshot(total_found=5, processed=5, total=12))
        stale_applied = await coffee_tick
        await poller.aclose()
        return stale_applied, store

    stale_applied, store = asyncio.run(scenario())

    assert stale_applied is False
    assert store.job.keyword == "bakery"
    assert store.job.total_found == 1
    assert store.job.progress.total == 4


def test_failed_check_is_recorded_and_polling_continues(fake_client, coffee_key):
    async def scenario():
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(
            coffee_key,
            HttpError("Bad gateway", status=502),
            snapshot(total_found=6, processed=6, total=12),
        )

        await poller.start_observing(coffee_key)
        failed_status, error, observing = store.job.status, store.job.error, poller.is_observing

        await poller.check_now()
        await poller.aclose()
        return failed_status, error, observing, store

    failed_status, error, observing, store = asyncio.run(scenario())

    assert failed_status is JobStatus.FAILED
    assert "502" in error
    assert observing is True
    assert store.job.status is JobStatus.RUNNING
    assert store.job.total_found == 6


def test_out_of_order_ticks_keep_progress_monotonic(fake_client, coffee_key):
    async def scenario():
        loop = asyncio.get_running_loop()
        slow = loop.create_future()
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, slow, snapshot(total_found=7, processed=7, total=12))

        first = poller.start_observing(coffee_key)
        await asyncio.sleep(0)
        second = poller.check_now()
        assert await second is True

        slow.set_result(snapshot(total_found=5, processed=5, total=12))
        late_applied = await first
        await poller.aclose()
        return late_applied, store

    late_applied, store = asyncio.run(scenario())

    assert late_applied is False
    assert store.job.total_found == 7
    assert store.job.progress.processed == 7


def test_network_errors_are_retried_inside_a_tick(fake_client, coffee_key):
    async def scenario():
        retry = RetryConfig(max_attempts=3, min_wait=0, max_wait=0.01, jitter=False)
        poller, store = make_poller(fake_client, retry=retry)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(
            coffee_key,
            NetworkError("reset"),
            snapshot(total_found=2, processed=2, total=12),
        )

        applied = await poller.start_observing(coffee_key)
        await poller.aclose()
        return applied, store

    applied, store = asyncio.run(scenario())

    assert applied is True
    assert store.job.status is JobStatus.RUNNING
    assert len(fake_client.status_calls()) == 2


def test_on_status_runs_after_applied_snapshot(fake_client, coffee_key):
    seen = []

    async def on_status(key, snap):
        seen.append((key, snap.total_found))

    async def scenario():
        poller, store = make_poller(fake_client, on_status=on_status)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, snapshot(total_found=3))
        await poller.start_observing(coffee_key)
        await poller.aclose()

    asyncio.run(scenario())

    assert seen == [(coffee_key, 3)]


def test_aclose_cancels_pending_ticks(fake_client, coffee_key):
    async def scenario():
        loop = asyncio.get_running_loop()
        poller, store = make_poller(fake_client)
        store.record_job_started(*coffee_key)
        fake_client.queue_status(coffee_key, loop.create_future())

        poller.start_observing(coffee_key)
        await asyncio.sleep(0)
        pending = poller.pending_ticks
        await poller.aclose()
        return pending, poller.pending_ticks

    pending_before, pending_after = asyncio.run(scenario())

    assert pending_before == 1
    assert pending_after == 0
