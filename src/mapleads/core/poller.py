"""
Status poller for the tracked scrape job.

While a key is observed, a status check is issued immediately and then
once per interval. Ticks are independent tasks: a slow tick does not
delay or suppress the next one. Every tick remembers the generation it
was issued under and carries a sequence number, so results of a tick
that was superseded (observation stopped, key switched) or overtaken by
a newer tick are dropped instead of applied.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Awaitable, Callable

from mapleads.core.errors import TransportError
from mapleads.core.logging import get_logger
from mapleads.core.models import JobKey, JobSnapshot
from mapleads.core.retries import RetryConfig, retry_async
from mapleads.core.stores.jobs import JobStore

logger = get_logger("poller")

StatusFetcher = Callable[[JobKey], Awaitable[JobSnapshot]]
StatusCallback = Callable[[JobKey, JobSnapshot], Awaitable[None]]


class Poller:
    """Drives repeated status checks for the observed job key."""

    def __init__(
        self,
        fetch_status: StatusFetcher,
        job_store: JobStore,
        interval: float = 1.0,
        retry: RetryConfig | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            fetch_status: Coroutine function performing one status call
            job_store: Store receiving snapshots and failures
            interval: Seconds between ticks
            retry: Retry policy applied inside a single tick
            on_status: Awaited after each applied snapshot
        """
        self._fetch_status = fetch_status
        self._job_store = job_store
        self.interval = interval
        self._retry = retry or RetryConfig()
        self._on_status = on_status

        self._key: JobKey | None = None
        self._generation = 0
        self._sequence = itertools.count(1)
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[bool]] = set()

    @property
    def key(self) -> JobKey | None:
        return self._key

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_observing(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def pending_ticks(self) -> int:
        return len(self._ticks)

    def start_observing(self, key: JobKey) -> asyncio.Task[bool] | None:
        """Begin polling `key`, replacing any other observation.

        Must be called from a running event loop.

        Returns:
            The immediately issued first tick, or None if `key` was
            already being observed
        """
        if self.is_observing and key.matches(self._key):
            return None

        # stop_observing opens the new generation
        self.stop_observing()
        self._key = key
        generation = self._generation

        logger.debug(
            "Observing %s", key,
            extra={"keyword": key.keyword, "location": key.location, "generation": generation},
        )
        first_tick = self._issue_tick(generation, key)
        self._loop_task = asyncio.create_task(self._run(generation, key))
        return first_tick

    def stop_observing(self) -> None:
        """Stop polling; results of ticks already in flight are discarded."""
        if self._key is not None:
            logger.debug("Stopped observing %s", self._key, extra={"generation": self._generation})
        self._generation += 1
        self._key = None
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

    def check_now(self) -> asyncio.Task[bool] | None:
        """Issue one extra tick for the observed key."""
        if self._key is None:
            return None
        return self._issue_tick(self._generation, self._key)

    async def aclose(self) -> None:
        """Stop observing and cancel every outstanding tick."""
        self.stop_observing()
        ticks = list(self._ticks)
        for tick in ticks:
            tick.cancel()
        if ticks:
            await asyncio.gather(*ticks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _is_current(self, generation: int, key: JobKey) -> bool:
        return generation == self._generation and key.matches(self._key)

    async def _run(self, generation: int, key: JobKey) -> None:
        # The first tick is issued by start_observing
        while True:
            await asyncio.sleep(self.interval)
            if not self._is_current(generation, key):
                return
            self._issue_tick(generation, key)

    def _issue_tick(self, generation: int, key: JobKey) -> asyncio.Task[bool]:
        sequence = next(self._sequence)
        task = asyncio.create_task(self._tick(generation, key, sequence))
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    async def _tick(self, generation: int, key: JobKey, sequence: int) -> bool:
        """Run one status check; returns True if its result was applied."""
        context = {"generation": generation, "sequence": sequence}
        try:
            snapshot = await retry_async(self._fetch_status, key, config=self._retry)
        except TransportError as e:
            if not self._is_current(generation, key):
                logger.debug("Dropped failed tick for %s", key, extra=context)
                return False
            applied = self._job_store.record_failure(e, key=key, sequence=sequence)
            if applied:
                logger.warning("Status check for %s failed: %s", key, e, extra=context)
            return applied

        if not self._is_current(generation, key):
            logger.debug("Dropped stale tick for %s", key, extra=context)
            return False

        applied = self._job_store.record_status(snapshot, key=key, sequence=sequence)
        if applied and self._on_status is not None:
            await self._on_status(key, snapshot)
        return applied
