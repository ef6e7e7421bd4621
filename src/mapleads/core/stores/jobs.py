"""
Job store - state of the single tracked scrape job.

Every mutation coming from the network is guarded twice:
- by identity: a snapshot for another keyword/location is discarded
- by sequence: a tick older than the last applied one is discarded
"""

from __future__ import annotations

from datetime import datetime, timezone

from mapleads.core.errors import describe_error
from mapleads.core.logging import get_logger
from mapleads.core.models import Job, JobKey, JobSnapshot, JobStatus

logger = get_logger("jobs")


class JobStore:
    """Holds lifecycle, progress and last error of the tracked job."""

    def __init__(self) -> None:
        self.job = Job()
        self._last_sequence = 0

    @property
    def key(self) -> JobKey | None:
        return self.job.key

    def record_job_started(self, keyword: str, location: str) -> Job:
        """Track a new job as running, dropping everything known before."""
        key = JobKey.of(keyword, location)
        self.job = Job(
            keyword=key.keyword,
            location=key.location,
            status=JobStatus.RUNNING,
            updated_at=_now(),
        )
        self._last_sequence = 0
        logger.info("Tracking job %s", key)
        return self.job

    def mark_observing(self) -> None:
        """Re-enter running for a manual status check, keeping progress."""
        if self.key is None:
            return
        self.job.status = JobStatus.RUNNING
        self.job.error = None

    def record_status(
        self,
        snapshot: JobSnapshot,
        key: JobKey | None = None,
        sequence: int | None = None,
    ) -> bool:
        """Apply a status response to the tracked job.

        Args:
            snapshot: Decoded status payload
            key: Key the status was requested for (defaults to the snapshot's)
            sequence: Tick sequence number; None applies unconditionally

        Returns:
            True if applied, False if discarded as stale
        """
        if not self._accepts(key or snapshot.key, sequence):
            return False

        job = self.job
        job.total_found = snapshot.total_found
        job.progress = snapshot.progress
        job.last_scraped_at = snapshot.last_scraped
        job.status = snapshot.job_status()
        job.error = None
        job.updated_at = _now()
        return True

    def record_failure(
        self,
        error: BaseException | str,
        key: JobKey | None = None,
        sequence: int | None = None,
    ) -> bool:
        """Mark the job failed; progress is kept."""
        if not self._accepts(key or self.key, sequence):
            return False

        self.job.status = JobStatus.FAILED
        self.job.error = error if isinstance(error, str) else describe_error(error)
        self.job.updated_at = _now()
        return True

    def clear(self) -> None:
        self.job = Job()
        self._last_sequence = 0

    def _accepts(self, key: JobKey | None, sequence: int | None) -> bool:
        current = self.key
        if current is None or not current.matches(key):
            logger.debug(
                "Discarded stale response for %s (tracking %s)", key, current,
            )
            return False
        if sequence is not None:
            if sequence <= self._last_sequence:
                logger.debug(
                    "Discarded out-of-order tick %d (last applied %d)",
                    sequence, self._last_sequence,
                    extra={"sequence": sequence},
                )
                return False
            self._last_sequence = sequence
        return True


def _now() -> datetime:
    return datetime.now(timezone.utc)
