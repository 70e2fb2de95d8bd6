"""Idempotent cancellation of tracked download jobs."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from core.job_api import JobAPI
from core.validation import require_job_id

logger = logging.getLogger(__name__)


class Tracker(Protocol):
    current: Any

    def stop(self) -> None: ...


class CancellationController:
    """Stops local tracking of a job, then asks the backend to cancel it.

    A job is cancelled at most once: repeated calls, calls while a cancel is
    in flight, and calls for a job whose tracker already saw a terminal status
    return ``False`` without touching the network. Any tracker attached since
    is still stopped. A failed remote cancel is not retried and does not mark
    the job as cancelled. ``detach`` forgets the job entirely.
    """

    def __init__(self, api: JobAPI):
        self.api = api
        self._trackers: dict[int, Tracker] = {}
        self._cancelled: set[int] = set()
        self._finished: set[int] = set()
        self._in_flight: set[int] = set()

    def attach(self, job_id: Any, tracker: Tracker) -> None:
        self._trackers[require_job_id(job_id)] = tracker

    def detach(self, job_id: int, tracker: Tracker | None = None) -> None:
        current = self._trackers.get(job_id)
        if current is not None and tracker is not None and current is not tracker:
            return
        self._trackers.pop(job_id, None)
        self._cancelled.discard(job_id)
        self._finished.discard(job_id)

    def is_cancelled(self, job_id: int) -> bool:
        return job_id in self._cancelled

    async def cancel(self, job_id: Any) -> bool:
        job_id = require_job_id(job_id)
        tracker = self._trackers.pop(job_id, None)
        if tracker is not None:
            tracker.stop()

        if job_id in self._cancelled or job_id in self._finished or job_id in self._in_flight:
            logger.debug("Cancel for job %s already requested or finished.", job_id)
            return False

        snapshot = getattr(tracker, "current", None)
        if snapshot is not None and snapshot.is_terminal:
            self._finished.add(job_id)
            logger.info("Job %s already finished; nothing to cancel.", job_id)
            return False

        self._in_flight.add(job_id)
        try:
            await self.api.cancel(job_id)
        finally:
            self._in_flight.discard(job_id)

        self._cancelled.add(job_id)
        logger.info("Cancel requested for job %s.", job_id)
        return True
