"""Registry of tracked jobs: trigger, poll and cancel from one place.

``JobTrackingService`` is what the web gateway and the CLI talk to. It owns
one tracker per job, remembers the latest snapshot of each, and bumps a
progress version whenever anything changes so streaming consumers can wait
for the next update instead of polling the registry.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable

import config
from core.cancellation import CancellationController
from core.job_api import JobAPI
from core.poller import ProgressPoller
from core.sequential import SequentialProgressAggregator
from core.trigger import JobTrigger
from core.types import (
    DailyTriggerResult,
    DateRange,
    HistoricalTriggerResult,
    ProgressSnapshot,
    SequentialSnapshot,
)
from core.validation import require_job_id

logger = logging.getLogger(__name__)

Snapshot = ProgressSnapshot | SequentialSnapshot


@dataclass(eq=False)
class TrackedJob:
    job_id: int
    sequential: bool
    tracker: ProgressPoller | SequentialProgressAggregator
    future: asyncio.Future | None = None
    snapshot: Snapshot | None = None
    error: BaseException | None = None
    stopped: bool = False

    @property
    def finished(self) -> bool:
        return self.future is not None and self.future.done()

    @property
    def active(self) -> bool:
        return not self.stopped and not self.finished


class JobTrackingService:
    def __init__(
        self,
        api: JobAPI,
        *,
        trigger: JobTrigger | None = None,
        cancellation: CancellationController | None = None,
        poll_interval_seconds: float | None = None,
        terminal_job_retention: int | None = None,
    ):
        self.api = api
        self.trigger = trigger or JobTrigger(api)
        self.cancellation = cancellation or CancellationController(api)
        self.poll_interval_seconds = (
            config.POLL_INTERVAL_SECONDS if poll_interval_seconds is None else poll_interval_seconds
        )
        retention = config.TERMINAL_JOB_RETENTION if terminal_job_retention is None else terminal_job_retention
        self.terminal_job_retention = max(0, int(retention))
        self._jobs: dict[int, TrackedJob] = {}
        self._finished: deque[int] = deque()
        self._progress_version = 0
        self._progress_event = asyncio.Event()

    @property
    def jobs(self) -> list[TrackedJob]:
        return list(self._jobs.values())

    def get(self, job_id: int) -> TrackedJob | None:
        return self._jobs.get(job_id)

    async def trigger_daily(self) -> tuple[DailyTriggerResult, TrackedJob | None]:
        result = await self.trigger.trigger_daily()
        if not result.has_job:
            logger.info("Daily data already present; nothing to track.")
            return result, None
        return result, self.track(result.job_id)

    async def trigger_historical(
        self,
        date_range: DateRange,
        scheme_ids: Iterable[Any] | None = None,
        *,
        sequential: bool = True,
    ) -> tuple[HistoricalTriggerResult, TrackedJob]:
        result = await self.trigger.trigger_historical(date_range, scheme_ids)
        return result, self.track(result.job_id, sequential=sequential)

    def track(self, job_id: Any, *, sequential: bool = False) -> TrackedJob:
        """Start tracking ``job_id`` unless an active tracker already exists."""
        job_id = require_job_id(job_id)
        existing = self._jobs.get(job_id)
        if existing is not None and existing.active:
            return existing

        if sequential:
            tracker: ProgressPoller | SequentialProgressAggregator = SequentialProgressAggregator(
                self.api, interval_seconds=self.poll_interval_seconds
            )
        else:
            tracker = ProgressPoller(self.api, interval_seconds=self.poll_interval_seconds)

        entry = TrackedJob(job_id=job_id, sequential=sequential, tracker=tracker)
        entry.future = tracker.start(job_id, on_progress=lambda snapshot: self._on_progress(entry, snapshot))
        entry.future.add_done_callback(lambda fut: self._on_finished(entry, fut))

        self._jobs[job_id] = entry
        if job_id in self._finished:
            self._finished.remove(job_id)
        self.cancellation.attach(job_id, tracker)
        logger.info("Tracking job %s (%s).", job_id, "sequential" if sequential else "single")
        self._notify_progress_change()
        return entry

    async def cancel(self, job_id: Any) -> bool:
        job_id = require_job_id(job_id)
        entry = self._jobs.get(job_id)
        try:
            return await self.cancellation.cancel(job_id)
        finally:
            if entry is not None and not entry.finished and not entry.tracker.is_polling:
                entry.stopped = True
                entry.future.cancel()

    def is_cancelled(self, job_id: int) -> bool:
        return self.cancellation.is_cancelled(job_id)

    def close(self) -> None:
        for entry in self._jobs.values():
            entry.tracker.stop()
            entry.stopped = True
            if entry.future is not None and not entry.future.done():
                entry.future.cancel()
        self._jobs.clear()
        self._finished.clear()
        self._notify_progress_change()

    def get_progress_version(self) -> int:
        return self._progress_version

    async def wait_for_progress_change(self, previous_version: int, timeout_seconds: float) -> int:
        """Wait until the progress version moves past ``previous_version`` or the timeout expires."""
        if self._progress_version != previous_version:
            return self._progress_version
        event = self._progress_event
        try:
            await asyncio.wait_for(event.wait(), timeout=max(0.0, float(timeout_seconds)))
        except asyncio.TimeoutError:
            pass
        return self._progress_version

    def _notify_progress_change(self) -> None:
        self._progress_version += 1
        event, self._progress_event = self._progress_event, asyncio.Event()
        event.set()

    def _on_progress(self, entry: TrackedJob, snapshot: Snapshot) -> None:
        if self._jobs.get(entry.job_id) is not entry:
            return
        entry.snapshot = snapshot
        self._notify_progress_change()

    def _on_finished(self, entry: TrackedJob, future: asyncio.Future) -> None:
        if future.cancelled():
            entry.stopped = True
        elif future.exception() is not None:
            entry.error = future.exception()
        else:
            entry.snapshot = future.result()

        if self._jobs.get(entry.job_id) is not entry:
            return
        self._finished.append(entry.job_id)
        while len(self._finished) > self.terminal_job_retention:
            stale_id = self._finished.popleft()
            stale = self._jobs.get(stale_id)
            if stale is not None and not stale.active:
                del self._jobs[stale_id]
                self.cancellation.detach(stale_id, stale.tracker)
        self._notify_progress_change()
