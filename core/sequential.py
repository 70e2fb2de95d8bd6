"""Progress aggregation for chunked (sequential) download jobs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import config
from core.errors import FallbackExhausted
from core.job_api import JobAPI
from core.poller import ProgressPoller
from core.types import JobStatus, ProgressSnapshot, SequentialSnapshot
from core.validation import require_job_id

logger = logging.getLogger(__name__)

SequentialCallback = Callable[[SequentialSnapshot], None]


def merge_chunk_progress(snapshot: SequentialSnapshot) -> SequentialSnapshot:
    """Fill in chunk counts and the overall percentage.

    A percentage reported by the backend wins; otherwise it is derived from
    ``completed_chunks / total_chunks``. Missing counts come from ``per_chunk``.
    """
    chunks = snapshot.per_chunk
    total = snapshot.total_chunks if snapshot.total_chunks is not None else len(chunks)
    if snapshot.completed_chunks is not None:
        completed = snapshot.completed_chunks
    else:
        completed = sum(1 for chunk in chunks if chunk.status == JobStatus.COMPLETED)

    if snapshot.progress_percentage is not None:
        percentage = snapshot.progress_percentage
    elif total > 0:
        percentage = min(100.0, completed / total * 100)
    else:
        percentage = 0.0

    return snapshot.model_copy(
        update={
            "total_chunks": total,
            "completed_chunks": completed,
            "progress_percentage": percentage,
        }
    )


@dataclass(eq=False)
class _SequentialSession:
    parent_job_id: int
    future: asyncio.Future
    on_progress: SequentialCallback | None
    escalated: bool = False
    callback_error: BaseException | None = None


class SequentialProgressAggregator:
    """Tracks a chunked job, escalating once to plain polling if chunk status is unavailable."""

    def __init__(
        self,
        api: JobAPI,
        *,
        interval_seconds: float | None = None,
        poller_factory: Callable[[], ProgressPoller] | None = None,
    ):
        self.api = api
        interval = config.POLL_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.interval_seconds = max(0.0, float(interval))
        self._poller_factory = poller_factory or (
            lambda: ProgressPoller(self.api, interval_seconds=self.interval_seconds)
        )
        self._task: asyncio.Task | None = None
        self._session: _SequentialSession | None = None
        self._fallback: ProgressPoller | None = None
        self.current: SequentialSnapshot | None = None
        self.error: BaseException | None = None

    @property
    def job_id(self) -> int | None:
        return self._session.parent_job_id if self._session is not None else None

    @property
    def escalated(self) -> bool:
        return self._session is not None and self._session.escalated

    @property
    def is_polling(self) -> bool:
        if self._task is not None and not self._task.done():
            return True
        return self._fallback is not None and self._fallback.is_polling

    def start(self, parent_job_id: Any, on_progress: SequentialCallback | None = None) -> asyncio.Future:
        parent_job_id = require_job_id(parent_job_id)
        self.stop()

        loop = asyncio.get_running_loop()
        session = _SequentialSession(
            parent_job_id=parent_job_id,
            future=loop.create_future(),
            on_progress=on_progress,
        )
        self._session = session
        self.current = None
        self.error = None
        session.future.add_done_callback(lambda fut: self._on_future_done(session, fut))
        self._task = loop.create_task(
            self._run(session), name=f"sequential-progress-{parent_job_id}"
        )
        return session.future

    def stop(self) -> None:
        task, self._task = self._task, None
        fallback, self._fallback = self._fallback, None
        self._session = None
        if task is not None and not task.done():
            task.cancel()
        if fallback is not None:
            fallback.stop()

    async def __aenter__(self) -> "SequentialProgressAggregator":
        return self

    async def __aexit__(self, *_exc_info) -> None:
        self.stop()

    def _owns(self, session: _SequentialSession) -> bool:
        return self._session is session

    def _on_future_done(self, session: _SequentialSession, future: asyncio.Future) -> None:
        if future.cancelled() and self._owns(session):
            self.stop()

    async def _run(self, session: _SequentialSession) -> None:
        while True:
            try:
                raw = await self.api.get_sequential_progress(session.parent_job_id)
            except Exception as exc:
                if self._owns(session):
                    self._escalate(session, exc)
                return

            if not self._owns(session):
                return

            snapshot = merge_chunk_progress(raw)
            try:
                self._deliver(session, snapshot)
            except Exception as exc:
                if self._owns(session):
                    self._task = None
                    self._settle(session, error=exc)
                return
            if not self._owns(session):
                return

            if snapshot.is_terminal:
                self._task = None
                self._settle(session, result=snapshot)
                return

            await asyncio.sleep(self.interval_seconds)

    def _deliver(self, session: _SequentialSession, snapshot: SequentialSnapshot) -> None:
        self.current = snapshot
        if session.on_progress is not None:
            session.on_progress(snapshot)

    def _escalate(self, session: _SequentialSession, exc: Exception) -> None:
        self._task = None
        session.escalated = True
        logger.warning(
            "Chunk progress unavailable for job %s (%s); falling back to single-job polling.",
            session.parent_job_id,
            exc,
        )

        def on_single(single: ProgressSnapshot) -> None:
            if not self._owns(session):
                return
            try:
                self._deliver(session, SequentialSnapshot.from_single(single))
            except Exception as callback_exc:
                session.callback_error = callback_exc
                raise

        poller = self._poller_factory()
        self._fallback = poller
        future = poller.start(session.parent_job_id, on_progress=on_single)
        future.add_done_callback(lambda fut: self._on_fallback_done(session, fut))

    def _on_fallback_done(self, session: _SequentialSession, future: asyncio.Future) -> None:
        if future.cancelled() or not self._owns(session):
            return
        exc = future.exception()
        if exc is None:
            snapshot = SequentialSnapshot.from_single(future.result())
            self.current = snapshot
            self._settle(session, result=snapshot)
        elif exc is session.callback_error:
            self._settle(session, error=exc)
        else:
            self._settle(session, error=FallbackExhausted(session.parent_job_id, exc))

    def _settle(
        self,
        session: _SequentialSession,
        *,
        result: SequentialSnapshot | None = None,
        error: BaseException | None = None,
    ) -> None:
        if session.future.done():
            return
        if error is not None:
            self.error = error
            session.future.set_exception(error)
            logger.warning("Tracking job %s failed: %s", session.parent_job_id, error)
        else:
            session.future.set_result(result)
            logger.info(
                "Job %s finished with status %s.",
                session.parent_job_id,
                result.overall_status if result is not None else "unknown",
            )
