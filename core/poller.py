"""Fixed-interval progress polling for a single download job."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import config
from core.job_api import JobAPI
from core.types import ProgressSnapshot
from core.validation import require_job_id

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], None]


@dataclass(eq=False)
class _PollSession:
    job_id: int
    future: asyncio.Future
    on_progress: ProgressCallback | None


class ProgressPoller:
    """Drives one job to a terminal state.

    The poller owns a single asyncio task. ``start`` tears down whatever
    session was running before; the replaced session's future is left
    pending and any response that arrives for it is dropped. Polls never
    overlap: the next request is sent ``interval_seconds`` after the previous
    response was handled.
    """

    def __init__(self, api: JobAPI, *, interval_seconds: float | None = None):
        self.api = api
        interval = config.POLL_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.interval_seconds = max(0.0, float(interval))
        self._task: asyncio.Task | None = None
        self._session: _PollSession | None = None
        self.current: ProgressSnapshot | None = None
        self.error: BaseException | None = None

    @property
    def job_id(self) -> int | None:
        return self._session.job_id if self._session is not None else None

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, job_id: Any, on_progress: ProgressCallback | None = None) -> asyncio.Future:
        """Begin tracking ``job_id``; the future settles with the terminal snapshot."""
        job_id = require_job_id(job_id)
        self.stop()

        loop = asyncio.get_running_loop()
        session = _PollSession(job_id=job_id, future=loop.create_future(), on_progress=on_progress)
        self._session = session
        self.current = None
        self.error = None
        session.future.add_done_callback(lambda fut: self._on_future_done(session, fut))
        self._task = loop.create_task(self._run(session), name=f"progress-poller-{job_id}")
        logger.debug("Polling job %s every %.2fs.", job_id, self.interval_seconds)
        return session.future

    def stop(self) -> None:
        """Abandon the current session without settling its future."""
        task, self._task = self._task, None
        self._session = None
        if task is not None and not task.done():
            task.cancel()

    async def __aenter__(self) -> "ProgressPoller":
        return self

    async def __aexit__(self, *_exc_info) -> None:
        self.stop()

    def _owns(self, session: _PollSession) -> bool:
        return self._session is session

    def _on_future_done(self, session: _PollSession, future: asyncio.Future) -> None:
        # The caller gave up waiting (e.g. wait_for timeout): stop polling too.
        if future.cancelled() and self._owns(session):
            self.stop()

    async def _run(self, session: _PollSession) -> None:
        while True:
            try:
                snapshot = await self.api.get_progress(session.job_id)
            except Exception as exc:
                if self._owns(session):
                    self._fail(session, exc)
                return

            if not self._owns(session):
                logger.debug("Dropping progress for job %s from a stopped session.", session.job_id)
                return

            self.current = snapshot
            if session.on_progress is not None:
                try:
                    session.on_progress(snapshot)
                except Exception as exc:
                    if self._owns(session):
                        self._fail(session, exc)
                    return
                if not self._owns(session):
                    return

            if snapshot.is_terminal:
                self._finish(session, snapshot)
                return

            await asyncio.sleep(self.interval_seconds)

    def _finish(self, session: _PollSession, snapshot: ProgressSnapshot) -> None:
        self._task = None
        if not session.future.done():
            session.future.set_result(snapshot)
        logger.info("Job %s finished with status %s.", session.job_id, snapshot.status)

    def _fail(self, session: _PollSession, exc: Exception) -> None:
        self._task = None
        self.error = exc
        if not session.future.done():
            session.future.set_exception(exc)
        logger.warning("Polling job %s failed: %s", session.job_id, exc)
