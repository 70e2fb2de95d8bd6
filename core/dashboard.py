"""Composite dashboard state with cooldown-gated refreshes."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import config
from core.errors import DashboardRefreshError
from core.job_api import JobAPI
from core.types import DashboardView

logger = logging.getLogger(__name__)

DashboardListener = Callable[[DashboardView], None]


class DashboardAggregator:
    """Pulls several independent resources into one ``DashboardView``.

    Constituents are fetched concurrently. A failed constituent keeps the
    value from the last successful refresh and is reported in
    ``view.errors``; it never blocks its siblings. ``refresh()`` calls that
    arrive within ``cooldown_seconds`` of the last actual refresh are dropped.

    After ``close()`` nothing is fetched and no listener is invoked.
    """

    def __init__(
        self,
        jobs: JobAPI,
        nav: Any,
        *,
        cooldown_seconds: float | None = None,
        bookmarks_page_size: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.jobs = jobs
        self.nav = nav
        cooldown = config.DASHBOARD_REFRESH_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds
        self.cooldown_seconds = max(0.0, float(cooldown))
        self.bookmarks_page_size = (
            bookmarks_page_size if bookmarks_page_size is not None else config.DASHBOARD_BOOKMARKS_PAGE_SIZE
        )
        self._clock = clock
        self._fetchers: dict[str, Callable[[], Awaitable[Any]]] = {
            "jobs_list": self.jobs.list_jobs,
            "active_jobs": self.jobs.list_active,
            "statistics": self.nav.get_statistics,
            "today_status": self.nav.check_today,
            "bookmarks": self._fetch_bookmarks,
        }
        self._view = DashboardView()
        self._listeners: list[DashboardListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._auto_task: asyncio.Task | None = None
        self._adopted: list[Any] = []
        self._last_refresh_at: float | None = None
        self._generation = 0
        self._loading = 0
        self._closed = False
        self.error: DashboardRefreshError | None = None

    @property
    def view(self) -> DashboardView:
        return self._view

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def _fetch_bookmarks(self):
        return await self.nav.list_bookmarks(page_size=self.bookmarks_page_size)

    def subscribe(self, listener: DashboardListener) -> Callable[[], None]:
        """Register ``listener`` for every new view; returns the unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> bool:
        """Schedule ``refresh_all`` unless closed or still cooling down.

        Returns False when the request was dropped.
        """
        if self._closed:
            return False
        now = self._clock()
        if self._last_refresh_at is not None and now - self._last_refresh_at < self.cooldown_seconds:
            logger.debug(
                "Dashboard refresh dropped; %.2fs left in cooldown.",
                self.cooldown_seconds - (now - self._last_refresh_at),
            )
            return False

        self._last_refresh_at = now
        task = asyncio.get_running_loop().create_task(self.refresh_all(), name="dashboard-refresh")
        self._tasks.add(task)
        task.add_done_callback(self._on_refresh_done)
        return True

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Dashboard refresh crashed: %s", exc, exc_info=exc)

    async def refresh_all(self) -> DashboardView:
        """Fetch every constituent now, bypassing the cooldown."""
        if self._closed:
            return self._view

        self._last_refresh_at = self._clock()
        self._generation += 1
        generation = self._generation
        names = list(self._fetchers)

        self._loading += 1
        try:
            results = await asyncio.gather(
                *(self._fetchers[name]() for name in names), return_exceptions=True
            )
        finally:
            self._loading -= 1

        values: dict[str, Any] = {}
        failures: dict[str, BaseException] = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                failures[name] = result
                logger.warning("Dashboard %s refresh failed: %s", name, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                values[name] = result

        if self._closed:
            return self._view
        if generation != self._generation:
            logger.debug("Discarding superseded dashboard refresh.")
            return self._view

        self._view = self._view.model_copy(
            update={
                **values,
                "errors": {name: str(exc) or type(exc).__name__ for name, exc in failures.items()},
                "refreshed_at": datetime.now(timezone.utc),
            }
        )
        self.error = DashboardRefreshError(failures) if failures else None
        self._emit(self._view)
        return self._view

    def _emit(self, view: DashboardView) -> None:
        for listener in list(self._listeners):
            if self._closed:
                return
            try:
                listener(view)
            except Exception:
                logger.exception("Dashboard listener failed.")

    def start_auto_refresh(self, interval_seconds: float | None = None) -> None:
        """Call ``refresh()`` every ``interval_seconds``; a value <= 0 disables it."""
        interval = config.DASHBOARD_AUTO_REFRESH_SECONDS if interval_seconds is None else interval_seconds
        self.stop_auto_refresh()
        if self._closed or interval <= 0:
            return
        self._auto_task = asyncio.get_running_loop().create_task(
            self._auto_refresh(float(interval)), name="dashboard-auto-refresh"
        )

    def stop_auto_refresh(self) -> None:
        task, self._auto_task = self._auto_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _auto_refresh(self, interval: float) -> None:
        while not self._closed:
            await asyncio.sleep(interval)
            self.refresh()

    def adopt(self, resource: Any) -> Any:
        """Tie ``resource`` (anything with ``stop()``) to this dashboard's lifetime.

        Pollers that are no longer polling are released on each call.
        """
        if self._closed:
            resource.stop()
            return resource
        self._adopted = [
            adopted for adopted in self._adopted if getattr(adopted, "is_polling", True)
        ]
        self._adopted.append(resource)
        return resource

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.stop_auto_refresh()
        for task in list(self._tasks):
            task.cancel()
        for resource in self._adopted:
            resource.stop()
        self._adopted.clear()
        self._listeners.clear()
        logger.debug("Dashboard aggregator closed.")

    async def aclose(self) -> None:
        pending = list(self._tasks)
        self.close()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> "DashboardAggregator":
        return self

    async def __aexit__(self, *_exc_info) -> None:
        await self.aclose()
