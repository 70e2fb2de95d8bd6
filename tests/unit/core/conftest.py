from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Mapping

import pytest

from core.job_api import JobAPI
from core.types import (
    DownloadJobSummary,
    JobKind,
    NavStatistics,
    ProgressSnapshot,
    SchemeBookmark,
    SequentialSnapshot,
    TodayDataStatus,
    TriggerReceipt,
)


def _next(script: list[Any]) -> Any:
    # The last scripted response repeats forever.
    item = script.pop(0) if len(script) > 1 else script[0]
    if isinstance(item, BaseException):
        raise item
    return item


class FakeJobAPI(JobAPI):
    """Scripted JobAPI; every call is recorded in ``calls``."""

    def __init__(
        self,
        *,
        progress: Mapping[int, list[Any]] | None = None,
        sequential: Mapping[int, list[Any]] | None = None,
        receipts: Mapping[JobKind, Any] | None = None,
        cancel_error: BaseException | None = None,
        active: list[dict[str, Any]] | None = None,
        jobs: list[dict[str, Any]] | None = None,
    ):
        self.progress = {key: list(value) for key, value in (progress or {}).items()}
        self.sequential = {key: list(value) for key, value in (sequential or {}).items()}
        self.receipts = dict(receipts or {})
        self.cancel_error = cancel_error
        self.cancel_gate: asyncio.Event | None = None
        self.active = active or []
        self.job_rows = jobs or []
        self.calls: list[tuple[Any, ...]] = []

    def count(self, name: str, *args: Any) -> int:
        return sum(1 for call in self.calls if call[0] == name and call[1:] == args)

    async def trigger(self, kind, params=None):
        self.calls.append(("trigger", JobKind(kind)))
        self.last_trigger_params = dict(params or {})
        await asyncio.sleep(0)
        payload = self.receipts[JobKind(kind)]
        if isinstance(payload, BaseException):
            raise payload
        return TriggerReceipt.model_validate(payload)

    async def get_progress(self, job_id):
        self.calls.append(("get_progress", job_id))
        await asyncio.sleep(0)
        return ProgressSnapshot.model_validate(_next(self.progress[job_id]))

    async def get_sequential_progress(self, parent_job_id):
        self.calls.append(("get_sequential_progress", parent_job_id))
        await asyncio.sleep(0)
        return SequentialSnapshot.model_validate(_next(self.sequential[parent_job_id]))

    async def cancel(self, job_id):
        self.calls.append(("cancel", job_id))
        if self.cancel_gate is not None:
            await self.cancel_gate.wait()
        await asyncio.sleep(0)
        if self.cancel_error is not None:
            error, self.cancel_error = self.cancel_error, None
            raise error

    async def list_active(self):
        self.calls.append(("list_active",))
        await asyncio.sleep(0)
        return [ProgressSnapshot.model_validate(item) for item in self.active]

    async def list_jobs(self, params=None):
        self.calls.append(("list_jobs",))
        await asyncio.sleep(0)
        return [DownloadJobSummary.model_validate(item) for item in self.job_rows]


class FakeNav:
    def __init__(self, bookmarks: list[dict[str, Any]] | None = None):
        self.bookmarks = bookmarks or []
        self.failures: dict[str, BaseException] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.update_gate: asyncio.Event | None = None

    async def _maybe_fail(self, name: str) -> None:
        self.calls.append((name,))
        await asyncio.sleep(0)
        if name in self.failures:
            raise self.failures[name]

    async def get_statistics(self):
        await self._maybe_fail("get_statistics")
        return NavStatistics(total_schemes_tracked=3, total_nav_records=1200)

    async def check_today(self):
        await self._maybe_fail("check_today")
        return TodayDataStatus(total_bookmarked_schemes=3, schemes_with_today_data=3, data_available=True)

    async def list_bookmarks(self, page_size=None, page=1):
        await self._maybe_fail("list_bookmarks")
        return [SchemeBookmark.model_validate(item) for item in self.bookmarks[:page_size]]

    async def update_bookmark(self, bookmark_id, updates):
        self.calls.append(("update_bookmark", bookmark_id, dict(updates)))
        if self.update_gate is not None:
            await self.update_gate.wait()
        await asyncio.sleep(0)
        if "update_bookmark" in self.failures:
            raise self.failures["update_bookmark"]
        for item in self.bookmarks:
            if item["id"] == bookmark_id:
                item.update(updates)
                return SchemeBookmark.model_validate(item)
        return None


def running(job_id: int, percentage: float = 0, **extra: Any) -> dict[str, Any]:
    return {"jobId": job_id, "status": "running", "progressPercentage": percentage, **extra}


def done(job_id: int, status: str = "completed", percentage: float = 100, **extra: Any) -> dict[str, Any]:
    return {"jobId": job_id, "status": status, "progressPercentage": percentage, **extra}


@pytest.fixture
def fake_api_cls():
    return FakeJobAPI


@pytest.fixture
def fake_nav_cls():
    return FakeNav


@pytest.fixture
def snapshots():
    return SimpleNamespace(running=running, done=done)
