"""REST adapter for the NAV download-job endpoints."""

from __future__ import annotations

from typing import Any, Mapping

from core.errors import RemoteError
from core.job_api import JobAPI
from core.types import (
    DownloadJobSummary,
    JobKind,
    ProgressSnapshot,
    SequentialSnapshot,
    TriggerReceipt,
)
from plugins.base import Plugin


class JobsPlugin(Plugin, JobAPI):
    """JobAPI over HTTP: trigger, poll, cancel and list download jobs."""

    TRIGGER_PATHS: dict[JobKind, str] = {
        JobKind.DAILY: "/download/daily",
        JobKind.HISTORICAL: "/download/historical",
    }

    async def trigger(self, kind: JobKind, params: Mapping[str, Any] | None = None) -> TriggerReceipt:
        path = self.TRIGGER_PATHS[JobKind(kind)]
        data = await self.http.post_data(path, json=dict(params or {}))
        return self.parse(TriggerReceipt.model_validate, data, f"{kind} trigger")

    async def get_progress(self, job_id: int) -> ProgressSnapshot:
        data = await self.http.get_data(f"/download/progress/{int(job_id)}")
        return self.parse(ProgressSnapshot.model_validate, data, "progress")

    async def get_sequential_progress(self, parent_job_id: int) -> SequentialSnapshot:
        data = await self.http.get_data(f"/downloads/{int(parent_job_id)}/sequential-progress")
        return self.parse(SequentialSnapshot.model_validate, data, "sequential progress")

    async def cancel(self, job_id: int) -> None:
        await self.http.delete_data(f"/download/jobs/{int(job_id)}")

    async def list_active(self) -> list[ProgressSnapshot]:
        data = await self.http.get_data("/download/active")
        if isinstance(data, dict):
            data = data.get("active_downloads", data.get("activeDownloads"))
        if data is None:
            return []
        if not isinstance(data, list):
            raise RemoteError("Unexpected active downloads payload: expected a list")
        return [self.parse(ProgressSnapshot.model_validate, item, "active download") for item in data]

    async def list_jobs(self, params: Mapping[str, Any] | None = None) -> list[DownloadJobSummary]:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        data = await self.http.get_data("/download/jobs", params=query)
        items = data.get("jobs") if isinstance(data, dict) else data
        if items is None:
            return []
        if not isinstance(items, list):
            raise RemoteError("Unexpected download jobs payload: expected a list")
        return [self.parse(DownloadJobSummary.model_validate, item, "download job") for item in items]
