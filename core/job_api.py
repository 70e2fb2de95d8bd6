"""Abstract contract of the remote download-job service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from core.types import (
    DownloadJobSummary,
    JobKind,
    ProgressSnapshot,
    SequentialSnapshot,
    TriggerReceipt,
)


class JobAPI(ABC):
    """Remote interface the trackers depend on.

    Implementations raise ``TransportError`` for network/HTTP failures and
    ``RemoteError`` when the backend envelope reports ``success: false``.
    """

    @abstractmethod
    async def trigger(self, kind: JobKind, params: Mapping[str, Any] | None = None) -> TriggerReceipt:
        ...

    @abstractmethod
    async def get_progress(self, job_id: int) -> ProgressSnapshot:
        ...

    @abstractmethod
    async def get_sequential_progress(self, parent_job_id: int) -> SequentialSnapshot:
        ...

    @abstractmethod
    async def cancel(self, job_id: int) -> None:
        ...

    @abstractmethod
    async def list_active(self) -> list[ProgressSnapshot]:
        ...

    @abstractmethod
    async def list_jobs(self, params: Mapping[str, Any] | None = None) -> list[DownloadJobSummary]:
        ...
