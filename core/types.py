"""Shared type definitions for job progress and dashboard contracts.

Wire payloads use camelCase (``jobId``, ``progressPercentage``) and, on older
backend revisions, scheme-centric names (``totalSchemes``,
``estimatedTimeRemaining``). Models accept every known spelling and expose
snake_case attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobKind(StrEnum):
    DAILY = "daily"
    HISTORICAL = "historical"


TERMINAL_STATES = frozenset([JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED])


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def _normalize_status(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _zero_if_none(value: Any) -> Any:
    return 0 if value is None else value


class _WireModel(BaseModel):
    """Base model for backend payloads (unknown fields ignored, immutable)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class JobHandle(_WireModel):
    """Identity of a triggered job, owned by whichever poller tracks it."""

    job_id: int
    created_at: datetime


class UnitError(_WireModel):
    """Per-unit (scheme) failure reported inside a progress snapshot."""

    unit_key: str = Field(
        default="",
        validation_alias=_aliases("unitKey", "unit_key", "scheme_code", "scheme_id"),
    )
    message: str = Field(default="", validation_alias=_aliases("message", "error"))

    @field_validator("unit_key", "message", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ProgressSnapshot(_WireModel):
    """Progress of a single download job."""

    job_id: int = Field(validation_alias=_aliases("jobId", "job_id"))
    status: JobStatus
    progress_percentage: float = Field(
        default=0.0, validation_alias=_aliases("progressPercentage", "progress_percentage")
    )
    current_step: str = Field(
        default="", validation_alias=_aliases("currentStep", "current_step")
    )
    total_units: int = Field(
        default=0, validation_alias=_aliases("totalUnits", "totalSchemes", "total_units")
    )
    processed_units: int = Field(
        default=0,
        validation_alias=_aliases("processedUnits", "processedSchemes", "processed_units"),
    )
    processed_records: int = Field(
        default=0, validation_alias=_aliases("processedRecords", "processed_records")
    )
    estimated_time_remaining_ms: int | None = Field(
        default=None,
        validation_alias=_aliases(
            "estimatedTimeRemainingMs",
            "estimatedTimeRemaining",
            "estimated_time_remaining_ms",
        ),
    )
    errors: list[UnitError] = Field(default_factory=list)
    start_time: datetime | None = Field(
        default=None, validation_alias=_aliases("startTime", "start_time")
    )
    last_update: datetime | None = Field(
        default=None, validation_alias=_aliases("lastUpdate", "last_update")
    )

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return _normalize_status(value)

    @field_validator("progress_percentage", mode="before")
    @classmethod
    def _clamp_percentage(cls, value: Any) -> float:
        if value is None:
            return 0.0
        return max(0.0, min(100.0, float(value)))

    @field_validator("current_step", mode="before")
    @classmethod
    def _empty_step(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("total_units", "processed_units", "processed_records", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> Any:
        return _zero_if_none(value)

    @field_validator("estimated_time_remaining_ms", mode="before")
    @classmethod
    def _eta(cls, value: Any) -> Any:
        if value is None:
            return None
        return max(0, int(float(value)))

    @field_validator("errors", mode="before")
    @classmethod
    def _errors(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def visible_errors(self, limit: int = 5) -> list[UnitError]:
        """First ``limit`` unit errors, the slice a failure view renders."""
        return self.errors[: max(0, limit)]


class SequentialSnapshot(_WireModel):
    """Aggregate progress of a job split into chunks."""

    parent_job_id: int = Field(
        validation_alias=_aliases("parentJobId", "parent_job_id", "jobId")
    )
    overall_status: JobStatus = Field(
        validation_alias=_aliases("overallStatus", "overall_status", "status")
    )
    total_chunks: int | None = Field(
        default=None, validation_alias=_aliases("totalChunks", "total_chunks")
    )
    completed_chunks: int | None = Field(
        default=None, validation_alias=_aliases("completedChunks", "completed_chunks")
    )
    progress_percentage: float | None = Field(
        default=None, validation_alias=_aliases("progressPercentage", "progress_percentage")
    )
    per_chunk: list[ProgressSnapshot] = Field(
        default_factory=list, validation_alias=_aliases("perChunk", "per_chunk", "chunks")
    )

    @field_validator("overall_status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return _normalize_status(value)

    @field_validator("progress_percentage", mode="before")
    @classmethod
    def _clamp_percentage(cls, value: Any) -> float | None:
        if value is None:
            return None
        return max(0.0, min(100.0, float(value)))

    @field_validator("per_chunk", mode="before")
    @classmethod
    def _chunks(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_terminal(self) -> bool:
        return self.overall_status in TERMINAL_STATES

    @classmethod
    def from_single(cls, snapshot: ProgressSnapshot) -> "SequentialSnapshot":
        """Wrap a single-job snapshot as a one-chunk aggregate."""
        return cls(
            parent_job_id=snapshot.job_id,
            overall_status=snapshot.status,
            total_chunks=1,
            completed_chunks=1 if snapshot.status == JobStatus.COMPLETED else 0,
            progress_percentage=snapshot.progress_percentage,
            per_chunk=[snapshot],
        )


class TriggerReceipt(_WireModel):
    """Backend acknowledgement of a trigger request."""

    job_id: int = Field(validation_alias=_aliases("jobId", "job_id", "id"))
    already_exists: bool = Field(
        default=False, validation_alias=_aliases("alreadyExists", "already_exists")
    )
    estimated_time_ms: int | None = Field(
        default=None,
        validation_alias=_aliases("estimatedTimeMs", "estimatedTime", "estimated_time_ms"),
    )
    message: str | None = None
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("already_exists", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return bool(value)

    @property
    def handle(self) -> JobHandle:
        return JobHandle(job_id=self.job_id, created_at=self.requested_at)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class DailyTriggerResult:
    job_id: int
    already_exists: bool
    message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_job(self) -> bool:
        """False when the backend had nothing to download (id 0)."""
        return self.job_id > 0

    @property
    def handle(self) -> JobHandle:
        return JobHandle(job_id=self.job_id, created_at=self.created_at)


@dataclass(frozen=True)
class HistoricalTriggerResult:
    job_id: int
    estimated_time_ms: int | None = None
    already_exists: bool = False
    message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def handle(self) -> JobHandle:
        return JobHandle(job_id=self.job_id, created_at=self.created_at)


class DownloadJobSummary(_WireModel):
    """Row of the download job history list."""

    id: int = Field(validation_alias=_aliases("id", "jobId", "job_id"))
    job_type: str | None = None
    status: str | None = None
    scheduled_date: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    result_summary: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NavStatistics(_WireModel):
    total_schemes_tracked: int = 0
    total_nav_records: int = 0
    schemes_with_daily_download: int = 0
    schemes_with_historical_data: int = 0
    latest_nav_date: str | None = None
    oldest_nav_date: str | None = None
    download_jobs_today: int = 0
    failed_downloads_today: int = 0


class TodayDataStatus(_WireModel):
    total_bookmarked_schemes: int = 0
    schemes_with_today_data: int = 0
    schemes_missing_data: int = 0
    data_available: bool = False
    message: str = ""


class SchemeBookmark(_WireModel):
    """A tenant's saved reference to a scheme."""

    id: int
    scheme_id: int | None = None
    scheme_code: str | None = None
    scheme_name: str = ""
    amc_name: str | None = None
    daily_download_enabled: bool = False
    historical_download_completed: bool = False
    nav_records_count: int = 0
    latest_nav_date: str | None = None
    latest_nav_value: float | None = None

    @field_validator("scheme_code", mode="before")
    @classmethod
    def _code(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("nav_records_count", mode="before")
    @classmethod
    def _count(cls, value: Any) -> Any:
        return _zero_if_none(value)


class DashboardView(BaseModel):
    """Composite dashboard state, replaced as a whole on every refresh."""

    model_config = ConfigDict(frozen=True)

    jobs_list: list[DownloadJobSummary] = Field(default_factory=list)
    active_jobs: list[ProgressSnapshot] = Field(default_factory=list)
    statistics: NavStatistics | None = None
    today_status: TodayDataStatus | None = None
    bookmarks: list[SchemeBookmark] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    refreshed_at: datetime | None = None
