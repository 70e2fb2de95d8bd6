"""Pydantic API contracts for FastAPI endpoints.

Naming convention:
  - ``*Request``  : inbound request body (validated strictly, no extra fields).
  - ``*Response`` : outbound payload (extra fields ignored on construction).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class _RequestModel(BaseModel):
    """Base model for all inbound request payloads."""

    model_config = ConfigDict(extra="forbid")


class _ResponseModel(BaseModel):
    """Base model for all outbound response payloads."""

    model_config = ConfigDict(extra="ignore")


class AckResponse(_ResponseModel):
    """Generic acknowledgement payload."""

    success: bool
    message: str | None = None


CancelResponse = AckResponse


class ErrorResponse(_ResponseModel):
    """Stable error envelope used by error paths."""

    error: str
    code: str
    details: dict[str, Any] | None = None


class HealthResponse(_ResponseModel):
    status: str
    uptime_seconds: float
    version: str


class SettingsResponse(_ResponseModel):
    api_base_url: str
    nav_api_url: str
    environment: str
    poll_interval_seconds: float
    dashboard_refresh_cooldown_seconds: float
    historical_max_span_days: int


class HistoricalDownloadRequest(_RequestModel):
    start_date: str = Field(min_length=1)
    end_date: str = Field(min_length=1)
    scheme_ids: list[int] | None = None
    sequential: bool = True


class TrackRequest(_RequestModel):
    sequential: bool = False


class UnitErrorResponse(_ResponseModel):
    unit_key: str
    message: str


class JobProgressResponse(_ResponseModel):
    """Latest known state of one tracked job."""

    job_id: int
    sequential: bool = False
    status: str
    progress_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    current_step: str | None = None
    processed_units: int | None = None
    total_units: int | None = None
    processed_records: int | None = None
    completed_chunks: int | None = None
    total_chunks: int | None = None
    estimated_time_remaining_ms: int | None = Field(default=None, ge=0)
    estimated_time_text: str | None = None
    errors: list[UnitErrorResponse] = Field(default_factory=list)
    error_count: int = 0
    error: str | None = None
    tracking: bool = False


class TriggerResponse(_ResponseModel):
    job_id: int
    already_exists: bool = False
    message: str | None = None
    estimated_time_ms: int | None = None
    estimated_time_text: str | None = None
    tracking: bool = False
    progress: JobProgressResponse | None = None


class TrackedJobsResponse(_ResponseModel):
    jobs: list[JobProgressResponse]

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> int:
        """Total derivado de la lista; evita desincronización."""
        return len(self.jobs)


class DashboardResponse(_ResponseModel):
    jobs_list: list[dict[str, Any]] = Field(default_factory=list)
    active_jobs: list[dict[str, Any]] = Field(default_factory=list)
    statistics: dict[str, Any] | None = None
    today_status: dict[str, Any] | None = None
    bookmarks: list[dict[str, Any]] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    refreshed_at: datetime | None = None
    is_loading: bool = False


class RefreshResponse(_ResponseModel):
    scheduled: bool
    cooldown_seconds: float


class BookmarkToggleRequest(_RequestModel):
    enabled: bool

    @field_validator("enabled", mode="before")
    @classmethod
    def _strict_bool(cls, value: Any) -> bool:
        """Solo acepta booleanos reales; evita que "no" se interprete como True."""
        if not isinstance(value, bool):
            raise ValueError("enabled debe ser booleano")
        return value


class BookmarkResponse(_ResponseModel):
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
