"""Error hierarchy for job triggering, tracking and dashboard refreshes."""

from __future__ import annotations

from typing import Mapping


class JobTrackingError(Exception):
    """Base class for every error raised by the tracking core."""


class ValidationError(JobTrackingError, ValueError):
    """Input rejected locally; no request was sent."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class TransportError(JobTrackingError):
    """Network failure or non-2xx HTTP response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteError(JobTrackingError):
    """Backend answered with ``success: false`` or an unreadable envelope."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class FallbackExhausted(JobTrackingError):
    """Sequential tracking fell back to single-job polling and that failed too."""

    def __init__(self, job_id: int, cause: BaseException) -> None:
        self.job_id = job_id
        super().__init__(
            f"Fallback polling for job {job_id} failed after chunk tracking was unavailable: {cause}"
        )
        self.__cause__ = cause


class DashboardRefreshError(JobTrackingError):
    """One or more dashboard constituents failed during a refresh."""

    def __init__(self, failures: Mapping[str, BaseException]) -> None:
        self.failures = dict(failures)
        summary = "; ".join(f"{name}: {exc}" for name, exc in self.failures.items())
        super().__init__(f"Dashboard refresh incomplete ({summary})")
