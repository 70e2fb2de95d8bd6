"""Local input checks performed before anything reaches the network."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable

from core.errors import ValidationError
from core.types import DateRange, JobHandle


def require_job_id(job_id: Any) -> int:
    """Return ``job_id`` as a positive int or raise ``ValidationError``."""
    if isinstance(job_id, JobHandle):
        job_id = job_id.job_id
    if isinstance(job_id, bool) or not isinstance(job_id, int) or job_id <= 0:
        raise ValidationError(f"Invalid job id: {job_id!r}", field="job_id")
    return job_id


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}", field=field)


def coerce_date_range(start: Any, end: Any) -> DateRange:
    return DateRange(start=parse_date(start, "start_date"), end=parse_date(end, "end_date"))


def validate_date_range(date_range: DateRange, *, today: date, max_span_days: int) -> DateRange:
    if date_range.start > date_range.end:
        raise ValidationError("Start date cannot be after end date", field="start_date")
    if date_range.end > today:
        raise ValidationError("End date cannot be in the future", field="end_date")
    if date_range.day_count > max_span_days:
        raise ValidationError(
            f"Date range covers {date_range.day_count} days; the maximum is {max_span_days}",
            field="end_date",
        )
    return date_range


def validate_scheme_ids(scheme_ids: Iterable[Any] | None) -> list[int] | None:
    if scheme_ids is None:
        return None
    ids: list[int] = []
    for value in scheme_ids:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"Invalid scheme id: {value!r}", field="scheme_ids")
        if value not in ids:
            ids.append(value)
    if not ids:
        raise ValidationError("scheme_ids cannot be empty", field="scheme_ids")
    return ids
