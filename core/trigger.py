"""Validated entry points that start download jobs on the backend."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable

import config
from core.errors import RemoteError
from core.job_api import JobAPI
from core.types import DailyTriggerResult, DateRange, HistoricalTriggerResult, JobKind
from core.validation import validate_date_range, validate_scheme_ids

logger = logging.getLogger(__name__)


class JobTrigger:
    """Starts daily and historical downloads.

    Triggering never starts polling; callers hand the returned job id to a
    poller themselves. When ``already_exists`` is set, the id belongs to a job
    that is already running and must not get a second poller.
    """

    def __init__(
        self,
        api: JobAPI,
        *,
        max_span_days: int | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.api = api
        self.max_span_days = max_span_days if max_span_days is not None else config.HISTORICAL_MAX_SPAN_DAYS
        self._today = today

    async def trigger_daily(self) -> DailyTriggerResult:
        receipt = await self.api.trigger(JobKind.DAILY)
        if receipt.already_exists:
            logger.info("Daily download already in progress or complete (job %s).", receipt.job_id)
        else:
            logger.info("Daily download started as job %s.", receipt.job_id)
        return DailyTriggerResult(
            job_id=receipt.job_id,
            already_exists=receipt.already_exists,
            message=receipt.message,
            created_at=receipt.requested_at,
        )

    async def trigger_historical(
        self,
        date_range: DateRange,
        scheme_ids: Iterable[Any] | None = None,
    ) -> HistoricalTriggerResult:
        validate_date_range(date_range, today=self._today(), max_span_days=self.max_span_days)
        ids = validate_scheme_ids(scheme_ids)

        params: dict[str, Any] = {
            "start_date": date_range.start.isoformat(),
            "end_date": date_range.end.isoformat(),
        }
        if ids is not None:
            params["scheme_ids"] = ids

        receipt = await self.api.trigger(JobKind.HISTORICAL, params)
        if receipt.job_id <= 0:
            raise RemoteError("Historical download was accepted without a job id")
        logger.info(
            "Historical download %s..%s %s as job %s.",
            params["start_date"],
            params["end_date"],
            "already running" if receipt.already_exists else "started",
            receipt.job_id,
        )
        return HistoricalTriggerResult(
            job_id=receipt.job_id,
            estimated_time_ms=receipt.estimated_time_ms,
            already_exists=receipt.already_exists,
            message=receipt.message,
            created_at=receipt.requested_at,
        )
