"""Download trigger, tracking, cancellation and progress routes."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

from fastapi import APIRouter, Body, Depends, Path
from fastapi.responses import JSONResponse, StreamingResponse

import config
from core.tracking import JobTrackingService, TrackedJob
from core.types import JobStatus, SequentialSnapshot, UnitError
from core.validation import coerce_date_range
from utils.formatting import format_estimated_time
from web.api_utils import not_found_response, sse_comment, sse_event
from web.dependencies import get_tracking_service
from web.schemas import (
    CancelResponse,
    HistoricalDownloadRequest,
    JobProgressResponse,
    TrackedJobsResponse,
    TrackRequest,
    TriggerResponse,
)

router = APIRouter(prefix="/api/downloads", tags=["downloads"])

SSE_HEARTBEAT_INTERVAL_SECONDS: float = 15.0


def _job_status(entry: TrackedJob, cancelled: bool) -> str:
    if cancelled:
        return JobStatus.CANCELLED
    if entry.error is not None:
        return "error"
    snapshot = entry.snapshot
    if snapshot is None:
        return "stopped" if entry.stopped else JobStatus.PENDING
    if isinstance(snapshot, SequentialSnapshot):
        return snapshot.overall_status
    return snapshot.status


def _unit_errors(entry: TrackedJob) -> list[UnitError]:
    snapshot = entry.snapshot
    if snapshot is None:
        return []
    if isinstance(snapshot, SequentialSnapshot):
        return [error for chunk in snapshot.per_chunk for error in chunk.errors]
    return list(snapshot.errors)


def progress_payload(entry: TrackedJob, *, cancelled: bool = False) -> JobProgressResponse:
    """Convierte el estado de un job seguido en el payload público de progreso."""
    errors = _unit_errors(entry)
    payload: dict[str, Any] = {
        "job_id": entry.job_id,
        "sequential": entry.sequential,
        "status": str(_job_status(entry, cancelled)),
        "errors": [
            {"unit_key": error.unit_key, "message": error.message}
            for error in errors[: config.UNIT_ERROR_DISPLAY_LIMIT]
        ],
        "error_count": len(errors),
        "error": str(entry.error) if entry.error is not None else None,
        "tracking": entry.active,
    }

    snapshot = entry.snapshot
    if isinstance(snapshot, SequentialSnapshot):
        payload.update(
            progress_percentage=snapshot.progress_percentage or 0.0,
            completed_chunks=snapshot.completed_chunks,
            total_chunks=snapshot.total_chunks,
        )
        snapshot = snapshot.per_chunk[-1] if len(snapshot.per_chunk) == 1 else None
    if snapshot is not None:
        eta = None if snapshot.is_terminal else snapshot.estimated_time_remaining_ms
        payload.setdefault("progress_percentage", snapshot.progress_percentage)
        payload.update(
            current_step=snapshot.current_step or None,
            processed_units=snapshot.processed_units,
            total_units=snapshot.total_units,
            processed_records=snapshot.processed_records,
            estimated_time_remaining_ms=eta,
            estimated_time_text=format_estimated_time(eta) if eta is not None else None,
        )
    return JobProgressResponse(**payload)


def _trigger_response(result: Any, entry: TrackedJob | None, tracking: JobTrackingService) -> TriggerResponse:
    estimated = getattr(result, "estimated_time_ms", None)
    return TriggerResponse(
        job_id=result.job_id,
        already_exists=result.already_exists,
        message=result.message,
        estimated_time_ms=estimated,
        estimated_time_text=format_estimated_time(estimated) if estimated is not None else None,
        tracking=entry is not None,
        progress=(
            progress_payload(entry, cancelled=tracking.is_cancelled(entry.job_id))
            if entry is not None
            else None
        ),
    )


@router.get("", response_model=TrackedJobsResponse)
def list_tracked_jobs(
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> TrackedJobsResponse:
    return TrackedJobsResponse(
        jobs=[
            progress_payload(entry, cancelled=tracking.is_cancelled(entry.job_id))
            for entry in tracking.jobs
        ]
    )


@router.post("/daily", response_model=TriggerResponse)
async def trigger_daily(
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> TriggerResponse:
    result, entry = await tracking.trigger_daily()
    return _trigger_response(result, entry, tracking)


@router.post("/historical", response_model=TriggerResponse)
async def trigger_historical(
    data: HistoricalDownloadRequest = Body(...),
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> TriggerResponse:
    date_range = coerce_date_range(data.start_date, data.end_date)
    result, entry = await tracking.trigger_historical(
        date_range, data.scheme_ids, sequential=data.sequential
    )
    return _trigger_response(result, entry, tracking)


@router.post("/{job_id}/track", response_model=JobProgressResponse)
async def track_job(
    job_id: int = Path(...),
    data: TrackRequest = Body(default_factory=TrackRequest),
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> JobProgressResponse:
    entry = tracking.track(job_id, sequential=data.sequential)
    return progress_payload(entry, cancelled=tracking.is_cancelled(job_id))


@router.get("/{job_id}/progress", response_model=JobProgressResponse)
def job_progress(
    job_id: int = Path(...),
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> JobProgressResponse | JSONResponse:
    entry = tracking.get(job_id)
    if entry is None:
        return not_found_response(f"Job {job_id} is not being tracked")
    return progress_payload(entry, cancelled=tracking.is_cancelled(job_id))


@router.get("/{job_id}/progress/stream")
async def progress_stream(
    job_id: int = Path(...),
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> StreamingResponse:
    async def event_stream():
        last_signature: str | None = None
        last_heartbeat_at = time.monotonic()
        progress_version = tracking.get_progress_version()
        try:
            while True:
                entry = tracking.get(job_id)
                if entry is None:
                    yield sse_event("missing", {"job_id": job_id})
                    return

                payload = progress_payload(
                    entry, cancelled=tracking.is_cancelled(job_id)
                ).model_dump(mode="json", exclude_none=True)
                signature = json.dumps(payload, sort_keys=True, separators=(",", ":"))

                if signature != last_signature:
                    last_signature = signature
                    yield sse_event("progress", payload)

                if not entry.active:
                    yield sse_event("done", payload)
                    return

                now = time.monotonic()
                wait = max(
                    0.1, SSE_HEARTBEAT_INTERVAL_SECONDS - (now - last_heartbeat_at)
                )
                progress_version = await tracking.wait_for_progress_change(
                    progress_version, wait
                )

                now = time.monotonic()
                if now - last_heartbeat_at >= SSE_HEARTBEAT_INTERVAL_SECONDS:
                    last_heartbeat_at = now
                    yield sse_comment("heartbeat")
                    yield sse_event(
                        "heartbeat",
                        {"ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())},
                    )
        except asyncio.CancelledError:
            return

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/{job_id}", response_model=CancelResponse)
async def cancel_download(
    job_id: int = Path(...),
    tracking: JobTrackingService = Depends(get_tracking_service),
) -> CancelResponse:
    cancelled = await tracking.cancel(job_id)
    if cancelled:
        return CancelResponse(success=True, message=f"Cancel requested for job {job_id}")
    return CancelResponse(success=False, message=f"Job {job_id} already cancelled or finished")
