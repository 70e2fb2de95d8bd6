"""Human-readable rendering of durations and progress snapshots."""

from __future__ import annotations

import math

from core.types import ProgressSnapshot, SequentialSnapshot

_MINUTE_MS = 60_000
_HOUR_MS = 3_600_000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_estimated_time(ms: int | float | None) -> str:
    """Format an ETA in milliseconds as whole seconds, minutes or hours.

    Example::

        format_estimated_time(90_000)  # → '2 minutes'
    """
    if ms is None:
        return "unknown"
    ms = max(0.0, float(ms))
    if ms < _MINUTE_MS:
        return f"{_round_half_up(ms / 1000)} seconds"
    if ms < _HOUR_MS:
        return f"{_round_half_up(ms / _MINUTE_MS)} minutes"
    return f"{_round_half_up(ms / _HOUR_MS)} hours"


def describe_snapshot(snapshot: ProgressSnapshot | SequentialSnapshot) -> str:
    """One-line status summary used by the CLI."""
    if isinstance(snapshot, SequentialSnapshot):
        percentage = snapshot.progress_percentage or 0.0
        text = f"job {snapshot.parent_job_id} {snapshot.overall_status} {percentage:.0f}%"
        if snapshot.total_chunks:
            text += f" ({snapshot.completed_chunks or 0}/{snapshot.total_chunks} chunks)"
        return text

    text = f"job {snapshot.job_id} {snapshot.status} {snapshot.progress_percentage:.0f}%"
    if snapshot.total_units:
        text += f" ({snapshot.processed_units}/{snapshot.total_units} schemes)"
    if snapshot.current_step:
        text += f" - {snapshot.current_step}"
    if snapshot.estimated_time_remaining_ms is not None and not snapshot.is_terminal:
        text += f", ~{format_estimated_time(snapshot.estimated_time_remaining_ms)} left"
    return text
