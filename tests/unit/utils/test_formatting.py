from __future__ import annotations

import pytest

from core.types import ProgressSnapshot, SequentialSnapshot
from utils.formatting import describe_snapshot, format_estimated_time

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("ms", "expected"),
    [
        (0, "0 seconds"),
        (30_000, "30 seconds"),
        (90_000, "2 minutes"),
        (7_200_000, "2 hours"),
        (None, "unknown"),
    ],
)
def test_format_estimated_time(ms, expected):
    assert format_estimated_time(ms) == expected


def test_describe_single_and_sequential_snapshots():
    single = ProgressSnapshot(
        job_id=42,
        status="running",
        progress_percentage=30,
        total_units=10,
        processed_units=3,
        current_step="Downloading",
        estimated_time_remaining_ms=45_000,
    )
    chunked = SequentialSnapshot(
        parent_job_id=7, overall_status="running", total_chunks=4, completed_chunks=1, progress_percentage=25
    )

    assert describe_snapshot(single) == "job 42 running 30% (3/10 schemes) - Downloading, ~45 seconds left"
    assert describe_snapshot(chunked) == "job 7 running 25% (1/4 chunks)"
