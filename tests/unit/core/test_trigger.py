from __future__ import annotations

import asyncio
from datetime import date

import pytest

from core.errors import RemoteError, ValidationError
from core.trigger import JobTrigger
from core.types import DateRange, JobKind

pytestmark = pytest.mark.unit

TODAY = date(2024, 6, 30)


def _trigger(api, **kwargs) -> JobTrigger:
    return JobTrigger(api, today=lambda: TODAY, **kwargs)


def test_historical_start_after_end_fails_before_any_request(fake_api_cls):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 1}})
    trigger = _trigger(api)

    with pytest.raises(ValidationError, match="Start date cannot be after end date") as excinfo:
        asyncio.run(trigger.trigger_historical(DateRange(date(2024, 5, 2), date(2024, 5, 1))))

    assert excinfo.value.field == "start_date"
    assert api.calls == []


@pytest.mark.parametrize(
    ("date_range", "message"),
    [
        (DateRange(date(2024, 6, 1), date(2024, 7, 1)), "End date cannot be in the future"),
        (DateRange(date(2024, 1, 1), date(2024, 6, 30)), "maximum is 30"),
    ],
)
def test_historical_range_limits(fake_api_cls, date_range, message):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 1}})

    with pytest.raises(ValidationError, match=message):
        asyncio.run(_trigger(api, max_span_days=30).trigger_historical(date_range))
    assert api.calls == []


def test_historical_single_day_range_is_accepted(fake_api_cls):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 11, "estimatedTimeMs": 45000}})

    result = asyncio.run(_trigger(api).trigger_historical(DateRange(TODAY, TODAY)))

    assert result.job_id == 11
    assert result.estimated_time_ms == 45000


def test_historical_sends_iso_dates_and_deduplicated_scheme_ids(fake_api_cls):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 12}})

    asyncio.run(
        _trigger(api).trigger_historical(DateRange(date(2024, 1, 1), date(2024, 1, 31)), [5, 3, 5])
    )

    assert api.last_trigger_params == {
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "scheme_ids": [5, 3],
    }


@pytest.mark.parametrize("scheme_ids", [[], [0], ["7"], [True]])
def test_historical_rejects_bad_scheme_ids(fake_api_cls, scheme_ids):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 1}})

    with pytest.raises(ValidationError):
        asyncio.run(
            _trigger(api).trigger_historical(DateRange(date(2024, 1, 1), date(2024, 1, 2)), scheme_ids)
        )
    assert api.calls == []


def test_historical_without_job_id_is_a_remote_error(fake_api_cls):
    api = fake_api_cls(receipts={JobKind.HISTORICAL: {"jobId": 0}})

    with pytest.raises(RemoteError):
        asyncio.run(_trigger(api).trigger_historical(DateRange(date(2024, 1, 1), date(2024, 1, 2))))


def test_daily_already_exists_reports_existing_job(fake_api_cls):
    api = fake_api_cls(receipts={JobKind.DAILY: {"jobId": 42, "alreadyExists": True, "message": "running"}})

    result = asyncio.run(_trigger(api).trigger_daily())

    assert result.job_id == 42
    assert result.already_exists is True
    assert result.has_job is True
    assert result.message == "running"


def test_daily_with_nothing_to_download_has_no_job(fake_api_cls):
    api = fake_api_cls(
        receipts={JobKind.DAILY: {"jobId": 0, "alreadyExists": True, "message": "Today's NAV data already exists"}}
    )

    result = asyncio.run(_trigger(api).trigger_daily())

    assert result.has_job is False
    assert api.count("trigger", JobKind.DAILY) == 1
