from __future__ import annotations

import asyncio

import pytest

from core.dashboard import DashboardAggregator
from core.errors import DashboardRefreshError, RemoteError
from core.poller import ProgressPoller

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class StubResource:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


def _dashboard(api, nav, clock=None, **kwargs) -> DashboardAggregator:
    return DashboardAggregator(api, nav, cooldown_seconds=5.0, clock=clock or FakeClock(), **kwargs)


async def _drain(dashboard: DashboardAggregator) -> None:
    while dashboard._tasks:
        await asyncio.gather(*list(dashboard._tasks), return_exceptions=True)


def test_refresh_twice_within_cooldown_fetches_once(fake_api_cls, fake_nav_cls):
    api = fake_api_cls()
    nav = fake_nav_cls()
    clock = FakeClock()

    async def run():
        dashboard = _dashboard(api, nav, clock)
        first = dashboard.refresh()
        clock.now += 1.0
        second = dashboard.refresh()
        await _drain(dashboard)
        return first, second

    first, second = asyncio.run(run())

    assert (first, second) == (True, False)
    assert api.count("list_jobs") == 1
    assert api.count("list_active") == 1
    assert nav.calls.count(("get_statistics",)) == 1


def test_refresh_after_cooldown_fetches_again(fake_api_cls, fake_nav_cls):
    api = fake_api_cls()
    clock = FakeClock()

    async def run():
        dashboard = _dashboard(api, fake_nav_cls(), clock)
        dashboard.refresh()
        await _drain(dashboard)
        clock.now += 5.0
        scheduled = dashboard.refresh()
        await _drain(dashboard)
        return scheduled

    assert asyncio.run(run()) is True
    assert api.count("list_jobs") == 2


def test_failed_constituent_keeps_previous_value_and_does_not_block_siblings(fake_api_cls, fake_nav_cls):
    api = fake_api_cls(
        active=[{"jobId": 1, "status": "running", "progressPercentage": 10}],
        jobs=[{"id": 1, "job_type": "daily", "status": "running"}],
    )
    nav = fake_nav_cls(bookmarks=[{"id": 1, "scheme_code": 119551, "scheme_name": "Alpha"}])

    async def run():
        dashboard = _dashboard(api, nav)
        first = await dashboard.refresh_all()
        nav.failures["check_today"] = RemoteError("today check failed")
        api.active = []
        second = await dashboard.refresh_all()
        return dashboard, first, second

    dashboard, first, second = asyncio.run(run())

    assert first.errors == {}
    assert second.today_status == first.today_status
    assert second.active_jobs == []
    assert second.statistics.total_schemes_tracked == 3
    assert second.bookmarks[0].scheme_code == "119551"
    assert second.errors == {"today_status": "today check failed"}
    assert isinstance(dashboard.error, DashboardRefreshError)
    assert list(dashboard.error.failures) == ["today_status"]


def test_error_clears_after_successful_refresh(fake_api_cls, fake_nav_cls):
    nav = fake_nav_cls()
    nav.failures["get_statistics"] = RemoteError("stats down")

    async def run():
        dashboard = _dashboard(fake_api_cls(), nav)
        await dashboard.refresh_all()
        had_error = dashboard.error is not None
        nav.failures.clear()
        view = await dashboard.refresh_all()
        return dashboard, had_error, view

    dashboard, had_error, view = asyncio.run(run())

    assert had_error
    assert dashboard.error is None
    assert view.errors == {}
    assert view.statistics is not None


def test_listeners_receive_each_view_and_failures_are_contained(fake_api_cls, fake_nav_cls):
    seen = []

    def broken(_view):
        raise RuntimeError("listener bug")

    async def run():
        dashboard = _dashboard(fake_api_cls(), fake_nav_cls())
        dashboard.subscribe(broken)
        unsubscribe = dashboard.subscribe(seen.append)
        await dashboard.refresh_all()
        unsubscribe()
        await dashboard.refresh_all()

    asyncio.run(run())
    assert len(seen) == 1


def test_close_tears_down_and_silences_listeners(fake_api_cls, fake_nav_cls):
    seen = []
    resource = StubResource()

    async def run():
        dashboard = _dashboard(fake_api_cls(), fake_nav_cls())
        dashboard.subscribe(seen.append)
        dashboard.adopt(resource)
        dashboard.start_auto_refresh(0.01)
        assert dashboard.refresh() is True
        dashboard.close()
        await asyncio.sleep(0.05)
        return dashboard

    dashboard = asyncio.run(run())

    assert seen == []
    assert resource.stopped
    assert dashboard.refresh() is False
    assert dashboard._auto_task is None


def test_adopt_releases_pollers_that_stopped_polling(fake_api_cls, fake_nav_cls, snapshots):
    api = fake_api_cls(progress={5: [snapshots.done(5)], 6: [snapshots.running(6, 10)]})

    async def run():
        dashboard = _dashboard(api, fake_nav_cls())
        finished = dashboard.adopt(ProgressPoller(api, interval_seconds=0))
        await finished.start(5)
        live = dashboard.adopt(ProgressPoller(api, interval_seconds=0))
        live.start(6)
        adopted = list(dashboard._adopted)
        dashboard.close()
        return finished, live, adopted

    finished, live, adopted = asyncio.run(run())

    assert adopted == [live]
    assert live.is_polling is False


def test_auto_refresh_respects_cooldown(fake_api_cls, fake_nav_cls):
    api = fake_api_cls()

    async def run():
        dashboard = DashboardAggregator(api, fake_nav_cls(), cooldown_seconds=60.0)
        dashboard.start_auto_refresh(0.01)
        await asyncio.sleep(0.1)
        await dashboard.aclose()

    asyncio.run(run())
    assert api.count("list_jobs") == 1


def test_bookmarks_use_configured_page_size(fake_api_cls, fake_nav_cls):
    nav = fake_nav_cls(bookmarks=[{"id": i, "scheme_name": f"S{i}"} for i in range(1, 6)])

    view = asyncio.run(_dashboard(fake_api_cls(), nav, bookmarks_page_size=2).refresh_all())

    assert [b.id for b in view.bookmarks] == [1, 2]
