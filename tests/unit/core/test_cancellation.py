from __future__ import annotations

import asyncio

import pytest

from core.cancellation import CancellationController
from core.errors import TransportError, ValidationError
from core.poller import ProgressPoller
from core.types import ProgressSnapshot

pytestmark = pytest.mark.unit


class StubTracker:
    def __init__(self, current=None):
        self.current = current
        self.stopped = 0

    def stop(self):
        self.stopped += 1


def test_cancel_twice_is_a_noop_the_second_time(fake_api_cls):
    api = fake_api_cls()
    controller = CancellationController(api)

    async def run():
        return await controller.cancel(42), await controller.cancel(42)

    first, second = asyncio.run(run())

    assert (first, second) == (True, False)
    assert api.count("cancel", 42) == 1
    assert controller.is_cancelled(42)


def test_cancel_stops_attached_poller_before_remote_call(fake_api_cls, snapshots):
    api = fake_api_cls(progress={5: [snapshots.running(5, 10)]})
    controller = CancellationController(api)

    async def run():
        poller = ProgressPoller(api, interval_seconds=0)
        future = poller.start(5)
        controller.attach(5, poller)
        for _ in range(5):
            await asyncio.sleep(0)
        assert await controller.cancel(5) is True
        polls = api.count("get_progress", 5)
        for _ in range(5):
            await asyncio.sleep(0)
        return poller, future, polls

    poller, future, polls = asyncio.run(run())

    assert poller.is_polling is False
    assert not future.done()
    assert api.count("get_progress", 5) == polls
    assert api.calls[-1] == ("cancel", 5)


def test_cancel_of_terminal_job_skips_remote_call(fake_api_cls):
    api = fake_api_cls()
    controller = CancellationController(api)
    tracker = StubTracker(ProgressSnapshot(job_id=9, status="completed", progress_percentage=100))
    controller.attach(9, tracker)

    assert asyncio.run(controller.cancel(9)) is False
    assert tracker.stopped == 1
    assert api.calls == []


def test_cancelling_finished_job_twice_never_calls_backend(fake_api_cls, snapshots):
    api = fake_api_cls(progress={5: [snapshots.done(5)]})
    controller = CancellationController(api)

    async def run():
        poller = ProgressPoller(api, interval_seconds=0)
        future = poller.start(5)
        controller.attach(5, poller)
        await future
        return await controller.cancel(5), await controller.cancel(5)

    assert asyncio.run(run()) == (False, False)
    assert api.count("cancel", 5) == 0
    assert not controller.is_cancelled(5)


def test_cancel_stops_tracker_attached_after_earlier_cancel(fake_api_cls):
    api = fake_api_cls()
    controller = CancellationController(api)
    retracked = StubTracker()

    async def run():
        assert await controller.cancel(11) is True
        controller.attach(11, retracked)
        return await controller.cancel(11)

    assert asyncio.run(run()) is False
    assert retracked.stopped == 1
    assert api.count("cancel", 11) == 1


def test_detach_forgets_cancelled_and_finished_jobs(fake_api_cls):
    api = fake_api_cls()
    controller = CancellationController(api)
    controller.attach(4, StubTracker(ProgressSnapshot(job_id=4, status="failed")))

    async def run():
        await controller.cancel(3)
        await controller.cancel(4)
        controller.detach(3)
        controller.detach(4)

    asyncio.run(run())

    assert not controller.is_cancelled(3)
    assert controller._cancelled == set()
    assert controller._finished == set()


def test_detach_keeps_newer_tracker(fake_api_cls):
    controller = CancellationController(fake_api_cls())
    old, new = StubTracker(), StubTracker()
    controller.attach(6, new)

    controller.detach(6, old)

    assert controller._trackers == {6: new}


def test_remote_failure_propagates_without_marking_cancelled(fake_api_cls):
    api = fake_api_cls(cancel_error=TransportError("unavailable", status_code=503))
    controller = CancellationController(api)

    with pytest.raises(TransportError):
        asyncio.run(controller.cancel(13))
    assert not controller.is_cancelled(13)

    # The caller retries manually; nothing was retried internally.
    assert asyncio.run(controller.cancel(13)) is True
    assert api.count("cancel", 13) == 2


def test_cancel_while_in_flight_is_a_noop(fake_api_cls):
    api = fake_api_cls()
    controller = CancellationController(api)

    async def run():
        api.cancel_gate = asyncio.Event()
        first = asyncio.create_task(controller.cancel(21))
        await asyncio.sleep(0)
        second = await controller.cancel(21)
        api.cancel_gate.set()
        return await first, second

    first, second = asyncio.run(run())

    assert (first, second) == (True, False)
    assert api.count("cancel", 21) == 1


def test_cancel_rejects_invalid_ids(fake_api_cls):
    api = fake_api_cls()

    with pytest.raises(ValidationError):
        asyncio.run(CancellationController(api).cancel(0))
    assert api.calls == []
