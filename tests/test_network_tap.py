"""Tests for NetworkTap forwarding, overflow and shutdown."""
import asyncio

import pytest

from login_tap.engine.network_tap import QUEUE_CAPACITY, NetworkTap
from login_tap.models import NetworkRequestEvent

from conftest import make_request


class Collector:
    def __init__(self):
        self.events = []

    async def handle(self, event):
        self.events.append(event)


def test_start_stop_registers_and_removes_listeners(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    tap.start()
    assert len(emitter.handlers["request"]) == 1
    assert len(emitter.handlers["close"]) == 1

    tap.stop()
    assert emitter.handlers["request"] == []
    assert emitter.handlers["close"] == []
    assert tap.closed


def test_request_event_converted(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    emitter.emit("request", make_request("https://example.com/a", "x=1"))
    event = tap._queue.get_nowait()
    assert event == NetworkRequestEvent(url="https://example.com/a", body="x=1", method="POST")


def test_overflow_drops_silently(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    for i in range(QUEUE_CAPACITY + 5):
        emitter.emit("request", make_request(f"https://example.com/{i}"))
    assert tap._queue.qsize() == QUEUE_CAPACITY
    assert tap.forwarded == QUEUE_CAPACITY
    assert tap.dropped == 5


def test_offer_reports_drop():
    tap = NetworkTap(None, maxsize=1)
    assert tap.offer(NetworkRequestEvent(url="a"))
    assert not tap.offer(NetworkRequestEvent(url="b"))


@pytest.mark.asyncio
async def test_run_preserves_order_and_finishes_on_close(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    collector = Collector()
    task = asyncio.create_task(tap.run(collector))

    for i in range(3):
        emitter.emit("request", make_request(f"https://example.com/{i}"))
        await asyncio.sleep(0)
    emitter.emit("close", None)

    await asyncio.wait_for(task, timeout=1)
    assert [e.url for e in collector.events] == [f"https://example.com/{i}" for i in range(3)]


@pytest.mark.asyncio
async def test_run_drains_queue_before_finishing(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    for i in range(4):
        emitter.emit("request", make_request(f"https://example.com/{i}"))
    tap.stop()

    collector = Collector()
    await asyncio.wait_for(tap.run(collector), timeout=1)
    assert len(collector.events) == 4


@pytest.mark.asyncio
async def test_run_can_be_cancelled_while_idle(emitter):
    tap = NetworkTap(emitter)
    tap.start()
    task = asyncio.create_task(tap.run(Collector()))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_consumer_error_does_not_stop_loop(emitter):
    class Flaky:
        def __init__(self):
            self.seen = []

        async def handle(self, event):
            self.seen.append(event.url)
            if len(self.seen) == 1:
                raise ValueError("boom")

    tap = NetworkTap(emitter)
    tap.start()
    emitter.emit("request", make_request("https://example.com/1"))
    emitter.emit("request", make_request("https://example.com/2"))
    tap.stop()

    flaky = Flaky()
    await asyncio.wait_for(tap.run(flaky), timeout=1)
    assert flaky.seen == ["https://example.com/1", "https://example.com/2"]


def test_unreadable_body_becomes_none(emitter):
    class BinaryRequest:
        url = "https://example.com/bin"
        method = "POST"

        @property
        def post_data(self):
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    tap = NetworkTap(emitter)
    tap.start()
    emitter.emit("request", BinaryRequest())
    assert tap._queue.get_nowait().body is None
