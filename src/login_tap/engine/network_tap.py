"""Best-effort tap on the browser's outbound request stream.

Listens to ``on("request")`` on a Playwright event source (the browser
context, so popups are covered) and forwards each request as a
``NetworkRequestEvent`` into a bounded queue. A separate task drains the
queue in order and hands every event to a consumer. Zero extra network
requests. Only the site's own traffic is observed.

Overflow policy: when the queue is full the event is dropped and counted.
The login flow sends very few qualifying requests, so the tap never blocks
the browser's event dispatch.
"""
import asyncio
import logging
from typing import Any, Protocol

from ..models import NetworkRequestEvent

log = logging.getLogger(__name__)

# Maximum queued events before new ones are dropped.
QUEUE_CAPACITY = 100


class EventConsumer(Protocol):
    async def handle(self, event: NetworkRequestEvent) -> Any:
        ...


class NetworkTap:
    """Forward request events from a Playwright emitter to a consumer task."""

    def __init__(self, source: Any, maxsize: int = QUEUE_CAPACITY):
        self._source = source
        self._queue: asyncio.Queue[NetworkRequestEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()
        self._listening = False
        self.forwarded = 0
        self.dropped = 0

    def start(self):
        """Register request/close listeners on the source."""
        if self._listening:
            return
        self._source.on("request", self._on_request)
        self._source.on("close", self._on_close)
        self._listening = True
        log.debug("NetworkTap started")

    def stop(self):
        """Remove listeners and mark the stream closed."""
        if not self._listening:
            return
        for name, handler in (("request", self._on_request), ("close", self._on_close)):
            try:
                self._source.remove_listener(name, handler)
            except Exception:
                log.debug(f"NetworkTap: could not remove {name} listener", exc_info=True)
        self._listening = False
        self._closed.set()
        log.debug(f"NetworkTap stopped (forwarded={self.forwarded}, dropped={self.dropped})")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _on_request(self, request):
        try:
            event = NetworkRequestEvent.from_request(request)
        except Exception as e:
            log.debug(f"NetworkTap: unreadable request: {e}")
            return
        self.offer(event)

    def _on_close(self, *_args):
        log.debug("NetworkTap: event source closed")
        self._closed.set()

    def offer(self, event: NetworkRequestEvent) -> bool:
        """Queue *event* without blocking. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            log.debug(f"NetworkTap: queue full, dropped {event.url[:80]}")
            return False
        self.forwarded += 1
        return True

    async def _next(self) -> NetworkRequestEvent | None:
        """Next queued event, or None once the source is closed and drained."""
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self._closed.is_set():
            return None
        get = asyncio.ensure_future(self._queue.get())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({get, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            if not get.done():
                get.cancel()
        if get.done() and not get.cancelled():
            return get.result()
        return None if self._queue.empty() else self._queue.get_nowait()

    async def run(self, consumer: EventConsumer) -> None:
        """Feed queued events to *consumer* in arrival order.

        Returns when the source is closed and the queue drained; otherwise
        runs until cancelled. Consumer errors are logged and skipped.
        """
        while True:
            event = await self._next()
            if event is None:
                log.debug("NetworkTap: stream drained, consumer loop finished")
                return
            try:
                await consumer.handle(event)
            except Exception as e:
                log.warning(f"NetworkTap: consumer failed on {event.url[:80]}: {e}")
