"""Change Stream — replaying publisher of the full cache contents.

Invariants:
    - Every subscriber receives the latest value immediately on subscribe
    - Values are delivered in publish order
    - A failing callback never interrupts the publishing cache mutation
    - A full subscriber queue drops its oldest value, never the newest

Design Decisions:
    - Callbacks for synchronous UI binding, asyncio.Queue for async consumers
    - Bounded queues (128): a stalled consumer cannot grow memory without limit
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUEUE_MAXSIZE = 128


class ChangeStream(Generic[T]):
    """Holds the latest value and fans it out to subscribers."""

    def __init__(self, initial: T):
        self._value = initial
        self._callbacks: list[Callable[[T], None]] = []
        self._queues: list[asyncio.Queue] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._callbacks.append(callback)
        self._deliver(callback, self._value)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def register_queue(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_MAXSIZE)
        queue.put_nowait(self._value)
        self._queues.append(queue)
        return queue

    def unregister_queue(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def publish(self, value: T) -> None:
        self._value = value
        for callback in list(self._callbacks):
            self._deliver(callback, value)
        for queue in self._queues:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(value)

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Change stream subscriber failed")
