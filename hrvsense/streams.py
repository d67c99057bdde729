"""
Cancellable push streams shared by the companion channel and the monitor.

A `Subscription` is fed by `push()` (from any thread) and consumed with
`async for`. Once closed it yields nothing more and its close callback has run
exactly once. Use it as an async context manager so cancellation of the
consumer also closes it; a subscription dropped without closing runs its
close callback when it is garbage collected.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    def __init__(self, on_close: Callable[[], None] | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        # The callback must not reference this subscription or it is never collected.
        self._release = weakref.finalize(self, on_close) if on_close is not None else None

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: object) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def push(self, item: T) -> None:
        if self._closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(item)
        else:
            self._loop.call_soon_threadsafe(self._put, item)

    def close(self) -> None:
        """Stop emissions and release the producer. Call from the owning loop."""
        if self._closed:
            return
        self._closed = True
        # Wake a consumer parked on get().
        self._queue.put_nowait(_CLOSED)
        if self._release is not None:
            self._release()

    def complete(self) -> None:
        """End the stream once already-queued items have been consumed."""
        if not self._closed:
            self._queue.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        self.close()

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            self.close()
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class StateFlow(Generic[T]):
    """Observable value with a single writer and any number of readers."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: weakref.WeakSet[Subscription[T]] = weakref.WeakSet()

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        for subscriber in list(self._subscribers):
            subscriber.push(value)

    def subscribe(self) -> Subscription[T]:
        """Subscribe to changes; the current value is delivered first."""
        subscription: Subscription[T] = Subscription()
        self._subscribers.add(subscription)
        subscription.push(self._value)
        return subscription

    @property
    def subscriber_count(self) -> int:
        return sum(1 for subscriber in self._subscribers if not subscriber.closed)


__all__ = ["StateFlow", "Subscription"]
