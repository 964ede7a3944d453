"""Replay-last-value streams used for every reactive view of the catalog."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateStream(Generic[T]):
    """Holds the latest value and pushes every new one to subscribers.

    New subscribers receive the current value immediately. ``watch()`` is a
    restartable async iterator that conflates: a slow consumer only ever
    sees the newest value, never a backlog.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*, replay the current value to it, return an unsubscriber."""
        with self._lock:
            self._subscribers.append(callback)
            current = self._value
        callback(current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def watch(self) -> AsyncIterator[T]:
        loop = asyncio.get_running_loop()
        latest: list[T] = []
        ready = asyncio.Event()

        def _deliver(value: T) -> None:
            latest[:] = [value]
            ready.set()

        def _on_value(value: T) -> None:
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(_deliver, value)

        unsubscribe = self.subscribe(_on_value)
        try:
            while True:
                await ready.wait()
                ready.clear()
                value = latest.pop()
                yield value
        finally:
            unsubscribe()
