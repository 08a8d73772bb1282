"""Concurrency Gate — the bounded slot pool shared by one Hydrator.

Every resolver or method call made while hydrating an object graph runs
inside ``async with gate.slot()``. The gate is created once per
``Hydrator`` and handed to every recursive call, so its capacity bounds
the calls in flight across the whole graph, nested records included.

A slot is held only for the duration of one resolver call. Nested
hydrations and sequence-element hydrations never hold a slot while they
wait for slots of their own, which is what keeps a capacity of 1 from
deadlocking on a deep graph.

The count of held slots lives on the gate itself, under a thread lock, so
the bound holds for the whole instance even when one Hydrator is driven
from several threads or event loops at once (``hydrate_sync`` from a
thread pool, for example). A caller that finds the gate full parks on a
future of its own loop; a release wakes the oldest parked caller through
``call_soon_threadsafe``, whichever loop it runs on.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from hydrator.core.errors import ConfigError
from hydrator.core.logging import get_logger

logger = get_logger(__name__)


class ConcurrencyGate:
    """Instance-wide slot pool with in-flight and peak counters.

    Parameters
    ----------
    capacity : int
        Maximum simultaneous resolver calls (default 10).
    """

    def __init__(self, capacity: int = 10) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigError(f"Concurrency limit must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._lock = threading.Lock()
        self._waiters: deque[tuple[asyncio.AbstractEventLoop, asyncio.Future[None]]] = deque()
        self._in_flight = 0
        self._peak = 0

    async def _acquire(self) -> int:
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._in_flight < self._capacity:
                    self._in_flight += 1
                    self._peak = max(self._peak, self._in_flight)
                    return self._in_flight
                waiter: asyncio.Future[None] = loop.create_future()
                self._waiters.append((loop, waiter))
            try:
                await waiter
            except asyncio.CancelledError:
                with self._lock:
                    try:
                        self._waiters.remove((loop, waiter))
                    except ValueError:
                        # already woken; hand the wake-up on
                        self._wake_next()
                raise

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
            self._wake_next()

    def _wake_next(self) -> None:
        # caller holds self._lock
        while self._waiters:
            loop, waiter = self._waiters.popleft()
            if loop.is_closed() or waiter.done():
                continue
            loop.call_soon_threadsafe(_set_if_pending, waiter)
            return

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one unit of the gate; released on exit, error or cancellation."""
        in_flight = await self._acquire()
        logger.debug("gate.acquired", in_flight=in_flight, capacity=self._capacity)
        try:
            yield
        finally:
            self._release()

    # ── Inspection ───────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        """Slots currently held."""
        return self._in_flight

    @property
    def waiting(self) -> int:
        """Callers parked until a slot frees up."""
        return len(self._waiters)

    @property
    def peak(self) -> int:
        """Highest number of slots held at once since creation or ``reset_peak``."""
        return self._peak

    def reset_peak(self) -> None:
        with self._lock:
            self._peak = self._in_flight

    def __repr__(self) -> str:
        return f"ConcurrencyGate(capacity={self._capacity}, in_flight={self._in_flight})"


def _set_if_pending(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)
