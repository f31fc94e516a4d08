"""Bounded pool of filesystem handle tickets shared by every cache operation."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from webparity.metrics import MetricsSink, NullMetrics

DEFAULT_MAX_HANDLES = 50
DEFAULT_WAIT_INTERVAL = 0.05


@dataclass(slots=True)
class HandleTicket:
    """A lease on one handle slot. Must be released exactly once."""

    number: int
    category: str
    released: bool = field(default=False, compare=False)


class HandleLimiter:
    """Caps the number of outstanding handle tickets.

    Waiters are woken when a ticket is released and also re-check the count
    every ``wait_interval`` seconds. Service order is not guaranteed to follow
    arrival order.
    """

    def __init__(
        self,
        max_handles: int = DEFAULT_MAX_HANDLES,
        wait_interval: float = DEFAULT_WAIT_INTERVAL,
        metrics: MetricsSink | None = None,
    ) -> None:
        if max_handles < 1:
            raise ValueError("max_handles must be >= 1")
        self._max_handles = max_handles
        self._wait_interval = max(wait_interval, 0.0)
        self._metrics = metrics or NullMetrics()
        self._in_use = 0
        self._condition = asyncio.Condition()
        self._numbers = itertools.count(1)

    @property
    def max_handles(self) -> int:
        return self._max_handles

    @property
    def in_use(self) -> int:
        return self._in_use

    async def acquire(self, category: str = "fs") -> HandleTicket:
        async with self._condition:
            while self._in_use >= self._max_handles:
                try:
                    await asyncio.wait_for(self._condition.wait(), timeout=self._wait_interval or None)
                except asyncio.TimeoutError:
                    continue
            self._in_use += 1
        self._metrics.increment(category)
        return HandleTicket(number=next(self._numbers), category=category)

    async def release(self, ticket: HandleTicket) -> None:
        if ticket.released:
            raise RuntimeError(f"handle ticket {ticket.number} released twice")
        ticket.released = True
        # The count drops before any await so a cancelled release cannot leak a slot.
        self._in_use -= 1
        self._metrics.decrement(ticket.category)
        async with self._condition:
            self._condition.notify()

    @asynccontextmanager
    async def ticket(self, category: str = "fs") -> AsyncIterator[HandleTicket]:
        held = await self.acquire(category)
        try:
            yield held
        finally:
            await self.release(held)
