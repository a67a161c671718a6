"""Startup jitter and fixed-rate ticking for pollers."""

import asyncio
import math
import random
import time
from collections.abc import Awaitable, Callable

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def startup_jitter(max_jitter: float, rng: random.Random | None = None) -> float:
    """Return a random startup delay in ``[0, max_jitter)`` seconds.

    Args:
        max_jitter: Upper bound (exclusive). Values <= 0 disable jitter.
        rng: Random source, defaults to the module-level generator.
    """
    if max_jitter <= 0:
        return 0.0
    source = rng if rng is not None else random
    # the product can round up to max_jitter itself
    return min(source.random() * max_jitter, math.nextafter(max_jitter, 0.0))


class FixedRateTicker:
    """Timer firing at ``start + n * period``.

    When a caller overruns one or more periods, the next ``tick()`` returns
    immediately and the following one waits for the first grid point after
    that moment. Missed ticks are never replayed in a burst.

    Args:
        period: Seconds between ticks. Must be positive.
        start: Clock reading of the first tick.
        clock: Monotonic clock, ``time.monotonic`` by default.
        sleep: Coroutine function used to wait, ``asyncio.sleep`` by default.
    """

    def __init__(
        self,
        period: float,
        start: float,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.period = period
        self._anchor = start
        self._next = start
        self._clock = clock
        self._sleep = sleep

    @property
    def next_deadline(self) -> float:
        """Clock reading at which the next tick is due."""
        return self._next

    async def tick(self) -> float:
        """Wait for the next tick and return its scheduled deadline."""
        deadline = self._next
        now = self._clock()
        if now < deadline:
            await self._sleep(deadline - now)
            self._next = deadline + self.period
            return deadline

        # Overrun: fire now, resume on the first grid point after now.
        missed = math.floor((now - self._anchor) / self.period) + 1
        self._next = max(deadline + self.period, self._anchor + missed * self.period)
        return deadline
