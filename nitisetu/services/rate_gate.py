"""Process-wide pacing for outbound Gemini requests.

Every call to the remote model, whichever feature it serves, passes
through one :class:`RateGate` so that consecutive requests start at
least ``min_gap`` seconds apart. The clock and sleep function are
injectable so tests can drive time deterministically.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Final

import structlog

from config.settings import settings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_MIN_GAP_SECONDS: Final[float] = 2.0

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateGate:
    """Minimum-spacing gate shared by all outbound AI requests.

    Parameters
    ----------
    min_gap:
        Minimum number of seconds between two granted acquisitions.
    clock:
        Monotonic time source in seconds.
    sleep:
        Async sleep used to wait out the remaining gap.
    """

    def __init__(
        self,
        min_gap: float = DEFAULT_MIN_GAP_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._min_gap = min_gap
        self._clock = clock
        self._sleep = sleep
        self._last_granted: float | None = None
        # Serialises read-wait-stamp so concurrent callers cannot both
        # observe the same stale timestamp. One lock per event loop.
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def min_gap(self) -> float:
        return self._min_gap

    @property
    def last_granted(self) -> float | None:
        return self._last_granted

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def acquire(self) -> float:
        """Wait until the gap since the last grant has elapsed.

        Returns the number of seconds the caller was held back.
        """
        async with self._get_lock():
            waited = 0.0
            if self._last_granted is not None:
                elapsed = self._clock() - self._last_granted
                if elapsed < self._min_gap:
                    waited = self._min_gap - elapsed
                    logger.debug("rate_gate.wait", wait_seconds=round(waited, 3))
                    await self._sleep(waited)
            self._last_granted = self._clock()
            return waited

    def reset(self) -> None:
        self._last_granted = None


# Module-level singleton shared by every outbound call in the process.
rate_gate = RateGate(min_gap=settings.min_request_gap_seconds)
