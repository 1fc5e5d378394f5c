"""Bounded retry with linear backoff around every Gemini call.

:class:`ResilientInvoker` is the single chokepoint for outbound model
requests. Each attempt first passes the shared :class:`RateGate`; a
failure classified as transient (quota, rate limiting, 429/500,
transport errors) is retried after ``4s, 8s, 12s`` for the default
budget of three retries. Anything else, or the last failure once the
budget is spent, is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Final, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from config.settings import settings
from nitisetu.services.rate_gate import RateGate, Sleep, rate_gate

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_BACKOFF_STEP_SECONDS: Final[float] = 4.0

_RETRYABLE_CODES: Final[frozenset[int]] = frozenset({429, 500})

# Lower-cased fragments that mark an error as transient.
_RETRYABLE_MARKERS: Final[tuple[str, ...]] = (
    "quota",
    "rate_limit",
    "resource_exhausted",
    "xhr error",
    "rpc failed",
)


def is_retryable(exc: BaseException) -> bool:
    """Decide whether *exc* is a transient remote failure worth retrying."""
    for attr in ("status", "code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and value in _RETRYABLE_CODES:
            return True

    if isinstance(exc, httpx.TransportError):
        return True

    text = f"{exc!s} {exc!r} {getattr(exc, 'status', '') or ''}".lower()
    return any(marker in text for marker in _RETRYABLE_MARKERS)


class ResilientInvoker:
    """Run zero-argument async operations with pacing and bounded retry.

    Parameters
    ----------
    gate:
        Rate gate acquired before every attempt. Defaults to the
        process-wide singleton.
    max_retries:
        Default retry budget when :meth:`invoke` is not given one.
    backoff_step:
        Seconds added to the wait for every consecutive failure.
    sleep:
        Async sleep used between attempts (injectable for tests).
    """

    def __init__(
        self,
        gate: RateGate | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_step: float = DEFAULT_BACKOFF_STEP_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._gate = gate if gate is not None else rate_gate
        self._max_retries = max_retries
        self._backoff_step = backoff_step
        self._sleep = sleep

    @classmethod
    def from_settings(cls, gate: RateGate | None = None) -> ResilientInvoker:
        return cls(
            gate=gate,
            max_retries=settings.max_retries,
            backoff_step=settings.backoff_step_seconds,
        )

    @property
    def gate(self) -> RateGate:
        return self._gate

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int | None = None,
        *,
        label: str = "gemini",
    ) -> T:
        """Run *operation*, retrying transient failures.

        Makes at most ``max_retries + 1`` attempts. Attempts for one
        call are strictly sequential.
        """
        budget = self._max_retries if max_retries is None else max_retries

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(budget + 1),
            wait=wait_incrementing(start=self._backoff_step, increment=self._backoff_step),
            sleep=self._sleep,
            before_sleep=self._log_retry(label, budget),
            reraise=True,
        )

        async def _attempt() -> T:
            await self._gate.acquire()
            return await operation()

        return await retrying(_attempt)

    @staticmethod
    def _log_retry(label: str, budget: int) -> Callable[[RetryCallState], None]:
        def _before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "invoker.retry",
                operation=label,
                attempt=retry_state.attempt_number,
                retries_left=budget - retry_state.attempt_number + 1,
                wait_seconds=wait,
                error=str(exc),
            )

        return _before_sleep
