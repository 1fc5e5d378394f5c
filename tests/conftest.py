"""Shared fakes for the Niti-Setu test suite.

Time is simulated: :class:`FakeClock` is both the clock and the sleep
function, so pacing and backoff can be asserted without real waiting.
"""

from __future__ import annotations

import pytest

from nitisetu.services.rate_gate import RateGate
from nitisetu.services.resilience import ResilientInvoker


class FakeClock:
    """Manually advanced clock whose sleeps are recorded by label."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[tuple[str, float]] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleeper(self, label: str):
        async def _sleep(seconds: float) -> None:
            self.sleeps.append((label, seconds))
            self.now += seconds

        return _sleep

    def waits(self, label: str) -> list[float]:
        return [seconds for name, seconds in self.sleeps if name == label]


class FakeRemoteModel:
    """Scripted stand-in for the Gemini gateway.

    Each queue holds return values or exceptions; the last entry is
    repeated once the queue is exhausted.
    """

    def __init__(self, json_responses=None, text_responses=None, speech_responses=None):
        self.json_responses = list(json_responses or ["{}"])
        self.text_responses = list(text_responses or [""])
        self.speech_responses = list(speech_responses or [None])
        self.json_calls: list[dict] = []
        self.text_calls: list[dict] = []
        self.speech_calls: list[str] = []

    @staticmethod
    def _next(queue):
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate_json(self, prompt, *, schema, model=None, thinking_budget=None):
        self.json_calls.append(
            {"prompt": prompt, "schema": schema, "model": model, "thinking_budget": thinking_budget}
        )
        return self._next(self.json_responses)

    async def generate_text(self, message, *, system_instruction, model=None):
        self.text_calls.append(
            {"message": message, "system_instruction": system_instruction, "model": model}
        )
        return self._next(self.text_responses)

    async def synthesize_speech(self, text):
        self.speech_calls.append(text)
        return self._next(self.speech_responses)


class RemoteError(Exception):
    """Exception carrying an HTTP-like status, as the Gemini SDK's errors do."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gate(clock):
    return RateGate(min_gap=2.0, clock=clock, sleep=clock.sleeper("gate"))


@pytest.fixture
def invoker(gate, clock):
    return ResilientInvoker(gate=gate, max_retries=3, backoff_step=4.0, sleep=clock.sleeper("backoff"))


@pytest.fixture
def remote_factory():
    return FakeRemoteModel


@pytest.fixture
def remote_error():
    return RemoteError
