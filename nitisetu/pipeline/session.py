"""Single-farmer session orchestration.

:class:`FarmerSession` owns the state of one user's visit: the profile
being assembled, the latest eligibility verdicts, dashboard metrics and
the last user-facing error. It composes the service-layer adapters the
way the front-end flows need them:

* profile updates merge additively, and updates coming from voice or
  chat extraction trigger an analysis automatically once ``name`` and
  ``state`` are known;
* an eligibility analysis is guarded by a boolean latch so a second
  request while one is running is a no-op;
* a chat turn runs extraction, pauses briefly for pacing, then asks for
  a conversational reply.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

import structlog

from nitisetu.data.schemes import SCHEME_CATALOG
from nitisetu.exceptions import (
    AssistantBusyError,
    NitiSetuError,
    NoResultsError,
    ProfileIncompleteError,
)
from nitisetu.models.profile import FarmerProfile
from nitisetu.models.scheme import EligibilityResult, Scheme
from nitisetu.services.chat import ConversationalResponder
from nitisetu.services.eligibility import EligibilityEvaluator
from nitisetu.services.extraction import ProfileExtractor

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

EXTRACTION_NOTE: Final[str] = " I've noted those details in your profile."

_GENERIC_ANALYSIS_ERROR: Final[str] = (
    "An unexpected error occurred during analysis. Please try again."
)


@dataclass(slots=True)
class DashboardMetrics:
    schemes_analyzed: int
    checks_performed: int = 0
    last_response_seconds: float = 0.0
    eligible_count: int = 0


@dataclass(slots=True)
class ChatReply:
    text: str
    extracted: dict[str, Any] = field(default_factory=dict)


class FarmerSession:
    """State and flows for one farmer's session."""

    def __init__(
        self,
        extractor: ProfileExtractor,
        evaluator: EligibilityEvaluator,
        responder: ConversationalResponder,
        catalog: Sequence[Scheme] = SCHEME_CATALOG,
        chat_pacing_delay: float = 2.0,
        auto_analysis_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._extractor = extractor
        self._evaluator = evaluator
        self._responder = responder
        self._catalog = tuple(catalog)
        self._chat_pacing_delay = chat_pacing_delay
        self._auto_analysis_delay = auto_analysis_delay
        self._sleep = sleep
        self._clock = clock

        self._profile = FarmerProfile.initial()
        self._results: list[EligibilityResult] = []
        self._last_error: str | None = None
        self._analysis_running = False
        self._background: set[asyncio.Task[None]] = set()
        self.metrics = DashboardMetrics(schemes_analyzed=len(self._catalog))

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def profile(self) -> FarmerProfile:
        return self._profile

    @property
    def results(self) -> list[EligibilityResult]:
        return list(self._results)

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def catalog(self) -> tuple[Scheme, ...]:
        return self._catalog

    @property
    def is_analysis_running(self) -> bool:
        return self._analysis_running

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, updates: Mapping[str, Any], auto_trigger: bool = False) -> FarmerProfile:
        """Merge *updates* into the profile.

        With ``auto_trigger`` an analysis is scheduled in the background
        once the merged profile has a name and state and no analysis is
        already running.
        """
        self._profile = self._profile.merged(updates)
        if auto_trigger and self._profile.is_ready_for_analysis and not self._analysis_running:
            self._schedule_analysis(self._profile)
        return self._profile

    async def extract_and_update(self, text: str) -> dict[str, Any]:
        """Voice / free-text entry point: extract fields and merge them."""
        try:
            updates = await self._extractor.extract(text)
        except Exception as exc:
            logger.error("session.extraction_failed", error=str(exc))
            raise AssistantBusyError("Failed to process your request.") from exc

        if updates:
            self.update_profile(updates, auto_trigger=True)
        return updates

    def reset(self) -> None:
        """Forget the profile, results and last error (logout)."""
        self._profile = FarmerProfile.initial()
        self._results = []
        self._last_error = None
        logger.info("session.reset")

    # ------------------------------------------------------------------
    # Eligibility analysis
    # ------------------------------------------------------------------

    async def run_analysis(self, profile: FarmerProfile | None = None) -> list[EligibilityResult] | None:
        """Evaluate *profile* (default: the session profile) against the catalog.

        Returns ``None`` without doing anything while another analysis is
        running. Raises :class:`ProfileIncompleteError` before any remote
        call when name or state is missing, :class:`NoResultsError` when
        the evaluation yields nothing usable, and
        :class:`AssistantBusyError` for remote failures.
        """
        if self._analysis_running:
            logger.info("session.analysis_already_running")
            return None

        target = profile if profile is not None else self._profile
        missing = target.missing_required_fields()
        if missing:
            raise ProfileIncompleteError(missing)

        self._analysis_running = True
        self._last_error = None
        start = self._clock()
        try:
            results = await self._evaluator.evaluate(target, self._catalog)
            if not results:
                raise NoResultsError()
        except NitiSetuError as exc:
            self._last_error = str(exc)
            logger.error("session.analysis_failed", error=self._last_error)
            raise
        except Exception as exc:
            self._last_error = str(exc) or _GENERIC_ANALYSIS_ERROR
            logger.error("session.analysis_failed", error=self._last_error)
            raise AssistantBusyError(self._last_error) from exc
        finally:
            self._analysis_running = False

        self._results = results
        self.metrics.checks_performed += 1
        self.metrics.last_response_seconds = round(self._clock() - start, 1)
        self.metrics.eligible_count = sum(1 for result in results if result.is_eligible)
        logger.info(
            "session.analysis_completed",
            verdicts=len(results),
            eligible=self.metrics.eligible_count,
            seconds=self.metrics.last_response_seconds,
        )
        return results

    def _schedule_analysis(self, profile: FarmerProfile) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("session.auto_analysis_skipped", reason="no_running_loop")
            return

        async def _delayed() -> None:
            await self._sleep(self._auto_analysis_delay)
            try:
                await self.run_analysis(profile)
            except NitiSetuError as exc:
                logger.warning("session.auto_analysis_failed", error=str(exc))

        task = loop.create_task(_delayed())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background(self) -> None:
        """Wait for scheduled automatic analyses to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, message: str) -> ChatReply:
        """Handle one chat turn: extract, pause, reply.

        The reply is generated against the profile as it stood when the
        message arrived; extracted fields are merged for later turns.
        """
        if not message.strip():
            raise ValueError("Chat message must not be empty")

        context = self._profile
        note = ""
        try:
            updates = await self._extractor.extract(message)
            if updates:
                self.update_profile(updates, auto_trigger=True)
                if "name" in updates or "state" in updates:
                    note = EXTRACTION_NOTE

            await self._sleep(self._chat_pacing_delay)
            reply = await self._responder.respond(message, context)
        except Exception as exc:
            logger.error("session.chat_failed", error=str(exc))
            raise AssistantBusyError() from exc

        return ChatReply(text=reply + note, extracted=updates)
