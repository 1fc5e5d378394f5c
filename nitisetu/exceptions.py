"""Exceptions raised by the Niti-Setu service layer.

Remote failures from the Gemini SDK are *not* wrapped by the resilience
layer; they propagate unchanged so callers can inspect status codes.
The session layer converts them into :class:`AssistantBusyError` when
it needs a user-facing message.
"""

from __future__ import annotations


class NitiSetuError(Exception):
    """Base class for all application errors."""


class ProfileIncompleteError(NitiSetuError):
    """Raised before an analysis when required profile fields are missing."""

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(
            "Please fill in at least Name and State. Missing: " + ", ".join(missing_fields)
        )


class AnalysisInProgressError(NitiSetuError):
    """An eligibility analysis is already running for this session."""

    def __init__(self) -> None:
        super().__init__("An eligibility analysis is already in progress.")


class NoResultsError(NitiSetuError):
    """A batch evaluation came back empty.

    A real catalog always yields at least one verdict per scheme, so an
    empty list means the response was unusable rather than "nothing is
    eligible".
    """

    def __init__(self) -> None:
        super().__init__("No analysis results received. The AI may be overloaded.")


class AssistantBusyError(NitiSetuError):
    """The remote model failed after retries; the user should try again."""

    def __init__(self, message: str = "AI is busy. Please try again in a few seconds.") -> None:
        super().__init__(message)


class SpeechSynthesisError(NitiSetuError):
    """Remote speech synthesis returned no usable audio."""
