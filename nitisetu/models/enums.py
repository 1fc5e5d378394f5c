from __future__ import annotations

from enum import StrEnum


class SocialCategory(StrEnum):
    """Social category as recorded on Indian caste / income certificates."""

    __slots__ = ()

    GENERAL = "General"
    OBC = "OBC"
    SC = "SC"
    ST = "ST"
    EWS = "EWS"

    @classmethod
    def parse(cls, value: object) -> SocialCategory | None:
        """Case-insensitive lookup; ``None`` for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


class SpeechPath(StrEnum):
    """Which synthesis path served a speech request."""

    __slots__ = ()

    REMOTE = "remote"
    LOCAL = "local"
