"""Text-to-speech output for Niti-Setu.

Two-tier strategy: a single remote synthesis attempt through Gemini's
audio modality, played on the local output device, and on *any* failure
(remote error, empty or undecodable payload, playback error) the same
text is spoken once through an on-device synthesizer. Speech is not
routed through the resilience layer and is never retried.

Gemini returns 16-bit little-endian PCM, mono, at 24 kHz. Samples are
scaled to float32 in ``[-1.0, 1.0]`` by dividing by 32768.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from collections.abc import Callable
from typing import Final, Protocol

import numpy as np
import structlog

from nitisetu.exceptions import SpeechSynthesisError
from nitisetu.models.enums import SpeechPath
from nitisetu.services.gemini import RemoteModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

SAMPLE_RATE_HZ: Final[int] = 24_000
_PCM16_SCALE: Final[float] = 32768.0

ServedCallback = Callable[[SpeechPath, str], None]


# ---------------------------------------------------------------------------
# Output capabilities
# ---------------------------------------------------------------------------


class AudioSink(Protocol):
    async def play(self, samples: np.ndarray, sample_rate: int) -> None: ...


class LocalSynthesizer(Protocol):
    async def speak(self, text: str) -> None: ...


class SoundDeviceSink:
    """Plays float32 samples on the default output device via ``sounddevice``.

    :meth:`play` returns once playback has finished, so device errors
    surface to the caller.
    """

    @staticmethod
    def _play_blocking(samples: np.ndarray, sample_rate: int) -> None:
        import sounddevice as sd

        sd.play(samples, samplerate=sample_rate)
        sd.wait()

    async def play(self, samples: np.ndarray, sample_rate: int) -> None:
        await asyncio.to_thread(self._play_blocking, samples, sample_rate)


class Pyttsx3Synthesizer:
    """Offline fallback voice using the platform engine through ``pyttsx3``."""

    def __init__(self, rate: int | None = None) -> None:
        self._rate = rate

    def _speak_blocking(self, text: str) -> None:
        import pyttsx3

        engine = pyttsx3.init()
        if self._rate is not None:
            engine.setProperty("rate", self._rate)
        engine.say(text)
        engine.runAndWait()

    async def speak(self, text: str) -> None:
        await asyncio.to_thread(self._speak_blocking, text)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_pcm16(payload: bytes | str) -> np.ndarray:
    """Decode a mono 16-bit LE PCM payload into float32 samples.

    *payload* may be raw bytes or base64 text.
    """
    if isinstance(payload, str):
        try:
            raw = base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise SpeechSynthesisError("Audio payload is not valid base64") from exc
    else:
        raw = bytes(payload)

    if not raw:
        raise SpeechSynthesisError("Audio payload is empty")
    if len(raw) % 2:
        raise SpeechSynthesisError(f"PCM16 payload has odd length {len(raw)}")

    return np.frombuffer(raw, dtype="<i2").astype(np.float32) / _PCM16_SCALE


# ---------------------------------------------------------------------------
# SpeechOutputAdapter
# ---------------------------------------------------------------------------


class SpeechOutputAdapter:
    """Speak text, preferring Gemini audio and falling back to a local voice.

    ``on_served`` is called with the :class:`SpeechPath` that handled
    each request, so callers and tests can tell the two paths apart.
    """

    def __init__(
        self,
        remote: RemoteModel,
        sink: AudioSink,
        local: LocalSynthesizer,
        sample_rate: int = SAMPLE_RATE_HZ,
        on_served: ServedCallback | None = None,
    ) -> None:
        self._remote = remote
        self._sink = sink
        self._local = local
        self._sample_rate = sample_rate
        self._on_served = on_served

    async def speak(self, text: str) -> SpeechPath:
        try:
            payload = await self._remote.synthesize_speech(text)
            if not payload:
                raise SpeechSynthesisError("No audio in synthesis response")
            samples = decode_pcm16(payload)
            await self._sink.play(samples, self._sample_rate)
        except Exception as exc:
            logger.warning("speech.fallback_local", error=str(exc), text_length=len(text))
            path = SpeechPath.LOCAL
            try:
                await self._local.speak(text)
            except Exception:
                # Nothing further to fall back to; speech is fire-and-forget.
                logger.exception("speech.local_failed", text_length=len(text))
        else:
            path = SpeechPath.REMOTE
            logger.info(
                "speech.played_remote",
                samples=int(samples.shape[0]),
                duration_seconds=round(samples.shape[0] / self._sample_rate, 2),
            )

        if self._on_served is not None:
            self._on_served(path, text)
        return path
