"""Gemini gateway for Niti-Setu.

Wraps the ``google-genai`` SDK behind the small :class:`RemoteModel`
protocol the rest of the service layer depends on: structured JSON
generation, plain-text chat, and audio synthesis. Adapters receive a
``RemoteModel`` at construction time, so tests substitute deterministic
fakes and never touch the network.

This module does no retrying or pacing of its own; every
call except speech synthesis is routed through
:class:`~nitisetu.services.resilience.ResilientInvoker` by its caller.
"""

from __future__ import annotations

import time
from typing import Protocol

import structlog
from google import genai
from google.genai import types

from config.settings import settings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class RemoteModel(Protocol):
    """The operations Niti-Setu needs from a generative model."""

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: types.Schema,
        model: str | None = None,
        thinking_budget: int | None = None,
    ) -> str:
        """Return the raw JSON text produced for *prompt*."""
        ...

    async def generate_text(
        self,
        message: str,
        *,
        system_instruction: str,
        model: str | None = None,
    ) -> str:
        """Return a plain-text reply to *message*."""
        ...

    async def synthesize_speech(self, text: str) -> bytes | str | None:
        """Return 16-bit PCM audio for *text* (raw bytes or base64 text)."""
        ...


# ---------------------------------------------------------------------------
# GeminiService
# ---------------------------------------------------------------------------


class GeminiService:
    """Async interface to Gemini through the ``google-genai`` SDK.

    Works against either the Gemini Developer API (``api_key``) or
    Vertex AI (``use_vertexai`` with a GCP project and region).
    """

    def __init__(
        self,
        api_key: str = "",
        *,
        use_vertexai: bool = False,
        project_id: str = "",
        region: str = "asia-south1",
        extraction_model: str = "gemini-3-flash-preview",
        chat_model: str = "gemini-3-flash-preview",
        evaluation_model: str = "gemini-3-pro-preview",
        tts_model: str = "gemini-2.5-flash-preview-tts",
        tts_voice: str = "Kore",
    ) -> None:
        self._api_key = api_key
        self._use_vertexai = use_vertexai
        self._project_id = project_id
        self._region = region
        self.extraction_model = extraction_model
        self.chat_model = chat_model
        self.evaluation_model = evaluation_model
        self._tts_model = tts_model
        self._tts_voice = tts_voice
        self._client: genai.Client | None = None

    @classmethod
    def from_settings(cls) -> GeminiService:
        return cls(
            api_key=settings.google_api_key,
            use_vertexai=settings.use_vertexai,
            project_id=settings.gcp_project_id,
            region=settings.gcp_region,
            extraction_model=settings.extraction_model,
            chat_model=settings.chat_model,
            evaluation_model=settings.evaluation_model,
            tts_model=settings.tts_model,
            tts_voice=settings.tts_voice,
        )

    # -- lifecycle ----------------------------------------------------------

    def _get_client(self) -> genai.Client:
        """Lazily create the SDK client."""
        if self._client is None:
            if self._use_vertexai:
                self._client = genai.Client(
                    vertexai=True,
                    project=self._project_id,
                    location=self._region,
                )
            else:
                self._client = genai.Client(api_key=self._api_key)
            logger.info(
                "gemini.initialized",
                backend="vertexai" if self._use_vertexai else "developer_api",
                region=self._region if self._use_vertexai else None,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            aio = self._client.aio
            if hasattr(aio, "aclose"):
                await aio.aclose()
            self._client = None

    # -- public API ---------------------------------------------------------

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: types.Schema,
        model: str | None = None,
        thinking_budget: int | None = None,
    ) -> str:
        model_name = model or self.extraction_model
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
            thinking_config=(
                types.ThinkingConfig(thinking_budget=thinking_budget)
                if thinking_budget
                else None
            ),
        )

        start = time.perf_counter()
        response = await self._get_client().aio.models.generate_content(
            model=model_name,
            contents=prompt,
            config=config,
        )
        self._log_usage("gemini.generate_json", model_name, response, start)
        return response.text or ""

    async def generate_text(
        self,
        message: str,
        *,
        system_instruction: str,
        model: str | None = None,
    ) -> str:
        model_name = model or self.chat_model
        start = time.perf_counter()
        response = await self._get_client().aio.models.generate_content(
            model=model_name,
            contents=message,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )
        self._log_usage("gemini.generate_text", model_name, response, start)
        return response.text or ""

    async def synthesize_speech(self, text: str) -> bytes | str | None:
        """Request an audio-modality response and return the inline payload.

        The payload is 16-bit little-endian PCM, mono, 24 kHz. ``None`` is
        returned when the response carries no inline audio.
        """
        start = time.perf_counter()
        response = await self._get_client().aio.models.generate_content(
            model=self._tts_model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(
                            voice_name=self._tts_voice,
                        ),
                    ),
                ),
            ),
        )
        elapsed_ms = (time.perf_counter() - start) * 1000

        payload: bytes | str | None = None
        if response.candidates:
            content = response.candidates[0].content
            if content and content.parts:
                inline = content.parts[0].inline_data
                if inline is not None:
                    payload = inline.data

        logger.info(
            "gemini.synthesize_speech",
            model=self._tts_model,
            voice=self._tts_voice,
            text_length=len(text),
            audio_bytes=len(payload) if payload else 0,
            processing_time_ms=round(elapsed_ms, 2),
        )
        return payload

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _log_usage(
        event: str,
        model: str,
        response: types.GenerateContentResponse,
        start: float,
    ) -> None:
        usage = response.usage_metadata
        logger.info(
            event,
            model=model,
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
