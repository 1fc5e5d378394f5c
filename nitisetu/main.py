"""Niti-Setu FastAPI application entry point.

Creates the FastAPI app, configures logging and CORS, includes the v1
router, and builds the single farmer session together with the Gemini
gateway, resilience layer and speech output it depends on.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from nitisetu.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the service graph on startup and release it on shutdown.

    On startup:
      1. Gemini gateway (skipped without credentials)
      2. Resilient invoker on the process-wide rate gate
      3. Extraction, eligibility and chat adapters
      4. The farmer session
      5. Speech output (remote Gemini audio, local pyttsx3 fallback)
    Everything is stored on ``app.state``; routes answer 503 for
    anything that is missing.
    """
    configure_logging()
    logger.info("app.startup", env=settings.env, vertexai=settings.use_vertexai)
    app.state.start_time = time.time()

    from nitisetu.services.gemini import GeminiService

    gemini: GeminiService | None = None
    if settings.has_gemini_credentials:
        gemini = GeminiService.from_settings()
        logger.info("app.gemini_configured", evaluation_model=settings.evaluation_model)
    else:
        logger.warning("app.gemini_not_configured")
    app.state.gemini = gemini

    app.state.session = None
    app.state.speech = None
    if gemini is not None:
        from nitisetu.pipeline.session import FarmerSession
        from nitisetu.services.chat import ConversationalResponder
        from nitisetu.services.eligibility import EligibilityEvaluator
        from nitisetu.services.extraction import ProfileExtractor
        from nitisetu.services.resilience import ResilientInvoker
        from nitisetu.services.speech import (
            Pyttsx3Synthesizer,
            SoundDeviceSink,
            SpeechOutputAdapter,
        )

        invoker = ResilientInvoker.from_settings()
        app.state.session = FarmerSession(
            extractor=ProfileExtractor(gemini, invoker, model_name=settings.extraction_model),
            evaluator=EligibilityEvaluator(
                gemini,
                invoker,
                model_name=settings.evaluation_model,
                thinking_budget=settings.evaluation_thinking_budget,
            ),
            responder=ConversationalResponder(gemini, invoker, model_name=settings.chat_model),
            chat_pacing_delay=settings.chat_pacing_delay_seconds,
            auto_analysis_delay=settings.auto_analysis_delay_seconds,
        )
        app.state.speech = SpeechOutputAdapter(
            remote=gemini,
            sink=SoundDeviceSink(),
            local=Pyttsx3Synthesizer(),
            sample_rate=settings.tts_sample_rate,
        )
        logger.info("app.session_initialised")

    yield

    logger.info("app.shutdown")
    if app.state.session is not None:
        await app.state.session.wait_for_background()
    if gemini is not None:
        await gemini.close()


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Niti-Setu API",
    description=(
        "Niti-Setu -- AI agriculture bridge. Collects a farmer profile by form, "
        "voice or chat and checks eligibility for government welfare schemes "
        "with Gemini, citing the scheme guidelines."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "Niti-Setu API",
        "version": app.version,
        "docs": "/docs",
        "endpoints": {
            "health": "/api/v1/health",
            "schemes": "/api/v1/schemes",
            "profile": "/api/v1/profile",
            "extract": "/api/v1/profile/extract",
            "eligibility": "/api/v1/eligibility",
            "chat": "/api/v1/chat",
            "speech": "/api/v1/speech",
        },
    }
