"""Lookups of services built in the application lifespan."""

from __future__ import annotations

from fastapi import HTTPException, Request

from nitisetu.pipeline.session import FarmerSession
from nitisetu.services.speech import SpeechOutputAdapter


def require_session(request: Request) -> FarmerSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="AI assistant not configured")
    return session


def require_speech(request: Request) -> SpeechOutputAdapter:
    speech = getattr(request.app.state, "speech", None)
    if speech is None:
        raise HTTPException(status_code=503, detail="Speech output not available")
    return speech
