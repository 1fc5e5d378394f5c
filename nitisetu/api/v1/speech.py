"""Read-aloud endpoint for Niti-Setu v1.

Speech is fire-and-forget: the request is accepted immediately and the
audio is produced in a background task on the machine running the
assistant.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Request
from pydantic import BaseModel, Field

from nitisetu.api.deps import require_speech

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/speech", tags=["speech"])


class SpeechRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class SpeechAccepted(BaseModel):
    accepted: bool = True
    text_length: int


@router.post("", response_model=SpeechAccepted, status_code=202)
async def speak(body: SpeechRequest, request: Request, background: BackgroundTasks) -> SpeechAccepted:
    speech = require_speech(request)
    background.add_task(speech.speak, body.text)
    logger.info("api.speech.accepted", text_length=len(body.text))
    return SpeechAccepted(text_length=len(body.text))
