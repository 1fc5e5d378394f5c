"""Assistant chat endpoint for Niti-Setu v1."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from nitisetu.api.deps import require_session
from nitisetu.exceptions import AssistantBusyError
from nitisetu.models.profile import FarmerProfile

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000, description="User message")


class ChatResponse(BaseModel):
    reply: str
    extracted: dict[str, Any]
    profile: dict[str, Any]


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request) -> ChatResponse:
    """One chat turn: profile extraction, then a short advisory reply."""
    session = require_session(request)
    if not body.message.strip():
        raise HTTPException(status_code=422, detail="Message must not be blank")

    try:
        reply = await session.chat(body.message)
    except AssistantBusyError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None

    return ChatResponse(
        reply=reply.text,
        extracted=FarmerProfile.model_validate(reply.extracted).to_wire(),
        profile=session.profile.to_wire(),
    )
