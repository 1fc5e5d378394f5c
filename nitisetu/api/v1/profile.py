"""Farmer profile endpoints for Niti-Setu v1.

Provides endpoints for:
    * Reading the session profile and which required fields are missing
    * Manual (form) updates, merged additively
    * Voice / free-text extraction, which may trigger an analysis
    * Resetting the session (logout)
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from nitisetu.api.deps import require_session
from nitisetu.exceptions import AssistantBusyError
from nitisetu.models.profile import FarmerProfile

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    profile: dict[str, Any]
    missing_fields: list[str]
    is_marginal: bool | None = None


class ExtractRequest(BaseModel):
    text: str = Field(..., max_length=5000, description="Typed text or speech transcript")


class ExtractResponse(BaseModel):
    extracted: dict[str, Any]
    profile: dict[str, Any]
    analysis_scheduled: bool


def _profile_response(profile: FarmerProfile) -> ProfileResponse:
    return ProfileResponse(
        profile=profile.to_wire(),
        missing_fields=profile.missing_required_fields(),
        is_marginal=profile.marginal,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=ProfileResponse)
async def get_profile(request: Request) -> ProfileResponse:
    session = require_session(request)
    return _profile_response(session.profile)


@router.patch("", response_model=ProfileResponse)
async def update_profile(body: FarmerProfile, request: Request) -> ProfileResponse:
    """Merge form edits into the profile without triggering an analysis."""
    session = require_session(request)
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    profile = session.update_profile(updates)
    logger.info("api.profile.updated", fields=sorted(updates))
    return _profile_response(profile)


@router.delete("", response_model=ProfileResponse)
async def reset_profile(request: Request) -> ProfileResponse:
    session = require_session(request)
    session.reset()
    return _profile_response(session.profile)


@router.post("/extract", response_model=ExtractResponse)
async def extract_profile(body: ExtractRequest, request: Request) -> ExtractResponse:
    """Extract profile fields from free text and merge them.

    When the merged profile has a name and state an eligibility analysis
    is scheduled in the background.
    """
    session = require_session(request)
    try:
        updates = await session.extract_and_update(body.text)
    except AssistantBusyError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None

    return ExtractResponse(
        extracted=FarmerProfile.model_validate(updates).to_wire(),
        profile=session.profile.to_wire(),
        analysis_scheduled=bool(updates) and session.profile.is_ready_for_analysis,
    )
