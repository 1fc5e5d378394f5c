"""Eligibility analysis endpoints for Niti-Setu v1."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from nitisetu.api.deps import require_session
from nitisetu.exceptions import (
    AnalysisInProgressError,
    AssistantBusyError,
    NoResultsError,
    ProfileIncompleteError,
)
from nitisetu.models.scheme import EligibilityResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


class EligibilityResponse(BaseModel):
    results: list[EligibilityResult]
    metrics: dict[str, Any]
    is_running: bool
    error: str | None = None


@router.post("", response_model=EligibilityResponse, response_model_by_alias=True)
async def run_analysis(request: Request) -> EligibilityResponse:
    """Evaluate the session profile against every scheme.

    Status codes: 409 while another analysis is running, 422 when name
    or state is missing, 502 when the model's answer was unusable, 503
    when the model stayed unavailable after retries.
    """
    session = require_session(request)
    if session.is_analysis_running:
        raise HTTPException(status_code=409, detail=str(AnalysisInProgressError()))

    try:
        results = await session.run_analysis()
    except ProfileIncompleteError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "missing_fields": exc.missing_fields},
        ) from None
    except NoResultsError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from None
    except AssistantBusyError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None

    if results is None:
        raise HTTPException(status_code=409, detail=str(AnalysisInProgressError()))

    return EligibilityResponse(
        results=results,
        metrics=asdict(session.metrics),
        is_running=session.is_analysis_running,
    )


@router.get("", response_model=EligibilityResponse, response_model_by_alias=True)
async def latest_results(request: Request) -> EligibilityResponse:
    """Latest verdicts, dashboard metrics and the last analysis error."""
    session = require_session(request)
    return EligibilityResponse(
        results=session.results,
        metrics=asdict(session.metrics),
        is_running=session.is_analysis_running,
        error=session.last_error,
    )
