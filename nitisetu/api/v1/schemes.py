"""Scheme repository endpoints for Niti-Setu v1.

Serves the static catalog together with the guideline passages the
eligibility prompt quotes from.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from nitisetu.data.schemes import SCHEME_CATALOG, SCHEME_GUIDELINES, get_scheme
from nitisetu.models.scheme import Scheme

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/schemes", tags=["schemes"])


class SchemeListResponse(BaseModel):
    schemes: list[Scheme]
    total: int


class SchemeDetailResponse(BaseModel):
    scheme: Scheme
    guidelines: str | None


@router.get("", response_model=SchemeListResponse, response_model_by_alias=True)
async def list_schemes() -> SchemeListResponse:
    return SchemeListResponse(schemes=list(SCHEME_CATALOG), total=len(SCHEME_CATALOG))


@router.get("/{scheme_id}", response_model=SchemeDetailResponse, response_model_by_alias=True)
async def get_scheme_detail(scheme_id: str) -> SchemeDetailResponse:
    scheme = get_scheme(scheme_id)
    if scheme is None:
        raise HTTPException(status_code=404, detail=f"Scheme '{scheme_id}' not found")
    return SchemeDetailResponse(scheme=scheme, guidelines=SCHEME_GUIDELINES.get(scheme_id))
