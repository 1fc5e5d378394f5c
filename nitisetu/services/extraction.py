"""Free-text to farmer-profile extraction.

Turns a typed message or a speech transcript into a partial
:class:`~nitisetu.models.profile.FarmerProfile` update. Extraction is
best-effort: trivial inputs never reach the model, and a malformed
response yields an empty update instead of an exception, so the chat
and voice flows are never blocked by it.
"""

from __future__ import annotations

import json
import math
from typing import Any, Final

import structlog
from google.genai import types

from nitisetu.models.enums import SocialCategory
from nitisetu.services.gemini import RemoteModel
from nitisetu.services.resilience import ResilientInvoker

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# Inputs shorter than this (after trimming) are never sent to the model.
MIN_EXTRACTION_LENGTH: Final[int] = 5

GREETINGS: Final[frozenset[str]] = frozenset(
    {"hi", "hello", "hey", "good morning", "thanks", "ok"}
)

_EXTRACTION_PROMPT: Final[str] = """\
Extract farmer details from: "{text}".
Return JSON with: name, state, district, landHolding (acres as number), cropType, category.\
"""

EXTRACTION_SCHEMA: Final[types.Schema] = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "name": types.Schema(type=types.Type.STRING),
        "state": types.Schema(type=types.Type.STRING),
        "district": types.Schema(type=types.Type.STRING),
        "landHolding": types.Schema(type=types.Type.NUMBER),
        "cropType": types.Schema(type=types.Type.STRING),
        "category": types.Schema(type=types.Type.STRING),
    },
)

# JSON key from the model -> FarmerProfile field name.
_WIRE_FIELDS: Final[dict[str, str]] = {
    "name": "name",
    "state": "state",
    "district": "district",
    "landHolding": "land_holding",
    "cropType": "crop_type",
    "category": "category",
}


def is_trivial(text: str) -> bool:
    """True when *text* is too short or a bare greeting/acknowledgement."""
    clean = text.strip()
    return len(clean) < MIN_EXTRACTION_LENGTH or clean.lower() in GREETINGS


def _coerce_land_holding(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_extraction(raw: str | None) -> dict[str, Any]:
    """Parse the model's JSON into profile-field updates.

    Absent, null, empty or ill-typed fields are omitted so the result
    can be merged into an existing profile without clobbering anything.
    """
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning("extraction.parse_failed", raw=(raw or "")[:200])
        return {}

    if not isinstance(data, dict):
        logger.warning("extraction.unexpected_shape", kind=type(data).__name__)
        return {}

    updates: dict[str, Any] = {}
    for wire_key, field in _WIRE_FIELDS.items():
        value = data.get(wire_key)
        if value is None:
            continue

        if field == "land_holding":
            value = _coerce_land_holding(value)
        elif field == "category":
            value = SocialCategory.parse(value)
        elif isinstance(value, str):
            value = value.strip() or None
        else:
            value = None

        if value is not None:
            updates[field] = value

    return updates


class ProfileExtractor:
    """Extract structured profile fields from free text via Gemini."""

    def __init__(
        self,
        model: RemoteModel,
        invoker: ResilientInvoker,
        model_name: str | None = None,
    ) -> None:
        self._model = model
        self._invoker = invoker
        self._model_name = model_name

    async def extract(self, free_text: str) -> dict[str, Any]:
        """Return the profile fields mentioned in *free_text*.

        Remote failures that survive the retry budget propagate; parse
        failures return ``{}``.
        """
        clean = free_text.strip()
        if is_trivial(clean):
            logger.debug("extraction.skipped", text_length=len(clean))
            return {}

        prompt = _EXTRACTION_PROMPT.format(text=clean)

        async def _call() -> str:
            return await self._model.generate_json(
                prompt,
                schema=EXTRACTION_SCHEMA,
                model=self._model_name,
            )

        raw = await self._invoker.invoke(_call, label="extraction")
        updates = parse_extraction(raw)
        logger.info("extraction.completed", fields=sorted(updates))
        return updates
