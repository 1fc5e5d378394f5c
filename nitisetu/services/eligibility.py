"""Batch eligibility evaluation against the scheme catalog.

One Gemini round trip covers every scheme: the prompt carries the
farmer's profile plus, for each scheme, its id, name and guideline
passage, and the model answers with a JSON array holding one verdict
per scheme. Batching keeps pacing and backoff costs flat no matter how
large the catalog grows.

The response is validated against the catalog before it is handed
back. Verdicts for ids the catalog does not know are dropped, repeated
ids keep their first verdict, and catalog ids the model skipped are
reported. None of this raises: data-quality problems are logged and
surfaced on :class:`BatchEvaluation`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

import structlog
from google.genai import types
from pydantic import ValidationError

from nitisetu.data.schemes import SCHEME_GUIDELINES, guideline_for
from nitisetu.models.profile import FarmerProfile
from nitisetu.models.scheme import EligibilityResult, Scheme
from nitisetu.services.gemini import RemoteModel
from nitisetu.services.resilience import ResilientInvoker

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_THINKING_BUDGET: Final[int] = 4000

_FENCE_RE: Final[re.Pattern[str]] = re.compile(r"```(?:json)?", re.IGNORECASE)

_NOT_PROVIDED: Final[str] = "Not provided"

_EVALUATION_PROMPT: Final[str] = """\
Analyze eligibility for ALL schemes below based on the profile provided.
FARMER PROFILE:
- Name: {name}
- State: {state}
- Land Holding: {land_holding} acres
- Category: {category}
- Crop: {crop}

{guidelines}

You must return an array of objects for each Scheme ID. Ensure accurate cross-referencing.\
"""

_STRING: Final[types.Schema] = types.Schema(type=types.Type.STRING)

RESULT_SCHEMA: Final[types.Schema] = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "schemeId": _STRING,
            "schemeName": _STRING,
            "isEligible": types.Schema(type=types.Type.BOOLEAN),
            "benefit": _STRING,
            "proofCitation": _STRING,
            "proofSnippet": _STRING,
            "nextSteps": types.Schema(type=types.Type.ARRAY, items=_STRING),
            "requiredDocuments": types.Schema(type=types.Type.ARRAY, items=_STRING),
        },
        required=["schemeId", "schemeName", "isEligible", "benefit"],
    ),
)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BatchEvaluation:
    """Validated outcome of one batch evaluation."""

    results: list[EligibilityResult] = field(default_factory=list)
    unknown_ids: list[str] = field(default_factory=list)
    duplicate_ids: list[str] = field(default_factory=list)
    missing_ids: list[str] = field(default_factory=list)
    invalid_items: int = 0
    parse_failed: bool = False

    @property
    def is_complete(self) -> bool:
        """Exactly one valid verdict for every catalog scheme, nothing else."""
        return not (
            self.parse_failed
            or self.unknown_ids
            or self.duplicate_ids
            or self.missing_ids
            or self.invalid_items
        )

    @property
    def eligible_count(self) -> int:
        return sum(1 for result in self.results if result.is_eligible)


# ---------------------------------------------------------------------------
# Prompt / parsing helpers
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers (```json / ```) around a payload."""
    return _FENCE_RE.sub("", text).strip()


def build_prompt(
    profile: FarmerProfile,
    catalog: Sequence[Scheme],
    guidelines: Mapping[str, str] = SCHEME_GUIDELINES,
) -> str:
    guideline_blocks = "\n\n".join(
        f"SCHEME: {scheme.name} (ID: {scheme.id})\n"
        f"GUIDELINES: {guideline_for(scheme.id, guidelines)}"
        for scheme in catalog
    )

    def _or_missing(value: object) -> object:
        return _NOT_PROVIDED if value is None or value == "" else value

    return _EVALUATION_PROMPT.format(
        name=_or_missing(profile.name),
        state=_or_missing(profile.state),
        land_holding=_or_missing(profile.land_holding),
        category=_or_missing(profile.category and profile.category.value),
        crop=_or_missing(profile.crop_type),
        guidelines=guideline_blocks,
    )


def parse_results(raw: str | None) -> list[Any] | None:
    """Decode the model's array, tolerating code fences. ``None`` on failure."""
    try:
        data = json.loads(strip_code_fences(raw or "[]"))
    except json.JSONDecodeError:
        logger.error("eligibility.parse_failed", raw=(raw or "")[:200])
        return None

    if not isinstance(data, list):
        logger.error("eligibility.unexpected_shape", kind=type(data).__name__)
        return None
    return data


def validate_results(items: Sequence[Any], catalog: Sequence[Scheme]) -> BatchEvaluation:
    """Check decoded verdicts against *catalog*.

    Keeps at most one verdict per catalog id, in catalog order.
    """
    catalog_ids = [scheme.id for scheme in catalog]
    known = set(catalog_ids)
    evaluation = BatchEvaluation()
    by_id: dict[str, EligibilityResult] = {}

    for item in items:
        if not isinstance(item, dict):
            evaluation.invalid_items += 1
            continue
        try:
            result = EligibilityResult.model_validate(item)
        except ValidationError as exc:
            evaluation.invalid_items += 1
            logger.warning("eligibility.invalid_item", errors=exc.error_count())
            continue

        if result.scheme_id not in known:
            evaluation.unknown_ids.append(result.scheme_id)
            logger.warning("eligibility.unknown_scheme_id", scheme_id=result.scheme_id)
            continue
        if result.scheme_id in by_id:
            evaluation.duplicate_ids.append(result.scheme_id)
            logger.warning("eligibility.duplicate_scheme_id", scheme_id=result.scheme_id)
            continue
        by_id[result.scheme_id] = result

    evaluation.results = [by_id[scheme_id] for scheme_id in catalog_ids if scheme_id in by_id]
    evaluation.missing_ids = [scheme_id for scheme_id in catalog_ids if scheme_id not in by_id]
    if evaluation.missing_ids:
        logger.warning("eligibility.missing_verdicts", scheme_ids=evaluation.missing_ids)
    return evaluation


# ---------------------------------------------------------------------------
# EligibilityEvaluator
# ---------------------------------------------------------------------------


class EligibilityEvaluator:
    """Evaluate a complete profile against every scheme in one call.

    The caller is responsible for checking that ``name`` and ``state``
    are present; this class does not re-validate the profile.
    """

    def __init__(
        self,
        model: RemoteModel,
        invoker: ResilientInvoker,
        guidelines: Mapping[str, str] = SCHEME_GUIDELINES,
        model_name: str | None = None,
        thinking_budget: int | None = DEFAULT_THINKING_BUDGET,
    ) -> None:
        self._model = model
        self._invoker = invoker
        self._guidelines = guidelines
        self._model_name = model_name
        self._thinking_budget = thinking_budget

    async def evaluate_batch(
        self,
        profile: FarmerProfile,
        catalog: Sequence[Scheme],
    ) -> BatchEvaluation:
        prompt = build_prompt(profile, catalog, self._guidelines)

        async def _call() -> str:
            return await self._model.generate_json(
                prompt,
                schema=RESULT_SCHEMA,
                model=self._model_name,
                thinking_budget=self._thinking_budget,
            )

        raw = await self._invoker.invoke(_call, label="eligibility")

        items = parse_results(raw)
        if items is None:
            return BatchEvaluation(parse_failed=True)

        evaluation = validate_results(items, catalog)
        logger.info(
            "eligibility.evaluated",
            schemes=len(catalog),
            verdicts=len(evaluation.results),
            eligible=evaluation.eligible_count,
            complete=evaluation.is_complete,
        )
        return evaluation

    async def evaluate(
        self,
        profile: FarmerProfile,
        catalog: Sequence[Scheme],
    ) -> list[EligibilityResult]:
        """Return validated verdicts; an empty list means the response was unusable."""
        evaluation = await self.evaluate_batch(profile, catalog)
        return evaluation.results
