"""Tests for batch eligibility evaluation."""

from __future__ import annotations

import json

import pytest

from nitisetu.data.schemes import DEFAULT_GUIDELINE, SCHEME_CATALOG, SCHEME_GUIDELINES
from nitisetu.models.enums import SocialCategory
from nitisetu.models.profile import FarmerProfile
from nitisetu.models.scheme import Scheme
from nitisetu.services.eligibility import (
    RESULT_SCHEMA,
    EligibilityEvaluator,
    build_prompt,
    parse_results,
    strip_code_fences,
    validate_results,
)


def _verdict(scheme_id: str, eligible: bool = True, **extra) -> dict:
    item = {
        "schemeId": scheme_id,
        "schemeName": scheme_id.upper(),
        "isEligible": eligible,
        "benefit": "Some benefit" if eligible else "",
        "proofCitation": "Page 2, Section 2",
        "proofSnippet": "Operational land holdings as per land records",
        "nextSteps": ["Visit CSC"],
        "requiredDocuments": ["Aadhar Card"],
    }
    item.update(extra)
    return item


FULL_BATCH = [_verdict("pm-kisan"), _verdict("pm-kusum", eligible=False), _verdict("agri-infra")]


@pytest.fixture
def profile():
    return FarmerProfile(
        name="Ram Singh",
        state="Punjab",
        land_holding=3.5,
        category=SocialCategory.OBC,
        crop_type="Wheat",
    )


def _evaluator(remote_factory, invoker, raw: str, **kwargs):
    remote = remote_factory(json_responses=[raw])
    return remote, EligibilityEvaluator(remote, invoker, **kwargs)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_profile_values_included(self, profile):
        prompt = build_prompt(profile, SCHEME_CATALOG)
        assert "- Name: Ram Singh" in prompt
        assert "- State: Punjab" in prompt
        assert "- Land Holding: 3.5 acres" in prompt
        assert "- Category: OBC" in prompt
        assert "- Crop: Wheat" in prompt

    def test_missing_values_marked(self):
        prompt = build_prompt(FarmerProfile(name="Ram", state="Bihar"), SCHEME_CATALOG)
        assert "- Land Holding: Not provided acres" in prompt
        assert "- Crop: Not provided" in prompt
        assert "- Category: Not provided" in prompt

    def test_every_scheme_and_guideline_included(self, profile):
        prompt = build_prompt(profile, SCHEME_CATALOG)
        for scheme in SCHEME_CATALOG:
            assert f"SCHEME: {scheme.name} (ID: {scheme.id})" in prompt
            assert SCHEME_GUIDELINES[scheme.id] in prompt

    def test_unregistered_scheme_uses_default_guideline(self, profile):
        extra = Scheme(
            id="soil-health",
            name="Soil Health Card",
            description="Soil testing",
            category="Soil",
            benefit="Free soil test",
        )
        prompt = build_prompt(profile, [extra])
        assert f"SCHEME: Soil Health Card (ID: soil-health)\nGUIDELINES: {DEFAULT_GUIDELINE}" in prompt


# ---------------------------------------------------------------------------
# Parsing and validation
# ---------------------------------------------------------------------------


class TestParsing:
    def test_fenced_and_bare_json_parse_identically(self):
        bare = json.dumps(FULL_BATCH)
        fenced = f"```json\n{bare}\n```"
        assert strip_code_fences(fenced) == bare
        assert parse_results(fenced) == parse_results(bare) == FULL_BATCH

    def test_plain_fence_stripped(self):
        assert parse_results("```\n[]\n```") == []

    def test_invalid_json_returns_none(self):
        assert parse_results("The farmer is eligible for PM-KISAN") is None

    def test_object_instead_of_array_returns_none(self):
        assert parse_results('{"schemeId": "pm-kisan"}') is None

    def test_validation_follows_catalog_order(self):
        shuffled = [FULL_BATCH[2], FULL_BATCH[0], FULL_BATCH[1]]
        evaluation = validate_results(shuffled, SCHEME_CATALOG)
        assert [r.scheme_id for r in evaluation.results] == ["pm-kisan", "pm-kusum", "agri-infra"]
        assert evaluation.is_complete

    def test_unknown_ids_excluded_and_reported(self):
        evaluation = validate_results(FULL_BATCH + [_verdict("made-up-scheme")], SCHEME_CATALOG)
        assert evaluation.unknown_ids == ["made-up-scheme"]
        assert "made-up-scheme" not in [r.scheme_id for r in evaluation.results]
        assert not evaluation.is_complete

    def test_duplicates_keep_first_verdict(self):
        items = FULL_BATCH + [_verdict("pm-kisan", eligible=False)]
        evaluation = validate_results(items, SCHEME_CATALOG)
        assert evaluation.duplicate_ids == ["pm-kisan"]
        assert len(evaluation.results) == 3
        assert evaluation.results[0].is_eligible is True

    def test_missing_ids_reported(self):
        evaluation = validate_results(FULL_BATCH[:1], SCHEME_CATALOG)
        assert evaluation.missing_ids == ["pm-kusum", "agri-infra"]
        assert [r.scheme_id for r in evaluation.results] == ["pm-kisan"]

    def test_malformed_items_counted(self):
        items = FULL_BATCH + ["pm-kisan", {"schemeId": "pm-kusum"}]
        evaluation = validate_results(items, SCHEME_CATALOG)
        assert evaluation.invalid_items == 2
        assert len(evaluation.results) == 3

    def test_optional_fields_default_empty(self):
        item = {"schemeId": "pm-kisan", "schemeName": "PM-KISAN", "isEligible": False, "benefit": ""}
        result = validate_results([item], SCHEME_CATALOG).results[0]
        assert result.next_steps == []
        assert result.required_documents == []
        assert result.proof_citation == ""

    def test_null_optional_fields_keep_the_verdict(self):
        item = _verdict(
            "pm-kisan",
            proofCitation=None,
            proofSnippet=None,
            nextSteps=None,
            requiredDocuments=None,
        )
        evaluation = validate_results([item, FULL_BATCH[1], FULL_BATCH[2]], SCHEME_CATALOG)

        assert [r.scheme_id for r in evaluation.results] == ["pm-kisan", "pm-kusum", "agri-infra"]
        assert evaluation.missing_ids == []
        assert evaluation.invalid_items == 0
        kisan = evaluation.results[0]
        assert kisan.proof_citation == ""
        assert kisan.proof_snippet == ""
        assert kisan.next_steps == []
        assert kisan.required_documents == []


# ---------------------------------------------------------------------------
# EligibilityEvaluator
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_evaluate_single_call_for_whole_catalog(remote_factory, invoker, profile):
    remote, evaluator = _evaluator(
        remote_factory, invoker, json.dumps(FULL_BATCH), model_name="gemini-3-pro-preview"
    )

    results = await evaluator.evaluate(profile, SCHEME_CATALOG)

    assert len(remote.json_calls) == 1
    call = remote.json_calls[0]
    assert call["schema"] is RESULT_SCHEMA
    assert call["thinking_budget"] == 4000
    assert call["model"] == "gemini-3-pro-preview"
    assert [r.scheme_id for r in results] == ["pm-kisan", "pm-kusum", "agri-infra"]
    assert results[0].proof_citation == "Page 2, Section 2"
    assert results[1].is_eligible is False


@pytest.mark.asyncio
async def test_fenced_response_gives_same_results(remote_factory, invoker, profile):
    bare = json.dumps(FULL_BATCH)
    _, plain = _evaluator(remote_factory, invoker, bare)
    _, fenced = _evaluator(remote_factory, invoker, f"```json\n{bare}\n```")

    assert await plain.evaluate(profile, SCHEME_CATALOG) == await fenced.evaluate(profile, SCHEME_CATALOG)


@pytest.mark.asyncio
async def test_unparseable_response_yields_empty_list(remote_factory, invoker, profile):
    _, evaluator = _evaluator(remote_factory, invoker, "I could not decide.")

    batch = await evaluator.evaluate_batch(profile, SCHEME_CATALOG)
    assert batch.parse_failed
    assert batch.results == []
    assert await evaluator.evaluate(profile, SCHEME_CATALOG) == []


@pytest.mark.asyncio
async def test_batch_reports_counts(remote_factory, invoker, profile):
    _, evaluator = _evaluator(remote_factory, invoker, json.dumps(FULL_BATCH + [_verdict("other")]))

    batch = await evaluator.evaluate_batch(profile, SCHEME_CATALOG)
    assert batch.eligible_count == 2
    assert batch.unknown_ids == ["other"]


@pytest.mark.asyncio
async def test_thinking_budget_can_be_disabled(remote_factory, invoker, profile):
    remote, evaluator = _evaluator(remote_factory, invoker, "[]", thinking_budget=None)
    await evaluator.evaluate(profile, SCHEME_CATALOG)
    assert remote.json_calls[0]["thinking_budget"] is None


@pytest.mark.asyncio
async def test_transient_failures_are_retried(remote_factory, invoker, profile, remote_error, clock):
    remote = remote_factory(json_responses=[remote_error("quota", status=429), json.dumps(FULL_BATCH)])
    evaluator = EligibilityEvaluator(remote, invoker)

    results = await evaluator.evaluate(profile, SCHEME_CATALOG)

    assert len(results) == 3
    assert len(remote.json_calls) == 2
    assert clock.waits("backoff") == [4.0]
