"""Tests for free-text profile extraction."""

from __future__ import annotations

import json

import pytest

from nitisetu.models.enums import SocialCategory
from nitisetu.models.profile import FarmerProfile
from nitisetu.services.extraction import (
    EXTRACTION_SCHEMA,
    ProfileExtractor,
    is_trivial,
    parse_extraction,
)


@pytest.fixture
def remote(remote_factory):
    return remote_factory(
        json_responses=[
            json.dumps(
                {
                    "name": "Ram Singh",
                    "state": "Punjab",
                    "landHolding": 3.5,
                    "cropType": "Wheat",
                    "category": "obc",
                }
            )
        ]
    )


@pytest.fixture
def extractor(remote, invoker):
    return ProfileExtractor(remote, invoker, model_name="gemini-3-flash-preview")


class TestTrivialInput:
    @pytest.mark.parametrize("text", ["", "   ", "hi", "ok", "Hey", "abcd", " yes "])
    def test_short_or_greeting_is_trivial(self, text):
        assert is_trivial(text)

    @pytest.mark.parametrize("text", ["Hello", "GOOD MORNING", "thanks", " Hello "])
    def test_greetings_any_case(self, text):
        assert is_trivial(text)

    def test_real_sentence_is_not_trivial(self):
        assert not is_trivial("I farm 2 acres in Punjab")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["hi", "Good morning", "ok", "abc"])
    async def test_trivial_input_makes_no_call(self, extractor, remote, text):
        assert await extractor.extract(text) == {}
        assert remote.json_calls == []


class TestParseExtraction:
    def test_maps_wire_keys_to_profile_fields(self):
        updates = parse_extraction('{"landHolding": 2, "cropType": "Rice", "district": "Ludhiana"}')
        assert updates == {"land_holding": 2.0, "crop_type": "Rice", "district": "Ludhiana"}

    def test_invalid_json_yields_empty(self):
        assert parse_extraction("not json {") == {}

    def test_none_yields_empty(self):
        assert parse_extraction(None) == {}

    def test_non_object_yields_empty(self):
        assert parse_extraction('["Ram", "Punjab"]') == {}

    def test_null_and_blank_fields_omitted(self):
        updates = parse_extraction('{"name": "Ram", "state": null, "district": "  "}')
        assert updates == {"name": "Ram"}

    def test_category_normalised(self):
        assert parse_extraction('{"category": "sc"}') == {"category": SocialCategory.SC}

    def test_unknown_category_dropped(self):
        assert parse_extraction('{"category": "Farmer"}') == {}

    @pytest.mark.parametrize("value", ['-1', '"many"', "true", '"NaN"'])
    def test_bad_land_holding_dropped(self, value):
        assert parse_extraction(f'{{"landHolding": {value}}}') == {}

    def test_numeric_string_land_holding_accepted(self):
        assert parse_extraction('{"landHolding": "4.5"}') == {"land_holding": 4.5}

    def test_non_string_text_field_dropped(self):
        assert parse_extraction('{"name": 42, "state": "Bihar"}') == {"state": "Bihar"}


@pytest.mark.asyncio
async def test_extract_returns_profile_fields(extractor, remote):
    updates = await extractor.extract("  My name is Ram Singh, I grow wheat on 3.5 acres in Punjab  ")

    assert updates == {
        "name": "Ram Singh",
        "state": "Punjab",
        "land_holding": 3.5,
        "crop_type": "Wheat",
        "category": SocialCategory.OBC,
    }
    assert len(remote.json_calls) == 1
    call = remote.json_calls[0]
    assert "My name is Ram Singh, I grow wheat on 3.5 acres in Punjab" in call["prompt"]
    assert call["schema"] is EXTRACTION_SCHEMA
    assert call["model"] == "gemini-3-flash-preview"
    assert call["thinking_budget"] is None


@pytest.mark.asyncio
async def test_unparseable_response_yields_empty(remote_factory, invoker):
    extractor = ProfileExtractor(remote_factory(json_responses=["Sorry, I cannot help"]), invoker)
    assert await extractor.extract("I am a farmer from Bihar") == {}


@pytest.mark.asyncio
async def test_remote_failure_propagates(remote_factory, invoker, remote_error):
    error = remote_error("permission denied", status=403)
    remote = remote_factory(json_responses=[error])
    extractor = ProfileExtractor(remote, invoker)

    with pytest.raises(type(error)):
        await extractor.extract("I am a farmer from Bihar")
    assert len(remote.json_calls) == 1


@pytest.mark.asyncio
async def test_partial_extractions_merge_additively(remote_factory, invoker):
    remote = remote_factory(json_responses=['{"name": "Ram"}', '{"state": "Punjab"}'])
    extractor = ProfileExtractor(remote, invoker)

    profile = FarmerProfile.initial()
    profile = profile.merged(await extractor.extract("My name is Ram"))
    profile = profile.merged(await extractor.extract("I live in Punjab"))

    assert profile.name == "Ram"
    assert profile.state == "Punjab"
    assert profile.category == SocialCategory.GENERAL
    assert profile.land_holding == 0
