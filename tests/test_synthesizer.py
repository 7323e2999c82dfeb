"""Tests for CulturalSynthesizer: AI answer merging and heuristic fallbacks."""

import asyncio
import json

import pytest

from nusascan.ai.schema import CulturalInfo, SearchResult, VisionResult
from nusascan.errors import CapabilityError
from nusascan.pipeline.provenance import infer_origin, infer_period
from nusascan.pipeline.schema import ErrorKind
from nusascan.pipeline.synthesizer import (
    DEFAULT_ARTISTIC_ELEMENTS,
    DEFAULT_TRADITIONAL_USE,
    LIMITED_SEARCH_DATA,
    SYSTEM_PROMPT,
    CulturalSynthesizer,
    build_prompt,
    summarize_search,
)

pytestmark = [pytest.mark.fast]

VISION = VisionResult(
    category="batik",
    specific_type="batik kawung",
    confidence=0.9,
    description="Four-lobed kawung pattern",
    cultural_elements=["kawung motif"],
)
SEARCH = SearchResult(
    cultural_info=CulturalInfo(
        origin="Yogyakarta",
        historical_context="Classical court motif",
        significance="Reserved for royalty",
    )
)


def _synthesize(fakes, response="{}", exc=None, vision=VISION, search=SEARCH, **kwargs):
    client = fakes.Completion(response=response, exc=exc)
    synth = CulturalSynthesizer(client, **kwargs)
    return asyncio.run(synth.synthesize(vision, search, "Museum Batik 1998")), client


def test_ai_values_are_used_when_present(fakes):
    """A well-formed AI answer wins over every heuristic."""
    answer = {
        "origin_region": "Mataram Sultanate",
        "historical_period": "18th century CE",
        "traditional_use": "Ceremonial cloth",
        "artistic_elements": ["kawung", "isen-isen"],
        "preservation_notes": "Store away from light",
    }
    analysis, _ = _synthesize(fakes, response=f"```json\n{json.dumps(answer)}\n```")
    assert analysis.origin_region == "Mataram Sultanate"
    assert analysis.historical_period == "18th century CE"
    assert analysis.traditional_use == "Ceremonial cloth"
    assert analysis.artistic_elements == ["kawung", "isen-isen"]
    assert analysis.preservation_notes == "Store away from light"


def test_unparsable_answer_falls_back_to_heuristics(fakes):
    analysis, _ = _synthesize(fakes, response="I cannot answer that in JSON, sorry.")
    assert analysis.origin_region == infer_origin(VISION, SEARCH) == "Yogyakarta Sultanate"
    assert analysis.historical_period == infer_period(VISION, SEARCH)
    assert analysis.traditional_use == "Reserved for royalty"
    assert analysis.artistic_elements == ["kawung motif"]
    assert analysis.preservation_notes is None


def test_call_failure_falls_back_to_heuristics(fakes):
    """A provider error is absorbed; synthesize() still returns a full analysis."""
    analysis, client = _synthesize(fakes, exc=CapabilityError("completion", "HTTP 503"))
    assert len(client.calls) == 1
    assert analysis.origin_region == "Yogyakarta Sultanate"


@pytest.mark.parametrize(
    "response, exc, kind",
    [
        ("I cannot answer that in JSON, sorry.", None, ErrorKind.synthesis_parse_failure),
        ("{}", CapabilityError("completion", "HTTP 503"), ErrorKind.capability_failure),
    ],
)
def test_attempt_reports_error_kind(fakes, response, exc, kind):
    synth = CulturalSynthesizer(fakes.Completion(response=response, exc=exc))
    result = asyncio.run(synth.attempt(VISION, SEARCH, ""))
    assert not result.ok
    assert result.error is kind
    assert result.stage == "synthesis"
    assert result.value is None


def test_attempt_returns_parsed_answer(fakes):
    synth = CulturalSynthesizer(fakes.Completion(response='Here: {"origin_region": "Kerajaan Mataram"}'))
    result = asyncio.run(synth.attempt(VISION, SEARCH, ""))
    assert result.ok
    assert result.value == {"origin_region": "Kerajaan Mataram"}


def test_synthesize_logs_error_kind(fakes, caplog):
    with caplog.at_level("WARNING", logger="nusascan.pipeline.synthesizer"):
        _synthesize(fakes, response="no json")
    assert "synthesis_parse_failure" in caplog.text


def test_partial_answer_fills_missing_fields_individually(fakes):
    response = json.dumps({"origin_region": "Kasunanan Surakarta", "artistic_elements": [], "traditional_use": " "})
    analysis, _ = _synthesize(fakes, response=response)
    assert analysis.origin_region == "Kasunanan Surakarta"
    assert analysis.historical_period == infer_period(VISION, SEARCH)
    assert analysis.traditional_use == "Reserved for royalty"
    assert analysis.artistic_elements == ["kawung motif"]


def test_fixed_defaults_without_any_evidence(fakes):
    bare_vision = VisionResult(category="ulos")
    analysis, _ = _synthesize(fakes, response="{}", vision=bare_vision, search=SearchResult())
    assert analysis.traditional_use == DEFAULT_TRADITIONAL_USE
    assert analysis.artistic_elements == list(DEFAULT_ARTISTIC_ELEMENTS)
    assert analysis.origin_region == "Archipelago, Indonesia"


def test_generation_parameters_and_prompt_passed_to_client(fakes):
    _, client = _synthesize(fakes, max_tokens=321, temperature=0.1)
    call = client.calls[0]
    assert call["max_tokens"] == 321
    assert call["temperature"] == 0.1
    assert call["system_prompt"] == SYSTEM_PROMPT
    assert "batik - batik kawung" in call["prompt"]
    assert "Museum Batik 1998" in call["prompt"]
    assert "Significance: Reserved for royalty" in call["prompt"]


def test_prompt_placeholders_for_missing_inputs():
    prompt = build_prompt(VisionResult(), SearchResult(), "  ")
    assert "OBJECT: unknown - unknown" in prompt
    assert "VISUAL DESCRIPTION: not available" in prompt
    assert "CULTURAL ELEMENTS: not detected" in prompt
    assert "EXTRACTED TEXT: none" in prompt
    assert f"SEARCH DATA: {LIMITED_SEARCH_DATA}" in prompt


def test_summarize_search_empty_info_is_limited():
    assert summarize_search(SearchResult(cultural_info=CulturalInfo())) == LIMITED_SEARCH_DATA
