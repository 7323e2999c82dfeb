"""Tests for AnalysisOrchestrator: stage composition, degraded reports and the deadline."""

import asyncio
import itertools
import logging
from pathlib import Path

import pytest

from nusascan.ai.schema import OcrResult, SearchResult, VisionResult
from nusascan.core import logging as core_logging
from nusascan.core.logging import FlightLogger
from nusascan.errors import AnalysisTimeoutError, CapabilityError
from nusascan.pipeline.orchestrator import (
    DEFAULT_CATEGORY,
    DEFAULT_CONFIDENCE,
    DEFAULT_SIGNIFICANCE,
    DEFAULT_SPECIFIC_TYPE,
    analyze_with_deadline,
    build_search_query,
    degraded_report,
    run_stage,
)
from nusascan.pipeline.schema import AnalysisReport, ErrorKind, Stage

pytestmark = [pytest.mark.fast]


def test_happy_path_report(make_orchestrator, image_path):
    """All stages succeed: vision, OCR metadata, search grounding and synthesis are merged."""
    report = asyncio.run(make_orchestrator().analyze(image_path))
    assert report.object_recognition.category == "batik"
    assert report.object_recognition.specific_type == "batik parang"
    assert report.object_recognition.confidence == 0.85
    assert report.object_recognition.cultural_significance == "Brown and white parang batik cloth"
    assert report.text_extraction.extracted_text == "Museum Batik Danar Hadi, Solo 1967"
    assert report.text_extraction.metadata.location == "Solo"
    assert report.text_extraction.metadata.year == "1967"
    # FakeCompletion answers "{}" so heuristics fill the analysis.
    assert report.cultural_analysis.origin_region == "Surakarta Sunanate"
    assert report.cultural_analysis.historical_period == "17th-19th century CE, Sultanate period"
    assert report.cultural_analysis.traditional_use == "Worn in court ceremonies"
    assert report.cultural_analysis.artistic_elements == ["parang motif", "sogan colouring"]
    assert report.grounding_search is not None
    assert report.grounding_search.related_artifacts == ["Indonesian Batik"]


def test_ai_answer_reaches_report(make_orchestrator, fakes, image_path):
    completion = fakes.Completion(response='{"origin_region": "Kasunanan Surakarta", "historical_period": "1890s"}')
    report = asyncio.run(make_orchestrator(completion=completion).analyze(image_path))
    assert report.cultural_analysis.origin_region == "Kasunanan Surakarta"
    assert report.cultural_analysis.historical_period == "1890s"
    assert len(completion.calls) == 1


def test_degraded_scenario(make_orchestrator, fakes, image_path):
    """Vision raises, OCR reads nothing, search finds nothing: the fixed degraded report."""
    orch = make_orchestrator(
        vision=fakes.Vision(exc=CapabilityError("station", "connection refused")),
        reader=fakes.Reader(result=OcrResult(text="")),
        search=fakes.Search(result=SearchResult()),
    )
    report = asyncio.run(orch.analyze(image_path))
    assert report == degraded_report()
    assert report.object_recognition.category == "generic_cultural_object"
    assert report.object_recognition.specific_type == "Indonesian cultural object"
    assert report.object_recognition.confidence == 0.3
    assert report.object_recognition.cultural_significance == "Unable to analyze the object in detail"
    assert report.text_extraction.extracted_text == ""
    assert report.cultural_analysis.origin_region == "Indonesia"
    assert report.cultural_analysis.historical_period == "unknown"
    assert report.cultural_analysis.traditional_use == "Cultural heritage"
    assert report.cultural_analysis.artistic_elements == ["traditional element"]


@pytest.mark.parametrize(
    "failing",
    [combo for n in range(1, 5) for combo in itertools.combinations(("vision", "ocr", "search", "completion"), n)],
)
def test_analyze_never_raises_for_any_failure_subset(make_orchestrator, fakes, image_path, failing):
    """Every combination of capability failures still yields a well-formed report."""
    boom = RuntimeError("boom")
    orch = make_orchestrator(
        vision=fakes.Vision(exc=boom if "vision" in failing else None),
        reader=fakes.Reader(exc=boom if "ocr" in failing else None),
        search=fakes.Search(exc=boom if "search" in failing else None),
        completion=fakes.Completion(exc=boom if "completion" in failing else None),
    )
    report = asyncio.run(orch.analyze(image_path))
    assert isinstance(report, AnalysisReport)
    if failing == ("completion",):
        # Synthesis failure alone is absorbed by the heuristic fallback.
        assert report.object_recognition.category == "batik"
    else:
        assert report == degraded_report()


def test_search_skipped_when_vision_fails(make_orchestrator, fakes, image_path):
    search = fakes.Search()
    completion = fakes.Completion()
    orch = make_orchestrator(vision=fakes.Vision(exc=ValueError("bad json")), search=search, completion=completion)
    asyncio.run(orch.analyze(image_path))
    assert search.queries == []
    assert completion.calls == []


def test_defaults_for_absent_vision_fields(make_orchestrator, fakes, image_path):
    orch = make_orchestrator(vision=fakes.Vision(result=VisionResult()), search=fakes.Search(result=SearchResult()))
    report = asyncio.run(orch.analyze(image_path))
    rec = report.object_recognition
    assert rec.category == DEFAULT_CATEGORY
    assert rec.specific_type == DEFAULT_SPECIFIC_TYPE
    assert rec.confidence == DEFAULT_CONFIDENCE
    assert rec.cultural_significance == DEFAULT_SIGNIFICANCE
    assert report.grounding_search is not None
    assert report.grounding_search.search_performed is True
    assert report.grounding_search.related_artifacts == []


def test_search_query_built_from_category_and_type(make_orchestrator, fakes, image_path):
    search = fakes.Search()
    asyncio.run(make_orchestrator(search=search).analyze(image_path))
    assert search.queries == ["batik batik parang"]
    assert build_search_query(VisionResult(category="keris")) == "keris"
    assert build_search_query(VisionResult()) == ""


def test_stage_notifications_in_order(make_orchestrator, image_path):
    seen: list[Stage] = []
    asyncio.run(make_orchestrator().analyze(image_path, on_stage=seen.append))
    assert seen == [Stage.vision_analysis, Stage.text_extraction, Stage.grounding_search]


def test_vision_and_ocr_run_concurrently(make_orchestrator, fakes, image_path):
    """Two 0.3s stages finish well under their 0.6s sequential sum."""
    orch = make_orchestrator(vision=fakes.Vision(delay=0.3), reader=fakes.Reader(delay=0.3))

    async def timed() -> float:
        loop = asyncio.get_running_loop()
        start = loop.time()
        await orch.analyze(image_path)
        return loop.time() - start

    assert asyncio.run(timed()) < 0.55


def test_run_stage_wraps_exceptions():
    async def fail():
        raise CapabilityError("station", "HTTP 500")

    result = asyncio.run(run_stage("vision", fail()))
    assert not result.ok
    assert result.error is ErrorKind.capability_failure
    assert "HTTP 500" in result.detail


@pytest.mark.slow
def test_deadline_raises_timeout_error(make_orchestrator, fakes, image_path):
    """A slow stage past the deadline raises AnalysisTimeoutError, never a degraded report."""
    orch = make_orchestrator(vision=fakes.Vision(delay=2.0))
    with pytest.raises(AnalysisTimeoutError) as exc_info:
        asyncio.run(analyze_with_deadline(orch, image_path, timeout_seconds=0.1))
    assert exc_info.value.timeout_seconds == 0.1
    assert "taking too long" in str(exc_info.value)


def test_deadline_not_hit_returns_report(make_orchestrator, image_path):
    report = asyncio.run(analyze_with_deadline(make_orchestrator(), image_path, timeout_seconds=5))
    assert report.object_recognition.category == "batik"


def test_degraded_report_dumps_flight_log(make_orchestrator, fakes, image_path, tmp_path, monkeypatch):
    flight = FlightLogger(capacity=100, forensics_dir=tmp_path / "forensics")
    monkeypatch.setattr(core_logging, "_flight_logger", flight)
    root = logging.getLogger()
    root.addHandler(flight)
    try:
        orch = make_orchestrator(vision=fakes.Vision(exc=RuntimeError("down")), dump_on_degraded=True)
        asyncio.run(orch.analyze(image_path))
    finally:
        root.removeHandler(flight)
    dumps = list(Path(tmp_path / "forensics").glob("degraded_*.log"))
    assert len(dumps) == 1


def test_no_dump_unless_enabled(make_orchestrator, fakes, image_path, tmp_path, monkeypatch):
    flight = FlightLogger(capacity=100, forensics_dir=tmp_path / "forensics")
    monkeypatch.setattr(core_logging, "_flight_logger", flight)
    orch = make_orchestrator(vision=fakes.Vision(exc=RuntimeError("down")))
    asyncio.run(orch.analyze(image_path))
    assert not (tmp_path / "forensics").exists()
