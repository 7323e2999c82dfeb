"""
Analysis orchestrator: runs the capability stages and assembles the AnalysisReport.

Each stage is wrapped into a StageResult; failures are collapsed into the fixed
degraded report only here, at the orchestrator boundary. analyze() therefore
never raises for capability or content failures. The global deadline is a
separate concern: analyze_with_deadline() races analyze() against it and
raises AnalysisTimeoutError instead of returning a degraded report.
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from nusascan.ai.factory import get_completion_client, get_text_reader, get_vision_recognizer
from nusascan.ai.ocr_base import BaseTextReader
from nusascan.ai.schema import OcrResult, SearchResult, VisionResult
from nusascan.ai.vision_base import BaseVisionRecognizer
from nusascan.core.config import Settings
from nusascan.core.logging import get_flight_logger, request_context
from nusascan.errors import AnalysisTimeoutError
from nusascan.knowledge import BaseKnowledgeSearch, get_knowledge_search
from nusascan.pipeline.schema import (
    AnalysisReport,
    CulturalAnalysis,
    ErrorKind,
    GroundingSearch,
    ObjectRecognition,
    Stage,
    StageResult,
    TextExtraction,
    TextExtractionMetadata,
)
from nusascan.pipeline.synthesizer import CulturalSynthesizer
from nusascan.pipeline.text_attributes import extract_metadata

_log = logging.getLogger(__name__)

T = TypeVar("T")
StageCallback = Callable[[Stage], None]

DEFAULT_ANALYSIS_TIMEOUT_SECONDS = 15.0

DEFAULT_CATEGORY = "generic_cultural_object"
DEFAULT_SPECIFIC_TYPE = "Indonesian cultural object"
DEFAULT_CONFIDENCE = 0.7
DEFAULT_SIGNIFICANCE = "Object of Indonesian cultural value"
DEGRADED_CONFIDENCE = 0.3
LOCAL_MATCH_CONFIDENCE = 0.7


def degraded_report() -> AnalysisReport:
    """The fixed low-confidence report returned when any stage fails."""
    return AnalysisReport(
        object_recognition=ObjectRecognition(
            category=DEFAULT_CATEGORY,
            specific_type=DEFAULT_SPECIFIC_TYPE,
            confidence=DEGRADED_CONFIDENCE,
            cultural_significance="Unable to analyze the object in detail",
        ),
        text_extraction=TextExtraction(extracted_text="", metadata=TextExtractionMetadata()),
        cultural_analysis=CulturalAnalysis(
            origin_region="Indonesia",
            historical_period="unknown",
            traditional_use="Cultural heritage",
            artistic_elements=["traditional element"],
        ),
    )


def build_search_query(vision: VisionResult) -> str:
    return f"{vision.category or ''} {vision.specific_type or ''}".strip()


def build_grounding(search: SearchResult) -> GroundingSearch:
    info = search.cultural_info
    if info is None:
        return GroundingSearch(search_performed=True)
    return GroundingSearch(
        search_performed=True,
        verified_information=info.description or "",
        related_artifacts=[info.name] if info.name else [],
        search_confidence=LOCAL_MATCH_CONFIDENCE,
    )


def assemble_report(
    vision: VisionResult,
    ocr: OcrResult,
    search: SearchResult,
    analysis: CulturalAnalysis,
) -> AnalysisReport:
    """Combine stage outputs, applying defaults for fields the recognizer left out."""
    text = ocr.text or ""
    return AnalysisReport(
        object_recognition=ObjectRecognition(
            category=vision.category or DEFAULT_CATEGORY,
            specific_type=vision.specific_type or DEFAULT_SPECIFIC_TYPE,
            confidence=vision.confidence if vision.confidence is not None else DEFAULT_CONFIDENCE,
            cultural_significance=vision.description or DEFAULT_SIGNIFICANCE,
        ),
        text_extraction=TextExtraction(
            extracted_text=text,
            metadata=extract_metadata(text, ocr.confidence),
        ),
        cultural_analysis=analysis,
        grounding_search=build_grounding(search),
    )


async def run_stage(stage: str, awaitable: Awaitable[T]) -> StageResult[T]:
    """Await one capability call, converting any exception into a failed StageResult."""
    try:
        return StageResult.success(stage, await awaitable)
    except Exception as e:
        _log.warning("Stage %s failed: %s", stage, e, exc_info=True)
        return StageResult.failure(stage, ErrorKind.capability_failure, str(e) or type(e).__name__)


class AnalysisOrchestrator:
    """
    Pipeline entry point. Vision and OCR run concurrently; the knowledge search
    waits for vision because its query is built from the recognized category
    and type; synthesis runs last.
    """

    def __init__(
        self,
        vision: BaseVisionRecognizer,
        reader: BaseTextReader,
        search: BaseKnowledgeSearch,
        synthesizer: CulturalSynthesizer,
        *,
        dump_on_degraded: bool = False,
    ) -> None:
        self._vision = vision
        self._reader = reader
        self._search = search
        self._synthesizer = synthesizer
        self._dump_on_degraded = dump_on_degraded

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisOrchestrator":
        completion = get_completion_client(settings.completion_backend, settings)
        return cls(
            vision=get_vision_recognizer(settings.vision_backend, settings),
            reader=get_text_reader(settings.ocr_backend, settings),
            search=get_knowledge_search(settings.search_backend, settings),
            synthesizer=CulturalSynthesizer(
                completion,
                max_tokens=settings.synthesis_max_tokens,
                temperature=settings.synthesis_temperature,
            ),
            dump_on_degraded=settings.dump_on_degraded,
        )

    async def analyze(self, image_path: str | Path, on_stage: StageCallback | None = None) -> AnalysisReport:
        """Return the report for image_path; any stage failure yields the degraded report."""
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()
        with request_context(request_id):
            _log.info("Starting analysis of %s", image_path)
            try:
                stage_results, report = await self._run(Path(image_path), on_stage)
            except Exception as e:
                _log.error("Analysis failed during assembly: %s", e, exc_info=True)
                stage_results = [StageResult.failure("assembly", ErrorKind.capability_failure, str(e))]
                report = None
            failures = [r for r in stage_results if not r.ok]
            if report is None or failures:
                report = self._degrade(request_id, failures)
            _log.info("Analysis finished in %.2fs (degraded=%s)", time.perf_counter() - started, bool(failures))
        return report

    async def _run(
        self,
        image_path: Path,
        on_stage: StageCallback | None,
    ) -> tuple[list[StageResult], AnalysisReport | None]:
        _notify(on_stage, Stage.vision_analysis)
        _notify(on_stage, Stage.text_extraction)
        vision_r, ocr_r = await asyncio.gather(
            run_stage("vision", self._vision.analyze(image_path)),
            run_stage("ocr", self._reader.extract(image_path)),
        )
        if not (vision_r.ok and ocr_r.ok):
            return [vision_r, ocr_r], None
        vision: VisionResult = vision_r.value
        ocr: OcrResult = ocr_r.value

        _notify(on_stage, Stage.grounding_search)
        query = build_search_query(vision)
        _log.debug("Knowledge search query: %r", query)
        search_r = await run_stage("search", self._search.lookup(query))
        if not search_r.ok:
            return [vision_r, ocr_r, search_r], None
        search: SearchResult = search_r.value

        analysis = await self._synthesizer.synthesize(vision, search, ocr.text)
        return [vision_r, ocr_r, search_r], assemble_report(vision, ocr, search, analysis)

    def _degrade(self, request_id: str, failures: list[StageResult]) -> AnalysisReport:
        summary = ", ".join(f"{r.stage}: {r.detail}" for r in failures) or "no report assembled"
        _log.warning("Returning degraded report (%s)", summary)
        flight = get_flight_logger()
        if self._dump_on_degraded and flight is not None:
            path = flight.dump("degraded", request_id=request_id)
            _log.warning("Flight log dumped to %s", path)
        return degraded_report()


def _notify(on_stage: StageCallback | None, stage: Stage) -> None:
    if on_stage is not None:
        on_stage(stage)


async def analyze_with_deadline(
    orchestrator: AnalysisOrchestrator,
    image_path: str | Path,
    timeout_seconds: float = DEFAULT_ANALYSIS_TIMEOUT_SECONDS,
) -> AnalysisReport:
    """
    Race analyze() against a fixed deadline.

    On expiry the pipeline task is cancelled (threads already inside a provider
    call are abandoned) and AnalysisTimeoutError is raised; a timeout is never
    turned into a degraded report.
    """
    try:
        return await asyncio.wait_for(orchestrator.analyze(image_path), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        _log.warning("Analysis of %s exceeded %.1fs deadline", image_path, timeout_seconds)
        raise AnalysisTimeoutError(timeout_seconds) from e
