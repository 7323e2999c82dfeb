"""Pipeline module: orchestrator, synthesizer, heuristics and progress streaming."""

from nusascan.pipeline.schema import (
    AnalysisReport,
    CulturalAnalysis,
    ProgressEvent,
    Stage,
    TextExtractionMetadata,
)
from nusascan.pipeline.provenance import infer_origin, infer_period
from nusascan.pipeline.synthesizer import CulturalSynthesizer
from nusascan.pipeline.orchestrator import AnalysisOrchestrator, analyze_with_deadline, degraded_report
from nusascan.pipeline.streaming import StreamingProgressReporter

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisReport",
    "CulturalAnalysis",
    "CulturalSynthesizer",
    "ProgressEvent",
    "Stage",
    "StreamingProgressReporter",
    "TextExtractionMetadata",
    "analyze_with_deadline",
    "degraded_report",
    "infer_origin",
    "infer_period",
]
