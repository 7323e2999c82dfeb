"""Pydantic contracts for the analysis report, progress events and per-stage results."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class CulturalAnalysis(BaseModel):
    """Origin, period, use and artistic elements. The four required fields are never empty."""

    model_config = ConfigDict(frozen=True)

    origin_region: str
    historical_period: str
    traditional_use: str
    artistic_elements: list[str]
    preservation_notes: str | None = None

    @field_validator("origin_region", "historical_period", "traditional_use")
    @classmethod
    def non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("artistic_elements")
    @classmethod
    def non_empty_list(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("must contain at least one element")
        return v


class TextExtractionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    museum_name: str | None = None
    location: str | None = None
    year: str | None = None
    additional_info: str | None = None


class ObjectRecognition(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    specific_type: str
    confidence: float = Field(ge=0.0, le=1.0)
    cultural_significance: str


class TextExtraction(BaseModel):
    model_config = ConfigDict(frozen=True)

    extracted_text: str = ""
    metadata: TextExtractionMetadata = Field(default_factory=TextExtractionMetadata)


class GroundingSearch(BaseModel):
    """What the knowledge search contributed to the report."""

    model_config = ConfigDict(frozen=True)

    search_performed: bool
    verified_information: str = ""
    related_artifacts: list[str] = Field(default_factory=list)
    search_confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisReport(BaseModel):
    """Terminal aggregate handed to the caller; created once per request."""

    model_config = ConfigDict(frozen=True)

    object_recognition: ObjectRecognition
    text_extraction: TextExtraction
    cultural_analysis: CulturalAnalysis
    grounding_search: GroundingSearch | None = None


class Stage(str, Enum):
    """Progress stages in their fixed emission order."""

    initializing = "initializing"
    vision_analysis = "vision_analysis"
    text_extraction = "text_extraction"
    grounding_search = "grounding_search"
    finished = "finished"
    error = "error"


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.initializing,
    Stage.vision_analysis,
    Stage.text_extraction,
    Stage.grounding_search,
    Stage.finished,
)
STAGE_PROGRESS: dict[Stage, int] = {
    Stage.initializing: 0,
    Stage.vision_analysis: 20,
    Stage.text_extraction: 40,
    Stage.grounding_search: 60,
    Stage.finished: 100,
}
TERMINAL_STAGES = frozenset({Stage.finished, Stage.error})


class ProgressEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: Stage
    progress: int = Field(ge=0, le=100)
    message: str
    report: AnalysisReport | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES


class ErrorKind(str, Enum):
    capability_failure = "capability_failure"
    synthesis_parse_failure = "synthesis_parse_failure"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one pipeline stage: a value, or an error kind with detail."""

    stage: str
    value: T | None = None
    error: ErrorKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, stage: str, value: T) -> "StageResult[T]":
        return cls(stage=stage, value=value)

    @classmethod
    def failure(cls, stage: str, error: ErrorKind, detail: str) -> "StageResult[T]":
        return cls(stage=stage, error=error, detail=detail)
