"""Pydantic data contracts for the capability adapters (vision, OCR, knowledge search)."""

from pydantic import BaseModel, ConfigDict, Field


class ModelCard(BaseModel):
    """Metadata identifying an AI/vision model."""

    name: str
    version: str


class VisionResult(BaseModel):
    """Object identification produced once per request by a vision recognizer.

    Every field except cultural_elements may be absent; the orchestrator applies
    report defaults rather than the recognizer guessing.
    """

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    specific_type: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    description: str | None = None
    cultural_elements: list[str] = Field(default_factory=list)


class OcrResult(BaseModel):
    """Text read from the image. Empty text is a valid result, not a failure."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    confidence: float | None = None


class CulturalInfo(BaseModel):
    """One knowledge-base entry describing a kind of artifact."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    description: str | None = None
    origin: str | None = None
    historical_context: str | None = None
    significance: str | None = None


class SearchResult(BaseModel):
    """Result of a cultural knowledge lookup; cultural_info is None when nothing matched."""

    model_config = ConfigDict(frozen=True)

    cultural_info: CulturalInfo | None = None
