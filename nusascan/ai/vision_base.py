"""Abstract base and mock implementation for vision recognizers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from nusascan.ai.parsing import coerce_str_list
from nusascan.ai.schema import ModelCard, VisionResult

MIN_CONFIDENCE = 0.1
CLASSIFY_PROMPT = (
    "Analyze this image as an Indonesian cultural object. Reply with JSON only, using the fields "
    "category (batik, keris, wayang, candi, topeng, manuscript or another cultural category), "
    "specific_type, confidence (0.1-1.0), description and cultural_elements (a list of strings)."
)


class BaseVisionRecognizer(ABC):
    """Abstract base for cultural object recognition (category, type, description, elements)."""

    @abstractmethod
    def get_model_card(self) -> ModelCard:
        """Return model identity (name, version)."""
        ...

    @abstractmethod
    async def analyze(self, image_path: Path) -> VisionResult:
        """Identify the cultural object in the image at path. May raise on provider errors."""
        ...


class MockVisionRecognizer(BaseVisionRecognizer):
    """Placeholder recognizer for testing and development."""

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="mock-vision", version="1.0")

    async def analyze(self, image_path: Path) -> VisionResult:
        return VisionResult(
            category="batik",
            specific_type="batik kawung",
            confidence=0.9,
            description="A placeholder batik description.",
            cultural_elements=["kawung motif", "natural dye"],
        )


def _clamp_confidence(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return min(max(float(value), MIN_CONFIDENCE), 1.0)


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_vision_result(payload: dict[str, Any]) -> VisionResult:
    """Validate a recognizer's JSON payload into a VisionResult.

    Missing or mistyped fields become None (or an empty element list); a
    reported confidence is clamped to [MIN_CONFIDENCE, 1.0].
    """
    return VisionResult(
        category=_optional_text(payload.get("category")),
        specific_type=_optional_text(payload.get("specific_type")),
        confidence=_clamp_confidence(payload.get("confidence")),
        description=_optional_text(payload.get("description")),
        cultural_elements=coerce_str_list(payload.get("cultural_elements")),
    )
