"""AI module: data contracts and capability abstractions (vision, OCR, completion)."""

from nusascan.ai.schema import CulturalInfo, ModelCard, OcrResult, SearchResult, VisionResult
from nusascan.ai.vision_base import BaseVisionRecognizer, MockVisionRecognizer
from nusascan.ai.ocr_base import BaseTextReader, MockTextReader
from nusascan.ai.completion import BaseCompletionClient, MockCompletionClient
from nusascan.ai.factory import get_completion_client, get_text_reader, get_vision_recognizer

__all__ = [
    "BaseCompletionClient",
    "BaseTextReader",
    "BaseVisionRecognizer",
    "CulturalInfo",
    "MockCompletionClient",
    "MockTextReader",
    "MockVisionRecognizer",
    "ModelCard",
    "OcrResult",
    "SearchResult",
    "VisionResult",
    "get_completion_client",
    "get_text_reader",
    "get_vision_recognizer",
]
