"""Abstract base and mock implementation for text readers (OCR)."""

from abc import ABC, abstractmethod
from pathlib import Path

from nusascan.ai.schema import ModelCard, OcrResult


class BaseTextReader(ABC):
    """Abstract base for reading text from an image.

    An image with no legible text yields OcrResult(text=""); only provider
    failures raise.
    """

    @abstractmethod
    def get_model_card(self) -> ModelCard:
        ...

    @abstractmethod
    async def extract(self, image_path: Path) -> OcrResult:
        ...


class MockTextReader(BaseTextReader):
    """Placeholder reader for testing and development."""

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="mock-ocr", version="1.0")

    async def extract(self, image_path: Path) -> OcrResult:
        return OcrResult(text="Museum Batik Yogyakarta 1998", confidence=88.0)
