"""Pytest fixtures: fake capabilities with scripted results, failures and delays."""

import asyncio
import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from nusascan.ai.completion import BaseCompletionClient
from nusascan.ai.ocr_base import BaseTextReader
from nusascan.ai.schema import CulturalInfo, ModelCard, OcrResult, SearchResult, VisionResult
from nusascan.ai.vision_base import BaseVisionRecognizer
from nusascan.core.config import reset_config
from nusascan.knowledge.search import BaseKnowledgeSearch
from nusascan.pipeline.orchestrator import AnalysisOrchestrator
from nusascan.pipeline.synthesizer import CulturalSynthesizer


class FakeVision(BaseVisionRecognizer):
    def __init__(self, result: VisionResult | None = None, exc: Exception | None = None, delay: float = 0.0):
        self.result = result or VisionResult(
            category="batik",
            specific_type="batik parang",
            confidence=0.85,
            description="Brown and white parang batik cloth",
            cultural_elements=["parang motif", "sogan colouring"],
        )
        self.exc = exc
        self.delay = delay
        self.calls: list[Path] = []

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="fake-vision", version="test")

    async def analyze(self, image_path: Path) -> VisionResult:
        self.calls.append(image_path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeReader(BaseTextReader):
    def __init__(self, result: OcrResult | None = None, exc: Exception | None = None, delay: float = 0.0):
        self.result = result if result is not None else OcrResult(text="Museum Batik Danar Hadi, Solo 1967", confidence=91.5)
        self.exc = exc
        self.delay = delay

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="fake-ocr", version="test")

    async def extract(self, image_path: Path) -> OcrResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeSearch(BaseKnowledgeSearch):
    def __init__(self, result: SearchResult | None = None, exc: Exception | None = None):
        self.result = result if result is not None else SearchResult(
            cultural_info=CulturalInfo(
                name="Indonesian Batik",
                description="Wax-resist dyeing",
                origin="Surakarta, Central Java",
                historical_context="Court tradition of the keraton",
                significance="Worn in court ceremonies",
            )
        )
        self.exc = exc
        self.queries: list[str] = []

    async def lookup(self, query: str) -> SearchResult:
        self.queries.append(query)
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeCompletion(BaseCompletionClient):
    def __init__(self, response: str = "{}", exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.calls: list[dict] = []

    async def complete(self, prompt, max_tokens, temperature, system_prompt=None) -> str:
        self.calls.append(
            {"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature, "system_prompt": system_prompt}
        )
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def fakes():
    """Fake capability classes, for tests that script failures or delays."""
    return SimpleNamespace(
        Vision=FakeVision,
        Reader=FakeReader,
        Search=FakeSearch,
        Completion=FakeCompletion,
    )


@pytest.fixture
def make_orchestrator():
    """Build an AnalysisOrchestrator from (optional) fakes; unspecified capabilities succeed."""

    def _make(vision=None, reader=None, search=None, completion=None, **kwargs) -> AnalysisOrchestrator:
        return AnalysisOrchestrator(
            vision=vision or FakeVision(),
            reader=reader or FakeReader(),
            search=search or FakeSearch(),
            synthesizer=CulturalSynthesizer(completion or FakeCompletion()),
            **kwargs,
        )

    return _make


@pytest.fixture
def image_path(tmp_path) -> Path:
    p = tmp_path / "artifact.jpg"
    p.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg-bytes")
    return p


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch, tmp_path):
    """Isolate every test from a developer's nusascan.yml and API keys."""
    for name in list(os.environ):
        if name.startswith("NUSASCAN_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("NUSASCAN_CONFIG", str(tmp_path / "missing-config.yml"))
    reset_config()
    yield
    reset_config()
