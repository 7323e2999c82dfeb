"""Merge vision, search and OCR output into a CulturalAnalysis with one completion call."""

import logging
from typing import Any

from nusascan.ai.completion import BaseCompletionClient
from nusascan.ai.parsing import coerce_str_list, extract_json_object
from nusascan.ai.schema import SearchResult, VisionResult
from nusascan.pipeline.provenance import infer_origin, infer_period
from nusascan.pipeline.schema import CulturalAnalysis, ErrorKind, StageResult

_log = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.3
DEFAULT_TRADITIONAL_USE = "Archipelago cultural heritage"
DEFAULT_ARTISTIC_ELEMENTS = ("Traditional Indonesian motif",)
LIMITED_SEARCH_DATA = "Limited search data"
SYNTHESIS_STAGE = "synthesis"

SYSTEM_PROMPT = (
    "You are an expert in Indonesian history and culture with deep knowledge of the "
    "Archipelago kingdoms, historical periods and traditional arts."
)

ANALYSIS_PROMPT = """As an expert in Indonesian culture, analyze the following cultural object:

OBJECT: {category} - {specific_type}
VISUAL DESCRIPTION: {description}
CULTURAL ELEMENTS: {elements}
EXTRACTED TEXT: {ocr_text}
SEARCH DATA: {search_context}

Return the analysis as JSON with the fields:
- origin_region: specific kingdom/region of origin (e.g. "Majapahit Kingdom, East Java" or "Yogyakarta Sultanate")
- historical_period: specific year range and period name (e.g. "13th-15th century CE, Majapahit period")
- traditional_use: original function in Indonesian cultural context
- artistic_elements: array of identified Indonesian artistic elements
- preservation_notes: conservation notes, only if relevant

GUIDELINES:
- Use accurate knowledge of Indonesian history
- If search data is limited, estimate from the artistic style
- Prefer geographic and temporal specificity
- Relate the object to the kingdoms and periods of Indonesian history

RESPONSE FORMAT: JSON only, no markdown
"""


def summarize_search(search: SearchResult) -> str:
    """Flatten search.cultural_info into one line, or the limited-data marker."""
    info = search.cultural_info
    if info is None:
        return LIMITED_SEARCH_DATA
    parts = [
        ("Search information", info.description),
        ("Origin", info.origin),
        ("Historical context", info.historical_context),
        ("Significance", info.significance),
    ]
    summary = ". ".join(f"{label}: {value}" for label, value in parts if value)
    return summary or LIMITED_SEARCH_DATA


def build_prompt(vision: VisionResult, search: SearchResult, ocr_text: str) -> str:
    return ANALYSIS_PROMPT.format(
        category=vision.category or "unknown",
        specific_type=vision.specific_type or "unknown",
        description=vision.description or "not available",
        elements=", ".join(vision.cultural_elements) or "not detected",
        ocr_text=ocr_text.strip() or "none",
        search_context=summarize_search(search),
    )


def _ai_text(parsed: dict[str, Any] | None, key: str) -> str | None:
    if parsed is None:
        return None
    value = parsed.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class CulturalSynthesizer:
    """
    Issues one completion call and merges its JSON answer with heuristic fallbacks.

    synthesize() never raises: a failed call or an unparsable answer yields the
    full heuristic analysis, and individual missing fields are filled in the
    order AI value -> heuristics/search -> vision -> fixed default.
    """

    def __init__(
        self,
        client: BaseCompletionClient,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def _ask(self, vision: VisionResult, search: SearchResult, ocr_text: str) -> dict[str, Any]:
        prompt = build_prompt(vision, search, ocr_text)
        raw = await self._client.complete(
            prompt,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=SYSTEM_PROMPT,
        )
        return extract_json_object(raw)

    async def attempt(
        self, vision: VisionResult, search: SearchResult, ocr_text: str
    ) -> StageResult[dict[str, Any]]:
        """Ask for the AI answer; an unparsable reply and a failed call are told apart by error kind."""
        try:
            return StageResult.success(SYNTHESIS_STAGE, await self._ask(vision, search, ocr_text))
        except ValueError as e:
            return StageResult.failure(SYNTHESIS_STAGE, ErrorKind.synthesis_parse_failure, str(e))
        except Exception as e:
            _log.debug("Cultural synthesis call raised", exc_info=True)
            return StageResult.failure(SYNTHESIS_STAGE, ErrorKind.capability_failure, str(e) or type(e).__name__)

    async def synthesize(self, vision: VisionResult, search: SearchResult, ocr_text: str) -> CulturalAnalysis:
        result = await self.attempt(vision, search, ocr_text)
        if not result.ok:
            _log.warning("Cultural synthesis %s, using heuristics: %s", result.error.value, result.detail)
        return merge_analysis(result.value, vision, search)


def merge_analysis(
    parsed: dict[str, Any] | None,
    vision: VisionResult,
    search: SearchResult,
) -> CulturalAnalysis:
    """Build a fully populated CulturalAnalysis from a (possibly absent) AI answer."""
    info = search.cultural_info
    significance = info.significance.strip() if info and info.significance and info.significance.strip() else None
    ai_elements = coerce_str_list(parsed.get("artistic_elements")) if parsed is not None else []
    return CulturalAnalysis(
        origin_region=_ai_text(parsed, "origin_region") or infer_origin(vision, search),
        historical_period=_ai_text(parsed, "historical_period") or infer_period(vision, search),
        traditional_use=_ai_text(parsed, "traditional_use") or significance or DEFAULT_TRADITIONAL_USE,
        artistic_elements=ai_elements or list(vision.cultural_elements) or list(DEFAULT_ARTISTIC_ELEMENTS),
        preservation_notes=_ai_text(parsed, "preservation_notes"),
    )
