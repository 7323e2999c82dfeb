"""Cultural knowledge search: an in-process knowledge base keyed by artifact category."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping

import yaml

from nusascan.ai.schema import CulturalInfo, SearchResult

_log = logging.getLogger(__name__)


# Insertion order is the match priority.
DEFAULT_KNOWLEDGE_BASE: dict[str, CulturalInfo] = {
    "batik": CulturalInfo(
        name="Indonesian Batik",
        description="Wax-resist technique for dyeing cloth, drawn by hand (tulis) or stamped (cap)",
        origin="Indonesia, especially Java and Bali",
        historical_context="Developed from the 6th century, shaped by Hindu-Buddhist and Islamic influences",
        significance="Symbol of Indonesian identity, inscribed by UNESCO as Intangible Cultural Heritage",
    ),
    "keris": CulturalInfo(
        name="Keris",
        description="Traditional asymmetrical dagger, often with a wavy (luk) blade and pamor patterning",
        origin="Java, later spread across the Archipelago",
        historical_context="Developed from the 9th century; every form carries a philosophical meaning",
        significance="Spiritual heirloom (pusaka), a symbol of strength and protection",
    ),
    "candi": CulturalInfo(
        name="Candi",
        description="Sacred structure from the Hindu-Buddhist era of Indonesia",
        origin="Spread across Java, Sumatra and other Indonesian regions",
        historical_context="Built between the 7th and 15th centuries, reflecting the glory of Archipelago kingdoms",
        significance="Religious centre and symbol of the splendour of past civilizations",
    ),
    "wayang": CulturalInfo(
        name="Wayang",
        description="Traditional Indonesian performing art using leather or wooden puppets",
        origin="Java, later developed in other regions",
        historical_context="Developed from the 9th century, blending Hindu, Buddhist and Islamic values",
        significance="Medium for moral and spiritual education and for religious teaching",
    ),
    "topeng": CulturalInfo(
        name="Topeng",
        description="Carved wooden mask worn in traditional dance-drama",
        origin="Java, Bali and Cirebon",
        historical_context="Rooted in ancestral ritual, later part of court and village performance",
        significance="Embodies characters of Panji and epic tales in ritual and performance",
    ),
}


class BaseKnowledgeSearch(ABC):
    """Abstract base for looking up cultural information by an object-type query."""

    @abstractmethod
    async def lookup(self, query: str) -> SearchResult:
        """Return matching cultural info; an empty SearchResult is a valid outcome."""
        ...


class LocalKnowledgeSearch(BaseKnowledgeSearch):
    """Matches the first knowledge-base key contained in the lower-cased query."""

    def __init__(self, entries: Mapping[str, CulturalInfo] | None = None) -> None:
        self._entries = dict(entries) if entries is not None else dict(DEFAULT_KNOWLEDGE_BASE)

    @property
    def keys(self) -> list[str]:
        return list(self._entries)

    def find(self, query: str) -> CulturalInfo | None:
        query_lower = (query or "").lower()
        for key, info in self._entries.items():
            if key in query_lower:
                return info
        return None

    async def lookup(self, query: str) -> SearchResult:
        info = self.find(query)
        if info is None:
            _log.debug("No knowledge-base entry for query %r", query)
        return SearchResult(cultural_info=info)


def load_knowledge_base(path: str | Path) -> dict[str, CulturalInfo]:
    """
    Load knowledge-base entries from YAML: a mapping of lower-case key -> CulturalInfo fields.

    Raises FileNotFoundError if the file is missing and ValueError if it is not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Knowledge base not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f)
    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Knowledge base must be a mapping of key -> entry: {path}")
    return {str(key).lower(): CulturalInfo.model_validate(entry or {}) for key, entry in data.items()}
