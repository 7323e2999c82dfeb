"""Knowledge module: cultural knowledge search backends."""

from nusascan.core.config import Settings
from nusascan.knowledge.search import (
    DEFAULT_KNOWLEDGE_BASE,
    BaseKnowledgeSearch,
    LocalKnowledgeSearch,
    load_knowledge_base,
)


def get_knowledge_search(search_name: str, settings: Settings | None = None) -> BaseKnowledgeSearch:
    """Return a knowledge search backend by name."""
    if search_name == "local":
        if settings is not None and settings.knowledge_base_path:
            return LocalKnowledgeSearch(load_knowledge_base(settings.knowledge_base_path))
        return LocalKnowledgeSearch()
    raise ValueError(f"Unknown knowledge search: {search_name}")


__all__ = [
    "BaseKnowledgeSearch",
    "DEFAULT_KNOWLEDGE_BASE",
    "LocalKnowledgeSearch",
    "get_knowledge_search",
    "load_knowledge_base",
]
