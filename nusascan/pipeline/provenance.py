"""
Rule-based inference of origin region and historical period.

Used when AI synthesis is unavailable or incomplete. Each table is an ordered
tuple of ProvenanceRule evaluated first-match-wins: specific checks precede
the category defaults, and the final catch-all rule prefers search evidence
over a generic Archipelago answer. Every function here is pure.
"""

from dataclasses import dataclass
from typing import Callable

from nusascan.ai.schema import SearchResult, VisionResult

DEFAULT_ORIGIN = "Archipelago, Indonesia"
DEFAULT_PERIOD = "Traditional Archipelago Period"

JAVA_MARKERS = ("jawa", "java")


@dataclass(frozen=True)
class ProvenanceFacts:
    """Lower-cased inputs the rules match on, plus the raw search strings for defaults."""

    category: str
    specific_type: str
    search_origin: str
    search_context: str
    raw_search_origin: str | None = None
    raw_search_context: str | None = None

    @classmethod
    def from_results(cls, vision: VisionResult, search: SearchResult) -> "ProvenanceFacts":
        info = search.cultural_info
        origin = info.origin if info is not None else None
        context = info.historical_context if info is not None else None
        return cls(
            category=(vision.category or "").lower(),
            specific_type=(vision.specific_type or "").lower(),
            search_origin=(origin or "").lower(),
            search_context=(context or "").lower(),
            raw_search_origin=origin.strip() if origin and origin.strip() else None,
            raw_search_context=context.strip() if context and context.strip() else None,
        )


@dataclass(frozen=True)
class ProvenanceRule:
    name: str
    predicate: Callable[[ProvenanceFacts], bool]
    result: Callable[[ProvenanceFacts], str]

    def matches(self, facts: ProvenanceFacts) -> bool:
        return self.predicate(facts)


def _fixed(value: str) -> Callable[[ProvenanceFacts], str]:
    return lambda facts: value


def _any_in(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(n in haystack for n in needles)


def _is(category: str) -> Callable[[ProvenanceFacts], bool]:
    return lambda f: category in f.category


ORIGIN_RULES: tuple[ProvenanceRule, ...] = (
    ProvenanceRule(
        "candi_borobudur",
        lambda f: "candi" in f.category and ("borobudur" in f.specific_type or "magelang" in f.search_origin),
        _fixed("Sailendra Kingdom, Central Java"),
    ),
    ProvenanceRule(
        "candi_prambanan",
        lambda f: "candi" in f.category and "prambanan" in f.specific_type,
        _fixed("Ancient Mataram Kingdom, Central Java"),
    ),
    ProvenanceRule(
        "candi_java_search",
        lambda f: "candi" in f.category and _any_in(f.search_origin, JAVA_MARKERS),
        _fixed("Mataram Kingdom, Central Java"),
    ),
    ProvenanceRule("candi", _is("candi"), _fixed("Hindu-Buddhist kingdom, Java")),
    ProvenanceRule(
        "batik_yogyakarta",
        lambda f: "batik" in f.category and _any_in(f.search_origin, ("yogya", "jogja")),
        _fixed("Yogyakarta Sultanate"),
    ),
    ProvenanceRule(
        "batik_surakarta",
        lambda f: "batik" in f.category and _any_in(f.search_origin, ("solo", "surakarta")),
        _fixed("Surakarta Sunanate"),
    ),
    ProvenanceRule(
        "batik_java_search",
        lambda f: "batik" in f.category and _any_in(f.search_origin, JAVA_MARKERS),
        _fixed("Mataram Kingdom, Java"),
    ),
    ProvenanceRule("batik", _is("batik"), _fixed("Central Java/Yogyakarta")),
    ProvenanceRule(
        "keris_java_search",
        lambda f: "keris" in f.category and _any_in(f.search_origin, JAVA_MARKERS),
        _fixed("Majapahit/Mataram Kingdom, Java"),
    ),
    ProvenanceRule("keris", _is("keris"), _fixed("Archipelago (Java-Bali-Madura)")),
    ProvenanceRule("default", lambda f: True, lambda f: f.raw_search_origin or DEFAULT_ORIGIN),
)

PERIOD_RULES: tuple[ProvenanceRule, ...] = (
    ProvenanceRule(
        "candi_borobudur",
        lambda f: "candi" in f.category and "borobudur" in f.specific_type,
        _fixed("8th-9th century CE, Sailendra period"),
    ),
    ProvenanceRule(
        "candi_prambanan",
        lambda f: "candi" in f.category and "prambanan" in f.specific_type,
        _fixed("9th-10th century CE, Ancient Mataram period"),
    ),
    ProvenanceRule("candi", _is("candi"), _fixed("7th-15th century CE, Hindu-Buddhist period")),
    ProvenanceRule(
        "batik_court",
        lambda f: "batik" in f.category
        and _any_in(f.search_context, ("klasik", "classical", "keraton", "court")),
        _fixed("17th-19th century CE, Sultanate period"),
    ),
    ProvenanceRule("batik", _is("batik"), _fixed("13th century CE-present, Javanese tradition")),
    ProvenanceRule("keris", _is("keris"), _fixed("14th-18th century CE, Majapahit-Mataram period")),
    ProvenanceRule("wayang", _is("wayang"), _fixed("10th century CE-present, Hindu-Javanese tradition")),
    ProvenanceRule("default", lambda f: True, lambda f: f.raw_search_context or DEFAULT_PERIOD),
)


def first_match(rules: tuple[ProvenanceRule, ...], facts: ProvenanceFacts) -> ProvenanceRule:
    """Return the first rule whose predicate holds. Tables end with a catch-all rule."""
    for rule in rules:
        if rule.matches(facts):
            return rule
    raise LookupError("rule table has no catch-all rule")


def infer_origin(vision: VisionResult, search: SearchResult) -> str:
    facts = ProvenanceFacts.from_results(vision, search)
    return first_match(ORIGIN_RULES, facts).result(facts)


def infer_period(vision: VisionResult, search: SearchResult) -> str:
    facts = ProvenanceFacts.from_results(vision, search)
    return first_match(PERIOD_RULES, facts).result(facts)
