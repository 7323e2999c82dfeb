"""Pull museum name, location and year hints out of OCR text. Absence is a normal outcome."""

import re

from nusascan.pipeline.schema import TextExtractionMetadata

MUSEUM_PATTERNS = (
    re.compile(r"museum\s+([^\n,]+)", re.IGNORECASE),
    re.compile(r"galeri\s+([^\n,]+)", re.IGNORECASE),
)
# Checked in this order; the first name found anywhere in the text wins.
KNOWN_LOCATIONS = ("jakarta", "yogyakarta", "bandung", "surabaya", "bali", "solo")
LOCATION_PATTERNS = tuple(re.compile(rf"\b{name}\b", re.IGNORECASE) for name in KNOWN_LOCATIONS)
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")


def extract_museum_name(text: str) -> str | None:
    for pattern in MUSEUM_PATTERNS:
        match = pattern.search(text or "")
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_location(text: str) -> str | None:
    """Return the first known location literal as written in the text."""
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(0)
    return None


def extract_year(text: str) -> str | None:
    match = YEAR_PATTERN.search(text or "")
    return match.group(0) if match else None


def extract_metadata(text: str, ocr_confidence: float | None = None) -> TextExtractionMetadata:
    """Combine the independent extractors; additional_info reports the reader's confidence."""
    return TextExtractionMetadata(
        museum_name=extract_museum_name(text),
        location=extract_location(text),
        year=extract_year(text),
        additional_info=f"OCR confidence: {ocr_confidence:g}" if ocr_confidence is not None else None,
    )
