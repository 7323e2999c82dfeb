"""Helpers for turning free-form model output into structured values."""

import json
from typing import Any


def parse_tags(tags_str: str) -> list[str]:
    """Parse comma-separated tags with order-preserving deduplication."""
    return list(dict.fromkeys(t.strip() for t in tags_str.split(",") if t.strip()))


def _balanced_object_end(text: str, start: int) -> int | None:
    """Return the index just past the '}' closing the '{' at start, or None if unbalanced."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Return the first balanced {...} JSON object found in raw_text.

    Tolerates surrounding prose and markdown code fences. Candidates that are
    unbalanced or not valid JSON are skipped in favour of the next '{'.

    Raises:
        ValueError: If no parsable JSON object is present.
    """
    start = raw_text.find("{")
    while start != -1:
        end = _balanced_object_end(raw_text, start)
        parsed = None
        if end is not None:
            try:
                parsed = json.loads(raw_text[start:end])
            except json.JSONDecodeError:
                pass
        if isinstance(parsed, dict):
            return parsed
        start = raw_text.find("{", start + 1)
    raise ValueError("No JSON object found in model response")


def coerce_str_list(value: Any) -> list[str]:
    """Normalize a model-supplied list (or comma-separated string) into non-empty strings."""
    if isinstance(value, str):
        return parse_tags(value)
    if isinstance(value, list):
        return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
    return []
