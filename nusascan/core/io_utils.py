"""IO utilities shared across the codebase."""

from pathlib import Path

from nusascan.errors import InputError


def file_non_empty(path: Path, *, min_bytes: int = 1) -> bool:
    """Return True if path exists and has at least min_bytes. Catches OSError."""
    try:
        return path.exists() and path.stat().st_size >= min_bytes
    except OSError:
        return False


def require_image(path: str | Path) -> Path:
    """Return path as a Path, raising InputError when it is missing or empty."""
    p = Path(path)
    if not file_non_empty(p):
        raise InputError(f"No image supplied or image is empty: {p}")
    return p
