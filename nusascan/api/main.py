"""Scan API: upload an artifact photo and receive a cultural report (JSON or event stream)."""

import asyncio
import json
import logging
import os
import tempfile
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import AsyncIterator

import requests
from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from nusascan import __version__
from nusascan.core.config import get_config
from nusascan.core.io_utils import require_image
from nusascan.core.logging import setup_logging
from nusascan.errors import AnalysisTimeoutError, InputError
from nusascan.pipeline.orchestrator import AnalysisOrchestrator, analyze_with_deadline
from nusascan.pipeline.schema import AnalysisReport
from nusascan.pipeline.streaming import StreamingProgressReporter

_log = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 30
TIMEOUT_MESSAGE = "Analysis is taking too long"


@lru_cache(maxsize=1)
def _get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator.from_settings(get_config())


def _get_analysis_timeout() -> float:
    return get_config().analysis_timeout_seconds


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    _log.info("NusaScan API %s starting", __version__)
    yield


app = FastAPI(title="NusaScan API", version=__version__, lifespan=lifespan)


class SupportedTypeOut(BaseModel):
    category: str
    examples: list[str]
    description: str


class ScanResponseOut(BaseModel):
    success: bool
    data: AnalysisReport
    processing_time_ms: int
    timestamp: str


class ScanUrlIn(BaseModel):
    image_url: str


SUPPORTED_TYPES: list[SupportedTypeOut] = [
    SupportedTypeOut(
        category="batik",
        examples=["kawung", "parang", "truntum", "sido mukti"],
        description="Traditional Indonesian batik patterns",
    ),
    SupportedTypeOut(
        category="keris",
        examples=["pusaka", "luk", "pamor"],
        description="Traditional Javanese ceremonial daggers",
    ),
    SupportedTypeOut(
        category="topeng",
        examples=["jawa", "bali", "cirebon"],
        description="Traditional Indonesian masks",
    ),
    SupportedTypeOut(
        category="wayang",
        examples=["kulit", "golek", "orang"],
        description="Traditional Indonesian puppetry",
    ),
    SupportedTypeOut(
        category="candi",
        examples=["borobudur", "prambanan", "mendut"],
        description="Traditional Indonesian temples",
    ),
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _write_temp_image(data: bytes, suffix: str) -> Path:
    fd, name = tempfile.mkstemp(prefix="nusascan-", suffix=suffix or ".jpg")
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    return Path(name)


async def _save_upload(image: UploadFile | None) -> Path:
    """Persist the upload to a temp file owned by this request. Raises 400 when missing or empty."""
    if image is None:
        raise HTTPException(status_code=400, detail="image is required")
    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="image is empty")
    return _write_temp_image(data, Path(image.filename or "").suffix.lower())


def _download_image(url: str) -> Path:
    if not url.startswith(("http://", "https://")):
        raise InputError("image_url must be an http(s) URL")
    try:
        resp = requests.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise InputError(f"Failed to fetch image: {e}") from e
    if not resp.content:
        raise InputError("Fetched image is empty")
    suffix = ".png" if "png" in resp.headers.get("content-type", "") else ".jpg"
    return _write_temp_image(resp.content, suffix)


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        _log.warning("Could not delete temp image %s: %s", path, e)


async def _analyze_file(path: Path, orchestrator: AnalysisOrchestrator, timeout: float) -> ScanResponseOut:
    started = time.perf_counter()
    try:
        require_image(path)
        report = await analyze_with_deadline(orchestrator, path, timeout_seconds=timeout)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisTimeoutError:
        raise HTTPException(status_code=504, detail=TIMEOUT_MESSAGE)
    finally:
        _remove(path)
    return ScanResponseOut(
        success=True,
        data=report,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        timestamp=_now_iso(),
    )


@app.get("/api/scan/health")
def health() -> dict:
    return {
        "status": "healthy",
        "service": "NusaScan API",
        "version": __version__,
        "timestamp": _now_iso(),
    }


@app.get("/api/scan/supported-types", response_model=list[SupportedTypeOut])
def supported_types() -> list[SupportedTypeOut]:
    return SUPPORTED_TYPES


@app.post("/api/scan", response_model=ScanResponseOut)
async def scan(
    image: UploadFile | None = File(None),
    orchestrator: AnalysisOrchestrator = Depends(_get_orchestrator),
    timeout: float = Depends(_get_analysis_timeout),
) -> ScanResponseOut:
    """Analyze an uploaded image. 400 when no image, 504 when the deadline is exceeded."""
    path = await _save_upload(image)
    return await _analyze_file(path, orchestrator, timeout)


@app.post("/api/scan/url", response_model=ScanResponseOut)
async def scan_url(
    body: ScanUrlIn,
    orchestrator: AnalysisOrchestrator = Depends(_get_orchestrator),
    timeout: float = Depends(_get_analysis_timeout),
) -> ScanResponseOut:
    """Download the image at image_url, then analyze it like an upload."""
    try:
        path = await asyncio.to_thread(_download_image, body.image_url)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _analyze_file(path, orchestrator, timeout)


@app.post("/api/scan/stream")
async def scan_stream(
    image: UploadFile | None = File(None),
    orchestrator: AnalysisOrchestrator = Depends(_get_orchestrator),
) -> StreamingResponse:
    """Server-sent events: one `data: {json}` line per progress event, terminal event last."""
    path = await _save_upload(image)
    reporter = StreamingProgressReporter(orchestrator)

    async def events() -> AsyncIterator[str]:
        async for event in reporter.stream(path):
            yield f"data: {json.dumps(event.model_dump(mode='json'))}\n\n"

    # Runs after the body is sent or the client disconnects, even if events() never started.
    return StreamingResponse(events(), media_type="text/event-stream", background=BackgroundTask(_remove, path))
