"""Recognizer and reader backed by a local Moondream Station server.

Requires Moondream Station to be running (e.g. moondream-station). Set
NUSASCAN_STATION_ENDPOINT or station_endpoint in nusascan.yml to override
the default endpoint (http://localhost:2020/v1).

Uses a persistent requests.Session with connection pooling so concurrent
requests do not exhaust TCP sockets. Calls are blocking and run in daemon threads
(nusascan.core.threads.run_blocking) so an expired deadline abandons them.
"""

import base64
import logging
from io import BytesIO
from pathlib import Path

import requests

from nusascan.ai.ocr_base import BaseTextReader
from nusascan.ai.parsing import extract_json_object
from nusascan.ai.schema import ModelCard, OcrResult, VisionResult
from nusascan.ai.vision_base import CLASSIFY_PROMPT, BaseVisionRecognizer, build_vision_result
from nusascan.core.config import DEFAULT_STATION_ENDPOINT
from nusascan.core.threads import run_blocking
from nusascan.errors import CapabilityError

_log = logging.getLogger(__name__)

OCR_QUESTION = "Extract all readable text. If there is no text, reply 'None'."


def _answer_text(out: dict) -> str:
    ans = out.get("answer") if isinstance(out, dict) else None
    return ans if isinstance(ans, str) else ("".join(ans) if ans else "")


class StationClient:
    """Thin client for the Station query endpoint shared by the recognizer and the reader."""

    def __init__(self, endpoint: str = DEFAULT_STATION_ENDPOINT, timeout: float = 60.0) -> None:
        from PIL import Image

        self._Image = Image
        self._endpoint = (endpoint.strip() or DEFAULT_STATION_ENDPOINT).rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(pool_connections=10, pool_maxsize=20)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def _encode_image(self, image) -> str:
        """Convert PIL Image to base64 data URL (same format as Moondream Station API)."""
        if image.mode != "RGB":
            image = image.convert("RGB")
        buffered = BytesIO()
        image.save(buffered, format="JPEG", quality=95)
        b64 = base64.b64encode(buffered.getvalue()).decode()
        return f"data:image/jpeg;base64,{b64}"

    def _post(self, path: str, json_payload: dict) -> dict:
        """POST JSON to Station endpoint and return parsed response."""
        url = f"{self._endpoint}/{path.lstrip('/')}"
        try:
            resp = self._session.post(
                url,
                json=json_payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise CapabilityError("station", f"request to {path} failed: {e}") from e

    def query(self, image_path: Path, question: str) -> str:
        """Ask one question about the image and return the answer text."""
        Image = self._Image
        with Image.open(image_path) as img:
            image = img.convert("RGB") if img.mode != "RGB" else img.copy()
        payload = {
            "image_url": self._encode_image(image),
            "question": question,
            "reasoning": False,
            "stream": False,
        }
        return _answer_text(self._post("query", payload))


class StationVisionRecognizer(BaseVisionRecognizer):
    """Asks the Station model for a JSON classification of the cultural object."""

    def __init__(self, client: StationClient) -> None:
        self._client = client

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="moondream-station", version="local")

    def _analyze_sync(self, image_path: Path) -> VisionResult:
        answer = self._client.query(image_path, CLASSIFY_PROMPT)
        try:
            payload = extract_json_object(answer)
        except ValueError as e:
            raise CapabilityError("vision", f"unparsable classification: {answer[:200]!r}") from e
        result = build_vision_result(payload)
        _log.debug("Station vision result for %s: %s", image_path, result)
        return result

    async def analyze(self, image_path: Path) -> VisionResult:
        return await run_blocking(self._analyze_sync, image_path, name="station-vision")


class StationTextReader(BaseTextReader):
    """Reads text with the Station query endpoint; 'None' answers become empty text."""

    def __init__(self, client: StationClient) -> None:
        self._client = client

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="moondream-station-ocr", version="local")

    def _extract_sync(self, image_path: Path) -> OcrResult:
        ocr_raw = self._client.query(image_path, OCR_QUESTION)
        ocr = ocr_raw.strip() if ocr_raw else ""
        if ocr.lower() == "none":
            ocr = ""
        return OcrResult(text=ocr)

    async def extract(self, image_path: Path) -> OcrResult:
        return await run_blocking(self._extract_sync, image_path, name="station-ocr")
