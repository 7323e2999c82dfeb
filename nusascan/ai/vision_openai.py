"""Vision recognizer using an OpenAI-compatible multimodal chat model (e.g. gpt-4o-mini)."""

import base64
import logging
from pathlib import Path

from nusascan.ai.completion import OpenAICompletionClient
from nusascan.ai.parsing import extract_json_object
from nusascan.ai.schema import ModelCard, VisionResult
from nusascan.ai.vision_base import CLASSIFY_PROMPT, BaseVisionRecognizer, build_vision_result
from nusascan.core.threads import run_blocking
from nusascan.errors import CapabilityError

_log = logging.getLogger(__name__)

MAX_TOKENS = 1000
TEMPERATURE = 0.3


def _mime_type(image_path: Path) -> str:
    return "image/png" if image_path.suffix.lower() == ".png" else "image/jpeg"


class OpenAIVisionRecognizer(BaseVisionRecognizer):
    """Sends the image as a base64 data URL alongside the classification prompt."""

    def __init__(self, client: OpenAICompletionClient) -> None:
        self._client = client

    def get_model_card(self) -> ModelCard:
        return ModelCard(name=self._client.model, version="api")

    def _analyze_sync(self, image_path: Path) -> VisionResult:
        b64 = base64.b64encode(Path(image_path).read_bytes()).decode()
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": CLASSIFY_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{_mime_type(Path(image_path))};base64,{b64}"},
                    },
                ],
            }
        ]
        content = self._client.chat(messages, max_tokens=MAX_TOKENS, temperature=TEMPERATURE)
        try:
            payload = extract_json_object(content)
        except ValueError as e:
            raise CapabilityError("vision", f"unparsable classification: {content[:200]!r}") from e
        result = build_vision_result(payload)
        _log.debug("OpenAI vision result for %s: %s", image_path, result)
        return result

    async def analyze(self, image_path: Path) -> VisionResult:
        return await run_blocking(self._analyze_sync, image_path, name="openai-vision")
