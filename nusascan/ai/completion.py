"""Language-completion clients used by the cultural synthesizer and the OpenAI recognizer."""

import logging
from abc import ABC, abstractmethod
from typing import Any

import requests

from nusascan.core.config import DEFAULT_COMPLETION_ENDPOINT, DEFAULT_COMPLETION_MODEL
from nusascan.core.threads import run_blocking
from nusascan.errors import CapabilityError

_log = logging.getLogger(__name__)


class BaseCompletionClient(ABC):
    """Abstract base for a single-turn text completion."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> str:
        """Return the raw response text for prompt. May raise on provider errors."""
        ...


class MockCompletionClient(BaseCompletionClient):
    """Returns scripted responses in order (the last one repeats); records prompts."""

    def __init__(self, responses: list[str] | None = None) -> None:
        self._responses = list(responses) if responses else ["{}"]
        self.prompts: list[str] = []

    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> str:
        self.prompts.append(prompt)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


class OpenAICompletionClient(BaseCompletionClient):
    """Calls an OpenAI-compatible /chat/completions endpoint over a pooled requests.Session."""

    def __init__(
        self,
        api_key: str | None,
        endpoint: str = DEFAULT_COMPLETION_ENDPOINT,
        model: str = DEFAULT_COMPLETION_MODEL,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint.rstrip("/")
        self.model = model
        self._timeout = timeout
        self._session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(pool_connections=10, pool_maxsize=20)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def chat(self, messages: list[dict[str, Any]], max_tokens: int, temperature: float) -> str:
        """Blocking chat completion; returns the first choice's content ("" when empty)."""
        if not self._api_key:
            raise CapabilityError(
                "completion",
                "LLM service unavailable. Set NUSASCAN_COMPLETION_API_KEY or OPENAI_API_KEY.",
            )
        try:
            resp = self._session.post(
                f"{self._endpoint}/chat/completions",
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise CapabilityError("completion", f"chat completion failed: {e}") from e
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CapabilityError("completion", "response has no choices") from e
        usage = data.get("usage") or {}
        _log.debug("Completion %s used %s tokens", self.model, usage.get("total_tokens"))
        return content or ""

    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> str:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return await run_blocking(self.chat, messages, max_tokens, temperature, name="completion")
