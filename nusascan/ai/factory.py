"""Factories for capability adapters. Imports are lazy so Pillow is not loaded until a Station backend is requested."""

from nusascan.ai.completion import BaseCompletionClient
from nusascan.ai.ocr_base import BaseTextReader
from nusascan.ai.vision_base import BaseVisionRecognizer
from nusascan.core.config import Settings


def _settings(settings: Settings | None) -> Settings:
    return settings if settings is not None else Settings()


def _station_client(settings: Settings):
    from nusascan.ai.station import StationClient

    return StationClient(settings.station_endpoint, timeout=settings.request_timeout_seconds)


def get_completion_client(client_name: str, settings: Settings | None = None) -> BaseCompletionClient:
    """Return a completion client by name."""
    cfg = _settings(settings)
    if client_name == "mock":
        from nusascan.ai.completion import MockCompletionClient

        return MockCompletionClient()
    if client_name == "openai":
        from nusascan.ai.completion import OpenAICompletionClient

        return OpenAICompletionClient(
            api_key=cfg.completion_api_key,
            endpoint=cfg.completion_endpoint,
            model=cfg.completion_model,
            timeout=cfg.request_timeout_seconds,
        )
    raise ValueError(f"Unknown completion client: {client_name}")


def get_vision_recognizer(recognizer_name: str, settings: Settings | None = None) -> BaseVisionRecognizer:
    """Return a vision recognizer by name."""
    cfg = _settings(settings)
    if recognizer_name == "mock":
        from nusascan.ai.vision_base import MockVisionRecognizer

        return MockVisionRecognizer()
    if recognizer_name == "station":
        from nusascan.ai.station import StationVisionRecognizer

        return StationVisionRecognizer(_station_client(cfg))
    if recognizer_name == "openai":
        from nusascan.ai.vision_openai import OpenAIVisionRecognizer

        return OpenAIVisionRecognizer(get_completion_client("openai", cfg))
    raise ValueError(f"Unknown vision recognizer: {recognizer_name}")


def get_text_reader(reader_name: str, settings: Settings | None = None) -> BaseTextReader:
    """Return a text reader by name."""
    cfg = _settings(settings)
    if reader_name == "mock":
        from nusascan.ai.ocr_base import MockTextReader

        return MockTextReader()
    if reader_name == "station":
        from nusascan.ai.station import StationTextReader

        return StationTextReader(_station_client(cfg))
    raise ValueError(f"Unknown text reader: {reader_name}")
