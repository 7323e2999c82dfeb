"""Application configuration (Pydantic v2): nusascan.yml plus NUSASCAN_* environment overrides."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, field_validator

CONFIG_ENV_VAR = "NUSASCAN_CONFIG"
DEFAULT_CONFIG_FILENAME = "nusascan.yml"
ENV_PREFIX = "NUSASCAN_"
# Accepted for completion_api_key when NUSASCAN_COMPLETION_API_KEY is unset.
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"

DEFAULT_STATION_ENDPOINT = "http://localhost:2020/v1"
DEFAULT_COMPLETION_ENDPOINT = "https://api.openai.com/v1"
DEFAULT_COMPLETION_MODEL = "gpt-4o-mini"


class Settings(BaseModel):
    """
    Service settings.

    Backends are chosen by name (see nusascan.ai.factory and nusascan.knowledge).
    Every field can be overridden by NUSASCAN_<FIELD_NAME> when the default
    config is loaded; an explicit config path is taken as-is.
    """

    model_config = {"extra": "ignore"}

    log_level: str = "WARNING"
    forensics_dir: str = "logs/forensics"
    dump_on_degraded: bool = False

    vision_backend: str = "station"
    ocr_backend: str = "station"
    search_backend: str = "local"
    completion_backend: str = "openai"

    station_endpoint: str = DEFAULT_STATION_ENDPOINT
    completion_endpoint: str = DEFAULT_COMPLETION_ENDPOINT
    completion_model: str = DEFAULT_COMPLETION_MODEL
    completion_api_key: str | None = None
    request_timeout_seconds: float = 60.0

    analysis_timeout_seconds: float = 15.0
    synthesis_max_tokens: int = 500
    synthesis_temperature: float = 0.3

    knowledge_base_path: str | None = None

    @field_validator("completion_api_key", "knowledge_base_path", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> str | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return str(v)

    @field_validator("analysis_timeout_seconds", "request_timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


class ConfigLoader:
    """
    Builds Settings from a YAML file and an environment mapping.

    - load_from_yaml(path, apply_env_override): file values, optionally overlaid with env.
    - load_default(): file from NUSASCAN_CONFIG (else ./nusascan.yml) if it exists, then env.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def env_overrides(self) -> dict[str, str]:
        """Non-empty NUSASCAN_<FIELD> values keyed by field name; pydantic coerces the strings."""
        overrides: dict[str, str] = {}
        for field in Settings.model_fields:
            value = self._env.get(ENV_PREFIX + field.upper(), "").strip()
            if value:
                overrides[field] = value
        if "completion_api_key" not in overrides and self._env.get(OPENAI_API_KEY_ENV):
            overrides["completion_api_key"] = self._env[OPENAI_API_KEY_ENV]
        return overrides

    def load_from_yaml(self, path: str | Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        if apply_env_override:
            data = {**data, **self.env_overrides()}
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        path = Path(self._env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME)
        if path.is_file():
            return self.load_from_yaml(path, apply_env_override=True)
        return Settings.model_validate(self.env_overrides())


_loader = ConfigLoader()
_config: Settings | None = None


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return the process-wide Settings.

    An explicit config_path is loaded without env overrides and replaces the
    cached value; otherwise the cached value is returned, loading the default
    config on first use.
    """
    global _config
    if config_path is not None:
        _config = _loader.load_from_yaml(config_path, apply_env_override=False)
    elif _config is None:
        _config = _loader.load_default()
    return _config


def reset_config() -> None:
    """Drop the cached Settings (tests, config reloads)."""
    global _config
    _config = None
