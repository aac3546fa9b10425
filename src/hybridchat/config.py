import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_INSTRUCTION = """You are a helpful AI assistant.
Provide clear, accurate, and concise answers.
Use Markdown for formatting.
Adopt a professional but conversational tone."""

DEFAULT_POE_BASE_URL = "https://api.poe.com"


class ConfigError(Exception):
    pass


def get_optional_env(name: str, default: str) -> str:
    return os.environ.get(name, default)


def _float_env(name: str, default: float) -> float:
    raw = get_optional_env(name, str(default))
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _optional_int_env(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class AppConfig:
    data_dir: str = field(
        default_factory=lambda: get_optional_env(
            "HYBRIDCHAT_DATA_DIR", str(Path.home() / ".hybridchat")
        )
    )
    poe_base_url: str = field(
        default_factory=lambda: get_optional_env("HYBRIDCHAT_POE_BASE_URL", DEFAULT_POE_BASE_URL)
    )
    request_timeout: float = field(default_factory=lambda: _float_env("HYBRIDCHAT_TIMEOUT", 120.0))
    usage_delay_seconds: float = field(
        default_factory=lambda: _float_env("HYBRIDCHAT_USAGE_DELAY", 2.0)
    )
    storage_quota_bytes: int | None = field(
        default_factory=lambda: _optional_int_env("HYBRIDCHAT_STORAGE_QUOTA")
    )

    def validate(self) -> None:
        if not self.data_dir:
            raise ConfigError("data_dir must not be empty")
        if not self.poe_base_url.startswith(("http://", "https://")):
            raise ConfigError("poe_base_url must be an http(s) URL")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be > 0")
        if self.usage_delay_seconds < 0:
            raise ConfigError("usage_delay_seconds must be >= 0")
        if self.storage_quota_bytes is not None and self.storage_quota_bytes <= 0:
            raise ConfigError("storage_quota_bytes must be > 0 when set")
        logger.debug("Configuration validated successfully")


@dataclass(frozen=True, slots=True)
class Primary:
    api_key: str = field(repr=False)

    @property
    def name(self) -> str:
        return "poe"


@dataclass(frozen=True, slots=True)
class Fallback:
    reason: str

    @property
    def name(self) -> str:
        return "gemini"


BackendChoice: TypeAlias = Primary | Fallback


@dataclass(frozen=True, slots=True)
class StreamConfig:
    backend: BackendChoice
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    base_url: str = DEFAULT_POE_BASE_URL
    timeout: float = 120.0

    @property
    def chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/chat/completions"

    @property
    def usage_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/usage/points_history"
