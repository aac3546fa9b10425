"""Durable key/value state: the session blob plus scalar preferences.

Every value lives under a fixed key, one JSON file per key, so a failed
write of one entry never corrupts another.

Keys:
    chat_sessions       full serialized session list
    theme_mode          "light" | "dark"
    app_language        "zh-TW" | "en"
    system_instruction  free text, trimmed
    use_poe_api         bool
    poe_api_key         sanitized credential
"""

import logging
import re
from pathlib import Path
from typing import Any

from common.jsonio import atomic_write_json, encode_json, load_json
from hybridchat.config import (
    DEFAULT_SYSTEM_INSTRUCTION,
    AppConfig,
    BackendChoice,
    Fallback,
    Primary,
    StreamConfig,
)
from hybridchat.errors import PersistenceError
from hybridchat.i18n import DEFAULT_LANGUAGE, normalize_language

logger = logging.getLogger(__name__)

SESSIONS_KEY = "chat_sessions"
THEME_KEY = "theme_mode"
LANGUAGE_KEY = "app_language"
SYSTEM_INSTRUCTION_KEY = "system_instruction"
USE_POE_KEY = "use_poe_api"
POE_API_KEY = "poe_api_key"

THEMES = ("light", "dark")

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")
_NON_ASCII = re.compile(r"[^\x00-\x7F]")


def sanitize_api_key(value: str | None) -> str:
    return _NON_ASCII.sub("", (value or "").strip())


class KeyValueStorage:
    def __init__(self, root_path: str | Path, quota_bytes: int | None = None):
        self.root_path = Path(root_path)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root_path / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        value = load_json(self._path(key))
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        if self.quota_bytes is not None:
            size = len(encode_json(value).encode("utf-8"))
            used = self.usage_bytes(exclude=key)
            if used + size > self.quota_bytes:
                raise PersistenceError(
                    f"Storage quota exceeded writing {key}: {used + size} > {self.quota_bytes} bytes"
                )
        try:
            atomic_write_json(path, value)
        except OSError as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def usage_bytes(self, exclude: str | None = None) -> int:
        if not self.root_path.exists():
            return 0
        total = 0
        for path in self.root_path.glob("*.json"):
            if exclude is not None and path.stem == exclude:
                continue
            total += path.stat().st_size
        return total


class Settings:
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def _write(self, key: str, value: Any) -> bool:
        try:
            self.storage.set(key, value)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to save setting {key}: {e}")
            return False

    @property
    def theme(self) -> str:
        value = self.storage.get(THEME_KEY)
        return value if value in THEMES else "light"

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            raise ValueError(f"Unknown theme: {value}")
        self._write(THEME_KEY, value)

    @property
    def language(self) -> str:
        return normalize_language(self.storage.get(LANGUAGE_KEY, DEFAULT_LANGUAGE))

    @language.setter
    def language(self, value: str) -> None:
        self._write(LANGUAGE_KEY, normalize_language(value))

    @property
    def system_instruction(self) -> str:
        return self.storage.get(SYSTEM_INSTRUCTION_KEY, "") or ""

    @system_instruction.setter
    def system_instruction(self, value: str) -> None:
        self._write(SYSTEM_INSTRUCTION_KEY, (value or "").strip())

    @property
    def use_poe(self) -> bool:
        return self.storage.get(USE_POE_KEY) is True

    @use_poe.setter
    def use_poe(self, value: bool) -> None:
        self._write(USE_POE_KEY, bool(value))

    @property
    def poe_api_key(self) -> str:
        return sanitize_api_key(self.storage.get(POE_API_KEY, ""))

    @poe_api_key.setter
    def poe_api_key(self, value: str) -> None:
        self._write(POE_API_KEY, sanitize_api_key(value))

    def backend_choice(self) -> BackendChoice:
        if not self.use_poe:
            return Fallback(reason="disabled")
        key = self.poe_api_key
        if not key:
            return Fallback(reason="missing-key")
        return Primary(api_key=key)

    def resolve_stream_config(self, app_config: AppConfig | None = None) -> StreamConfig:
        app_config = app_config or AppConfig()
        backend = self.backend_choice()
        logger.debug(f"Resolved backend: {backend.name}")
        return StreamConfig(
            backend=backend,
            system_instruction=self.system_instruction or DEFAULT_SYSTEM_INSTRUCTION,
            base_url=app_config.poe_base_url,
            timeout=app_config.request_timeout,
        )
