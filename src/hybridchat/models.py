from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from common.ids import generate_id, now_ms


class Role(str, Enum):
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    mime_type: str
    data: str


class UsageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: float
    app_name: str
    timestamp: int


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    role: Role
    text: str = ""
    timestamp: int = Field(default_factory=now_ms)
    attachments: tuple[Attachment, ...] = ()
    model_id: str | None = None
    usage: UsageMetadata | None = None
    exclude_from_context: bool = False
    is_context_divider: bool = False
    is_error: bool = False

    @model_validator(mode="before")
    @classmethod
    def _normalize_divider(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("is_context_divider"):
            data = dict(data)
            data["exclude_from_context"] = True
            data["attachments"] = ()
            data["usage"] = None
        return data

    @classmethod
    def divider(cls, text: str) -> "Message":
        return cls(role=Role.SYSTEM, text=text, is_context_divider=True)


class ChatSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    title: str
    messages: tuple[Message, ...] = ()
    model_id: str
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    def find_index(self, message_id: str) -> int:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        return -1


class ModelParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    web_search: bool = False
    thinking_level: Literal["minimal", "low", "high"] | None = None
    image_size: Literal["1K", "2K", "4K"] | None = None
    image_only: bool | None = None
    aspect_ratio: str | None = None
    tts_language: str | None = None
    tts_emotion: str | None = None
    tts_speed: float | None = None
    tts_volume: float | None = None
    tts_pitch: float | None = None
    tts_voice: str | None = None
    tts_hd: bool | None = None


REGENERATE_PARAMETERS = ModelParameters(web_search=False, thinking_level="low")
