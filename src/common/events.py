from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeAlias


@dataclass(frozen=True, slots=True)
class ReplyStartEvent:
    session_id: str
    message_id: str
    model_id: str
    backend: str


@dataclass(frozen=True, slots=True)
class SnapshotEvent:
    session_id: str
    message_id: str
    text: str


@dataclass(frozen=True, slots=True)
class ReplyCompletedEvent:
    session_id: str
    message_id: str
    text: str


@dataclass(frozen=True, slots=True)
class ReplyAbortedEvent:
    session_id: str
    message_id: str


@dataclass(frozen=True, slots=True)
class UsageEvent:
    session_id: str
    message_id: str
    points: float
    app_name: str


@dataclass(frozen=True, slots=True)
class TitleEvent:
    session_id: str
    title: str


@dataclass(frozen=True, slots=True)
class SuggestionsEvent:
    suggestions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    message: str
    source: str | None = None


Event: TypeAlias = (
    ReplyStartEvent
    | SnapshotEvent
    | ReplyCompletedEvent
    | ReplyAbortedEvent
    | UsageEvent
    | TitleEvent
    | SuggestionsEvent
    | ErrorEvent
)
EventCallback: TypeAlias = Callable[[Event], None] | None


class EventEmitter:
    def __init__(self, callback: EventCallback = None):
        self._callback = callback

    def emit(self, event: Event) -> None:
        if self._callback is not None:
            self._callback(event)
