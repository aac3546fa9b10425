import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Literal

import httpx

from common.background import BackgroundRunner
from common.events import (
    ErrorEvent,
    EventCallback,
    EventEmitter,
    ReplyAbortedEvent,
    ReplyCompletedEvent,
    ReplyStartEvent,
    SnapshotEvent,
    SuggestionsEvent,
    TitleEvent,
    UsageEvent,
)
from common.ids import now_ms
from hybridchat import context
from hybridchat.catalog import MODELS, get_model, is_known_model
from hybridchat.config import AppConfig, Primary, StreamConfig
from hybridchat.context import EditDraft
from hybridchat.errors import HybridChatError, StreamAborted
from hybridchat.generation import generate_suggestions, generate_title
from hybridchat.i18n import Labels, get_labels
from hybridchat.models import (
    REGENERATE_PARAMETERS,
    Attachment,
    ChatSession,
    Message,
    ModelParameters,
    Role,
    UsageMetadata,
)
from hybridchat.settings import Settings
from hybridchat.store import ConversationStore
from hybridchat.streaming import fetch_latest_usage, stabilize_thinking, stream_reply

logger = logging.getLogger(__name__)

SendStatus = Literal["completed", "aborted", "failed"]
StreamFn = Callable[..., Iterator[str]]


@dataclass(frozen=True, slots=True)
class SendResult:
    session_id: str
    message_id: str
    status: SendStatus
    text: str = ""
    error: str | None = None


class ChatService:
    """Single-user chat orchestration.

    All store mutation happens on the thread that calls into the service.
    Title, suggestion and usage work runs on a BackgroundRunner; its results
    land only when ``drain()`` is called.
    """

    def __init__(
        self,
        store: ConversationStore,
        settings: Settings,
        app_config: AppConfig | None = None,
        *,
        runner: BackgroundRunner | None = None,
        on_event: EventCallback = None,
        stream_fn: StreamFn = stream_reply,
        client: httpx.Client | None = None,
    ):
        self.store = store
        self.settings = settings
        self.app_config = app_config or AppConfig()
        self.runner = runner or BackgroundRunner()
        self.events = EventEmitter(on_event)
        self.stream_fn = stream_fn
        self.client = client

        self.current_model_id = MODELS[0].id
        self.is_loading = False
        self.suggestions: tuple[str, ...] = self.labels.suggestions
        self._cancel: threading.Event | None = None

    @property
    def labels(self) -> Labels:
        return get_labels(self.settings.language)

    @property
    def active(self) -> ChatSession | None:
        return self.store.active

    def set_event_callback(self, callback: EventCallback) -> None:
        self.events = EventEmitter(callback)

    def resolve_stream_config(self) -> StreamConfig:
        return self.settings.resolve_stream_config(self.app_config)

    def set_model(self, model_id: str) -> str:
        if not is_known_model(model_id):
            raise ValueError(f"Unknown model: {model_id}")
        self.current_model_id = model_id
        return model_id

    # Sessions

    def new_chat(self) -> ChatSession:
        session = self.store.create_session(self.current_model_id, self.labels.new_chat)
        self.refresh_suggestions()
        return session

    def select_session(self, session_id: str) -> ChatSession | None:
        session = self.store.select_session(session_id)
        if session is not None and is_known_model(session.model_id):
            self.current_model_id = session.model_id
        return session

    def delete_session(self, session_id: str) -> None:
        self.store.delete_session(session_id)

    # Sending

    def send(
        self,
        text: str,
        attachments: Iterable[Attachment] = (),
        params: ModelParameters | None = None,
    ) -> SendResult:
        params = params or ModelParameters()
        model_id = self.current_model_id
        config = self.resolve_stream_config()

        session = self.store.active
        if session is None:
            session = self.store.create_session(model_id, self.labels.new_chat)
        session_id = session.id
        is_first_message = not session.messages

        user_message = Message(role=Role.USER, text=text, attachments=tuple(attachments))
        self.store.update_session(
            session_id,
            lambda s: s.model_copy(
                update={
                    "model_id": model_id,
                    "messages": s.messages + (user_message,),
                    "updated_at": now_ms(),
                }
            ),
        )
        if is_first_message:
            self._schedule_title(session_id, text, config)

        history = self.store.get(session_id).messages
        reply = Message(role=Role.MODEL, text="", model_id=model_id)
        self.store.append_message(session_id, reply)

        cancel = threading.Event()
        self._cancel = cancel
        self.is_loading = True
        self.events.emit(ReplyStartEvent(session_id, reply.id, model_id, config.backend.name))

        text_so_far = ""
        try:
            for snapshot in self.stream_fn(
                history, model_id, params, config, cancel=cancel, client=self.client
            ):
                text_so_far = stabilize_thinking(snapshot)
                self.store.update_message(
                    session_id,
                    reply.id,
                    lambda m, t=text_so_far: m.model_copy(update={"text": t}),
                )
                self.events.emit(SnapshotEvent(session_id, reply.id, text_so_far))
        except StreamAborted:
            logger.info(f"Reply {reply.id} stopped by user")
            self.events.emit(ReplyAbortedEvent(session_id, reply.id))
            return SendResult(session_id, reply.id, "aborted", text_so_far)
        except HybridChatError as e:
            message = str(e)
            logger.error(f"Reply {reply.id} failed: {message}")
            error_text = f"API Error: {message}" if message else self.labels.error
            self.store.append_message(
                session_id,
                Message(role=Role.MODEL, text=error_text, is_error=True, model_id=model_id),
            )
            self.events.emit(ErrorEvent(error_text, source="stream"))
            return SendResult(session_id, reply.id, "failed", text_so_far, error=error_text)
        finally:
            self.is_loading = False
            if self._cancel is cancel:
                self._cancel = None

        self._schedule_usage(session_id, reply.id, config)
        self.events.emit(ReplyCompletedEvent(session_id, reply.id, text_so_far))
        return SendResult(session_id, reply.id, "completed", text_so_far)

    def stop(self) -> bool:
        cancel = self._cancel
        if cancel is None:
            return False
        cancel.set()
        return True

    # Context window

    def clear_context(self) -> Message | None:
        session = self.store.active
        if session is None:
            return None
        divider_text = self.labels.context_cleared
        updated = self.store.replace_messages(
            session.id, lambda messages: context.clear_context(messages, divider_text)
        )
        return updated.messages[-1] if updated else None

    def last_divider(self) -> Message | None:
        session = self.store.active
        if session is None:
            return None
        for message in reversed(session.messages):
            if message.is_context_divider:
                return message
        return None

    def undo_clear(self, divider_id: str | None = None) -> bool:
        session = self.store.active
        if session is None:
            return False
        if divider_id is None:
            divider = self.last_divider()
            if divider is None:
                return False
            divider_id = divider.id
        if session.find_index(divider_id) == -1:
            return False
        self.store.replace_messages(
            session.id, lambda messages: context.undo_clear(messages, divider_id)
        )
        return True

    def edit(self, message_id: str) -> EditDraft | None:
        session = self.store.active
        if session is None:
            return None
        result = context.truncate_for_edit(session.messages, message_id)
        if result is None:
            return None
        kept, draft = result
        self.store.replace_messages(session.id, lambda _: kept)
        return draft

    def regenerate(self, message_id: str) -> SendResult | None:
        session = self.store.active
        if session is None or self.is_loading:
            return None
        result = context.truncate_for_regenerate(session.messages, message_id)
        if result is None:
            return None
        kept, previous = result
        self.store.replace_messages(session.id, lambda _: kept)
        return self.send(previous.text, previous.attachments, REGENERATE_PARAMETERS)

    # Background work

    def refresh_suggestions(self) -> None:
        config = self.resolve_stream_config()
        language = self.settings.language
        self.runner.submit(
            "suggestions",
            lambda: generate_suggestions(language, config, self.client),
            on_result=self._apply_suggestions,
        )

    def _apply_suggestions(self, suggestions: list[str]) -> None:
        if not suggestions:
            return
        self.suggestions = tuple(suggestions)
        self.events.emit(SuggestionsEvent(self.suggestions))

    def _schedule_title(self, session_id: str, text: str, config: StreamConfig) -> None:
        def apply(title: str) -> None:
            if self.store.update_session(
                session_id, lambda s: s.model_copy(update={"title": title})
            ):
                self.events.emit(TitleEvent(session_id, title))

        self.runner.submit(
            "title",
            lambda: generate_title(text, config, self.client),
            on_result=apply,
        )

    def _schedule_usage(self, session_id: str, message_id: str, config: StreamConfig) -> None:
        backend = config.backend
        if not isinstance(backend, Primary):
            return

        def apply(usage: UsageMetadata | None) -> None:
            if usage is None:
                return
            session = self.store.get(session_id)
            if session is None or session.find_index(message_id) == -1:
                return
            self.store.update_message(
                session_id, message_id, lambda m: m.model_copy(update={"usage": usage})
            )
            self.events.emit(UsageEvent(session_id, message_id, usage.points, usage.app_name))

        self.runner.submit(
            "usage",
            lambda: fetch_latest_usage(backend.api_key, config, self.client),
            on_result=apply,
            delay=self.app_config.usage_delay_seconds,
        )

    def drain(self, wait: bool = False, timeout: float | None = None) -> int:
        return self.runner.drain(wait=wait, timeout=timeout)

    def close(self) -> None:
        self.runner.shutdown()

    def model_name(self, model_id: str | None = None) -> str:
        return get_model(model_id or self.current_model_id).name
