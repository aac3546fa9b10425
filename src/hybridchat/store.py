import logging
from typing import Callable, Iterable

from pydantic import ValidationError

from common.ids import now_ms
from hybridchat.errors import PersistenceError
from hybridchat.models import ChatSession, Message
from hybridchat.settings import SESSIONS_KEY, KeyValueStorage

logger = logging.getLogger(__name__)

MessagesFn = Callable[[tuple[Message, ...]], Iterable[Message]]
SessionFn = Callable[[ChatSession], ChatSession]


class ConversationStore:
    """Owns the session list and the active-session pointer.

    State is an immutable snapshot: every mutation builds a new tuple of
    frozen sessions, swaps it in, then writes the whole list to storage.
    A failed write is logged and the in-memory snapshot stays authoritative.
    """

    def __init__(self, storage: KeyValueStorage, sessions: Iterable[ChatSession] = ()):
        self.storage = storage
        self._sessions: tuple[ChatSession, ...] = tuple(sessions)
        self._active_id: str | None = None
        self.last_persist_error: PersistenceError | None = None

    @classmethod
    def load(cls, storage: KeyValueStorage) -> "ConversationStore":
        raw = storage.get(SESSIONS_KEY, [])
        sessions: list[ChatSession] = []
        if isinstance(raw, list):
            for entry in raw:
                try:
                    sessions.append(ChatSession.model_validate(entry))
                except ValidationError as e:
                    logger.error(f"Skipping unreadable session: {e}")
        else:
            logger.error(f"Ignoring malformed {SESSIONS_KEY} payload")
        return cls(storage, sessions)

    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        return self._sessions

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active(self) -> ChatSession | None:
        return self.get(self._active_id) if self._active_id else None

    def get(self, session_id: str | None) -> ChatSession | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def _commit(self, sessions: tuple[ChatSession, ...]) -> None:
        self._sessions = sessions
        self._persist()

    def _persist(self) -> None:
        payload = [s.model_dump(mode="json") for s in self._sessions]
        try:
            self.storage.set(SESSIONS_KEY, payload)
            self.last_persist_error = None
        except PersistenceError as e:
            self.last_persist_error = e
            logger.error(f"Failed to save sessions (likely storage limit reached): {e}")

    def create_session(self, model_id: str, title: str) -> ChatSession:
        session = ChatSession(title=title, model_id=model_id)
        self._active_id = session.id
        self._commit((session,) + self._sessions)
        return session

    def delete_session(self, session_id: str) -> None:
        remaining = tuple(s for s in self._sessions if s.id != session_id)
        if self._active_id == session_id:
            self._active_id = None
        if len(remaining) != len(self._sessions):
            self._commit(remaining)

    def select_session(self, session_id: str) -> ChatSession | None:
        session = self.get(session_id)
        if session is not None:
            self._active_id = session.id
        return session

    def update_session(self, session_id: str, fn: SessionFn) -> ChatSession | None:
        updated: ChatSession | None = None
        sessions = []
        for session in self._sessions:
            if session.id == session_id:
                updated = fn(session)
                sessions.append(updated)
            else:
                sessions.append(session)
        if updated is None:
            logger.debug(f"Session {session_id} not found; update dropped")
            return None
        self._commit(tuple(sessions))
        return updated

    def replace_messages(self, session_id: str, fn: MessagesFn) -> ChatSession | None:
        return self.update_session(
            session_id,
            lambda s: s.model_copy(
                update={"messages": tuple(fn(s.messages)), "updated_at": now_ms()}
            ),
        )

    def append_message(self, session_id: str, message: Message) -> ChatSession | None:
        return self.replace_messages(session_id, lambda messages: messages + (message,))

    def update_message(
        self,
        session_id: str,
        message_id: str,
        fn: Callable[[Message], Message],
    ) -> ChatSession | None:
        return self.replace_messages(
            session_id,
            lambda messages: (fn(m) if m.id == message_id else m for m in messages),
        )
