from hybridchat.errors import PersistenceError
from hybridchat.models import ChatSession, Message, Role
from hybridchat.settings import SESSIONS_KEY, KeyValueStorage
from hybridchat.store import ConversationStore


def test_create_session_inserts_at_head_and_activates(store):
    first = store.create_session("gemini-3-flash", "New Chat")
    second = store.create_session("gpt-5-nano", "New Chat")

    assert [s.id for s in store.sessions] == [second.id, first.id]
    assert store.active_id == second.id


def test_mutations_persist_full_session_list(storage, store):
    session = store.create_session("gemini-3-flash", "New Chat")
    store.append_message(session.id, Message(role=Role.USER, text="hi"))

    raw = storage.get(SESSIONS_KEY)
    assert len(raw) == 1
    assert raw[0]["messages"][0]["text"] == "hi"

    reloaded = ConversationStore.load(storage)
    assert [s.model_dump() for s in reloaded.sessions] == [
        s.model_dump() for s in store.sessions
    ]


def test_append_updates_timestamp(store):
    session = store.create_session("gemini-3-flash", "New Chat")
    before = store.get(session.id).updated_at

    updated = store.append_message(session.id, Message(role=Role.USER, text="hi"))

    assert updated.updated_at >= before
    assert updated.messages[-1].text == "hi"


def test_delete_active_clears_pointer(store):
    session = store.create_session("gemini-3-flash", "New Chat")
    store.delete_session(session.id)

    assert store.sessions == ()
    assert store.active_id is None


def test_select_session(store):
    first = store.create_session("gemini-3-flash", "A")
    store.create_session("gpt-5-nano", "B")

    selected = store.select_session(first.id)

    assert selected.id == first.id
    assert store.active_id == first.id
    assert store.select_session("missing") is None
    assert store.active_id == first.id


def test_update_message_targets_by_id(store):
    session = store.create_session("gemini-3-flash", "New Chat")
    reply = Message(role=Role.MODEL, text="")
    store.append_message(session.id, Message(role=Role.USER, text="q"))
    store.append_message(session.id, reply)

    store.update_message(session.id, reply.id, lambda m: m.model_copy(update={"text": "a"}))

    assert [m.text for m in store.get(session.id).messages] == ["q", "a"]


def test_update_missing_session_is_dropped(store):
    assert store.append_message("missing", Message(role=Role.USER, text="q")) is None


def test_persist_failure_keeps_memory_state(tmp_path):
    storage = KeyValueStorage(tmp_path, quota_bytes=200)
    store = ConversationStore(storage)

    session = store.create_session("gemini-3-flash", "New Chat")
    store.append_message(session.id, Message(role=Role.USER, text="x" * 500))

    assert store.get(session.id).messages[-1].text == "x" * 500
    assert isinstance(store.last_persist_error, PersistenceError)


def test_load_skips_invalid_sessions(storage):
    good = ChatSession(title="ok", model_id="gemini-3-flash")
    storage.set(SESSIONS_KEY, [good.model_dump(mode="json"), {"title": "broken"}])

    store = ConversationStore.load(storage)

    assert [s.id for s in store.sessions] == [good.id]
    assert store.active_id is None


def test_load_empty_storage(storage):
    assert ConversationStore.load(storage).sessions == ()
