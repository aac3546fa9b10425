import base64
from unittest.mock import patch

import pytest

from common.events import TitleEvent
from hybridchat.cli import _main
from hybridchat.models import ChatSession, Message, Role
from hybridchat.repl.repl import ChatREPL
from hybridchat.repl.router import InputRouter
from hybridchat.service import ChatService
from hybridchat.settings import SESSIONS_KEY, KeyValueStorage


def fake_stream(history, model_id, params, config, cancel=None, client=None):
    yield "pong"


@pytest.fixture(autouse=True)
def offline_generation():
    with patch("hybridchat.service.generate_title", return_value="Chat"), patch(
        "hybridchat.service.generate_suggestions", return_value=[]
    ):
        yield


@pytest.fixture
def repl(store, settings, app_config):
    service = ChatService(store, settings, app_config, stream_fn=fake_stream)
    yield ChatREPL(service)
    service.drain(wait=True, timeout=5)
    service.close()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "home"
    monkeypatch.setenv("HYBRIDCHAT_DATA_DIR", str(path))
    return path


def test_router_kinds(repl):
    router = InputRouter(repl.builtins)

    assert router.route("hello").kind == "prompt"
    route = router.route("/open abc123")
    assert (route.kind, route.name, route.args) == ("builtin", "open", "abc123")
    assert router.route("/nope").kind == "unknown"


def test_router_aliases_and_slash_escape(repl):
    router = InputRouter(repl.builtins)

    route = router.route("/regenerate 3")
    assert (route.kind, route.name, route.args) == ("builtin", "regen", "3")
    assert router.route("/EXIT").name == "quit"
    assert router.route("/?").name == "help"

    route = router.route("//etc/hosts explained")
    assert (route.kind, route.args) == ("prompt", "/etc/hosts explained")


def test_repl_subscribes_to_service_events(repl, capsys):
    repl.send("ping")

    out = capsys.readouterr().out
    assert "pong" in out
    repl.service.events.emit(TitleEvent(repl.service.active.id, "Magnets"))
    assert "📝 Magnets" in capsys.readouterr().out


def thinking_stream(history, model_id, params, config, cancel=None, client=None):
    yield "*Thin"
    yield "*Thinking...*\nplan it"
    yield "*Thinking...*\nplan it\n\n---\n| a | b |\n|---|---|\n| 1 |"


def test_repl_prints_formatted_reply(store, settings, app_config, capsys):
    service = ChatService(store, settings, app_config, stream_fn=thinking_stream)
    try:
        repl = ChatREPL(service)
        result = repl.send("hi")
    finally:
        service.drain(wait=True, timeout=5)
        service.close()

    assert result.status == "completed"
    out = capsys.readouterr().out
    assert "*Thinking...*" not in out
    assert "*Thin" not in out
    assert "▼ Thinking Process" in out
    assert "  ┊ plan it" in out
    assert "| 1 |   |" in out


def test_set_parameter_validates(repl, capsys):
    repl.builtins.handle("set", "thinking_level high")
    assert repl.params.thinking_level == "high"

    repl.builtins.handle("set", "thinking_level extreme")
    assert repl.params.thinking_level == "high"
    assert "Invalid value" in capsys.readouterr().out

    repl.builtins.handle("set", "web_search true")
    assert repl.params.web_search is True

    repl.builtins.handle("set", "thinking_level none")
    assert repl.params.thinking_level is None


def test_attach_and_send(repl, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    repl.builtins.handle("attach", str(path))
    assert repl.pending_attachments[0].mime_type == "text/plain"
    assert base64.b64decode(repl.pending_attachments[0].data) == b"hello"

    result = repl.send("read this")

    assert result.status == "completed"
    assert repl.pending_attachments == []
    user_message = repl.service.active.messages[0]
    assert user_message.attachments[0].name == "notes.txt"


def test_edit_sets_draft(repl):
    repl.send("first")

    repl.builtins.handle("edit", "1")

    assert repl.draft == "first"
    assert repl.service.active.messages == ()


def test_quit_returns_false(repl):
    assert repl.builtins.handle("quit", "") is False
    assert repl.builtins.handle("help", "") is True


def test_config_command_updates_settings(data_dir, capsys):
    assert _main(["config", "--use-poe", "--poe-key", " sk-12345678 ", "--language", "en"]) == 0
    out = capsys.readouterr().out

    assert "backend: poe" in out
    assert "sk-12345678" not in out
    assert KeyValueStorage(data_dir).get("poe_api_key") == "sk-12345678"

    assert _main(["config", "--no-use-poe"]) == 0
    assert "backend: gemini (disabled)" in capsys.readouterr().out


def test_sessions_and_show(data_dir, capsys):
    session = ChatSession(
        title="Magnets",
        model_id="gemini-3-flash",
        messages=(
            Message(role=Role.USER, text="why?"),
            Message(role=Role.MODEL, text="**Because**", model_id="gemini-3-flash"),
        ),
    )
    KeyValueStorage(data_dir).set(SESSIONS_KEY, [session.model_dump(mode="json")])

    assert _main(["sessions"]) == 0
    assert "Magnets" in capsys.readouterr().out

    assert _main(["show", session.id]) == 0
    out = capsys.readouterr().out
    assert "Because" in out
    assert "**" not in out

    assert _main(["show", "missing"]) == 1


def test_unknown_model_rejected(data_dir, capsys):
    assert _main(["chat", "--model", "gpt-2", "-m", "hi"]) == 1
