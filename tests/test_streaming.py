import json
import threading
from unittest.mock import patch

import httpx
import pytest

from hybridchat.catalog import get_model
from hybridchat.config import Fallback, Primary, StreamConfig
from hybridchat.errors import StreamAborted, TransportError
from hybridchat.models import Attachment, Message, ModelParameters, Role
from hybridchat.streaming import (
    accumulate_snapshots,
    fetch_latest_usage,
    iter_sse_deltas,
    stabilize_thinking,
    stream_reply,
    strip_progress_noise,
)
from hybridchat.streaming.normalize import accumulate_deltas, guard_cancel
from hybridchat.streaming.payloads import build_gemini_messages, build_poe_payload


def sse(*events) -> bytes:
    lines = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode("utf-8")


def delta(text: str) -> dict:
    return {"choices": [{"delta": {"content": text}}]}


def poe_config() -> StreamConfig:
    return StreamConfig(
        backend=Primary(api_key="sk-test"),
        system_instruction="sys",
        base_url="https://poe.test",
        timeout=5.0,
    )


def client_for(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


HISTORY = (
    Message(role=Role.USER, text="old", exclude_from_context=True),
    Message.divider("cleared"),
    Message(role=Role.USER, text="hi"),
)


def test_iter_sse_deltas_handles_done_and_noise():
    lines = [
        "",
        ": keepalive",
        f"data: {json.dumps(delta('a'))}",
        "data: not-json",
        f"data: {json.dumps({'choices': []})}",
        f"  data: {json.dumps(delta('b'))}  ",
        "data: [DONE]",
        f"data: {json.dumps(delta('ignored'))}",
    ]
    assert list(iter_sse_deltas(lines)) == ["a", "b"]


def test_iter_sse_deltas_raises_on_error_event():
    lines = [f"data: {json.dumps({'error': {'message': 'quota'}})}"]
    with pytest.raises(TransportError, match="Poe API Error: quota"):
        list(iter_sse_deltas(lines))


def test_accumulate_deltas_strips_progress_noise():
    chunks = ["Generating Audio (3s elapsed)", "https://x/a.mp3"]
    assert list(accumulate_deltas(chunks)) == ["", "https://x/a.mp3"]
    assert strip_progress_noise("a Generating Audio (12s elapsed) b") == "a  b"


def test_accumulate_snapshots_never_regresses():
    chunks = ["Hel", "Hello", "Hello", " world", "", "Hello world!"]
    results = list(accumulate_snapshots(chunks))

    assert results == ["Hel", "Hello", "Hello world", "Hello world!"]
    lengths = [len(r) for r in results]
    assert lengths == sorted(lengths)


def test_stabilize_thinking_keeps_last_segment():
    text = "*Thinking...*\nfirst*Thinking...*\nsecond*Thinking...*\nthird"
    assert stabilize_thinking(text) == "*Thinking...*\nthird"
    assert stabilize_thinking("*Thinking...*\nonly") == "*Thinking...*\nonly"


def test_guard_cancel_stops_iteration():
    cancel = threading.Event()
    items = guard_cancel(iter(["a", "b", "c"]), cancel)

    assert next(items) == "a"
    cancel.set()
    with pytest.raises(StreamAborted):
        next(items)


def test_poe_payload_shape():
    attachment = Attachment(name="a.png", mime_type="image/png", data="AAAA")
    doc = Attachment(name="a.pdf", mime_type="application/pdf", data="BBBB")
    history = HISTORY + (
        Message(role=Role.MODEL, text=""),
        Message(role=Role.USER, text="look", attachments=(attachment, doc)),
    )

    payload = build_poe_payload(
        history, get_model("gemini-3-flash"), ModelParameters(thinking_level="high"), "sys"
    )

    assert payload["model"] == "gemini-3-flash"
    assert payload["stream"] is True
    assert payload["extra_body"] == {"thinking_level": "high"}
    assert payload["messages"][0] == {"role": "system", "content": "sys"}
    assert payload["messages"][1] == {"role": "user", "content": "hi"}
    assert payload["messages"][2] == {"role": "assistant", "content": " "}
    assert payload["messages"][3]["content"] == [
        {"type": "text", "text": "look"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        {
            "type": "file",
            "file": {"filename": "a.pdf", "file_data": "data:application/pdf;base64,BBBB"},
        },
    ]


def test_poe_payload_without_extra_body():
    payload = build_poe_payload(HISTORY, get_model("gpt-5-nano"), ModelParameters(), "sys")
    assert "extra_body" not in payload


def test_gemini_messages_inline_text_files():
    text_file = Attachment(name="notes.txt", mime_type="text/plain", data="aGVsbG8=")
    broken = Attachment(name="bad.txt", mime_type="text/plain", data="%%%")
    history = (Message(role=Role.USER, text="read", attachments=(text_file, broken)),)

    messages = build_gemini_messages(history, "sys")

    assert messages[1]["content"] == [
        {"type": "text", "text": "[File: notes.txt]\nhello"},
        {"type": "text", "text": "read"},
    ]


def test_stream_reply_poe_yields_cumulative_snapshots():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/event-stream"},
            content=sse(delta("Hel"), delta("lo"), "[DONE]"),
        )

    snapshots = list(
        stream_reply(
            HISTORY,
            "gpt-5-nano",
            ModelParameters(),
            poe_config(),
            client=client_for(handler),
        )
    )

    assert snapshots == ["Hel", "Hello"]
    assert seen["url"] == "https://poe.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert [m["content"] for m in seen["body"]["messages"]] == ["sys", "hi"]


def test_stream_reply_poe_error_status_uses_upstream_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

    with pytest.raises(TransportError) as excinfo:
        list(stream_reply(HISTORY, "gpt-5-nano", ModelParameters(), poe_config(), client=client_for(handler)))

    assert str(excinfo.value) == "Poe API Error: Invalid API key"
    assert excinfo.value.status_code == 401


def test_stream_reply_poe_error_status_without_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    with pytest.raises(TransportError, match="Poe API Error: Bad Gateway"):
        list(stream_reply(HISTORY, "gpt-5-nano", ModelParameters(), poe_config(), client=client_for(handler)))


def test_stream_reply_poe_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        list(stream_reply(HISTORY, "gpt-5-nano", ModelParameters(), poe_config(), client=client_for(handler)))


def test_stream_reply_poe_cancel_mid_stream():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=sse(delta("a"), delta("b"), delta("c")))

    cancel = threading.Event()
    stream = stream_reply(
        HISTORY, "gpt-5-nano", ModelParameters(), poe_config(), cancel=cancel, client=client_for(handler)
    )

    assert next(stream) == "a"
    cancel.set()
    with pytest.raises(StreamAborted):
        next(stream)


def test_stream_reply_fallback_uses_litellm():
    config = StreamConfig(backend=Fallback(reason="disabled"), system_instruction="sys")

    with patch("hybridchat.streaming.gemini.llm.stream_text") as stream_text:
        stream_text.return_value = iter(["Hi", "Hi there", " friend"])
        snapshots = list(
            stream_reply(HISTORY, "gemini-3-pro", ModelParameters(web_search=True), config)
        )

    assert snapshots == ["Hi", "Hi there", "Hi there friend"]
    kwargs = stream_text.call_args.kwargs
    assert kwargs["model"] == "gemini/gemini-3-pro-preview"
    assert kwargs["tools"] == [{"googleSearch": {}}]
    assert kwargs["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]


def test_stream_reply_fallback_wraps_errors():
    config = StreamConfig(backend=Fallback(reason="missing-key"))

    with patch("hybridchat.streaming.gemini.llm.stream_text", side_effect=RuntimeError("boom")):
        with pytest.raises(TransportError, match="Gemini API Error: boom"):
            list(stream_reply(HISTORY, "gemini-3-flash", ModelParameters(), config))


def test_fetch_latest_usage_converts_microseconds():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/usage/points_history"
        assert request.url.params["limit"] == "10"
        return httpx.Response(
            200,
            json={
                "data": [
                    {"cost_points": 42, "app_name": "GPT-5-Nano", "creation_time": 1700000000123456},
                    {"cost_points": 1, "app_name": "older", "creation_time": 1},
                ]
            },
        )

    usage = fetch_latest_usage("sk-test", poe_config(), client=client_for(handler))

    assert usage.points == 42
    assert usage.app_name == "GPT-5-Nano"
    assert usage.timestamp == 1700000000123


def test_fetch_latest_usage_absent_is_none():
    def empty(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": []})

    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    assert fetch_latest_usage("sk", poe_config(), client=client_for(empty)) is None
    assert fetch_latest_usage("sk", poe_config(), client=client_for(failing)) is None
