"""Both backends are reduced to one contract: an iterator of cumulative text.

Every value yielded is the whole answer so far, never just the increment.
"""

import json
import logging
import re
import threading
from typing import Any, Iterable, Iterator, TypeVar

from hybridchat.errors import PayloadError, StreamAborted, TransportError
from hybridchat.render.formatter import THINKING_MARKER

logger = logging.getLogger(__name__)

T = TypeVar("T")

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"
AUDIO_PROGRESS_NOISE = re.compile(r"Generating Audio \(\d+s elapsed\)")


def guard_cancel(items: Iterable[T], cancel: threading.Event | None) -> Iterator[T]:
    if cancel is None:
        yield from items
        return
    iterator = iter(items)
    while True:
        if cancel.is_set():
            raise StreamAborted("Reply stopped by user")
        try:
            item = next(iterator)
        except StopIteration:
            return
        if cancel.is_set():
            raise StreamAborted("Reply stopped by user")
        yield item


def strip_progress_noise(text: str) -> str:
    return AUDIO_PROGRESS_NOISE.sub("", text)


def stabilize_thinking(text: str) -> str:
    parts = text.split(THINKING_MARKER)
    if len(parts) > 2:
        return THINKING_MARKER + parts[-1]
    return text


def decode_event(data: str) -> dict[str, Any]:
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Invalid JSON in event: {e}") from e
    if not isinstance(payload, dict):
        raise PayloadError(f"Unexpected event payload type: {type(payload).__name__}")
    return payload


def delta_content(payload: dict[str, Any]) -> str:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


def iter_sse_deltas(lines: Iterable[str]) -> Iterator[str]:
    for raw in lines:
        line = raw.strip()
        if not line.startswith(SSE_DATA_PREFIX):
            continue
        data = line[len(SSE_DATA_PREFIX) :].strip()
        if data == SSE_DONE:
            return
        try:
            payload = decode_event(data)
        except PayloadError as e:
            logger.warning(f"SSE parse error, skipping event: {e}")
            continue

        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            raise TransportError(f"Poe API Error: {error['message']}")

        content = delta_content(payload)
        if content:
            yield content


def accumulate_deltas(deltas: Iterable[str]) -> Iterator[str]:
    accumulated = ""
    for delta in deltas:
        accumulated += delta
        yield strip_progress_noise(accumulated)


def accumulate_snapshots(chunks: Iterable[str]) -> Iterator[str]:
    """Merge chunks that may be full snapshots, repeats, or plain deltas."""
    accumulated = ""
    for text in chunks:
        if not text or text == accumulated:
            continue
        if len(text) >= len(accumulated) and text.startswith(accumulated):
            accumulated = text
        else:
            accumulated += text
        yield accumulated
