import logging
import threading
from typing import Iterable, Iterator

from common import llm
from hybridchat.catalog import ModelConfig
from hybridchat.config import StreamConfig
from hybridchat.errors import StreamAborted, TransportError
from hybridchat.models import Message, ModelParameters
from hybridchat.streaming.normalize import accumulate_snapshots, guard_cancel
from hybridchat.streaming.payloads import build_gemini_messages

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_TOOL = {"googleSearch": {}}


def litellm_model(fallback_model: str) -> str:
    return f"gemini/{fallback_model}"


def stream_gemini(
    history: Iterable[Message],
    model: ModelConfig,
    params: ModelParameters,
    config: StreamConfig,
    cancel: threading.Event | None = None,
) -> Iterator[str]:
    """Fallback path. Only web search maps onto Gemini; other params are dropped."""
    messages = build_gemini_messages(history, config.system_instruction)
    tools = [GOOGLE_SEARCH_TOOL] if params.web_search else None
    logger.debug(f"Fallback stream for {model.id} via {litellm_model(model.fallback_model)}")
    try:
        chunks = llm.stream_text(
            model=litellm_model(model.fallback_model),
            messages=messages,
            tools=tools,
        )
        yield from accumulate_snapshots(guard_cancel(chunks, cancel))
    except (StreamAborted, TransportError):
        raise
    except Exception as e:
        if cancel is not None and cancel.is_set():
            raise StreamAborted("Reply stopped by user") from e
        raise TransportError(f"Gemini API Error: {e}") from e
