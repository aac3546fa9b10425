import logging
import threading
from typing import Iterable, Iterator

import httpx

from hybridchat.catalog import get_model
from hybridchat.config import Primary, StreamConfig
from hybridchat.context import eligible_messages
from hybridchat.models import Message, ModelParameters
from hybridchat.streaming.gemini import stream_gemini
from hybridchat.streaming.normalize import (
    accumulate_deltas,
    accumulate_snapshots,
    iter_sse_deltas,
    stabilize_thinking,
    strip_progress_noise,
)
from hybridchat.streaming.poe import complete_poe, fetch_latest_usage, stream_poe

logger = logging.getLogger(__name__)


def stream_reply(
    history: Iterable[Message],
    model_id: str,
    params: ModelParameters,
    config: StreamConfig,
    cancel: threading.Event | None = None,
    client: httpx.Client | None = None,
) -> Iterator[str]:
    model = get_model(model_id)
    eligible = eligible_messages(history)
    backend = config.backend
    logger.debug(f"Streaming {model.id} via {backend.name} ({len(eligible)} messages)")
    if isinstance(backend, Primary):
        return stream_poe(eligible, model, params, config, backend.api_key, cancel, client)
    return stream_gemini(eligible, model, params, config, cancel)


__all__ = [
    "stream_reply",
    "stream_poe",
    "stream_gemini",
    "complete_poe",
    "fetch_latest_usage",
    "accumulate_deltas",
    "accumulate_snapshots",
    "iter_sse_deltas",
    "stabilize_thinking",
    "strip_progress_noise",
]
