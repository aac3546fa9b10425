import logging
import threading
from typing import Any, Iterable, Iterator

import httpx

from hybridchat.catalog import ModelConfig
from hybridchat.config import StreamConfig
from hybridchat.errors import TransportError
from hybridchat.models import Message, ModelParameters, UsageMetadata
from hybridchat.streaming.normalize import accumulate_deltas, guard_cancel, iter_sse_deltas
from hybridchat.streaming.payloads import build_poe_payload

logger = logging.getLogger(__name__)

USAGE_HISTORY_LIMIT = 10


def _headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}


def upstream_error_message(response: httpx.Response) -> str:
    message = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return message
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return message


def stream_poe(
    history: Iterable[Message],
    model: ModelConfig,
    params: ModelParameters,
    config: StreamConfig,
    api_key: str,
    cancel: threading.Event | None = None,
    client: httpx.Client | None = None,
) -> Iterator[str]:
    payload = build_poe_payload(history, model, params, config.system_instruction)
    owns_client = client is None
    http = client or httpx.Client(timeout=config.timeout)
    try:
        with http.stream(
            "POST", config.chat_url, json=payload, headers=_headers(api_key)
        ) as response:
            if not response.is_success:
                response.read()
                raise TransportError(
                    f"Poe API Error: {upstream_error_message(response)}",
                    status_code=response.status_code,
                )
            lines = guard_cancel(response.iter_lines(), cancel)
            yield from accumulate_deltas(iter_sse_deltas(lines))
    except httpx.RequestError as e:
        raise TransportError(f"Poe API Error: {e}") from e
    finally:
        if owns_client:
            http.close()


def complete_poe(
    messages: list[dict],
    model: str,
    api_key: str,
    config: StreamConfig,
    extra_body: dict[str, Any] | None = None,
    client: httpx.Client | None = None,
) -> str:
    payload: dict[str, Any] = {"model": model, "messages": messages}
    if extra_body:
        payload["extra_body"] = extra_body
    owns_client = client is None
    http = client or httpx.Client(timeout=config.timeout)
    try:
        response = http.post(config.chat_url, json=payload, headers=_headers(api_key))
        if not response.is_success:
            raise TransportError(
                f"Poe API Error: {upstream_error_message(response)}",
                status_code=response.status_code,
            )
        data = response.json()
    except httpx.RequestError as e:
        raise TransportError(f"Poe API Error: {e}") from e
    finally:
        if owns_client:
            http.close()

    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def fetch_latest_usage(
    api_key: str,
    config: StreamConfig,
    client: httpx.Client | None = None,
) -> UsageMetadata | None:
    owns_client = client is None
    http = client or httpx.Client(timeout=config.timeout)
    try:
        response = http.get(
            config.usage_url,
            params={"limit": USAGE_HISTORY_LIMIT},
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if not response.is_success:
            return None
        entries = response.json().get("data") or []
        if not entries:
            return None
        entry = entries[0]
        return UsageMetadata(
            points=entry["cost_points"],
            app_name=entry["app_name"],
            # creation_time is in microseconds
            timestamp=int(entry["creation_time"] // 1000),
        )
    except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to fetch usage: {e}")
        return None
    finally:
        if owns_client:
            http.close()
