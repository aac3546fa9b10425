import warnings
from typing import Any, Iterator

import litellm
from litellm import completion as litellm_completion

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
litellm.drop_params = True


def completion(
    model: str,
    messages: list[dict],
    stream: bool = False,
    tools: list[dict] | None = None,
    **kwargs,
) -> Any:
    params = {
        "model": model,
        "messages": messages,
        "stream": stream,
        **kwargs,
    }

    if tools:
        params["tools"] = tools

    return litellm_completion(**params)


def chunk_text(chunk: Any) -> str:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    content = getattr(delta, "content", None) if delta is not None else None
    return content or ""


def stream_text(
    model: str,
    messages: list[dict],
    tools: list[dict] | None = None,
    **kwargs,
) -> Iterator[str]:
    stream = completion(model=model, messages=messages, stream=True, tools=tools, **kwargs)
    for chunk in stream:
        text = chunk_text(chunk)
        if text:
            yield text


def completion_text(model: str, messages: list[dict], **kwargs) -> str:
    response = completion(model=model, messages=messages, stream=False, **kwargs)
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return (getattr(message, "content", None) or "") if message is not None else ""
