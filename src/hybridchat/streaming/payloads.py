import base64
import binascii
from typing import Any, Iterable

from hybridchat.catalog import ModelConfig, build_extra_body
from hybridchat.context import is_eligible
from hybridchat.models import Attachment, Message, ModelParameters, Role


def data_url(attachment: Attachment) -> str:
    return f"data:{attachment.mime_type};base64,{attachment.data}"


def _api_role(message: Message) -> str:
    return "assistant" if message.role == Role.MODEL else "user"


def build_poe_messages(history: Iterable[Message], system_instruction: str) -> list[dict]:
    formatted: list[dict] = [{"role": "system", "content": system_instruction}]

    for message in history:
        if not is_eligible(message):
            continue

        if not message.attachments:
            formatted.append({"role": _api_role(message), "content": message.text or " "})
            continue

        parts: list[dict[str, Any]] = []
        if message.text:
            parts.append({"type": "text", "text": message.text})
        for attachment in message.attachments:
            if attachment.mime_type.startswith("image/"):
                parts.append({"type": "image_url", "image_url": {"url": data_url(attachment)}})
            else:
                parts.append(
                    {
                        "type": "file",
                        "file": {"filename": attachment.name, "file_data": data_url(attachment)},
                    }
                )
        formatted.append({"role": _api_role(message), "content": parts})

    return formatted


def build_poe_payload(
    history: Iterable[Message],
    model: ModelConfig,
    params: ModelParameters,
    system_instruction: str,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": model.id,
        "messages": build_poe_messages(history, system_instruction),
        "stream": True,
    }
    extra_body = build_extra_body(model, params)
    if extra_body:
        payload["extra_body"] = extra_body
    return payload


def _decode_text_attachment(attachment: Attachment) -> str | None:
    try:
        return base64.b64decode(attachment.data, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def build_gemini_messages(history: Iterable[Message], system_instruction: str) -> list[dict]:
    formatted: list[dict] = [{"role": "system", "content": system_instruction}]

    for message in history:
        if not is_eligible(message):
            continue

        parts: list[dict[str, Any]] = []
        for attachment in message.attachments:
            if attachment.mime_type == "text/plain":
                decoded = _decode_text_attachment(attachment)
                if decoded is not None:
                    parts.append({"type": "text", "text": f"[File: {attachment.name}]\n{decoded}"})
            elif attachment.mime_type.startswith("image/"):
                parts.append({"type": "image_url", "image_url": {"url": data_url(attachment)}})
            else:
                parts.append({"type": "file", "file": {"file_data": data_url(attachment)}})
        if message.text:
            parts.append({"type": "text", "text": message.text})

        if not parts:
            content: str | list[dict[str, Any]] = " "
        elif len(parts) == 1 and parts[0]["type"] == "text":
            content = parts[0]["text"]
        else:
            content = parts
        formatted.append({"role": _api_role(message), "content": content})

    return formatted
