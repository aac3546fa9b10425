"""Title and conversation-starter generation.

Both helpers are best-effort: any failure is logged at debug level and a
default is returned, so callers never have to handle errors.
"""

import logging
import re

import httpx

from common import llm
from hybridchat.config import Primary, StreamConfig
from hybridchat.streaming.poe import complete_poe

logger = logging.getLogger(__name__)

PRIMARY_MODEL = "Gemini-3-Flash"
PRIMARY_EXTRA_BODY = {"thinking_level": "minimal"}
FALLBACK_MODEL = "gemini/gemini-3-flash-preview"

DEFAULT_TITLE = "New Chat"
MAX_TITLE_LENGTH = 40
MAX_SUGGESTIONS = 4

TITLE_SYSTEM_PROMPT = "Generate a 3-5 word title. No quotes."
FALLBACK_TITLE_PROMPT = (
    "Generate a short title (3-5 words) for this chat message. "
    "Do not use quotes. Message: {message}"
)
SUGGESTIONS_PROMPT = (
    "Generate 4 short, engaging, and diverse conversation starters or tasks "
    "for an AI chatbot. Return ONLY the 4 lines of text, no numbering, "
    "no preamble. Language: {language}"
)

LIST_MARKER = re.compile(r"^[\d\-\.\*•]+\s*")


def clean_title(raw: str | None) -> str:
    title = (raw or "").strip() or DEFAULT_TITLE
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH] + "..."
    return title


def clean_suggestions(raw: str | None) -> list[str]:
    lines = (LIST_MARKER.sub("", line).strip() for line in (raw or "").split("\n"))
    return [line for line in lines if line][:MAX_SUGGESTIONS]


def suggestion_language(language: str) -> str:
    return "Cantonese (Hong Kong)" if language == "zh-TW" else "English"


def _complete(
    messages: list[dict], config: StreamConfig, client: httpx.Client | None
) -> str:
    backend = config.backend
    if isinstance(backend, Primary):
        return complete_poe(
            messages,
            PRIMARY_MODEL,
            backend.api_key,
            config,
            extra_body=PRIMARY_EXTRA_BODY,
            client=client,
        )
    return llm.completion_text(model=FALLBACK_MODEL, messages=messages)


def generate_title(
    first_message: str, config: StreamConfig, client: httpx.Client | None = None
) -> str:
    if isinstance(config.backend, Primary):
        messages = [
            {"role": "system", "content": TITLE_SYSTEM_PROMPT},
            {"role": "user", "content": first_message},
        ]
    else:
        messages = [
            {"role": "user", "content": FALLBACK_TITLE_PROMPT.format(message=first_message)}
        ]
    try:
        raw = _complete(messages, config, client)
    except Exception as e:
        logger.debug(f"Title generation failed: {e}")
        raw = ""
    return clean_title(raw)


def generate_suggestions(
    language: str, config: StreamConfig, client: httpx.Client | None = None
) -> list[str]:
    prompt = SUGGESTIONS_PROMPT.format(language=suggestion_language(language))
    try:
        raw = _complete([{"role": "user", "content": prompt}], config, client)
    except Exception as e:
        logger.debug(f"Suggestion generation failed: {e}")
        return []
    return clean_suggestions(raw)
