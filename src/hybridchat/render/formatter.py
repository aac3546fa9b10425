"""Turn a (possibly half-streamed) reply into render nodes.

``format_text`` never raises: partial fences, dangling brackets and ragged
tables all degrade to literal text.
"""

import re
from typing import Iterator

from hybridchat.i18n import FormatLabels
from hybridchat.render.blocks import parse_content
from hybridchat.render.nodes import Block, ThinkingBlock

THINKING_MARKER = "*Thinking...*"
MAX_THINKING_DEPTH = 8

# Short tails are usually a reply still streaming in, so the last paragraph
# break only counts as the answer boundary when this many chars follow it.
LAST_BREAK_MIN_TAIL = 20

QUOTE_RUN = re.compile(r"^((?:>.*(?:\n|$))+)")
QUOTE_PREFIX = re.compile(r"^> ?")
ANSWER_LEAD_IN = re.compile(r"([\s\S]*?)(\n\n(?:---|# |Answer:|Here is|Here's)[\s\S]*)")


def split_thinking(body: str) -> tuple[str, str] | None:
    quoted = QUOTE_RUN.match(body)
    if quoted:
        raw = quoted.group(1)
        thoughts = "\n".join(QUOTE_PREFIX.sub("", line) for line in raw.split("\n"))
        return thoughts.strip(), body[len(raw) :].strip()

    lead_in = ANSWER_LEAD_IN.match(body)
    if lead_in:
        return lead_in.group(1).strip(), lead_in.group(2).strip()

    last_break = body.rfind("\n\n")
    if last_break != -1 and last_break < len(body) - LAST_BREAK_MIN_TAIL:
        return body[:last_break].strip(), body[last_break:].strip()
    return None


def format_text(
    text: str,
    labels: FormatLabels | None = None,
    depth: int = 0,
) -> Iterator[Block]:
    labels = labels or FormatLabels()

    if depth >= MAX_THINKING_DEPTH or not text.lstrip().startswith(THINKING_MARKER):
        yield from parse_content(text, labels)
        return

    body = text.replace(THINKING_MARKER, "", 1).lstrip()
    split = split_thinking(body)
    if split is None:
        yield from parse_content(body, labels)
        return

    thoughts, answer = split
    if thoughts:
        yield ThinkingBlock(
            label=labels.thinking,
            children=tuple(format_text(thoughts, labels, depth + 1)),
        )
    if answer:
        yield from format_text(answer, labels, depth + 1)
