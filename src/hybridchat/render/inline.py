import re
from typing import Iterator

from hybridchat.i18n import FormatLabels
from hybridchat.render.nodes import Audio, Bold, Image, Inline, Italic, Link, Text

IMAGE_URL = re.compile(r"\.(jpg|jpeg|png|gif|webp|bmp|svg)(?:[?#]|$)", re.IGNORECASE)
AUDIO_URL = re.compile(r"\.(mp3|wav|ogg|m4a|aac|webm)(?:[?#]|$)", re.IGNORECASE)
RAW_URL = re.compile(r"(https?://[^\s<]+[^<.,:;\"')\]\s])")
LINK_TITLE = re.compile(r"\s+([\"'])(.*?)\1$")
BOLD = re.compile(r"(\*\*.*?\*\*)")
ITALIC = re.compile(r"(\*.*?\*)")


def is_image_url(url: str) -> bool:
    return bool(IMAGE_URL.search(url))


def is_audio_url(url: str) -> bool:
    # poecdn serves generated audio without a file extension
    return bool(AUDIO_URL.search(url)) or ("poecdn.net" in url and "/audio/" in url)


def _pair_brackets(text: str, opener: str, closer: str) -> dict[int, int]:
    """Map each opener index to the index of its matching closer."""
    partners: dict[int, int] = {}
    stack: list[int] = []
    for index, char in enumerate(text):
        if char == opener:
            stack.append(index)
        elif char == closer and stack:
            partners[stack.pop()] = index
    return partners


def _scan_links(text: str) -> Iterator[tuple[int, int, bool, str, str]]:
    """Yield (start, end, is_image, label, target) for each ``[label](target)``.

    Brackets and parentheses are matched by depth, so targets such as
    ``https://en.wikipedia.org/wiki/Foo_(bar)`` survive intact.
    """
    brackets = _pair_brackets(text, "[", "]")
    parens = _pair_brackets(text, "(", ")")
    pos = 0
    last_end = 0
    while True:
        open_idx = text.find("[", pos)
        if open_idx == -1:
            return
        close_idx = brackets.get(open_idx)
        if close_idx is None:
            pos = open_idx + 1
            continue

        paren_idx = close_idx + 1
        while paren_idx < len(text) and text[paren_idx].isspace():
            paren_idx += 1
        if paren_idx >= len(text) or text[paren_idx] != "(":
            pos = open_idx + 1
            continue

        paren_close = parens.get(paren_idx)
        target = text[paren_idx + 1 : paren_close] if paren_close is not None else ""
        if paren_close is None or not target.strip():
            pos = open_idx + 1
            continue

        is_image = open_idx > last_end and text[open_idx - 1] == "!"
        start = open_idx - 1 if is_image else open_idx
        yield start, paren_close + 1, is_image, text[open_idx + 1 : close_idx], target
        pos = last_end = paren_close + 1


def _split_title(target: str) -> tuple[str, str | None]:
    url = target.strip()
    match = LINK_TITLE.search(url)
    if not match:
        return url, None
    return url[: match.start()].strip(), match.group(2)


def render_emphasis(text: str) -> list[Inline]:
    nodes: list[Inline] = []
    for index, part in enumerate(BOLD.split(text)):
        if not part:
            continue
        if index % 2 == 1:
            nodes.append(Bold(part[2:-2]))
            continue
        for sub_index, sub in enumerate(ITALIC.split(part)):
            if not sub:
                continue
            if sub_index % 2 == 1 and len(sub) > 2:
                nodes.append(Italic(sub[1:-1]))
            else:
                nodes.append(Text(sub))
    return nodes


def _url_node(url: str, labels: FormatLabels) -> Inline:
    if is_image_url(url):
        return Image(src=url)
    if is_audio_url(url):
        return Audio(src=url, fallback=labels.audio_fallback)
    return Link(href=url, children=(Text(url),))


def render_raw_urls(text: str, labels: FormatLabels) -> list[Inline]:
    nodes: list[Inline] = []
    for index, part in enumerate(RAW_URL.split(text)):
        if not part:
            continue
        if index % 2 == 1:
            nodes.append(_url_node(part, labels))
        else:
            nodes.extend(render_emphasis(part))
    return nodes


def render_inline(text: str, labels: FormatLabels | None = None) -> tuple[Inline, ...]:
    labels = labels or FormatLabels()
    nodes: list[Inline] = []
    last = 0

    for start, end, is_image, label, target in _scan_links(text):
        if start > last:
            nodes.extend(render_raw_urls(text[last:start], labels))

        url, title = _split_title(target)
        if is_image or is_image_url(url):
            nodes.append(Image(src=url, alt=label, title=title))
        elif is_audio_url(url):
            nodes.append(Audio(src=url, fallback=labels.audio_fallback))
        else:
            nodes.append(Link(href=url, children=tuple(render_emphasis(label)), title=title))
        last = end

    if last < len(text):
        nodes.extend(render_raw_urls(text[last:], labels))
    return tuple(nodes)
