from hybridchat.render.formatter import THINKING_MARKER, format_text, split_thinking
from hybridchat.render.inline import is_audio_url, is_image_url, render_inline
from hybridchat.render.nodes import (
    Audio,
    Block,
    Blockquote,
    Bold,
    CodeBlock,
    Heading,
    HorizontalRule,
    Image,
    Inline,
    Italic,
    Link,
    ListItem,
    Paragraph,
    Spacer,
    Table,
    Text,
    ThinkingBlock,
)
from hybridchat.render.plain import render_plain

__all__ = [
    "THINKING_MARKER",
    "format_text",
    "split_thinking",
    "render_inline",
    "render_plain",
    "is_audio_url",
    "is_image_url",
    "Audio",
    "Block",
    "Blockquote",
    "Bold",
    "CodeBlock",
    "Heading",
    "HorizontalRule",
    "Image",
    "Inline",
    "Italic",
    "Link",
    "ListItem",
    "Paragraph",
    "Spacer",
    "Table",
    "Text",
    "ThinkingBlock",
]
