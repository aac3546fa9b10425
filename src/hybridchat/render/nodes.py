from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class Text:
    text: str


@dataclass(frozen=True, slots=True)
class Bold:
    text: str


@dataclass(frozen=True, slots=True)
class Italic:
    text: str


@dataclass(frozen=True, slots=True)
class Link:
    href: str
    children: tuple[Inline, ...]
    title: str | None = None


@dataclass(frozen=True, slots=True)
class Image:
    src: str
    alt: str = ""
    title: str | None = None


@dataclass(frozen=True, slots=True)
class Audio:
    src: str
    fallback: str = ""


Inline: TypeAlias = Text | Bold | Italic | Link | Image | Audio


@dataclass(frozen=True, slots=True)
class Paragraph:
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class HorizontalRule:
    pass


@dataclass(frozen=True, slots=True)
class ListItem:
    ordered: bool
    marker: str
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Blockquote:
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Spacer:
    pass


@dataclass(frozen=True, slots=True)
class Table:
    header: tuple[tuple[Inline, ...], ...]
    rows: tuple[tuple[tuple[Inline, ...], ...], ...]


@dataclass(frozen=True, slots=True)
class CodeBlock:
    language: str
    code: str
    copy_label: str = "Copy"
    copied_label: str = "Copied"


@dataclass(frozen=True, slots=True)
class ThinkingBlock:
    label: str
    children: tuple[Block, ...]
    expanded: bool = True


Block: TypeAlias = (
    Paragraph
    | Heading
    | HorizontalRule
    | ListItem
    | Blockquote
    | Spacer
    | Table
    | CodeBlock
    | ThinkingBlock
)
