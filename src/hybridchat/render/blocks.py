import re
from typing import Iterator

from hybridchat.i18n import FormatLabels
from hybridchat.render.inline import render_inline
from hybridchat.render.nodes import (
    Block,
    Blockquote,
    CodeBlock,
    Heading,
    HorizontalRule,
    ListItem,
    Paragraph,
    Spacer,
    Table,
)

TABLE_DELIMITER = re.compile(r"^\s*\|?[-:| ]+\|[-:| ]+\|?\s*$")
ORDERED_ITEM = re.compile(r"^(\d+)\.\s")
CODE_FENCE = re.compile(r"(```[\s\S]*?```)")
FENCE_BODY = re.compile(r"^```(\w*)\n([\s\S]*?)```$")

HEADING_PREFIXES = (("### ", 3), ("## ", 2), ("# ", 1))


def split_cells(row: str) -> list[str]:
    content = row.strip()
    if content.startswith("|"):
        content = content[1:]
    if content.endswith("|"):
        content = content[:-1]
    return [cell.strip() for cell in content.split("|")]


def build_table(rows: list[str], labels: FormatLabels) -> Table:
    # rows[1] is the delimiter line
    header = split_cells(rows[0])
    width = len(header)
    body = []
    for row in rows[2:]:
        cells = split_cells(row)
        if len(cells) < width:
            cells.extend([""] * (width - len(cells)))
        body.append(tuple(render_inline(cell, labels) for cell in cells))
    return Table(
        header=tuple(render_inline(cell, labels) for cell in header),
        rows=tuple(body),
    )


def _is_table_start(line: str, next_line: str | None) -> bool:
    return bool(next_line) and bool(TABLE_DELIMITER.match(next_line)) and "|" in line.strip()


def parse_lines(content: str, labels: FormatLabels) -> Iterator[Block]:
    lines = content.split("\n")
    i = 0
    while i < len(lines):
        line = lines[i]
        next_line = lines[i + 1] if i + 1 < len(lines) else None

        if _is_table_start(line, next_line):
            rows = [line, next_line]
            i += 2
            while i < len(lines) and "|" in lines[i].strip():
                rows.append(lines[i])
                i += 1
            yield build_table(rows, labels)
            continue

        i += 1
        stripped = line.strip()

        if not stripped:
            yield Spacer()
            continue

        heading = next(
            ((prefix, level) for prefix, level in HEADING_PREFIXES if line.startswith(prefix)),
            None,
        )
        if heading:
            prefix, level = heading
            yield Heading(level=level, children=render_inline(line[len(prefix) :], labels))
            continue

        if stripped == "---":
            yield HorizontalRule()
            continue

        if stripped.startswith("- "):
            yield ListItem(ordered=False, marker="•", children=render_inline(stripped[2:], labels))
            continue

        ordered = ORDERED_ITEM.match(stripped)
        if ordered:
            yield ListItem(
                ordered=True,
                marker=f"{ordered.group(1)}.",
                children=render_inline(stripped[ordered.end() :], labels),
            )
            continue

        if line.startswith("> "):
            yield Blockquote(children=render_inline(line[2:], labels))
            continue

        yield Paragraph(children=render_inline(line, labels))


def parse_content(content: str, labels: FormatLabels) -> Iterator[Block]:
    """Split out closed ``` fences, then parse the prose between them.

    An unclosed trailing fence is not matched by CODE_FENCE and falls through
    to the line parser as ordinary text.
    """
    for index, part in enumerate(CODE_FENCE.split(content)):
        if not part:
            continue
        if index % 2 == 1:
            body = FENCE_BODY.match(part)
            language, code = (body.group(1), body.group(2)) if body else ("", part[3:-3])
            yield CodeBlock(
                language=language,
                code=code,
                copy_label=labels.copy,
                copied_label=labels.copied,
            )
        else:
            yield from parse_lines(part, labels)
