from typing import Iterable

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

RULE_WIDTH = 40


def inline_text(nodes: Iterable[Inline]) -> str:
    out = []
    for node in nodes:
        if isinstance(node, (Text, Bold, Italic)):
            out.append(node.text)
        elif isinstance(node, Link):
            label = inline_text(node.children)
            out.append(node.href if label == node.href or not label else f"{label} ({node.href})")
        elif isinstance(node, Image):
            out.append(f"[image{': ' + node.alt if node.alt else ''}] {node.src}")
        elif isinstance(node, Audio):
            out.append(f"[audio] {node.src}")
    return "".join(out)


def _table_lines(table: Table) -> list[str]:
    grid = [[inline_text(cell) for cell in table.header]]
    grid.extend([inline_text(cell) for cell in row] for row in table.rows)
    columns = max(len(row) for row in grid)
    widths = [
        max((len(row[c]) for row in grid if c < len(row)), default=0) for c in range(columns)
    ]

    def fmt(row: list[str]) -> str:
        cells = [row[c].ljust(widths[c]) if c < len(row) else " " * widths[c] for c in range(columns)]
        return "| " + " | ".join(cells) + " |"

    lines = [fmt(grid[0]), "|" + "|".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(fmt(row) for row in grid[1:])
    return lines


def block_lines(block: Block) -> list[str]:
    if isinstance(block, Paragraph):
        return [inline_text(block.children)]
    if isinstance(block, Heading):
        return [f"{'#' * block.level} {inline_text(block.children)}"]
    if isinstance(block, HorizontalRule):
        return ["─" * RULE_WIDTH]
    if isinstance(block, ListItem):
        return [f"  {block.marker} {inline_text(block.children)}"]
    if isinstance(block, Blockquote):
        return [f"  │ {inline_text(block.children)}"]
    if isinstance(block, Spacer):
        return [""]
    if isinstance(block, Table):
        return _table_lines(block)
    if isinstance(block, CodeBlock):
        return [f"```{block.language}", *block.code.rstrip("\n").split("\n"), "```"]
    if isinstance(block, ThinkingBlock):
        marker = "▼" if block.expanded else "▶"
        lines = [f"{marker} {block.label}"]
        if block.expanded:
            for child in block.children:
                lines.extend(f"  ┊ {line}" for line in block_lines(child))
        return lines
    return []


def render_plain(blocks: Iterable[Block]) -> str:
    lines: list[str] = []
    for block in blocks:
        lines.extend(block_lines(block))
    return "\n".join(lines)
