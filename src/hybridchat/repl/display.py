from datetime import datetime

from hybridchat.catalog import get_model
from hybridchat.i18n import FormatLabels, Labels
from hybridchat.models import ChatSession, Message, Role
from hybridchat.render import THINKING_MARKER, format_text, render_plain


def format_message(message: Message, labels: Labels) -> str:
    if message.is_context_divider:
        return f"──── {message.text or labels.context_cleared} ({labels.undo}: /undo {message.id}) ────"

    if message.role == Role.USER:
        header = f"{labels.you}:"
    else:
        header = f"{labels.ai} [{get_model(message.model_id).name}]:"

    if message.is_error:
        body = f"❌ {message.text}"
    else:
        body = render_plain(format_text(message.text, labels.format))

    lines = [header, body]
    for attachment in message.attachments:
        lines.append(f"📎 {attachment.name} ({attachment.mime_type})")
    if message.usage is not None:
        lines.append(
            f"⚡ {labels.usage_consumed} {message.usage.points:g} {labels.usage_points}"
        )
    return "\n".join(lines)


def format_session(session: ChatSession, labels: Labels) -> str:
    blocks = [f"# {session.title}  ({session.id})"]
    for index, message in enumerate(session.messages, start=1):
        blocks.append(f"[{index}] {format_message(message, labels)}")
    return "\n\n".join(blocks)


def format_session_line(session: ChatSession, active: bool = False) -> str:
    updated = datetime.fromtimestamp(session.updated_at / 1000).strftime("%Y-%m-%d %H:%M")
    marker = "*" if active else " "
    return f"{marker} {session.id}  {updated}  {session.title} ({len(session.messages)} messages)"


class StreamPrinter:
    """Prints formatted snapshots of a streaming reply.

    Each snapshot is formatted before it is shown. While the formatted text
    only grows, the new tail is printed. When the layout changes (a thinking
    block splits off, a table closes) output pauses and ``finish`` redraws
    the whole formatted reply.
    """

    def __init__(self, labels: FormatLabels | None = None, write=print):
        self.labels = labels or FormatLabels()
        self.write = write
        self.text = ""
        self.shown = ""

    def reset(self, labels: FormatLabels | None = None) -> None:
        if labels is not None:
            self.labels = labels
        self.text = ""
        self.shown = ""

    def render(self, text: str) -> str:
        return render_plain(format_text(text, self.labels))

    def update(self, snapshot: str) -> None:
        self.text = snapshot
        # a half-received thinking sentinel would render as literal text
        if THINKING_MARKER.startswith(snapshot.lstrip()):
            return
        rendered = self.render(snapshot)
        if rendered.startswith(self.shown):
            self.write(rendered[len(self.shown):], end="", flush=True)
            self.shown = rendered

    def finish(self, text: str | None = None) -> None:
        if text is not None:
            self.text = text
        rendered = self.render(self.text)
        if rendered != self.shown:
            if self.shown:
                self.write()
            self.write(rendered, end="", flush=True)
            self.shown = rendered
        self.write()
