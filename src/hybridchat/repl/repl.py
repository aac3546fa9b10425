import signal
import threading
from contextlib import contextmanager
from typing import Callable

from common.events import (
    ErrorEvent,
    ReplyAbortedEvent,
    ReplyCompletedEvent,
    ReplyStartEvent,
    SnapshotEvent,
    TitleEvent,
    UsageEvent,
)
from hybridchat.catalog import get_model
from hybridchat.models import Attachment, ModelParameters
from hybridchat.repl.builtins import BuiltinCommands
from hybridchat.repl.display import StreamPrinter
from hybridchat.repl.router import InputRouter
from hybridchat.service import ChatService, SendResult


@contextmanager
def stop_on_interrupt(stop: Callable[[], bool]):
    """Route Ctrl+C to ``stop`` while a reply streams."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        stop()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class ChatREPL:
    def __init__(self, service: ChatService):
        self.service = service
        self.params = ModelParameters()
        self.pending_attachments: list[Attachment] = []
        self.draft: str | None = None
        self.printer = StreamPrinter()
        self.builtins = BuiltinCommands(self)
        self.router = InputRouter(self.builtins)
        self.service.set_event_callback(self.on_event)

    def on_event(self, event) -> None:
        if isinstance(event, ReplyStartEvent):
            self.printer.reset(self.service.labels.format)
            print(f"\n{self.service.labels.ai} [{get_model(event.model_id).name} via {event.backend}]:")
        elif isinstance(event, SnapshotEvent):
            self.printer.update(event.text)
        elif isinstance(event, ReplyCompletedEvent):
            self.printer.finish(event.text)
        elif isinstance(event, ReplyAbortedEvent):
            self.printer.finish()
            print("⏹️  Stopped")
        elif isinstance(event, ErrorEvent):
            print(f"\n❌ {event.message}")
        elif isinstance(event, TitleEvent):
            print(f"📝 {event.title}")
        elif isinstance(event, UsageEvent):
            labels = self.service.labels
            print(f"⚡ {labels.usage_consumed} {event.points:g} {labels.usage_points}")

    def run_reply(self, action: Callable[[], SendResult | None]) -> SendResult | None:
        with stop_on_interrupt(self.service.stop):
            result = action()
        self.service.drain()
        return result

    def send(self, text: str) -> SendResult | None:
        attachments = tuple(self.pending_attachments)
        self.pending_attachments.clear()
        self.draft = None
        return self.run_reply(lambda: self.service.send(text, attachments, self.params))

    def run(self, initial_message: str | None = None):
        labels = self.service.labels
        print(f"🤖 hybridchat started (model: {self.service.current_model_id})")
        print("Commands: /help for all commands")
        print()
        print(labels.how_can_i_help)
        for suggestion in self.service.suggestions:
            print(f"  💡 {suggestion}")

        if initial_message:
            self.send(initial_message)

        while True:
            try:
                self.service.drain()
                user_input = input("\n> ").strip()

                if not user_input:
                    if self.draft:
                        self.send(self.draft)
                    continue

                route = self.router.route(user_input)
                if route.kind == "builtin":
                    if not self.builtins.handle(route.name, route.args):
                        break
                    continue
                if route.kind == "unknown":
                    print(
                        f"Unknown command: /{route.name}. Type /help for available commands."
                    )
                    continue

                self.send(route.args)

            except KeyboardInterrupt:
                print("\n\n⚠️  Interrupted")
                break
            except EOFError:
                break
        self.service.drain(wait=True, timeout=5.0)
