from pydantic import ValidationError

from hybridchat.attachments import load_attachment
from hybridchat.catalog import MODELS, get_model, is_known_model
from hybridchat.models import ModelParameters, Role
from hybridchat.repl.display import format_session, format_session_line


class BuiltinCommands:
    def __init__(self, repl):
        self.repl = repl
        self._handlers = {
            "quit": self.cmd_quit,
            "new": self.cmd_new,
            "sessions": self.cmd_sessions,
            "open": self.cmd_open,
            "delete": self.cmd_delete,
            "model": self.cmd_model,
            "models": self.cmd_models,
            "params": self.cmd_params,
            "set": self.cmd_set,
            "attach": self.cmd_attach,
            "clear": self.cmd_clear,
            "undo": self.cmd_undo,
            "edit": self.cmd_edit,
            "regen": self.cmd_regen,
            "show": self.cmd_show,
            "suggest": self.cmd_suggest,
            "help": self.cmd_help,
        }

    @property
    def service(self):
        return self.repl.service

    def list_commands(self) -> list[str]:
        return sorted(self._handlers.keys())

    def has_command(self, name: str) -> bool:
        return name in self._handlers

    def handle(self, name: str, args: str) -> bool:
        handler = self._handlers.get(name)
        if not handler:
            return True
        return handler(args)

    def _message_at(self, args: str, default_last_model: bool = False):
        session = self.service.active
        if session is None or not session.messages:
            print("No messages in the current chat")
            return None
        if not args and default_last_model:
            for message in reversed(session.messages):
                if message.role == Role.MODEL and not message.is_error:
                    return message
            print("No reply to regenerate")
            return None
        try:
            index = int(args)
        except ValueError:
            print("Expected a message number (see /show)")
            return None
        if not 1 <= index <= len(session.messages):
            print(f"❌ No message #{index}")
            return None
        return session.messages[index - 1]

    def cmd_quit(self, args: str) -> bool:
        print("👋 Goodbye!")
        return False

    def cmd_new(self, args: str) -> bool:
        session = self.service.new_chat()
        self.repl.pending_attachments.clear()
        print(f"✅ New chat {session.id}")
        return True

    def cmd_sessions(self, args: str) -> bool:
        sessions = self.service.store.sessions
        if not sessions:
            print("No saved sessions")
            return True
        print("Sessions:")
        for session in sessions:
            print(format_session_line(session, active=session.id == self.service.store.active_id))
        return True

    def cmd_open(self, args: str) -> bool:
        if not args:
            print("Usage: /open <id>")
            return True
        session = self.service.select_session(args.strip())
        if session is None:
            print(f"❌ Session {args} not found")
            return True
        print(f"✅ Opened {session.title} (model: {self.service.current_model_id})")
        return True

    def cmd_delete(self, args: str) -> bool:
        if not args:
            print("Usage: /delete <id>")
            return True
        session_id = args.strip()
        if self.service.store.get(session_id) is None:
            print(f"❌ Session {session_id} not found")
            return True
        self.service.delete_session(session_id)
        print(f"✅ Deleted {session_id}")
        return True

    def cmd_model(self, args: str) -> bool:
        if not args:
            model = get_model(self.service.current_model_id)
            print(f"Current model: {model.id} ({model.name})")
            return True
        model_id = args.strip()
        if not is_known_model(model_id):
            print(f"❌ Unknown model: {model_id}. Type /models for the list.")
            return True
        self.service.set_model(model_id)
        print(f"✅ Switched to model: {model_id}")
        return True

    def cmd_models(self, args: str) -> bool:
        print("Models:")
        for model in MODELS:
            marker = "*" if model.id == self.service.current_model_id else " "
            pro = " [PRO]" if model.is_pro else ""
            print(f"{marker} {model.id:<18} {model.name}{pro} - {model.description}")
        return True

    def cmd_params(self, args: str) -> bool:
        model = get_model(self.service.current_model_id)
        values = self.repl.params.model_dump()
        print(f"Parameters for {model.name}:")
        for name in model.parameter_names():
            print(f"  {name} = {values.get(name)}")
        return True

    def cmd_set(self, args: str) -> bool:
        parts = args.split(maxsplit=1)
        if len(parts) != 2:
            print("Usage: /set <param> <value>  (value 'none' unsets)")
            return True
        name, raw = parts
        if name not in ModelParameters.model_fields:
            print(f"❌ Unknown parameter: {name}")
            return True
        value = None if raw.lower() == "none" else raw
        try:
            self.repl.params = ModelParameters.model_validate(
                {**self.repl.params.model_dump(), name: value}
            )
        except ValidationError as e:
            print(f"❌ Invalid value for {name}: {e.errors()[0]['msg']}")
            return True
        if name not in get_model(self.service.current_model_id).parameter_names():
            print(f"⚠️  {name} is ignored by the current model")
        print(f"✅ {name} = {getattr(self.repl.params, name)}")
        return True

    def cmd_attach(self, args: str) -> bool:
        if not args:
            if not self.repl.pending_attachments:
                print("Usage: /attach <path>")
            for attachment in self.repl.pending_attachments:
                print(f"  📎 {attachment.name} ({attachment.mime_type})")
            return True
        try:
            attachment = load_attachment(args.strip())
        except OSError as e:
            print(f"❌ Cannot read {args}: {e}")
            return True
        self.repl.pending_attachments.append(attachment)
        print(f"✅ Attached {attachment.name} ({attachment.mime_type})")
        return True

    def cmd_clear(self, args: str) -> bool:
        divider = self.service.clear_context()
        if divider is None:
            print("No active chat")
            return True
        print(f"✅ {divider.text} (/undo {divider.id})")
        return True

    def cmd_undo(self, args: str) -> bool:
        if self.service.undo_clear(args.strip() or None):
            print("✅ Context restored")
        else:
            print("Nothing to undo")
        return True

    def cmd_edit(self, args: str) -> bool:
        message = self._message_at(args)
        if message is None:
            return True
        draft = self.service.edit(message.id)
        if draft is None:
            return True
        self.repl.pending_attachments[:] = list(draft.attachments)
        self.repl.draft = draft.text
        print("✏️  Draft (press Enter to resend as-is, or type a replacement):")
        print(draft.text)
        return True

    def cmd_regen(self, args: str) -> bool:
        message = self._message_at(args, default_last_model=True)
        if message is None:
            return True
        if not self.repl.run_reply(lambda: self.service.regenerate(message.id)):
            print("❌ Cannot regenerate this message")
        return True

    def cmd_show(self, args: str) -> bool:
        session = self.service.active
        if session is None:
            print("No active chat")
            return True
        print(format_session(session, self.service.labels))
        return True

    def cmd_suggest(self, args: str) -> bool:
        self.service.refresh_suggestions()
        self.service.drain(wait=True)
        for suggestion in self.service.suggestions:
            print(f"  💡 {suggestion}")
        return True

    def cmd_help(self, args: str) -> bool:
        print("\nCommands:")
        for name in self.list_commands():
            print(f"  /{name}")
        print()
        return True
