from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from hybridchat.catalog import MODELS, is_known_model
from hybridchat.config import AppConfig, ConfigError, Fallback
from hybridchat.i18n import LANGUAGES, get_labels
from hybridchat.render import format_text, render_plain
from hybridchat.repl.display import format_session, format_session_line
from hybridchat.repl.repl import ChatREPL
from hybridchat.service import ChatService
from hybridchat.settings import THEMES, KeyValueStorage, Settings
from hybridchat.store import ConversationStore


def main() -> int:
    load_dotenv()
    return _main(sys.argv[1:])


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hybridchat", description="Hybrid Poe/Gemini chat client")
    subparsers = parser.add_subparsers(dest="command", required=False)

    chat = subparsers.add_parser("chat", help="Start interactive chat")
    chat.add_argument(
        "--model",
        default=MODELS[0].id,
        help=f"Model id ({', '.join(m.id for m in MODELS)})",
    )
    chat.add_argument("--message", "-m", help="Single prompt (non-interactive)")
    chat.add_argument("-v", "--verbose", action="store_true")

    sessions = subparsers.add_parser("sessions", help="List saved chats")
    sessions.add_argument("-v", "--verbose", action="store_true")

    show = subparsers.add_parser("show", help="Print a saved chat")
    show.add_argument("session_id")
    show.add_argument("-v", "--verbose", action="store_true")

    config = subparsers.add_parser("config", help="Show or change persisted settings")
    config.add_argument("--theme", choices=THEMES)
    config.add_argument("--language", choices=LANGUAGES)
    config.add_argument("--system-instruction", default=None)
    config.add_argument("--poe-key", default=None, help="Poe API key ('' to remove)")
    config.add_argument(
        "--use-poe",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use the Poe API when a key is stored",
    )
    config.add_argument("-v", "--verbose", action="store_true")

    return parser


def _main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv or ["chat"])
    setup_logging(getattr(args, "verbose", False))

    try:
        app_config = AppConfig()
        app_config.validate()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    storage = KeyValueStorage(app_config.data_dir, app_config.storage_quota_bytes)
    settings = Settings(storage)

    cmd = args.command or "chat"
    if cmd == "chat":
        return _cmd_chat(args, app_config, storage, settings)
    if cmd == "sessions":
        return _cmd_sessions(storage)
    if cmd == "show":
        return _cmd_show(args, storage, settings)
    if cmd == "config":
        return _cmd_config(args, settings)

    parser.print_help(sys.stderr)
    return 2


def _cmd_chat(args, app_config: AppConfig, storage: KeyValueStorage, settings: Settings) -> int:
    if not is_known_model(args.model):
        print(f"Error: unknown model {args.model}", file=sys.stderr)
        return 1

    store = ConversationStore.load(storage)
    service = ChatService(store, settings, app_config)
    service.set_model(args.model)
    try:
        if args.message:
            result = service.send(args.message)
            if result.status == "failed":
                print(f"Error: {result.error}", file=sys.stderr)
                return 1
            print(render_plain(format_text(result.text, service.labels.format)))
            service.drain(wait=True, timeout=app_config.usage_delay_seconds + app_config.request_timeout)
            return 0

        repl = ChatREPL(service)
        repl.run()
        return 0
    finally:
        service.close()


def _cmd_sessions(storage: KeyValueStorage) -> int:
    store = ConversationStore.load(storage)
    if not store.sessions:
        print("No saved sessions")
        return 0
    for session in store.sessions:
        print(format_session_line(session))
    return 0


def _cmd_show(args, storage: KeyValueStorage, settings: Settings) -> int:
    store = ConversationStore.load(storage)
    session = store.get(args.session_id)
    if session is None:
        print(f"Error: Session {args.session_id} not found", file=sys.stderr)
        return 1
    print(format_session(session, get_labels(settings.language)))
    return 0


def _mask(key: str) -> str:
    if not key:
        return "(not set)"
    return f"{key[:4]}…{key[-4:]}" if len(key) > 8 else "****"


def _cmd_config(args, settings: Settings) -> int:
    if args.theme is not None:
        settings.theme = args.theme
    if args.language is not None:
        settings.language = args.language
    if args.system_instruction is not None:
        settings.system_instruction = args.system_instruction
    if args.poe_key is not None:
        settings.poe_api_key = args.poe_key
    if args.use_poe is not None:
        settings.use_poe = args.use_poe

    backend = settings.backend_choice()
    print(f"theme: {settings.theme}")
    print(f"language: {settings.language}")
    print(f"system_instruction: {settings.system_instruction or '(default)'}")
    print(f"use_poe_api: {settings.use_poe}")
    print(f"poe_api_key: {_mask(settings.poe_api_key)}")
    reason = f" ({backend.reason})" if isinstance(backend, Fallback) else ""
    print(f"backend: {backend.name}{reason}")
    return 0
