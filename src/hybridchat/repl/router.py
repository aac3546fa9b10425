from dataclasses import dataclass

ALIASES = {
    "exit": "quit",
    "q": "quit",
    "regenerate": "regen",
    "retry": "regen",
    "?": "help",
}


@dataclass(frozen=True)
class RouteResult:
    kind: str
    name: str | None
    args: str


class InputRouter:
    """Splits chat input into prompts and slash commands.

    A leading ``//`` sends the rest as a prompt that starts with ``/``.
    """

    def __init__(self, builtins):
        self.builtins = builtins

    def route(self, user_input: str) -> RouteResult:
        if user_input.startswith("//"):
            return RouteResult(kind="prompt", name=None, args=user_input[1:])
        if not user_input.startswith("/"):
            return RouteResult(kind="prompt", name=None, args=user_input)

        parts = user_input.split(maxsplit=1)
        cmd = parts[0][1:].lower()
        cmd = ALIASES.get(cmd, cmd)
        args = parts[1].strip() if len(parts) > 1 else ""

        if self.builtins.has_command(cmd):
            return RouteResult(kind="builtin", name=cmd, args=args)

        return RouteResult(kind="unknown", name=cmd, args=args)
