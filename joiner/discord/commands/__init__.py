from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, Sequence

from .shared import CommandContext, split_command

if TYPE_CHECKING:
    from ...runtime import JoinerRuntime

logger = logging.getLogger(__name__)

Handler = Callable[[CommandContext], Awaitable[Optional[str]]]

# Single registry of command modules for the bot, registered in this order.
# Every module is required; any failure aborts startup.
MODULES: Sequence[str] = (
    "core",      # !link, !help
    "bindings",  # !users, !bound, !unbind
    "joining",   # !joinall, !join
)

MSG_COMMAND_FAILED = "❌ Something went wrong running that command."

__all__ = [
    "CommandRegistry",
    "MODULES",
    "build_registry",
    "dispatch",
    "register_all",
]


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    usage: str
    summary: str


class CommandRegistry:
    """
    Explicit command-name -> handler map.

    Names are stored with the chat prefix ("!link") and matched
    case-insensitively. Unknown names resolve to None.
    """

    def __init__(self, prefix: str = "!") -> None:
        self.prefix = prefix
        self._commands: Dict[str, Command] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def register(self, name: str, handler: Handler, *, args: str = "", summary: str = "") -> None:
        """`args` is the argument hint shown after the prefixed name, e.g. "<id>"."""
        key = f"{self.prefix}{name}".lower()
        if key in self._commands:
            raise RuntimeError(f"command already registered: {key}")
        self._commands[key] = Command(name=key, handler=handler, usage=f"{key} {args}".strip(), summary=summary)

    def command(self, name: str, *, args: str = "", summary: str = "") -> Callable[[Handler], Handler]:
        """Decorator form of register()."""

        def deco(fn: Handler) -> Handler:
            self.register(name, fn, args=args, summary=summary)
            return fn

        return deco

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get((name or "").lower())

    def commands(self) -> List[Command]:
        return list(self._commands.values())


def register_all(registry: CommandRegistry) -> None:
    """
    Register all command modules with the shared registry.

    Each module must expose:
        def register(registry) -> None

    Fail-closed: any module that cannot be imported or registered aborts startup.
    """
    pkg = __name__  # "joiner.discord.commands"
    results: Dict[str, str] = {}
    fatal: List[str] = []

    for name in MODULES:
        mod_path = f"{pkg}.{name}"
        try:
            mod = importlib.import_module(mod_path)
        except Exception as e:
            logger.exception("commands module import failed: %s", mod_path)
            results[name] = f"not loaded ({e})"
            fatal.append(f"{name}: import failed")
            continue

        reg = getattr(mod, "register", None)
        if not callable(reg):
            results[name] = "loaded but missing register()"
            fatal.append(f"{name}: missing register()")
            continue

        try:
            reg(registry)
            results[name] = "registered"
        except Exception as e:
            logger.exception("commands module register failed: %s", mod_path)
            results[name] = f"register failed: {e}"
            fatal.append(f"{name}: register failed")

    summary = ", ".join([f"{k}={results.get(k, 'unknown')}" for k in MODULES])
    logger.info("chat commands registration summary: %s", summary)

    if fatal:
        msg = "Command modules failed to load/register: " + "; ".join(fatal)
        logger.error(msg)
        raise RuntimeError(msg)


def build_registry(prefix: str = "!") -> CommandRegistry:
    registry = CommandRegistry(prefix=prefix)
    register_all(registry)
    return registry


async def dispatch(
    runtime: "JoinerRuntime",
    registry: CommandRegistry,
    content: str,
    author_id: str,
    guild_id: str,
) -> Optional[str]:
    """
    Run the command in `content`, if any, and return the reply text.

    - Unknown first tokens are ignored (None, no reply).
    - Every recognized command records author -> guild as the pending
      authorization target before the handler runs.
    - Handler errors are logged and answered with a generic line.
    """
    parts = split_command(content)
    if not parts:
        return None

    cmd = registry.get(parts[0])
    if cmd is None:
        return None

    runtime.pending.record(str(author_id), str(guild_id))

    ctx = CommandContext(
        runtime=runtime,
        name=cmd.name,
        author_id=str(author_id),
        guild_id=str(guild_id),
        args=parts[1:],
    )
    try:
        return await cmd.handler(ctx)
    except Exception:
        logger.exception("command %s failed (author=%s guild=%s)", cmd.name, author_id, guild_id)
        return MSG_COMMAND_FAILED
