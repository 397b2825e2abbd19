from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from .shared import CommandContext

if TYPE_CHECKING:
    from . import CommandRegistry


def register(registry: "CommandRegistry") -> None:
    """
    Entry commands.

      - !link  OAuth2 consent link for the caller
      - !help  command map
    """

    @registry.command("link", summary="Get your authorization link.")
    async def link(ctx: CommandContext) -> Optional[str]:
        url = ctx.runtime.settings.authorize_url
        return f"🔗 Click to authorize and join: {url}"

    @registry.command("help", summary="Show this command list.")
    async def help_cmd(ctx: CommandContext) -> Optional[str]:
        lines: List[str] = ["🧭 **Commands**"]
        for cmd in registry.commands():
            lines.append(f"- `{cmd.usage}` — {cmd.summary}" if cmd.summary else f"- `{cmd.usage}`")
        return "\n".join(lines)
