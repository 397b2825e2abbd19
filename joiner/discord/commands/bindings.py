from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .shared import NO_USERS, CommandContext

if TYPE_CHECKING:
    from . import CommandRegistry

logger = logging.getLogger(__name__)


def register(registry: "CommandRegistry") -> None:
    """
    Binding store commands: !users, !bound, !unbind <id>.
    """

    @registry.command("users", summary="Count bound users.")
    async def users(ctx: CommandContext) -> Optional[str]:
        return f"🔍 Bound Users: {len(ctx.runtime.store)}"

    @registry.command("bound", summary="List bound users.")
    async def bound(ctx: CommandContext) -> Optional[str]:
        lines = [f"• {u.label}" for u in ctx.runtime.store]
        return "\n".join(lines) if lines else NO_USERS

    @registry.command("unbind", args="<id>", summary="Forget a bound user.")
    async def unbind(ctx: CommandContext) -> Optional[str]:
        user_id = (ctx.arg(0) or "").strip()
        if not user_id:
            return f"Usage: `{ctx.name} <id>`"

        if ctx.runtime.store.remove(user_id):
            logger.info("unbound %s (by %s in guild %s)", user_id, ctx.author_id, ctx.guild_id)
            return f"❌ Unbound {user_id}"
        return "User not found."
