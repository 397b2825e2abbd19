from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .shared import NO_USERS, CommandContext, parse_count

if TYPE_CHECKING:
    from . import CommandRegistry


def register(registry: "CommandRegistry") -> None:
    """
    Batch joins into the guild the command was sent from.

      - !joinall   every bound user
      - !join [n]  the first n bound users (default 1)

    Users are joined one at a time; replies count successes, not attempts.
    """

    @registry.command("joinall", summary="Join every bound user to this server.")
    async def joinall(ctx: CommandContext) -> Optional[str]:
        users = ctx.runtime.store.users()
        if not users:
            return NO_USERS

        result = await ctx.runtime.joiner.join_many(users, ctx.guild_id)
        return f"✅ Joined {result.joined} users to this server."

    @registry.command("join", args="[n]", summary="Join the first n bound users (default 1).")
    async def join(ctx: CommandContext) -> Optional[str]:
        users = ctx.runtime.store.users()
        if not users:
            return NO_USERS

        count = parse_count(ctx.arg(0), default=1)
        result = await ctx.runtime.joiner.join_many(users, ctx.guild_id, limit=count)
        return f"✅ Joined {result.joined} users."
