from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import discord

from .commands import CommandRegistry, build_registry, dispatch
from .commands.shared import chunk_reply

if TYPE_CHECKING:
    from ..runtime import JoinerRuntime

logger = logging.getLogger(__name__)


class JoinerBot(discord.Client):
    """
    Chat side of the joiner.

    Notes:
    - discord.Client uses its own internal HTTP client for the gateway.
    - OAuth2 / member-add calls go through runtime.rest (shared httpx client).
    - Only guild text messages from humans are considered.
    """

    def __init__(self, runtime: "JoinerRuntime", registry: Optional[CommandRegistry] = None) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        # Prefix commands need the message body.
        intents.message_content = True

        super().__init__(intents=intents)

        self.runtime = runtime
        self.registry = registry if registry is not None else build_registry(runtime.settings.command_prefix)

    async def on_ready(self) -> None:
        logger.info(
            "JoinerBot ready as %s (commands=%s, bound_users=%s, auto_role=%s, webhook=%s)",
            str(self.user),
            len(self.registry),
            len(self.runtime.store),
            self.runtime.settings.auto_role_id or "OFF",
            "ON" if self.runtime.settings.webhook_url else "OFF",
        )

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.guild:
            return

        reply = await dispatch(
            self.runtime,
            self.registry,
            message.content or "",
            author_id=str(message.author.id),
            guild_id=str(message.guild.id),
        )
        if not reply:
            return

        for chunk in chunk_reply(reply):
            try:
                await message.reply(chunk, mention_author=False)
            except discord.HTTPException:
                logger.exception("Failed to send reply in channel %s", message.channel.id)
                return


__all__ = ["JoinerBot"]
