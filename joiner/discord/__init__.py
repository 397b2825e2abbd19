"""
Discord chat integration.

- joiner.discord.bot holds the gateway client (JoinerBot).
- joiner.discord.commands holds the command registry and handlers. Handlers
  take a CommandContext and return reply text; they never touch discord
  objects, so tests drive them through dispatch() without a gateway.
"""

from .bot import JoinerBot  # re-export for convenience

__all__ = ["JoinerBot"]
