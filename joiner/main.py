from __future__ import annotations

import asyncio
import logging
from typing import Optional

import uvicorn

from .api import create_app
from .config.settings import Settings, get_settings
from .discord.bot import JoinerBot
from .discord.commands import build_registry
from .runtime import build_http_client, build_runtime

logger = logging.getLogger(__name__)


async def serve(settings: Settings) -> None:
    """
    Run the Discord bot and the OAuth2 callback server on one event loop.

    Both entry points share a single JoinerRuntime (store, pending map, HTTP client).
    """
    http_client = build_http_client(settings)
    runtime = build_runtime(settings, http_client)

    # Fail loud on a corrupt store before anything connects.
    runtime.store.load()

    registry = build_registry(settings.command_prefix)
    bot = JoinerBot(runtime, registry)

    app = create_app(runtime)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=int(settings.port),
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)

    logger.info("OAuth2 joiner starting: callback on http://%s:%s/callback", settings.host, settings.port)
    try:
        await asyncio.gather(
            server.serve(),
            bot.start(settings.bot_token),
        )
    finally:
        server.should_exit = True
        if not bot.is_closed():
            await bot.close()
        await runtime.joiner.drain()
        await http_client.aclose()


def run(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
    settings.validate_runtime()
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run()
