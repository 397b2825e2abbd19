from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import PlainTextResponse

from .oauth import ExchangeFailure
from .runtime import JoinerRuntime

logger = logging.getLogger(__name__)

MSG_NO_CODE = "No code provided"
MSG_AUTH_FAILED = "❌ Failed to authorize. Try again."
MSG_NO_TARGET = "⚠️ Could not determine server to join. Please try again from the bot command."
MSG_JOINED = "✅ Joined successfully!"
MSG_JOIN_FAILED = "⚠️ Bound, but failed to join the server."


def _runtime(request: Request) -> JoinerRuntime:
    return request.app.state.runtime


async def complete_authorization(runtime: JoinerRuntime, code: str) -> str:
    """
    OAuth2 redirect flow: code -> bound user -> persist -> join pending guild.

    Always returns a user-facing line; nothing raises out of here.
    """
    try:
        user = await runtime.exchange.exchange(code)
    except ExchangeFailure as e:
        logger.error("OAuth2 exchange failed at %s step (status=%s): %s", e.stage, e.status, e.detail)
        return MSG_AUTH_FAILED

    created = runtime.store.upsert(user)
    logger.info("%s binding for %s (%s)", "created" if created else "refreshed", user.username, user.id)

    guild_id = runtime.pending.consume(user.id)
    if not guild_id:
        logger.warning("no pending guild for %s (%s); bound without joining", user.username, user.id)
        return MSG_NO_TARGET

    ok = await runtime.joiner.join_user(user, guild_id)
    return MSG_JOINED if ok else MSG_JOIN_FAILED


def create_app(runtime: JoinerRuntime) -> FastAPI:
    app = FastAPI(title="Discord OAuth2 Joiner", version="1.0.0")
    app.state.runtime = runtime

    @app.get("/callback", response_class=PlainTextResponse, tags=["oauth"])
    async def callback(request: Request, code: Optional[str] = Query(default=None)) -> str:
        if not code or not code.strip():
            return MSG_NO_CODE
        try:
            return await complete_authorization(_runtime(request), code)
        except Exception:
            # Disk errors while persisting are the only thing left that can get here.
            logger.exception("OAuth2 callback crashed")
            return MSG_AUTH_FAILED

    @app.get("/health", tags=["meta"])
    def health(request: Request) -> Dict[str, Any]:
        rt = _runtime(request)
        return {
            "ok": True,
            "bound_users": len(rt.store),
            "pending": len(rt.pending),
        }

    return app


__all__ = [
    "MSG_AUTH_FAILED",
    "MSG_JOINED",
    "MSG_JOIN_FAILED",
    "MSG_NO_CODE",
    "MSG_NO_TARGET",
    "complete_authorization",
    "create_app",
]
