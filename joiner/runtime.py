from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from .config.settings import Settings
from .discord_api import DiscordRestClient
from .join import JoinOrchestrator
from .oauth import AuthorizationExchange
from .pending import PendingAuthorizations
from .store import BindingStore


@dataclass
class JoinerRuntime:
    """
    Everything the bot and the callback server share.

    Built once at startup and handed to both entry points.
    """

    settings: Settings
    store: BindingStore
    pending: PendingAuthorizations
    rest: DiscordRestClient
    exchange: AuthorizationExchange
    joiner: JoinOrchestrator


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    limits = httpx.Limits(max_connections=25, max_keepalive_connections=10)
    return httpx.AsyncClient(
        timeout=float(settings.http_timeout_s),
        headers={"User-Agent": settings.http_user_agent},
        limits=limits,
    )


def build_runtime(
    settings: Settings,
    http_client: httpx.AsyncClient,
    *,
    store: Optional[BindingStore] = None,
) -> JoinerRuntime:
    rest = DiscordRestClient(http_client, settings)
    return JoinerRuntime(
        settings=settings,
        store=store if store is not None else BindingStore(settings.bound_users_file),
        pending=PendingAuthorizations(),
        rest=rest,
        exchange=AuthorizationExchange(rest),
        joiner=JoinOrchestrator(
            rest,
            auto_role_id=settings.auto_role_id,
            webhook_url=settings.webhook_url,
        ),
    )


__all__ = ["JoinerRuntime", "build_http_client", "build_runtime"]
