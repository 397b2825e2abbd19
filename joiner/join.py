from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Set

from .discord_api import MEMBER_ADD_OK, DiscordRestClient, error_detail
from .models import BoundUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchJoinResult:
    attempted: int
    joined: int

    @property
    def failed(self) -> int:
        return self.attempted - self.joined


class JoinOrchestrator:
    """
    Adds bound users to a guild.

    Per user:
      1) PUT guild member (bot token in the header, user token in the body)
      2) success => optional role grant (failure logged, result unchanged)
      3) success => optional webhook notice (detached task, outcome discarded)
    Nothing is retried.
    """

    def __init__(
        self,
        rest: DiscordRestClient,
        *,
        auto_role_id: str = "",
        webhook_url: str = "",
    ) -> None:
        self.rest = rest
        self.auto_role_id = (auto_role_id or "").strip()
        self.webhook_url = (webhook_url or "").strip()
        self._notify_tasks: Set[asyncio.Task] = set()

    async def join_user(self, user: BoundUser, guild_id: Optional[str]) -> bool:
        gid = ("" if guild_id is None else str(guild_id)).strip()
        if not gid:
            logger.warning("join skipped: no guild id for %s (%s)", user.username, user.id)
            return False

        status, text, data = await self.rest.add_guild_member(gid, user.id, user.access_token)
        if status not in MEMBER_ADD_OK:
            logger.error(
                "join failed: user=%s (%s) guild=%s status=%s detail=%s",
                user.username,
                user.id,
                gid,
                status,
                error_detail(text, data),
            )
            return False

        if self.auto_role_id:
            await self._grant_role(user, gid)

        if self.webhook_url:
            self._notify(user, gid)

        logger.info("joined user=%s (%s) guild=%s", user.username, user.id, gid)
        return True

    async def join_many(
        self,
        users: Sequence[BoundUser],
        guild_id: Optional[str],
        limit: Optional[int] = None,
    ) -> BatchJoinResult:
        """
        Join users one at a time, in order.

        With `limit`, only the first `limit` users are attempted; the result
        counts successes separately from attempts.
        """
        batch = list(users) if limit is None else list(users)[: max(0, int(limit))]

        joined = 0
        for user in batch:
            if await self.join_user(user, guild_id):
                joined += 1

        if batch:
            logger.info("batch join guild=%s attempted=%s joined=%s", guild_id, len(batch), joined)
        return BatchJoinResult(attempted=len(batch), joined=joined)

    async def _grant_role(self, user: BoundUser, guild_id: str) -> None:
        status, text, data = await self.rest.add_member_role(guild_id, user.id, self.auto_role_id)
        if status not in (200, 204):
            logger.warning(
                "role grant failed: user=%s (%s) role=%s status=%s detail=%s",
                user.username,
                user.id,
                self.auto_role_id,
                status,
                error_detail(text, data),
            )

    def _notify(self, user: BoundUser, guild_id: str) -> None:
        content = f"✅ **{user.username}** joined [{guild_id}] via OAuth2."
        task = asyncio.create_task(self.rest.post_webhook(self.webhook_url, content))
        self._notify_tasks.add(task)
        task.add_done_callback(self._discard_notify)

    def _discard_notify(self, task: asyncio.Task) -> None:
        self._notify_tasks.discard(task)
        if not task.cancelled():
            # Retrieve so asyncio does not report "exception was never retrieved".
            task.exception()

    async def drain(self) -> None:
        """Wait for in-flight webhook notices (shutdown / tests)."""
        if not self._notify_tasks:
            return
        await asyncio.gather(*list(self._notify_tasks), return_exceptions=True)


__all__ = ["BatchJoinResult", "JoinOrchestrator"]
