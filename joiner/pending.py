from __future__ import annotations

from typing import Dict, Optional


class PendingAuthorizations:
    """
    Which guild each user was last talking in when they issued a command.

    Used to route the OAuth2 callback (which only knows the user) back to a
    guild. Memory only; lost on restart.
    """

    def __init__(self) -> None:
        self._targets: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._targets

    def record(self, user_id: str, guild_id: str) -> None:
        # Last write wins.
        self._targets[str(user_id)] = str(guild_id)

    def consume(self, user_id: str) -> Optional[str]:
        """
        Return the recorded guild id without forgetting it, so a repeated
        authorization by the same user still resolves.
        """
        return self._targets.get(str(user_id))


__all__ = ["PendingAuthorizations"]
