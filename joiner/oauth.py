from __future__ import annotations

from typing import Optional

from .discord_api import DiscordRestClient, error_detail
from .models import BoundUser


class ExchangeFailure(Exception):
    """
    The OAuth2 code could not be turned into a bound user.

    `stage` is "token" (code -> access token) or "identity" (token -> /users/@me).
    `detail` is the provider's error text, for logs only.
    """

    def __init__(self, stage: str, detail: str, status: Optional[int] = None) -> None:
        self.stage = stage
        self.detail = detail
        self.status = status
        super().__init__(f"{stage} exchange failed ({status}): {detail}")


class AuthorizationExchange:
    """Authorization code -> access token -> identity, one attempt each."""

    def __init__(self, rest: DiscordRestClient) -> None:
        self.rest = rest

    async def exchange(self, code: str) -> BoundUser:
        code = (code or "").strip()
        if not code:
            raise ExchangeFailure("token", "empty authorization code")

        status, text, data = await self.rest.exchange_code(code)
        if status != 200 or not isinstance(data, dict) or not data.get("access_token"):
            raise ExchangeFailure("token", error_detail(text, data), status)

        access_token = str(data["access_token"])
        token_type = str(data.get("token_type") or "Bearer")

        status, text, profile = await self.rest.fetch_identity(token_type, access_token)
        if status != 200 or not isinstance(profile, dict) or not profile.get("id"):
            raise ExchangeFailure("identity", error_detail(text, profile), status)

        return BoundUser(
            id=str(profile["id"]),
            username=str(profile.get("username") or ""),
            access_token=access_token,
            token_type=token_type,
        )


__all__ = ["AuthorizationExchange", "ExchangeFailure"]
