from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .config.settings import Settings

logger = logging.getLogger(__name__)

# OAuth2 token exchange and guild member writes go through httpx here;
# discord.py only owns the gateway session.

ApiResult = Tuple[int, str, Optional[dict]]

# Discord answers PUT /guilds/{g}/members/{u} with 201 (added) or 204 (already a member).
MEMBER_ADD_OK = (201, 204)

ERROR_DETAIL_LIMIT = 300


def _json_object(r: httpx.Response) -> Optional[dict]:
    """Decoded body when it is a JSON object, else None (Discord errors are always objects)."""
    try:
        payload = r.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def error_detail(text: str, data: Optional[dict]) -> str:
    """
    Pick the most useful error line out of a Discord response.

    Discord REST errors carry `message`; OAuth2 errors carry
    `error` / `error_description`. Raw bodies are clipped for the log.
    """
    if isinstance(data, dict):
        for key in ("message", "error_description", "error"):
            value = data.get(key)
            if value:
                return str(value)
    body = (text or "").strip()
    if len(body) > ERROR_DETAIL_LIMIT:
        body = body[: ERROR_DETAIL_LIMIT - 1] + "…"
    return body


async def api_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    json: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> ApiResult:
    """
    Low-level request helper used for every outbound call.
    Returns: (status_code, response_text, json_dict_or_none)

    Transport failures come back as synthetic status codes so callers treat
    "the server said no" and "the call never completed" the same way.
    """
    m = (method or "GET").strip().upper()

    try:
        r = await client.request(m, url, headers=headers, json=json, data=data)
    except httpx.TimeoutException:
        return 408, "Request timed out contacting Discord.", None
    except httpx.RequestError as e:
        return 503, f"Network error contacting Discord: {e}", None
    except Exception as e:
        logger.exception("Unexpected error contacting %s %s", m, url)
        return 500, f"Unexpected error contacting Discord: {e}", None

    return r.status_code, r.text, _json_object(r)


class DiscordRestClient:
    """
    The handful of Discord HTTP endpoints this service needs.

    The bot token authorizes guild writes (member add, role grant); the
    user's OAuth2 token authorizes the identity lookup and is forwarded in the
    member-add body.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings
        self.base = settings.discord_api_base.rstrip("/")

    @property
    def _bot_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bot {self.settings.bot_token}"}

    async def exchange_code(self, code: str) -> ApiResult:
        payload = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.settings.redirect_uri,
        }
        return await api_request(
            self.client,
            "POST",
            f"{self.base}/oauth2/token",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data=payload,
        )

    async def fetch_identity(self, token_type: str, access_token: str) -> ApiResult:
        return await api_request(
            self.client,
            "GET",
            f"{self.base}/users/@me",
            headers={"Authorization": f"{token_type} {access_token}"},
        )

    async def add_guild_member(self, guild_id: str, user_id: str, access_token: str) -> ApiResult:
        return await api_request(
            self.client,
            "PUT",
            f"{self.base}/guilds/{guild_id}/members/{user_id}",
            headers=self._bot_headers,
            json={"access_token": access_token},
        )

    async def add_member_role(self, guild_id: str, user_id: str, role_id: str) -> ApiResult:
        return await api_request(
            self.client,
            "PUT",
            f"{self.base}/guilds/{guild_id}/members/{user_id}/roles/{role_id}",
            headers=self._bot_headers,
        )

    async def post_webhook(self, url: str, content: str) -> ApiResult:
        return await api_request(self.client, "POST", url, json={"content": content})


__all__ = [
    "ApiResult",
    "DiscordRestClient",
    "MEMBER_ADD_OK",
    "api_request",
    "error_detail",
]
