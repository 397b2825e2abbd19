from __future__ import annotations

from functools import lru_cache
from typing import Any, Tuple
from urllib.parse import quote, urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCOPES: Tuple[str, ...] = ("identify", "guilds.join")
DISCORD_AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"


def split_scopes(raw: str) -> Tuple[str, ...]:
    """
    Normalize OAuth2 scopes from env.

    Supports:
      - space-separated string: "identify guilds.join"
      - comma-separated string: "identify,guilds.join"
    """
    s = (raw or "").replace(",", " ").strip()
    parts = [p for p in s.split() if p]
    return tuple(parts) or DEFAULT_SCOPES


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _require_http_url(env_name: str, value: str) -> None:
    parsed = urlparse(value or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise RuntimeError(f"{env_name} must be a full http(s) URL with a host, got {value!r}.")


def _validate_log_level(value: str) -> None:
    if (value or "").strip().upper() not in LOG_LEVELS:
        raise RuntimeError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {value!r}.")


def _validate_timeout(value: float) -> None:
    if not (0 < value <= 120):
        raise RuntimeError(f"HTTP_TIMEOUT must be in (0, 120] seconds, got {value}.")


def _validate_snowflake(name: str, value: str) -> None:
    if not value:
        return
    if not value.isdigit():
        raise RuntimeError(f"{name} must be a numeric Discord id.")


class Settings(BaseSettings):
    """
    Joiner settings (bot + OAuth2 callback server).

    Rules:
    - Env var names stay compatible with earlier deployments (BOT_TOKEN, CLIENT_ID, ...)
    - Secrets default to empty so the module imports cleanly; validate_runtime() enforces them
    - Optional features (auto role, webhook) are off when their value is empty
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Discord application / bot
    bot_token: str = Field(default="", alias="BOT_TOKEN")
    client_id: str = Field(default="", alias="CLIENT_ID")
    client_secret: str = Field(default="", alias="CLIENT_SECRET")
    redirect_uri: str = Field(default="", alias="REDIRECT_URI")
    oauth_scopes_raw: str = Field(default=" ".join(DEFAULT_SCOPES), alias="OAUTH_SCOPES")
    command_prefix: str = Field(default="!", alias="COMMAND_PREFIX")

    # Post-join extras (both optional)
    auto_role_id: str = Field(default="", alias="AUTO_ROLE_ID")
    webhook_url: str = Field(default="", alias="WEBHOOK_URL")

    # Callback server (uvicorn)
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Durable binding store (JSON array, rewritten on every mutation)
    bound_users_file: str = Field(default="bound-users.json", alias="BOUND_USERS_FILE")

    # HTTP
    discord_api_base: str = Field(default="https://discord.com/api", alias="DISCORD_API_BASE")
    http_timeout_s: float = Field(default=20.0, alias="HTTP_TIMEOUT")
    http_user_agent: str = Field(default="discord-oauth-joiner/1.0", alias="HTTP_USER_AGENT")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator(
        "bot_token",
        "client_id",
        "client_secret",
        "redirect_uri",
        "auto_role_id",
        "webhook_url",
        mode="before",
    )
    @classmethod
    def _norm_str(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("command_prefix", mode="before")
    @classmethod
    def _norm_prefix(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "!"

    @field_validator("host", mode="before")
    @classmethod
    def _norm_host(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "0.0.0.0"

    @field_validator("port", mode="before")
    @classmethod
    def _norm_port(cls, v: Any) -> Any:
        # PORT="" in a .env should mean "use the default", not a validation error.
        if v is None or (isinstance(v, str) and not v.strip()):
            return 3000
        return v

    @field_validator("bound_users_file", mode="before")
    @classmethod
    def _norm_store_path(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "bound-users.json"

    @field_validator("discord_api_base", mode="before")
    @classmethod
    def _norm_api_base(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().rstrip("/")
        return s or "https://discord.com/api"

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def scopes(self) -> Tuple[str, ...]:
        return split_scopes(self.oauth_scopes_raw)

    @property
    def authorize_url(self) -> str:
        """
        OAuth2 consent URL handed out by !link.

        The redirect URI is percent-encoded; scopes are joined with "+".
        """
        return (
            f"{DISCORD_AUTHORIZE_URL}?client_id={self.client_id}"
            f"&redirect_uri={quote(self.redirect_uri, safe='')}"
            f"&response_type=code&scope={'+'.join(self.scopes)}"
        )

    def validate_runtime(self) -> None:
        """
        Strict validation for boot safety.
        """
        if not self.bot_token:
            raise RuntimeError("BOT_TOKEN is not set in environment (.env).")
        if not self.client_id:
            raise RuntimeError("CLIENT_ID is not set in environment (.env).")
        if not self.client_secret:
            raise RuntimeError("CLIENT_SECRET is not set in environment (.env).")

        _require_http_url("REDIRECT_URI", self.redirect_uri)
        _require_http_url("DISCORD_API_BASE", self.discord_api_base)
        if self.webhook_url:
            _require_http_url("WEBHOOK_URL", self.webhook_url)

        _validate_snowflake("CLIENT_ID", self.client_id)
        _validate_snowflake("AUTO_ROLE_ID", self.auto_role_id)

        _validate_log_level(self.log_level)
        _validate_timeout(self.http_timeout_s)

        if not (0 < self.port < 65536):
            raise RuntimeError("PORT must be between 1 and 65535.")


@lru_cache()
def get_settings() -> Settings:
    """Return a cached settings object."""
    return Settings()


__all__ = ["DEFAULT_SCOPES", "Settings", "get_settings", "split_scopes"]
