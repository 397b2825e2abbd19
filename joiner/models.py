from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BoundUser(BaseModel):
    """
    A Discord identity that completed the OAuth2 flow.

    On-disk keys are `id`, `username`, `token`, `type` (the layout of existing
    bound-users.json files); attribute names are the readable ones.
    `username` is a snapshot taken at authorization time and may go stale.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    username: str = ""
    access_token: str = Field(alias="token")
    token_type: str = Field(default="Bearer", alias="type")

    @field_validator("id", mode="before")
    @classmethod
    def _norm_id(cls, v: Any) -> str:
        # Snowflakes occasionally arrive as ints from hand-edited files.
        s = ("" if v is None else str(v)).strip()
        if not s:
            raise ValueError("id must not be empty")
        return s

    @field_validator("username", mode="before")
    @classmethod
    def _norm_username(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("token_type", mode="before")
    @classmethod
    def _norm_token_type(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "Bearer"

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    @property
    def label(self) -> str:
        return f"{self.username} ({self.id})"

    def to_record(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


__all__ = ["BoundUser"]
