"""Pydantic response schemas for the session API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SessionResponse(BaseModel):
    """Session record as returned to clients, using the original field names."""

    model_config = ConfigDict(populate_by_name=True)

    game_id: str = Field(alias="gameID", pattern=r"^\d{4}$")
    nickname_host: str = Field(alias="nicknameHost")
    nickname_guest: str | None = Field(default=None, alias="nicknameGuest")
    choice_host: str | None = Field(default=None, alias="choiceHost")
    choice_guest: str | None = Field(default=None, alias="choiceGuest")
    ready_host: bool = Field(default=False, alias="readyHost")
    ready_guest: bool = Field(default=False, alias="readyGuest")
    last_ping_host: datetime | None = Field(default=None, alias="lastPingHost")
    last_ping_guest: datetime | None = Field(default=None, alias="lastPingGuest")
    version: int = 0
