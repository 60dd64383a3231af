"""Pydantic schemas for the system diagnostics routes."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ConfigStatus(BaseModel):
    """Non-sensitive view of the Slack integration configuration."""

    has_token: bool
    has_signing_secret: bool
    has_channel_id: bool
    channel_id: Optional[str] = None
    operating_timezone: str
    ticket_reactions: list[str]
    directory_connected: Optional[bool] = None
    directory_error: Optional[str] = None
    bot_name: Optional[str] = None
    team_name: Optional[str] = None
