"""
Slack Events API payload schemas.

Only the fields the activity tracker reads are declared; everything else
Slack sends is ignored.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

URL_VERIFICATION = "url_verification"
EVENT_CALLBACK = "event_callback"

REACTION_ADDED = "reaction_added"
MESSAGE = "message"


class SlackEnvelope(BaseModel):
    """Outer webhook body (url_verification or event_callback)."""

    type: str
    challenge: Optional[str] = None
    team_id: Optional[str] = None
    event_id: Optional[str] = None
    event_time: Optional[int] = None
    event: Optional[dict[str, Any]] = None

    model_config = {"extra": "ignore"}


class ReactionItem(BaseModel):
    """The item a reaction was added to."""

    type: str
    channel: Optional[str] = None
    ts: Optional[str] = None

    model_config = {"extra": "ignore"}


class ReactionAddedEvent(BaseModel):
    """reaction_added event."""

    type: str = REACTION_ADDED
    user: str
    reaction: str
    item: ReactionItem
    item_user: Optional[str] = None
    event_ts: str

    model_config = {"extra": "ignore"}


class MessageEvent(BaseModel):
    """message event (channel message or thread reply)."""

    type: str = MESSAGE
    channel: str
    ts: str
    user: Optional[str] = None
    text: Optional[str] = None
    thread_ts: Optional[str] = None
    subtype: Optional[str] = None
    bot_id: Optional[str] = None
    event_ts: Optional[str] = None

    model_config = {"extra": "ignore"}

    @property
    def is_thread_reply(self) -> bool:
        return bool(self.thread_ts) and self.thread_ts != self.ts


class SlackUserProfile(BaseModel):
    """users.info -> user.profile"""

    email: Optional[str] = None
    real_name: Optional[str] = None

    model_config = {"extra": "ignore"}


class SlackUser(BaseModel):
    """users.info -> user"""

    id: str
    name: Optional[str] = None
    is_bot: bool = False
    profile: SlackUserProfile = Field(default_factory=SlackUserProfile)

    model_config = {"extra": "ignore"}
