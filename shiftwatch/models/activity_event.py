"""
ActivityEvent model: one observed agent action in the operations channel.

Rows are inserted once. The only mutation is a ticket_taken row moving from
Open (matched_reply_at is null) to Matched when a later thread reply claims it.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import relationship

from shiftwatch.db import Base
from shiftwatch.models.mixins import TimestampMixin

TICKET_TAKEN_WHERE = text("kind = 'ticket_taken'")
HAS_MESSAGE_KEY_WHERE = text("message_key IS NOT NULL")


class ActivityEvent(Base, TimestampMixin):
    """Ticket taken, thread reply or channel message by a tracked agent."""

    __tablename__ = "activity_events"

    __table_args__ = (
        # Dedup key: one ticket per agent per reacted-to message
        Index(
            "uq_activity_events_ticket_taken",
            "agent_external_id",
            "parent_message_key",
            unique=True,
            postgresql_where=TICKET_TAKEN_WHERE,
            sqlite_where=TICKET_TAKEN_WHERE,
        ),
        # Redelivered message events map to the same row
        Index(
            "uq_activity_events_message_key",
            "agent_external_id",
            "message_key",
            unique=True,
            postgresql_where=HAS_MESSAGE_KEY_WHERE,
            sqlite_where=HAS_MESSAGE_KEY_WHERE,
        ),
        Index(
            "ix_activity_events_open_tickets",
            "agent_external_id",
            "thread_key",
            "kind",
            "matched_reply_at",
            "occurred_at",
        ),
        Index("ix_activity_events_agent_date", "agent_id", "activity_date"),
        Index("ix_activity_events_date_shift", "activity_date", "shift"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(
        Uuid(as_uuid=True), ForeignKey("agents.id"), nullable=False, index=True
    )
    agent_external_id = Column(String(64), nullable=False)
    kind = Column(String(32), nullable=False)
    channel_id = Column(String(64), nullable=False)
    thread_key = Column(String(64), nullable=True)
    parent_message_key = Column(String(64), nullable=True)
    message_key = Column(String(64), nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    matched_reply_at = Column(DateTime(timezone=True), nullable=True)
    matched_reply_key = Column(String(64), nullable=True)
    response_time_seconds = Column(Integer, nullable=True)
    message_preview = Column(String(200), nullable=True)
    shift = Column(String(16), nullable=False)
    activity_date = Column(String(10), nullable=False)  # YYYY-MM-DD, operating tz

    agent = relationship("Agent", back_populates="activity_events")

    @property
    def is_matched(self) -> bool:
        return self.matched_reply_at is not None
