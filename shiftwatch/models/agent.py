"""Agent model: a tracked support agent and their chat-platform identity."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, String, Uuid
from sqlalchemy.orm import relationship

from shiftwatch.db import Base
from shiftwatch.models.mixins import TimestampMixin


class Agent(Base, TimestampMixin):
    """
    Internal agent record.

    Created administratively by email. ``external_user_id`` stays empty until
    the first event from the agent is resolved through the directory service.
    Agents are deactivated, never deleted.
    """

    __tablename__ = "agents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False)
    email = Column(String(320), unique=True, nullable=False, index=True)
    external_user_id = Column(String(64), nullable=True, index=True)
    external_username = Column(String(256), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    default_shift = Column(String(16), nullable=True)  # 'morning' | 'afternoon' | 'night'

    activity_events = relationship("ActivityEvent", back_populates="agent")

    def __repr__(self) -> str:
        return f"<Agent {self.email} external_user_id={self.external_user_id}>"
