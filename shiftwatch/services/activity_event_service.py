"""
Activity correlation: ticket-taken reactions, replies and response times.

Every write is safe to repeat. A ticket is deduplicated on
(agent_external_id, parent_message_key) by a partial unique index; a message
on (agent_external_id, message_key). Matching a reply to a ticket is a
conditional UPDATE on ``matched_reply_at IS NULL``, so two replies racing for
the same ticket cannot both claim it.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shiftwatch.constants.activity import MESSAGE_PREVIEW_LENGTH, ActivityKind
from shiftwatch.core.time_classifier import TimeClassifier, to_datetime
from shiftwatch.exceptions import OrderingAnomalyError
from shiftwatch.infra.logging_config import get_logger
from shiftwatch.models.activity_event import ActivityEvent
from shiftwatch.models.agent import Agent
from shiftwatch.models.mixins import utcnow

logger = get_logger("activity_correlator")

MAX_MATCH_CANDIDATES = 10


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_response_time(ticket_at: datetime, reply_at: datetime, ticket_id=None) -> int:
    """Whole seconds from ticket to reply. Raises OrderingAnomalyError if negative."""
    seconds = math.floor((as_utc(reply_at) - as_utc(ticket_at)).total_seconds())
    if seconds < 0:
        raise OrderingAnomalyError(ticket_id, ticket_at, reply_at)
    return seconds


class ActivityCorrelator:
    """Record agent activity and match thread replies to open tickets."""

    def __init__(
        self, db: Session, time_classifier: Optional[TimeClassifier] = None
    ) -> None:
        self.db = db
        self._classifier = time_classifier or TimeClassifier()

    def record_ticket_taken(
        self,
        agent: Agent,
        parent_message_key: str,
        thread_key: str,
        occurred_at: float,
        channel_id: str,
    ) -> ActivityEvent:
        """
        Record that ``agent`` took the ticket posted as ``parent_message_key``.

        Returns the existing row unchanged if this ticket was already recorded.
        """
        agent_external_id = agent.external_user_id
        existing = self.get_ticket(agent_external_id, parent_message_key)
        if existing is not None:
            logger.info(
                "Duplicate ticket_taken ignored",
                extra={
                    "context": {
                        "agent_external_id": agent_external_id,
                        "parent_message_key": parent_message_key,
                    }
                },
            )
            return existing

        classified = self._classifier.classify(occurred_at)
        ticket = ActivityEvent(
            agent_id=agent.id,
            agent_external_id=agent_external_id,
            kind=ActivityKind.TICKET_TAKEN.value,
            channel_id=channel_id,
            thread_key=thread_key,
            parent_message_key=parent_message_key,
            occurred_at=to_datetime(occurred_at),
            shift=classified.shift.value,
            activity_date=classified.activity_date,
        )
        return self._insert_or_existing(
            ticket, lambda: self.get_ticket(agent_external_id, parent_message_key)
        )

    def record_message(
        self,
        agent: Agent,
        thread_key: Optional[str],
        message_key: str,
        occurred_at: float,
        is_thread_reply: bool,
        channel_id: str,
        text: Optional[str] = None,
    ) -> ActivityEvent:
        """
        Record a message by ``agent`` and, for thread replies, match it to the
        latest open ticket the agent took in that thread before the reply.
        """
        agent_external_id = agent.external_user_id
        existing = self.get_message(agent_external_id, message_key)
        if existing is not None:
            logger.info(
                "Duplicate message ignored",
                extra={
                    "context": {
                        "agent_external_id": agent_external_id,
                        "message_key": message_key,
                    }
                },
            )
            return existing

        classified = self._classifier.classify(occurred_at)
        reply_at = to_datetime(occurred_at)
        kind = ActivityKind.THREAD_REPLY if is_thread_reply else ActivityKind.MESSAGE_SENT
        message = ActivityEvent(
            agent_id=agent.id,
            agent_external_id=agent_external_id,
            kind=kind.value,
            channel_id=channel_id,
            thread_key=thread_key,
            message_key=message_key,
            occurred_at=reply_at,
            message_preview=text[:MESSAGE_PREVIEW_LENGTH] if text else None,
            shift=classified.shift.value,
            activity_date=classified.activity_date,
        )
        inserted = self._insert_or_existing(
            message, lambda: self.get_message(agent_external_id, message_key)
        )
        if inserted is not message:
            return inserted

        if not is_thread_reply or not thread_key:
            return message

        ticket = self._claim_open_ticket(
            agent_external_id, thread_key, reply_at, message_key
        )
        if ticket is not None:
            message.parent_message_key = ticket.parent_message_key
            self.db.commit()
            self.db.refresh(message)
            logger.info(
                "Matched reply to ticket %s, response time %ss",
                ticket.parent_message_key,
                ticket.response_time_seconds,
                extra={
                    "context": {
                        "agent_external_id": agent_external_id,
                        "thread_key": thread_key,
                        "message_key": message_key,
                    }
                },
            )
        return message

    def _insert_or_existing(
        self,
        event: ActivityEvent,
        find_existing: Callable[[], Optional[ActivityEvent]],
    ) -> ActivityEvent:
        """Insert ``event``; if a concurrent insert won the dedup key, return that row."""
        self.db.add(event)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = find_existing()
            if existing is None:
                raise
            return existing
        self.db.refresh(event)
        return event

    def _claim_open_ticket(
        self,
        agent_external_id: str,
        thread_key: str,
        reply_at: datetime,
        reply_key: str,
    ) -> Optional[ActivityEvent]:
        """Match the reply to the latest open ticket before it. At most one claim wins."""
        candidates = (
            self.db.query(ActivityEvent)
            .filter(
                ActivityEvent.kind == ActivityKind.TICKET_TAKEN.value,
                ActivityEvent.agent_external_id == agent_external_id,
                ActivityEvent.thread_key == thread_key,
                ActivityEvent.matched_reply_at.is_(None),
                ActivityEvent.occurred_at < reply_at,
            )
            .order_by(ActivityEvent.occurred_at.desc())
            .limit(MAX_MATCH_CANDIDATES)
            .all()
        )
        for candidate in candidates:
            try:
                response_time = compute_response_time(
                    candidate.occurred_at, reply_at, ticket_id=candidate.id
                )
            except OrderingAnomalyError as e:
                logger.warning(
                    "Ordering anomaly, match refused: %s",
                    e,
                    extra={
                        "context": {
                            "agent_external_id": agent_external_id,
                            "thread_key": thread_key,
                            "parent_message_key": candidate.parent_message_key,
                            "reply_key": reply_key,
                        }
                    },
                )
                return None

            result = self.db.execute(
                update(ActivityEvent)
                .where(
                    ActivityEvent.id == candidate.id,
                    ActivityEvent.matched_reply_at.is_(None),
                )
                .values(
                    matched_reply_at=reply_at,
                    matched_reply_key=reply_key,
                    response_time_seconds=response_time,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            if result.rowcount == 1:
                self.db.refresh(candidate)
                return candidate
            # Another reply claimed this ticket first; try the next older one
            self.db.expire(candidate)
        return None

    def get_ticket(
        self, agent_external_id: str, parent_message_key: str
    ) -> Optional[ActivityEvent]:
        return (
            self.db.query(ActivityEvent)
            .filter(
                ActivityEvent.kind == ActivityKind.TICKET_TAKEN.value,
                ActivityEvent.agent_external_id == agent_external_id,
                ActivityEvent.parent_message_key == parent_message_key,
            )
            .first()
        )

    def get_message(
        self, agent_external_id: str, message_key: str
    ) -> Optional[ActivityEvent]:
        return (
            self.db.query(ActivityEvent)
            .filter(
                ActivityEvent.agent_external_id == agent_external_id,
                ActivityEvent.message_key == message_key,
            )
            .first()
        )

    def get_activity_events(
        self,
        agent_id: Optional[UUID] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        kind: Optional[ActivityKind] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ActivityEvent]:
        """Activity rows for reporting, filtered by agent, date range (inclusive) and kind."""
        q = self.db.query(ActivityEvent).order_by(ActivityEvent.occurred_at.asc())
        if agent_id is not None:
            q = q.filter(ActivityEvent.agent_id == agent_id)
        if start_date is not None:
            q = q.filter(ActivityEvent.activity_date >= start_date)
        if end_date is not None:
            q = q.filter(ActivityEvent.activity_date <= end_date)
        if kind is not None:
            q = q.filter(ActivityEvent.kind == kind.value)
        return q.offset(skip).limit(limit).all()
