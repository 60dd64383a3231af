"""
Command to handle Slack Events API webhooks for the operations channel.

Decodes the body, answers the url_verification handshake, verifies the
signature, then records ticket-taken reactions and agent messages. Slack
retries anything that is not a 200 within 3 seconds, so the route acknowledges
after verification and records the event in a background task; every failure
past that point is logged, never raised.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Mapping, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.commands.base_slack import BaseSlackCommand
from shiftwatch.config import Settings, get_settings
from shiftwatch.core.payload import PayloadDecoder, RawBody, parse_slack_ts
from shiftwatch.core.signature import SignatureVerifier
from shiftwatch.core.time_classifier import TimeClassifier
from shiftwatch.exceptions import DirectoryLookupError, MalformedPayloadError
from shiftwatch.infra.logging_config import get_logger
from shiftwatch.schemas.slack import (
    EVENT_CALLBACK,
    MESSAGE,
    REACTION_ADDED,
    URL_VERIFICATION,
    MessageEvent,
    ReactionAddedEvent,
    ReactionItem,
)
from shiftwatch.services.activity_event_service import ActivityCorrelator
from shiftwatch.services.agent_service import AgentDirectory

# Plain messages, broadcasts of thread replies and uploads count as activity;
# edits, deletions, joins and bot posts do not.
TRACKED_MESSAGE_SUBTYPES = {None, "thread_broadcast", "file_share"}
REACTION_ITEM_MESSAGE = "message"


@dataclass
class SlackAcknowledgement:
    """Outcome of verifying one delivery: the response body and the event to record."""

    response: Optional[dict[str, str]] = None
    event: Optional[dict[str, Any]] = None
    event_id: Optional[str] = None


class SlackEventsCommand(BaseSlackCommand):
    """
    Command to handle a single Slack Events API delivery.

    ``acknowledge`` does no I/O and decides the HTTP response; ``process_event``
    records the event and may call the directory service. ``execute`` runs both.
    """

    def __init__(
        self,
        db: Optional[Session],
        directory_client: Optional[BaseDirectoryClient] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.logger = get_logger("slack_events")
        self.directory_client = directory_client
        self.verifier = SignatureVerifier(
            self.settings.slack_signing_secret,
            tolerance_seconds=self.settings.signature_tolerance_seconds,
            clock=clock,
        )
        self.decoder = PayloadDecoder(self.settings.operations_channel_id)
        self.agent_directory = AgentDirectory(db, directory_client=directory_client)
        self.correlator = ActivityCorrelator(
            db, time_classifier=TimeClassifier(self.settings.operating_timezone)
        )
        self._ticket_reactions = self.settings.ticket_reaction_names

    def execute(
        self, headers: Mapping[str, str], raw_body: RawBody
    ) -> Optional[dict[str, str]]:
        """
        Verify and record one webhook delivery in the calling thread.

        Returns:
            dict: {"challenge": ...} for url_verification, otherwise None.

        Raises:
            HTTPException: 401 on missing, stale or invalid signature.
        """
        ack = self.acknowledge(headers, raw_body)
        if ack.event is not None:
            self.process_event(ack.event, ack.event_id)
        return ack.response

    def acknowledge(
        self, headers: Mapping[str, str], raw_body: RawBody
    ) -> SlackAcknowledgement:
        """
        Decode and verify a delivery.

        Raises:
            HTTPException: 401 on missing, stale or invalid signature.
        """
        try:
            decoded = self.decoder.decode(raw_body)
            envelope = self.decoder.parse_envelope(decoded)
        except MalformedPayloadError as e:
            self.logger.warning("Malformed Slack payload: %s", e)
            return SlackAcknowledgement()

        if envelope.type == URL_VERIFICATION:
            self.logger.info("Slack URL verification challenge received")
            return SlackAcknowledgement(response={"challenge": envelope.challenge or ""})

        if not self.verifier.verify(headers, decoded.raw_body):
            raise HTTPException(status_code=401, detail="Invalid signature")

        if envelope.type != EVENT_CALLBACK or not envelope.event:
            self.logger.info("Ignoring Slack payload of type %s", envelope.type)
            return SlackAcknowledgement()

        if not self.decoder.is_operations_channel(envelope.event):
            return SlackAcknowledgement()

        return SlackAcknowledgement(event=envelope.event, event_id=envelope.event_id)

    def process_event(self, event: dict[str, Any], event_id: Optional[str] = None) -> None:
        """Record a verified operations-channel event. Never raises."""
        context = self._event_context(event, event_id)
        try:
            if event.get("type") == REACTION_ADDED:
                self._handle_reaction_added(ReactionAddedEvent.model_validate(event))
            elif event.get("type") == MESSAGE:
                self._handle_message(MessageEvent.model_validate(event))
        except (ValidationError, ValueError) as e:
            self.logger.warning(
                "Malformed Slack event: %s", e, extra={"context": context}
            )
        except Exception as e:
            self.db.rollback()
            self.logger.exception(
                "Failed to process Slack event: %s", e, extra={"context": context}
            )

    def _handle_reaction_added(self, event: ReactionAddedEvent) -> None:
        """A ticket reaction on a channel message marks the ticket as taken."""
        if event.reaction not in self._ticket_reactions:
            return
        item = event.item
        if item.type != REACTION_ITEM_MESSAGE or not item.ts or not item.channel:
            return

        agent = self.agent_directory.resolve(event.user)
        if agent is None:
            self.logger.debug("Reaction from untracked user %s", event.user)
            return

        ticket = self.correlator.record_ticket_taken(
            agent,
            parent_message_key=item.ts,
            thread_key=self._thread_key_for(item),
            occurred_at=parse_slack_ts(event.event_ts),
            channel_id=item.channel,
        )
        self.logger.info(
            "Recorded ticket taken by %s",
            agent.name,
            extra={
                "context": {
                    "activity_event_id": str(ticket.id),
                    "parent_message_key": item.ts,
                    "thread_key": ticket.thread_key,
                }
            },
        )

    def _thread_key_for(self, item: ReactionItem) -> str:
        """Root ts of the thread holding the reacted-to message; the message ts itself if unthreaded."""
        if self.directory_client is None:
            return item.ts
        try:
            thread_ts = self.directory_client.lookup_thread_ts(item.channel, item.ts)
        except DirectoryLookupError as e:
            self.logger.warning(
                "Thread lookup failed, using message ts: %s",
                e,
                extra={"context": {"channel": item.channel, "ts": item.ts}},
            )
            return item.ts
        return thread_ts or item.ts

    def _handle_message(self, event: MessageEvent) -> None:
        """Agent messages count as activity; thread replies may close a ticket."""
        if event.bot_id or event.subtype not in TRACKED_MESSAGE_SUBTYPES:
            return
        if not event.user:
            return

        agent = self.agent_directory.resolve(event.user)
        if agent is None:
            return

        self.correlator.record_message(
            agent,
            thread_key=event.thread_ts or event.ts,
            message_key=event.ts,
            occurred_at=parse_slack_ts(event.ts),
            is_thread_reply=event.is_thread_reply,
            channel_id=event.channel,
            text=event.text,
        )

    @staticmethod
    def _event_context(event: dict[str, Any], event_id: Optional[str]) -> dict[str, Any]:
        item = event.get("item") if isinstance(event.get("item"), dict) else {}
        return {
            "event_id": event_id,
            "event_type": event.get("type"),
            "user": event.get("user"),
            "channel": event.get("channel") or item.get("channel"),
            "ts": event.get("ts") or item.get("ts"),
            "thread_ts": event.get("thread_ts"),
            "event_ts": event.get("event_ts"),
        }


def process_slack_event(
    session_scope: Callable[[], ContextManager[Session]],
    directory_client: Optional[BaseDirectoryClient],
    event: dict[str, Any],
    event_id: Optional[str] = None,
) -> None:
    """Background task: record a verified event with its own session."""
    with session_scope() as db:
        SlackEventsCommand(db, directory_client=directory_client).process_event(
            event, event_id
        )
