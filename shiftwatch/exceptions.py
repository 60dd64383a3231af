"""Error taxonomy for webhook ingestion and activity correlation."""

from __future__ import annotations


class ShiftwatchError(Exception):
    """Base class for shiftwatch errors."""


class InvalidSignatureError(ShiftwatchError):
    """Webhook signature missing or does not match."""


class StaleRequestError(InvalidSignatureError):
    """Webhook timestamp is outside the replay window."""


class MalformedPayloadError(ShiftwatchError):
    """Request body could not be decoded into an event payload."""


class DirectoryLookupError(ShiftwatchError):
    """External directory service could not resolve a user."""


class OrderingAnomalyError(ShiftwatchError):
    """A reply would precede the ticket it is being matched to."""

    def __init__(self, ticket_id, ticket_occurred_at, reply_occurred_at) -> None:
        self.ticket_id = ticket_id
        self.ticket_occurred_at = ticket_occurred_at
        self.reply_occurred_at = reply_occurred_at
        super().__init__(
            f"Reply at {reply_occurred_at} precedes ticket {ticket_id} "
            f"taken at {ticket_occurred_at}"
        )
