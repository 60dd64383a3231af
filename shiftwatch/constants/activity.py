"""Activity kinds and duty shifts."""

from enum import StrEnum


class ActivityKind(StrEnum):
    """Kinds of agent activity recorded from the operations channel."""

    TICKET_TAKEN = "ticket_taken"
    THREAD_REPLY = "thread_reply"
    MESSAGE_SENT = "message_sent"


class Shift(StrEnum):
    """Local-time duty windows: 7-15, 15-23, 23-7."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"


MESSAGE_PREVIEW_LENGTH = 200
