"""Webhook command handlers."""

from shiftwatch.commands.base_slack import BaseSlackCommand
from shiftwatch.commands.webhooks.slack_events_command import (
    SlackAcknowledgement,
    SlackEventsCommand,
    process_slack_event,
)

__all__ = [
    "BaseSlackCommand",
    "SlackAcknowledgement",
    "SlackEventsCommand",
    "process_slack_event",
]
