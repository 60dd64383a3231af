"""
Base command for Slack-related operations.

Builds the directory client once from settings; the app factory stores it on
``app.state`` and routes hand it to commands.
"""

from __future__ import annotations

from typing import Optional

from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.adapters.slack_directory import SlackDirectoryClient
from shiftwatch.config import Settings, get_settings


class BaseSlackCommand:
    """Base for Slack-related commands."""

    @staticmethod
    def build_directory_client(
        settings: Optional[Settings] = None,
    ) -> BaseDirectoryClient | None:
        """Return a configured SlackDirectoryClient or None if no bot token is set."""
        settings = settings or get_settings()
        if not settings.slack_bot_token:
            return None
        return SlackDirectoryClient(
            bot_token=settings.slack_bot_token,
            api_url=settings.slack_api_url,
            timeout_seconds=settings.directory_timeout_seconds,
            connect_timeout_seconds=settings.directory_connect_timeout_seconds,
        )
