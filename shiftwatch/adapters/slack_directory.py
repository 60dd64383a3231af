"""Slack Web API directory client (users.info, conversations.replies, auth.test)."""

from __future__ import annotations

from typing import Any, Optional

import requests
from pydantic import ValidationError

from shiftwatch.adapters.base import BaseDirectoryClient, DirectoryProfile
from shiftwatch.exceptions import DirectoryLookupError
from shiftwatch.infra.logging_config import get_logger
from shiftwatch.schemas.slack import SlackUser

logger = get_logger("slack_directory")

DEFAULT_API_URL = "https://slack.com/api"
DEFAULT_CONNECT_TIMEOUT_SECONDS = 1.0
DEFAULT_READ_TIMEOUT_SECONDS = 1.5


class SlackDirectoryClient(BaseDirectoryClient):
    """Read-only Slack client used to resolve user ids to emails and messages to threads."""

    def __init__(
        self,
        bot_token: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = DEFAULT_READ_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        self._bot_token = bot_token
        self._api_url = api_url.rstrip("/")
        self.timeout = (connect_timeout_seconds, timeout_seconds)

    def _call(self, method: str, params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        url = f"{self._api_url}/{method}"
        headers = {
            "Authorization": f"Bearer {self._bot_token}",
            "Accept": "application/json",
        }
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise DirectoryLookupError(f"{method} request failed: {e}") from e

        if resp.status_code != 200:
            raise DirectoryLookupError(
                f"{method} returned HTTP {resp.status_code}: "
                f"{resp.text[:200] if resp.text else 'no body'}"
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise DirectoryLookupError(f"{method} returned invalid JSON: {e}") from e
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            raise DirectoryLookupError(f"{method} failed: {error or 'unknown error'}")
        return data

    def lookup_user(self, external_user_id: str) -> DirectoryProfile:
        data = self._call("users.info", params={"user": external_user_id})
        try:
            user = SlackUser.model_validate(data.get("user") or {})
        except ValidationError as e:
            raise DirectoryLookupError(f"users.info returned invalid user: {e}") from e
        email = user.profile.email.strip().lower() if user.profile.email else None
        return DirectoryProfile(
            external_user_id=user.id, email=email, username=user.name
        )

    def lookup_thread_ts(self, channel_id: str, message_ts: str) -> Optional[str]:
        """
        Return the root ``thread_ts`` of the thread holding ``message_ts``.

        None when the message is not part of a thread. reaction_added items do
        not say whether the message is a reply, so this asks conversations.replies.
        """
        data = self._call(
            "conversations.replies",
            params={
                "channel": channel_id,
                "ts": message_ts,
                "limit": "1",
                "inclusive": "true",
            },
        )
        messages = data.get("messages") or []
        for message in messages:
            if isinstance(message, dict) and message.get("ts") == message_ts:
                return message.get("thread_ts")
        if messages and isinstance(messages[0], dict):
            return messages[0].get("thread_ts")
        return None

    def auth_test(self) -> dict[str, Any]:
        """Check the bot token. Returns the auth.test response body."""
        return self._call("auth.test")
