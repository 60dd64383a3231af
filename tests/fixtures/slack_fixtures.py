"""Slack webhook payload builders and request signing helpers."""

import json
import time
from typing import Any, Optional

import pytest

from shiftwatch.core.signature import compute_signature

SIGNING_SECRET = "test-signing-secret"
OPS_CHANNEL = "C0OPS"
OTHER_CHANNEL = "C0RANDOM"
BASE_TS = 1_700_000_000


def slack_ts(seconds: float, micros: int = 100) -> str:
    return f"{int(seconds)}.{micros:06d}"


def signed_headers(
    body: str, timestamp: Optional[int] = None, secret: str = SIGNING_SECRET
) -> dict[str, str]:
    ts = str(int(time.time()) if timestamp is None else timestamp)
    return {
        "Content-Type": "application/json",
        "X-Slack-Request-Timestamp": ts,
        "X-Slack-Signature": compute_signature(secret, ts, body),
    }


def event_callback(event: dict[str, Any], event_id: str = "Ev0001") -> str:
    return json.dumps(
        {
            "token": "deprecated",
            "team_id": "T0TEAM",
            "type": "event_callback",
            "event_id": event_id,
            "event_time": BASE_TS,
            "event": event,
        }
    )


def reaction_added(
    user: str,
    item_ts: str,
    event_ts: str,
    reaction: str = "hourglass_flowing_sand",
    channel: str = OPS_CHANNEL,
) -> dict[str, Any]:
    return {
        "type": "reaction_added",
        "user": user,
        "reaction": reaction,
        "item_user": "U0CUSTOMER",
        "item": {"type": "message", "channel": channel, "ts": item_ts},
        "event_ts": event_ts,
    }


def thread_message(
    user: str,
    ts: str,
    thread_ts: Optional[str],
    text: str = "On it, checking the documents now.",
    channel: str = OPS_CHANNEL,
    **extra: Any,
) -> dict[str, Any]:
    event = {
        "type": "message",
        "channel": channel,
        "user": user,
        "text": text,
        "ts": ts,
        "event_ts": ts,
        "channel_type": "channel",
    }
    if thread_ts is not None:
        event["thread_ts"] = thread_ts
    event.update(extra)
    return event


@pytest.fixture
def post_event(client):
    """POST a signed event_callback to the Slack events webhook."""

    def _post(event: dict[str, Any], event_id: str = "Ev0001", timestamp=None):
        body = event_callback(event, event_id=event_id)
        return client.post(
            "/webhooks/slack/events",
            content=body,
            headers=signed_headers(body, timestamp=timestamp),
        )

    return _post
