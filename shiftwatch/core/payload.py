"""
Normalize raw webhook bodies into Slack event payloads.

Bodies usually arrive as bytes, but some proxies hand over a JSON string or an
object of index-keyed byte values (``{"0": 123, "1": 34, ...}``). All of them
end up as the exact text Slack signed plus the parsed JSON object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import ValidationError

from shiftwatch.exceptions import MalformedPayloadError
from shiftwatch.schemas.slack import SlackEnvelope

RawBody = Union[bytes, bytearray, str, dict]


@dataclass(frozen=True)
class DecodedPayload:
    """The signed body text and its parsed JSON object."""

    raw_body: str
    payload: dict[str, Any]

    @property
    def type(self) -> Optional[str]:
        return self.payload.get("type")


def _is_indexed_fragments(value: dict) -> bool:
    return bool(value) and "0" in value and all(str(k).isdigit() for k in value)


def _reassemble_fragments(value: dict) -> bytes:
    try:
        ordered = sorted(value.items(), key=lambda item: int(item[0]))
        return bytes(int(byte) for _, byte in ordered)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Invalid byte fragment in body: {e}") from e


def parse_slack_ts(ts: Union[str, float, int, None]) -> float:
    """Parse a Slack timestamp (``"1700000000.123456"``) into epoch seconds."""
    if ts is None or ts == "":
        raise ValueError("Empty Slack timestamp")
    return float(ts)


class PayloadDecoder:
    """Decodes raw request bodies and filters events by channel."""

    def __init__(self, operations_channel_id: Optional[str] = None) -> None:
        self._operations_channel_id = operations_channel_id

    def decode(self, raw: RawBody) -> DecodedPayload:
        """
        Decode a raw body into text + JSON object.

        Raises:
            MalformedPayloadError: body is not UTF-8 JSON describing an object.
        """
        if isinstance(raw, dict):
            if not _is_indexed_fragments(raw):
                # Already parsed upstream; re-serialize for signature checks
                return DecodedPayload(
                    raw_body=json.dumps(raw, separators=(",", ":")), payload=raw
                )
            raw = _reassemble_fragments(raw)

        if isinstance(raw, (bytes, bytearray)):
            try:
                raw_body = bytes(raw).decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedPayloadError(f"Body is not valid UTF-8: {e}") from e
        elif isinstance(raw, str):
            raw_body = raw
        else:
            raise MalformedPayloadError(
                f"Unsupported body type: {type(raw).__name__}"
            )

        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(f"Body is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedPayloadError("Body must be a JSON object")
        return DecodedPayload(raw_body=raw_body, payload=payload)

    def parse_envelope(self, decoded: DecodedPayload) -> SlackEnvelope:
        """Validate the outer webhook envelope."""
        try:
            return SlackEnvelope.model_validate(decoded.payload)
        except ValidationError as e:
            raise MalformedPayloadError(f"Invalid Slack envelope: {e}") from e

    @staticmethod
    def channel_of(event: dict[str, Any]) -> Optional[str]:
        """Channel of a message event, or of the item a reaction targets."""
        channel = event.get("channel")
        if channel:
            return channel
        item = event.get("item")
        if isinstance(item, dict):
            return item.get("channel")
        return None

    def is_operations_channel(self, event: dict[str, Any]) -> bool:
        if not self._operations_channel_id:
            return False
        return self.channel_of(event) == self._operations_channel_id
