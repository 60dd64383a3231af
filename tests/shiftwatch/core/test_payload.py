"""Tests for PayloadDecoder."""

import json

import pytest

from shiftwatch.core.payload import DecodedPayload, PayloadDecoder, parse_slack_ts
from shiftwatch.exceptions import MalformedPayloadError

BODY = '{"type":"event_callback","event":{"type":"message","channel":"C0OPS"}}'


@pytest.fixture
def decoder():
    return PayloadDecoder(operations_channel_id="C0OPS")


def test_decode_bytes(decoder):
    decoded = decoder.decode(BODY.encode("utf-8"))
    assert decoded.raw_body == BODY
    assert decoded.type == "event_callback"
    assert decoded.payload["event"]["channel"] == "C0OPS"


def test_decode_string(decoder):
    decoded = decoder.decode(BODY)
    assert decoded.raw_body == BODY
    assert decoded.payload == json.loads(BODY)


def test_decode_indexed_byte_fragments(decoder):
    fragments = {str(i): b for i, b in enumerate(BODY.encode("utf-8"))}
    decoded = decoder.decode(fragments)
    assert decoded.raw_body == BODY
    assert decoded.type == "event_callback"


def test_decode_fragments_in_any_key_order(decoder):
    items = list(enumerate(BODY.encode("utf-8")))
    fragments = {str(i): b for i, b in reversed(items)}
    assert decoder.decode(fragments).raw_body == BODY


def test_decode_fragments_with_multibyte_text(decoder):
    body = '{"type":"event_callback","text":"⏳ preuzeto"}'
    fragments = {str(i): b for i, b in enumerate(body.encode("utf-8"))}
    decoded = decoder.decode(fragments)
    assert decoded.payload["text"] == "⏳ preuzeto"


def test_decode_already_parsed_object(decoder):
    payload = {"type": "url_verification", "challenge": "abc"}
    decoded = decoder.decode(payload)
    assert decoded.payload == payload
    assert decoded.raw_body == '{"type":"url_verification","challenge":"abc"}'


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        "{'single': 'quotes'}",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        '"just a string"',
        {"0": 123, "1": "x"},
        {"0": 123, "1": 999},
        12345,
    ],
)
def test_decode_malformed(decoder, raw):
    with pytest.raises(MalformedPayloadError):
        decoder.decode(raw)


def test_parse_envelope_requires_type(decoder):
    with pytest.raises(MalformedPayloadError):
        decoder.parse_envelope(DecodedPayload(raw_body="{}", payload={}))


def test_parse_envelope_event_callback(decoder):
    envelope = decoder.parse_envelope(decoder.decode(BODY))
    assert envelope.type == "event_callback"
    assert envelope.event == {"type": "message", "channel": "C0OPS"}


def test_channel_of_message_and_reaction():
    assert PayloadDecoder.channel_of({"type": "message", "channel": "C1"}) == "C1"
    reaction = {"type": "reaction_added", "item": {"type": "message", "channel": "C2"}}
    assert PayloadDecoder.channel_of(reaction) == "C2"
    assert PayloadDecoder.channel_of({"type": "reaction_added"}) is None


def test_is_operations_channel(decoder):
    assert decoder.is_operations_channel({"channel": "C0OPS"}) is True
    assert decoder.is_operations_channel({"item": {"channel": "C0OPS"}}) is True
    assert decoder.is_operations_channel({"channel": "C0RANDOM"}) is False


def test_no_operations_channel_configured_discards_everything():
    decoder = PayloadDecoder(operations_channel_id=None)
    assert decoder.is_operations_channel({"channel": "C0OPS"}) is False


def test_parse_slack_ts():
    assert parse_slack_ts("1700000000.123456") == pytest.approx(1700000000.123456)
    assert parse_slack_ts(1000) == 1000.0
    with pytest.raises(ValueError):
        parse_slack_ts("")
    with pytest.raises(ValueError):
        parse_slack_ts("abc")
