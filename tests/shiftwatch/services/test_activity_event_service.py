"""Tests for ActivityCorrelator."""

import logging
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update
from sqlalchemy.sql.dml import Update

from shiftwatch.constants.activity import ActivityKind
from shiftwatch.core.time_classifier import to_datetime
from shiftwatch.exceptions import OrderingAnomalyError
from shiftwatch.models.activity_event import ActivityEvent
from shiftwatch.services.activity_event_service import as_utc, compute_response_time

CHANNEL = "C0OPS"
THREAD = "1000.000100"


def take(correlator, agent, message_key, at, thread=THREAD):
    return correlator.record_ticket_taken(
        agent,
        parent_message_key=message_key,
        thread_key=thread,
        occurred_at=at,
        channel_id=CHANNEL,
    )


def reply(correlator, agent, message_key, at, thread=THREAD, is_thread_reply=True, text=None):
    return correlator.record_message(
        agent,
        thread_key=thread,
        message_key=message_key,
        occurred_at=at,
        is_thread_reply=is_thread_reply,
        channel_id=CHANNEL,
        text=text,
    )


def tickets(db):
    return (
        db.query(ActivityEvent)
        .filter(ActivityEvent.kind == ActivityKind.TICKET_TAKEN.value)
        .all()
    )


def test_record_ticket_taken(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    assert ticket.id is not None
    assert ticket.kind == "ticket_taken"
    assert ticket.agent_id == setup_agent.id
    assert ticket.agent_external_id == "U0AGENT1"
    assert ticket.parent_message_key == "M"
    assert ticket.thread_key == THREAD
    assert as_utc(ticket.occurred_at) == to_datetime(1000)
    assert ticket.matched_reply_at is None
    assert ticket.response_time_seconds is None
    # 1970-01-01 00:16:40 UTC is 01:16 in Belgrade
    assert ticket.shift == "night"
    assert ticket.activity_date == "1970-01-01"


def test_replayed_reaction_creates_one_ticket(db, correlator, setup_agent):
    first = take(correlator, setup_agent, "M", 1000)
    second = take(correlator, setup_agent, "M", 1000)
    assert second.id == first.id
    assert len(tickets(db)) == 1


def test_same_message_taken_by_two_agents(db, correlator, setup_agent, setup_second_agent):
    take(correlator, setup_agent, "M", 1000)
    take(correlator, setup_second_agent, "M", 1010)
    assert len(tickets(db)) == 2


def test_concurrent_duplicate_insert_returns_existing(db, correlator, setup_agent):
    first = take(correlator, setup_agent, "M", 1000)
    first_id = first.id
    real_get_ticket = correlator.get_ticket
    calls = {"n": 0}

    def stale_then_real(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None  # the other request had not committed yet
        return real_get_ticket(*args, **kwargs)

    with patch.object(correlator, "get_ticket", side_effect=stale_then_real):
        second = take(correlator, setup_agent, "M", 1000)

    assert second.id == first_id
    assert len(tickets(db)) == 1


def test_simple_match(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    message = reply(correlator, setup_agent, "R1", 1180)

    db.refresh(ticket)
    assert ticket.response_time_seconds == 180
    assert as_utc(ticket.matched_reply_at) == to_datetime(1180)
    assert ticket.matched_reply_key == "R1"
    assert ticket.is_matched is True

    assert message.kind == "thread_reply"
    assert message.message_key == "R1"
    assert message.parent_message_key == "M"
    assert message.response_time_seconds is None


def test_latest_open_ticket_in_thread_is_matched(db, correlator, setup_agent):
    first = take(correlator, setup_agent, "M1", 1000)
    second = take(correlator, setup_agent, "M2", 1050)
    reply(correlator, setup_agent, "R1", 1100)

    db.refresh(first)
    db.refresh(second)
    assert second.response_time_seconds == 50
    assert first.matched_reply_at is None
    assert first.response_time_seconds is None


def test_matched_ticket_is_not_rematched(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    reply(correlator, setup_agent, "R1", 1180)
    later = reply(correlator, setup_agent, "R2", 1300)

    db.refresh(ticket)
    assert ticket.response_time_seconds == 180
    assert ticket.matched_reply_key == "R1"
    assert as_utc(ticket.matched_reply_at) == to_datetime(1180)
    assert later.parent_message_key is None


def test_next_reply_matches_next_open_ticket(db, correlator, setup_agent):
    first = take(correlator, setup_agent, "M1", 1000)
    second = take(correlator, setup_agent, "M2", 1050)
    reply(correlator, setup_agent, "R1", 1100)
    reply(correlator, setup_agent, "R2", 1200)

    db.refresh(first)
    db.refresh(second)
    assert second.response_time_seconds == 50
    assert first.response_time_seconds == 200


def test_reply_before_ticket_stays_unlinked(db, correlator, setup_agent):
    early = reply(correlator, setup_agent, "R0", 900)
    ticket = take(correlator, setup_agent, "M", 1000)

    db.refresh(ticket)
    assert ticket.matched_reply_at is None
    assert early.parent_message_key is None


def test_reply_at_same_instant_does_not_match(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    reply(correlator, setup_agent, "R1", 1000)
    db.refresh(ticket)
    assert ticket.matched_reply_at is None


def test_other_agents_reply_does_not_match(db, correlator, setup_agent, setup_second_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    reply(correlator, setup_second_agent, "R1", 1100)
    db.refresh(ticket)
    assert ticket.matched_reply_at is None


def test_reply_in_other_thread_does_not_match(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    reply(correlator, setup_agent, "R1", 1100, thread="2000.000100")
    db.refresh(ticket)
    assert ticket.matched_reply_at is None


def test_channel_message_is_recorded_without_matching(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    message = reply(correlator, setup_agent, "R1", 1100, is_thread_reply=False)
    db.refresh(ticket)
    assert message.kind == "message_sent"
    assert ticket.matched_reply_at is None


def test_redelivered_reply_is_recorded_once(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000)
    first = reply(correlator, setup_agent, "R1", 1180)
    again = reply(correlator, setup_agent, "R1", 1180)

    assert again.id == first.id
    replies = (
        db.query(ActivityEvent)
        .filter(ActivityEvent.kind == ActivityKind.THREAD_REPLY.value)
        .all()
    )
    assert len(replies) == 1
    db.refresh(ticket)
    assert ticket.response_time_seconds == 180


def test_message_preview_is_truncated(db, correlator, setup_agent):
    message = reply(correlator, setup_agent, "R1", 1100, text="x" * 500)
    assert len(message.message_preview) == 200


def test_response_time_is_whole_seconds(db, correlator, setup_agent):
    ticket = take(correlator, setup_agent, "M", 1000.250)
    reply(correlator, setup_agent, "R1", 1180.100)
    db.refresh(ticket)
    assert ticket.response_time_seconds == 179


def test_compute_response_time():
    assert compute_response_time(to_datetime(1000), to_datetime(1180)) == 180
    assert compute_response_time(to_datetime(1000), to_datetime(1000)) == 0
    with pytest.raises(OrderingAnomalyError):
        compute_response_time(to_datetime(1000), to_datetime(999))


def test_compute_response_time_accepts_naive_utc():
    naive = to_datetime(1000).replace(tzinfo=None)
    assert compute_response_time(naive, to_datetime(1000) + timedelta(seconds=5)) == 5


def test_ordering_anomaly_refuses_match(db, correlator, setup_agent, caplog):
    ticket = take(correlator, setup_agent, "M", 1000)
    anomaly = OrderingAnomalyError(ticket.id, to_datetime(1000), to_datetime(990))
    with patch(
        "shiftwatch.services.activity_event_service.compute_response_time",
        side_effect=anomaly,
    ):
        with caplog.at_level(logging.WARNING, logger="shiftwatch"):
            message = reply(correlator, setup_agent, "R1", 1180)

    db.refresh(ticket)
    assert ticket.matched_reply_at is None
    assert ticket.response_time_seconds is None
    assert message.id is not None
    assert message.parent_message_key is None
    assert "Ordering anomaly" in caplog.text


def test_concurrently_claimed_ticket_is_skipped(db, correlator, setup_agent):
    first = take(correlator, setup_agent, "M1", 1000)
    second = take(correlator, setup_agent, "M2", 1050)
    second_id = second.id
    original_execute = db.execute
    raced = {"done": False}

    def racing_execute(statement, *args, **kwargs):
        if isinstance(statement, Update) and not raced["done"]:
            raced["done"] = True
            # Another reply claims M2 between candidate selection and our update
            original_execute(
                update(ActivityEvent)
                .where(ActivityEvent.id == second_id)
                .values(
                    matched_reply_at=to_datetime(1060),
                    matched_reply_key="R-other",
                    response_time_seconds=10,
                )
            )
        return original_execute(statement, *args, **kwargs)

    with patch.object(db, "execute", side_effect=racing_execute):
        message = reply(correlator, setup_agent, "R1", 1100)

    db.refresh(first)
    db.refresh(second)
    assert second.matched_reply_key == "R-other"
    assert second.response_time_seconds == 10
    assert first.matched_reply_key == "R1"
    assert first.response_time_seconds == 100
    assert message.parent_message_key == "M1"


def test_get_activity_events_filters(db, correlator, setup_agent, setup_second_agent):
    day_one = 1_704_880_800  # 2024-01-10 11:00 Belgrade
    day_two = day_one + 86400
    take(correlator, setup_agent, "M1", day_one)
    reply(correlator, setup_agent, "R1", day_one + 60)
    take(correlator, setup_agent, "M2", day_two, thread="T2")
    take(correlator, setup_second_agent, "M3", day_one)

    by_agent = correlator.get_activity_events(agent_id=setup_agent.id)
    assert len(by_agent) == 3

    taken = correlator.get_activity_events(
        agent_id=setup_agent.id, kind=ActivityKind.TICKET_TAKEN
    )
    assert [t.parent_message_key for t in taken] == ["M1", "M2"]

    first_day = correlator.get_activity_events(
        start_date="2024-01-10", end_date="2024-01-10"
    )
    assert {e.parent_message_key for e in first_day} == {"M1", "M3"}
    assert all(e.activity_date == "2024-01-10" for e in first_day)
    assert all(e.shift == "morning" for e in first_day)
