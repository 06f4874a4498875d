"""Tests for events and the event buffer."""

import json
import logging
import uuid

import pytest

from statful.errors import FlushError
from statful.event_buffer import EventBuffer
from statful.events import Amount, Attribute, Event, events_to_json, new_event
from statful.sender import UdpSender

from tests.conftest import RecordingSender


def _event(i=0):
    return new_event(
        user_id=f"user-{i}",
        game_id="game-1",
        operator_id="operator-1",
        aggregator_id="aggregator-1",
        event_type="bet",
        amount=100 * i,
        currency="EUR",
        attributes=[Attribute("table", "7")],
        timestamp=1585161000,
        event_id=f"event-{i}",
    )


class TestEvent:

    def test_to_dict_uses_api_keys(self):
        assert _event(1).to_dict() == {
            "eventId": "event-1",
            "userId": "user-1",
            "extUserId": "",
            "gameId": "game-1",
            "operatorId": "operator-1",
            "aggregatorId": "aggregator-1",
            "publisherId": "",
            "eventType": "bet",
            "amount": {"value": 100, "currency": "EUR"},
            "variableAttributes": [{"attribute": "table", "value": "7"}],
            "timestamp": 1585161000,
        }

    def test_new_event_generates_id(self):
        event = new_event("u", "g", "o", "a", "win", 1, "USD")

        assert str(uuid.UUID(event.event_id)) == event.event_id
        assert event.amount == Amount(1, "USD")
        assert event.variable_attributes == []

    def test_ids_are_unique(self):
        assert Event().event_id != Event().event_id

    def test_events_to_json(self):
        decoded = json.loads(events_to_json([_event(1), _event(2)]))

        assert [e["eventId"] for e in decoded] == ["event-1", "event-2"]
        assert json.loads(_event(1).to_json()) == decoded[0]


class TestEventBuffer:

    def test_flush_sends_one_array(self, sender):
        buf = EventBuffer(sender, flush_size=10)
        for i in range(3):
            buf.put(_event(i))

        assert len(buf) == 3
        buf.flush()

        assert len(sender.events) == 1
        assert [e["userId"] for e in sender.events[0]] == ["user-0", "user-1", "user-2"]
        assert len(buf) == 0

    def test_empty_flush_sends_nothing(self, sender):
        EventBuffer(sender, flush_size=10).flush()

        assert sender.events == []

    def test_flush_size_triggers_background_flush(self, sender):
        buf = EventBuffer(sender, flush_size=2)
        buf.put(_event(0))
        buf.put(_event(1))
        buf.wait(timeout=5)

        assert len(sender.events) == 1
        assert len(sender.events[0]) == 2

    def test_auto_flush_disabled(self, sender):
        buf = EventBuffer(sender, flush_size=1, disable_auto_flush=True)
        buf.put(_event(0))
        buf.put(_event(1))
        buf.wait(timeout=5)

        assert sender.events == []
        assert len(buf) == 2

    def test_dry_run(self, sender, caplog):
        buf = EventBuffer(sender, flush_size=10, dry_run=True)
        buf.put(_event(0))

        with caplog.at_level(logging.INFO):
            buf.flush()

        assert "Dry event:" in caplog.text
        assert "event-0" in caplog.text
        assert sender.events == []

    def test_send_failure(self, caplog):
        buf = EventBuffer(RecordingSender(fail_events=True), flush_size=10)
        buf.put(_event(0))

        with caplog.at_level(logging.ERROR):
            buf.flush()
        assert "Failed to send 1 events: events rejected" in caplog.text

        buf.put(_event(1))
        with pytest.raises(FlushError, match="events rejected"):
            buf.flush(raise_errors=True)

    def test_udp_cannot_send_events(self):
        buf = EventBuffer(UdpSender("127.0.0.1:2013"), flush_size=10)
        buf.put(_event(0))

        with pytest.raises(FlushError, match="UNSUPPORTED_OPERATION"):
            buf.flush(raise_errors=True)

    def test_sender_required(self):
        with pytest.raises(ValueError):
            EventBuffer(None, dry_run=False)
