"""Shared fixtures for the Statful client tests."""

import json
import threading

import pytest

from statful.errors import SenderError
from statful.sender import Sender


class RecordingSender(Sender):
    """Sender that keeps every batch in memory and can be told to fail."""

    def __init__(self, fail_plain=False, fail_aggregations=(), fail_events=False):
        self.fail_plain = fail_plain
        self.fail_aggregations = set(fail_aggregations)
        self.fail_events = fail_events
        self.lock = threading.Lock()
        self.batches: list[list[str]] = []
        self.aggregated: list[tuple[list[str], str, int]] = []
        self.events: list[list[dict]] = []
        self.closed = False

    def send(self, payload):
        if self.fail_plain:
            raise SenderError("plain batch rejected")
        with self.lock:
            self.batches.append(payload.decode("utf-8").split("\n"))

    def send_aggregated(self, payload, aggregation, frequency):
        if aggregation in self.fail_aggregations:
            raise SenderError(f"{aggregation} batch rejected")
        with self.lock:
            self.aggregated.append((payload.decode("utf-8").split("\n"), aggregation, frequency))

    def send_events(self, payload):
        if self.fail_events:
            raise SenderError("events rejected")
        with self.lock:
            self.events.append(json.loads(payload.decode("utf-8")))

    def close(self):
        self.closed = True

    @property
    def plain_records(self) -> list[str]:
        with self.lock:
            return [record for batch in self.batches for record in batch]

    @property
    def call_count(self) -> int:
        with self.lock:
            return len(self.batches) + len(self.aggregated) + len(self.events)


@pytest.fixture
def sender():
    return RecordingSender()
