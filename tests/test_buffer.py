"""Tests for MetricsBuffer, the buffer behind every flush."""

import logging
import threading

import pytest

from statful.buffer import MetricsBuffer
from statful.errors import FlushError

from tests.conftest import RecordingSender


def _line(i: int) -> str:
    return f"m,seq={i} 1.000000 1585161000"


# ------------------------------------------------------------------
# Plain metrics
# ------------------------------------------------------------------

class TestPutAndFlush:

    def test_below_flush_size_nothing_sent(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)

        for i in range(4):
            buf.put(_line(i))

        assert sender.call_count == 0
        assert len(buf) == 4

    def test_flush_sends_everything_once(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)

        for i in range(5):
            buf.put(_line(i))
        buf.flush()

        assert sender.batches == [[_line(i) for i in range(5)]]
        assert len(buf) == 0

    def test_flush_when_empty_sends_nothing(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)

        buf.flush()
        buf.put(_line(0))
        buf.flush()
        buf.flush()

        assert sender.call_count == 1

    def test_flush_size_triggers_one_flush(self, sender):
        buf = MetricsBuffer(sender, flush_size=3)

        for i in range(3):
            buf.put(_line(i))
        buf.wait(timeout=5)

        assert sender.batches == [[_line(0), _line(1), _line(2)]]
        assert len(buf) == 0

    def test_records_after_swap_go_to_next_batch(self, sender):
        buf = MetricsBuffer(sender, flush_size=3)

        for i in range(4):
            buf.put(_line(i))
        buf.wait(timeout=5)

        assert sender.batches == [[_line(0), _line(1), _line(2)]]
        assert len(buf) == 1

        buf.flush()
        assert sender.batches[1] == [_line(3)]

    def test_disable_auto_flush(self, sender):
        buf = MetricsBuffer(sender, flush_size=2, disable_auto_flush=True)

        for i in range(5):
            buf.put(_line(i))
        buf.wait(timeout=5)

        assert sender.call_count == 0
        assert len(buf) == 5

    def test_sender_required_unless_dry_run(self):
        with pytest.raises(ValueError):
            MetricsBuffer(None, flush_size=10, dry_run=False)

        MetricsBuffer(None, flush_size=10, dry_run=True)


# ------------------------------------------------------------------
# Aggregated metrics
# ------------------------------------------------------------------

class TestPutAggregated:

    def test_one_call_for_single_leaf(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)

        buf.put_aggregated("m 5.000000 1585161000", "count", 30)
        buf.flush()

        assert sender.batches == []
        assert sender.aggregated == [(["m 5.000000 1585161000"], "count", 30)]

    def test_one_call_per_aggregation_and_frequency(self, sender):
        buf = MetricsBuffer(sender, flush_size=100)

        buf.put_aggregated("a 1.000000 1", "avg", 10)
        buf.put_aggregated("b 1.000000 1", "avg", 10)
        buf.put_aggregated("c 1.000000 1", "avg", 30)
        buf.put_aggregated("d 1.000000 1", "sum", 10)
        buf.flush()

        calls = sorted((agg, freq, tuple(records)) for records, agg, freq in sender.aggregated)
        assert calls == [
            ("avg", 10, ("a 1.000000 1", "b 1.000000 1")),
            ("avg", 30, ("c 1.000000 1",)),
            ("sum", 10, ("d 1.000000 1",)),
        ]

    def test_flush_size_counts_both_buffers(self, sender):
        buf = MetricsBuffer(sender, flush_size=2)

        buf.put(_line(0))
        buf.put_aggregated("agg 1.000000 1", "max", 60)
        buf.wait(timeout=5)

        assert sender.batches == [[_line(0)]]
        assert sender.aggregated == [(["agg 1.000000 1"], "max", 60)]
        assert len(buf) == 0


# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------

class TestFlushErrors:

    def test_no_error_when_every_send_succeeds(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)
        buf.put(_line(0))
        buf.put_aggregated("a 1.000000 1", "avg", 10)

        buf.flush(raise_errors=True)

        assert sender.call_count == 2

    def test_every_failure_reported(self):
        sender = RecordingSender(fail_plain=True, fail_aggregations={"avg"})
        buf = MetricsBuffer(sender, flush_size=10)
        buf.put(_line(0))
        buf.put_aggregated("a 1.000000 1", "avg", 10)
        buf.put_aggregated("b 1.000000 1", "sum", 10)

        with pytest.raises(FlushError) as exc_info:
            buf.flush(raise_errors=True)

        assert len(exc_info.value.errors) == 2
        message = str(exc_info.value)
        assert message.startswith("flush errors: ")
        assert "plain batch rejected" in message
        assert "avg batch rejected" in message
        assert "; " in message

    def test_failure_does_not_stop_other_batches(self):
        sender = RecordingSender(fail_aggregations={"avg"})
        buf = MetricsBuffer(sender, flush_size=10)
        buf.put(_line(0))
        buf.put_aggregated("a 1.000000 1", "avg", 10)
        buf.put_aggregated("b 1.000000 1", "sum", 10)

        with pytest.raises(FlushError):
            buf.flush(raise_errors=True)

        assert sender.batches == [[_line(0)]]
        assert sender.aggregated == [(["b 1.000000 1"], "sum", 10)]
        assert len(buf) == 0

    def test_plain_flush_only_logs(self, caplog):
        buf = MetricsBuffer(RecordingSender(fail_plain=True), flush_size=10)
        buf.put(_line(0))

        with caplog.at_level(logging.ERROR):
            buf.flush()

        assert "Failed to send metrics" in caplog.text

    def test_unexpected_exceptions_are_collected(self, sender):
        def explode(payload):
            raise RuntimeError("boom")

        sender.send = explode
        buf = MetricsBuffer(sender, flush_size=10)
        buf.put(_line(0))

        with pytest.raises(FlushError, match="boom"):
            buf.flush(raise_errors=True)

    def test_failed_data_is_not_retried(self):
        sender = RecordingSender(fail_plain=True)
        buf = MetricsBuffer(sender, flush_size=10)
        buf.put(_line(0))
        buf.flush()

        sender.fail_plain = False
        buf.flush()

        assert sender.batches == []

    def test_explicit_logger_used(self):
        custom = logging.getLogger("tests.custom")
        buf = MetricsBuffer(RecordingSender(fail_plain=True), flush_size=10, logger=custom)
        assert buf.logger is custom


# ------------------------------------------------------------------
# Dry run
# ------------------------------------------------------------------

class TestDryRun:

    def test_dry_run_logs_instead_of_sending(self, caplog):
        sender = RecordingSender(fail_plain=True, fail_aggregations={"avg"})
        buf = MetricsBuffer(sender, flush_size=10, dry_run=True)
        buf.put("test.demo.metric,client=python 100.000000 0")
        buf.put_aggregated("a 1.000000 1", "avg", 10)

        with caplog.at_level(logging.INFO):
            buf.flush(raise_errors=True)

        assert sender.call_count == 0
        assert "Dry metric: test.demo.metric,client=python 100.000000 0" in caplog.text
        assert "Dry aggregated metric:" in caplog.text


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------

class TestConcurrentProducers:

    def test_no_record_lost_or_duplicated(self, sender):
        buf = MetricsBuffer(sender, flush_size=10)

        def produce(worker: int):
            for i in range(20):
                buf.put(f"potatoes,worker={worker} {i}.000000 1585161000")

        threads = [threading.Thread(target=produce, args=(w,)) for w in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        buf.wait(timeout=5)
        buf.flush()

        records = sender.plain_records
        assert len(records) == 200
        assert len(set(records)) == 200
        # Each drain happens exactly when the count reaches flush_size
        assert len(sender.batches) == 20
        assert all(len(batch) == 10 for batch in sender.batches)

    def test_explicit_flush_races_with_producers(self, sender):
        buf = MetricsBuffer(sender, flush_size=7)
        stop = threading.Event()

        def flusher():
            while not stop.is_set():
                buf.flush()

        def produce(worker: int):
            for i in range(50):
                buf.put(f"m,worker={worker} {i}.000000 1")
                buf.put_aggregated(f"a,worker={worker} {i}.000000 1", "sum", 10)

        flush_thread = threading.Thread(target=flusher)
        flush_thread.start()
        producers = [threading.Thread(target=produce, args=(w,)) for w in range(4)]
        for t in producers:
            t.start()
        for t in producers:
            t.join()
        stop.set()
        flush_thread.join()

        buf.wait(timeout=5)
        buf.flush()

        aggregated = [record for records, _, _ in sender.aggregated for record in records]
        assert len(sender.plain_records) == 200
        assert len(set(sender.plain_records)) == 200
        assert len(aggregated) == 200
        assert len(set(aggregated)) == 200
