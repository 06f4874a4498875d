"""
Buffer that accumulates formatted metric lines and flushes them in batches.

Thread Safety:
    All producers share one lock. The lock only ever covers appending a
    line and, when the flush size is reached, swapping the buffers for new
    empty ones. Sending always happens after the lock is released, on the
    drained buffers, which no producer can reach any more.
"""
import logging
import threading
from typing import Dict, List, Optional, Set, Tuple

from . import config
from .errors import FlushError
from .sender import Sender

logger = logging.getLogger(__name__)

AggregatedBuffer = Dict[str, Dict[int, List[str]]]
Drained = Tuple[Optional[List[str]], Optional[AggregatedBuffer]]


class MetricsBuffer:
    """
    Holds plain and aggregated metric lines until they are flushed.

    Plain lines go out in one batch per flush. Aggregated lines are keyed by
    aggregation then frequency, and every (aggregation, frequency) pair is
    sent as its own batch.

    Flushes happen in three ways:
    - put()/put_aggregated() reaching flush_size: drained under the lock,
      sent on a background thread
    - flush(): drained and sent on the calling thread
    - the flush interval, which calls flush()
    """

    def __init__(
        self,
        sender: Optional[Sender] = None,
        flush_size: Optional[int] = None,
        dry_run: Optional[bool] = None,
        disable_auto_flush: Optional[bool] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the metrics buffer.

        Args:
            sender (Sender, optional): Transport for drained batches. Required unless dry_run.
            flush_size (int, optional): Line count that triggers a flush. Defaults to config.FLUSH_SIZE.
            dry_run (bool, optional): Log batches instead of sending them. Defaults to config.DRY_RUN.
            disable_auto_flush (bool, optional): Never flush on flush_size. Defaults to config.DISABLE_AUTO_FLUSH.
            logger (logging.Logger, optional): Where dry runs and send failures are reported.
        """
        self.sender = sender
        self.flush_size = flush_size if flush_size is not None else config.FLUSH_SIZE
        self.dry_run = dry_run if dry_run is not None else config.DRY_RUN
        self.disable_auto_flush = (
            disable_auto_flush if disable_auto_flush is not None else config.DISABLE_AUTO_FLUSH
        )
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        if self.sender is None and not self.dry_run:
            raise ValueError("A sender is required unless dry_run is enabled")

        self._lock = threading.Lock()
        self._std_buf: List[str] = []
        self._agg_buf: AggregatedBuffer = {}
        self._metric_count = 0

        self._pending_lock = threading.Lock()
        self._pending: Set[threading.Thread] = set()

    def put(self, record: str) -> None:
        """
        Add a plain metric line.

        Args:
            record (str): A formatted metric line
        """
        with self._lock:
            self._std_buf.append(record)
            self._metric_count += 1
            drained = self._drain_if_full()

        if drained is not None:
            self._flush_async(drained)

    def put_aggregated(self, record: str, aggregation: str, frequency: int) -> None:
        """
        Add a metric line that was already aggregated by the caller.

        Args:
            record (str): A formatted metric line, without aggregations
            aggregation (str): The aggregation the value represents
            frequency (int): The aggregation frequency in seconds
        """
        with self._lock:
            frequencies = self._agg_buf.setdefault(aggregation, {})
            frequencies.setdefault(frequency, []).append(record)
            self._metric_count += 1
            drained = self._drain_if_full()

        if drained is not None:
            self._flush_async(drained)

    def flush(self, raise_errors: bool = False) -> None:
        """
        Send everything buffered so far and wait for the sends to finish.

        Args:
            raise_errors (bool): Raise a FlushError if any batch failed,
                instead of only logging it

        Raises:
            FlushError: If raise_errors is set and at least one send failed
        """
        with self._lock:
            drained = self._drain()

        flush_error = self._flush_buffers(*drained)
        if raise_errors and flush_error is not None:
            raise flush_error

    def wait(self, timeout: Optional[float] = None) -> None:
        """
        Wait for background flushes started by put() to finish.

        Args:
            timeout (float, optional): Seconds to wait for each flush
        """
        with self._pending_lock:
            pending = list(self._pending)
        for thread in pending:
            thread.join(timeout)

    def __len__(self) -> int:
        """
        Get the number of buffered metric lines.

        Returns:
            int: Plain plus aggregated lines not yet drained
        """
        with self._lock:
            return self._metric_count

    def _drain_if_full(self) -> Optional[Drained]:
        # Must be called while holding _lock.
        if self.disable_auto_flush or self._metric_count < self.flush_size:
            return None
        return self._drain()

    def _drain(self) -> Drained:
        """
        Detach the current buffers and install empty ones.

        Must be called while holding _lock. The returned buffers are never
        touched by producers again.

        Returns:
            tuple: (plain lines, aggregated lines), both None when empty
        """
        if self._metric_count == 0:
            return None, None

        std_buf, agg_buf = self._std_buf, self._agg_buf
        self._std_buf = []
        self._agg_buf = {}
        self._metric_count = 0
        return std_buf, agg_buf

    def _flush_async(self, drained: Drained) -> None:
        thread = threading.Thread(
            target=self._run_flush,
            args=drained,
            name="statful-flush",
            daemon=True
        )
        logger.debug("Flush size %d reached, flushing in background", self.flush_size)
        with self._pending_lock:
            self._pending.add(thread)
            thread.start()

    def _run_flush(self, std_buf: Optional[List[str]], agg_buf: Optional[AggregatedBuffer]) -> None:
        try:
            self._flush_buffers(std_buf, agg_buf)
        finally:
            with self._pending_lock:
                self._pending.discard(threading.current_thread())

    def _flush_buffers(
        self,
        std_buf: Optional[List[str]],
        agg_buf: Optional[AggregatedBuffer]
    ) -> Optional[FlushError]:
        """
        Send drained buffers, one call per batch.

        Every batch is attempted even if an earlier one failed.

        Returns:
            FlushError: Collected failures, or None if every send succeeded
        """
        flush_error = FlushError()

        if std_buf:
            if self.dry_run:
                for record in std_buf:
                    self.logger.info("Dry metric: %s", record)
            else:
                try:
                    self.sender.send('\n'.join(std_buf).encode('utf-8'))
                except Exception as e:
                    self.logger.error("Failed to send metrics: %s", str(e))
                    flush_error.append(e)

        for aggregation, frequencies in (agg_buf or {}).items():
            for frequency, records in frequencies.items():
                if self.dry_run:
                    self.logger.info("Dry aggregated metric: %s %s %s", records, aggregation, frequency)
                    continue

                try:
                    self.sender.send_aggregated('\n'.join(records).encode('utf-8'), aggregation, frequency)
                except Exception as e:
                    self.logger.error(
                        "Failed to send aggregated metrics (%s, %s): %s", aggregation, frequency, str(e)
                    )
                    flush_error.append(e)

        if flush_error.has_errors():
            return flush_error
        return None
