"""
Buffer for discrete events.

Uses the same drain protocol as MetricsBuffer: the lock only covers the
append and the swap, sending happens outside it.
"""
import logging
import threading
from typing import List, Optional

from . import config
from .errors import FlushError
from .events import Event, events_to_json
from .sender import Sender

logger = logging.getLogger(__name__)


class EventBuffer:
    """Holds events until they are flushed as one JSON array."""

    def __init__(
        self,
        sender: Optional[Sender] = None,
        flush_size: Optional[int] = None,
        dry_run: Optional[bool] = None,
        disable_auto_flush: Optional[bool] = None,
        logger: Optional[logging.Logger] = None
    ):
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
        self._buffer: List[Event] = []
        self._threads_lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    def put(self, event: Event) -> None:
        """
        Add an event, flushing in the background once flush_size is reached.

        Args:
            event (Event): The event to buffer
        """
        events = None
        with self._lock:
            self._buffer.append(event)
            if not self.disable_auto_flush and len(self._buffer) >= self.flush_size:
                events = self._drain()

        if events:
            thread = threading.Thread(
                target=self._flush_events,
                args=(events,),
                name="statful-event-flush",
                daemon=True
            )
            with self._threads_lock:
                self._threads = [t for t in self._threads if t.is_alive()]
                self._threads.append(thread)
                thread.start()

    def flush(self, raise_errors: bool = False) -> None:
        """
        Send all buffered events and wait for the send to finish.

        Args:
            raise_errors (bool): Raise a FlushError if the send failed

        Raises:
            FlushError: If raise_errors is set and the send failed
        """
        with self._lock:
            events = self._drain()

        flush_error = self._flush_events(events)
        if raise_errors and flush_error is not None:
            raise flush_error

    def wait(self, timeout: Optional[float] = None) -> None:
        """Wait for background flushes started by put() to finish."""
        with self._threads_lock:
            threads, self._threads = self._threads, []
        for thread in threads:
            thread.join(timeout)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def _drain(self) -> List[Event]:
        # Must be called while holding _lock.
        events = self._buffer
        self._buffer = []
        return events

    def _flush_events(self, events: List[Event]) -> Optional[FlushError]:
        if not events:
            return None

        if self.dry_run:
            for event in events:
                self.logger.info("Dry event: %s", event.to_json())
            return None

        try:
            self.sender.send_events(events_to_json(events).encode('utf-8'))
        except Exception as e:
            self.logger.error("Failed to send %d events: %s", len(events), str(e))
            return FlushError([e])

        logger.debug("Sent %d events", len(events))
        return None
