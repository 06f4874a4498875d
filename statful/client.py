"""
Statful client: typed helpers on top of the metrics and event buffers.

Usage:
    client = Statful(sender=HttpSender(token='...'), tags={'app': 'api'})
    client.counter('requests', 1, tags={'status': '200'})
    client.timer('response_time', 12.5)
    client.close()
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

import pytz

from . import config
from .aggregations import (
    COUNTER_AGGREGATIONS,
    FREQ_10S,
    GAUGE_AGGREGATIONS,
    TIMER_AGGREGATIONS,
)
from .buffer import MetricsBuffer
from .event_buffer import EventBuffer
from .events import Event
from .metric import metric_to_string
from .scheduler import FlushInterval
from .sender import Sender, create_sender
from .tags import Tags, merge_tags, parse_tags

logger = logging.getLogger(__name__)


def now() -> int:
    """Current unix timestamp in seconds (UTC)."""
    return int(datetime.now(pytz.UTC).timestamp())


class Statful:
    """Client for sending metrics and events to Statful."""

    def __init__(
        self,
        sender: Optional[Sender] = None,
        dry_run: Optional[bool] = None,
        flush_size: Optional[int] = None,
        flush_interval: Optional[float] = None,
        disable_auto_flush: Optional[bool] = None,
        tags: Optional[Tags] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            sender (Sender, optional): Transport. Defaults to create_sender() from config.
            dry_run (bool, optional): Log instead of sending. Defaults to config.DRY_RUN.
            flush_size (int, optional): Records that trigger a flush. Defaults to config.FLUSH_SIZE.
            flush_interval (float, optional): Seconds between periodic flushes, 0 disables.
                Defaults to config.FLUSH_INTERVAL.
            disable_auto_flush (bool, optional): Don't flush on flush_size. Defaults to config.DISABLE_AUTO_FLUSH.
            tags (dict, optional): Global tags added to every metric. Defaults to config.TAGS.
            logger (logging.Logger, optional): Logger for dry runs and send failures.
        """
        self.dry_run = dry_run if dry_run is not None else config.DRY_RUN
        self.sender = sender if sender is not None else create_sender()
        self.global_tags = dict(tags) if tags is not None else parse_tags(config.TAGS)
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        self.buffer = MetricsBuffer(
            sender=self.sender,
            flush_size=flush_size,
            dry_run=self.dry_run,
            disable_auto_flush=disable_auto_flush,
            logger=self.logger
        )
        self.event_buffer = EventBuffer(
            sender=self.sender,
            flush_size=flush_size,
            dry_run=self.dry_run,
            disable_auto_flush=disable_auto_flush,
            logger=self.logger
        )

        self.flush_interval: Optional[FlushInterval] = None
        interval = flush_interval if flush_interval is not None else config.FLUSH_INTERVAL
        if interval > 0:
            self.start_flush_interval(interval)

    def start_flush_interval(self, interval: float) -> None:
        """
        Start flushing metrics and events every `interval` seconds.

        Does nothing but log if a flush interval is already running.

        Args:
            interval (float): Seconds between flushes, at least MIN_FLUSH_INTERVAL
        """
        if self.flush_interval is not None and self.flush_interval.running:
            logger.warning("Flush interval already running")
            return

        self.flush_interval = FlushInterval(self._flush_all, interval)
        self.flush_interval.start()

    def stop_flush_interval(self) -> None:
        """Stop the periodic flush. Safe to call when it is not running."""
        if self.flush_interval is not None:
            self.flush_interval.stop()

    def counter(
        self,
        name: str,
        value: float,
        tags: Optional[Tags] = None,
        aggregations: Optional[Iterable[str]] = None,
        frequency: int = FREQ_10S
    ) -> None:
        """Send a counter, aggregated as count and sum unless overridden."""
        self.put(
            name,
            value,
            tags,
            aggregations=COUNTER_AGGREGATIONS if aggregations is None else aggregations,
            frequency=frequency
        )

    def counter_aggregated(
        self, name: str, value: float, tags: Optional[Tags], aggregation: str, frequency: int
    ) -> None:
        self.put_aggregated(name, value, tags, aggregation=aggregation, frequency=frequency)

    def gauge(
        self,
        name: str,
        value: float,
        tags: Optional[Tags] = None,
        aggregations: Optional[Iterable[str]] = None,
        frequency: int = FREQ_10S
    ) -> None:
        """Send a gauge, aggregated as last unless overridden."""
        self.put(
            name,
            value,
            tags,
            aggregations=GAUGE_AGGREGATIONS if aggregations is None else aggregations,
            frequency=frequency
        )

    def gauge_aggregated(
        self, name: str, value: float, tags: Optional[Tags], aggregation: str, frequency: int
    ) -> None:
        self.put_aggregated(name, value, tags, aggregation=aggregation, frequency=frequency)

    def timer(
        self,
        name: str,
        value: float,
        tags: Optional[Tags] = None,
        aggregations: Optional[Iterable[str]] = None,
        frequency: int = FREQ_10S
    ) -> None:
        """Send a timer, aggregated as avg, count and p90 unless overridden."""
        self.put(
            name,
            value,
            tags,
            aggregations=TIMER_AGGREGATIONS if aggregations is None else aggregations,
            frequency=frequency
        )

    def timer_aggregated(
        self, name: str, value: float, tags: Optional[Tags], aggregation: str, frequency: int
    ) -> None:
        self.put_aggregated(name, value, tags, aggregation=aggregation, frequency=frequency)

    def put(
        self,
        name: str,
        value: float,
        tags: Optional[Tags] = None,
        timestamp: Optional[int] = None,
        aggregations: Optional[Iterable[str]] = None,
        frequency: int = FREQ_10S,
        user: Optional[str] = None
    ) -> None:
        """
        Buffer a metric to be aggregated by Statful.

        Args:
            name (str): Metric name, sent as is
            value (float): Metric value
            tags (dict, optional): Tags, merged over the global tags
            timestamp (int, optional): Unix timestamp. Defaults to now.
            aggregations (iterable, optional): Aggregations Statful should compute
            frequency (int): Aggregation frequency in seconds
            user (str, optional): User attached to the value
        """
        record = metric_to_string(
            name,
            value,
            merge_tags(tags, self.global_tags),
            timestamp if timestamp is not None else now(),
            aggregations,
            frequency,
            user=user
        )
        self.buffer.put(record)

    def put_aggregated(
        self,
        name: str,
        value: float,
        tags: Optional[Tags] = None,
        *,
        aggregation: str,
        frequency: int = FREQ_10S,
        timestamp: Optional[int] = None,
        user: Optional[str] = None
    ) -> None:
        """
        Buffer a value that was already aggregated by the caller.

        Args:
            name (str): Metric name, sent as is
            value (float): The aggregated value
            tags (dict, optional): Tags, merged over the global tags
            aggregation (str): The aggregation the value represents, required
            frequency (int): The aggregation frequency in seconds
            timestamp (int, optional): Unix timestamp. Defaults to now.
            user (str, optional): User attached to the value
        """
        record = metric_to_string(
            name,
            value,
            merge_tags(tags, self.global_tags),
            timestamp if timestamp is not None else now(),
            user=user
        )
        self.buffer.put_aggregated(record, aggregation, frequency)

    def event(self, event: Event) -> None:
        self.event_buffer.put(event)

    def flush(self, raise_errors: bool = False) -> None:
        """
        Send all buffered metrics now.

        Args:
            raise_errors (bool): Raise a FlushError if any batch failed

        Raises:
            FlushError: If raise_errors is set and at least one send failed
        """
        self.buffer.flush(raise_errors=raise_errors)

    def flush_events(self, raise_errors: bool = False) -> None:
        self.event_buffer.flush(raise_errors=raise_errors)

    def get_buffered_count(self) -> int:
        """
        Get the number of buffered metrics and events.

        Returns:
            int: Number of records waiting to be flushed
        """
        return len(self.buffer) + len(self.event_buffer)

    def close(self) -> None:
        """
        Stop the flush interval, flush everything and release the sender.

        Background flushes started by the flush size are waited for.
        """
        self.stop_flush_interval()
        self._flush_all()
        self.buffer.wait()
        self.event_buffer.wait()
        self.sender.close()

    def _flush_all(self) -> None:
        self.buffer.flush()
        self.event_buffer.flush()


# Default client, created on first use so importing never opens a connection
default_client: Optional[Statful] = None


def ensure_default_client() -> Statful:
    """
    Get the default client, creating it from config if needed.

    Returns:
        Statful: The default client
    """
    global default_client
    if default_client is None:
        default_client = Statful()
    return default_client


def counter(name: str, value: float, tags: Optional[Tags] = None) -> None:
    """Send a counter using the default client."""
    ensure_default_client().counter(name, value, tags)


def gauge(name: str, value: float, tags: Optional[Tags] = None) -> None:
    """Send a gauge using the default client."""
    ensure_default_client().gauge(name, value, tags)


def timer(name: str, value: float, tags: Optional[Tags] = None) -> None:
    """Send a timer using the default client."""
    ensure_default_client().timer(name, value, tags)


def put(name: str, value: float, tags: Optional[Tags] = None, **kwargs) -> None:
    """
    Buffer a metric using the default client.

    Args:
        name (str): Metric name
        value (float): Metric value
        tags (dict, optional): Tags
        **kwargs: timestamp, aggregations, frequency or user, see Statful.put
    """
    ensure_default_client().put(name, value, tags, **kwargs)


def event(event: Event) -> None:
    """Buffer an event using the default client."""
    ensure_default_client().event(event)


def flush(raise_errors: bool = False) -> None:
    """Flush the default client's metrics."""
    ensure_default_client().flush(raise_errors=raise_errors)


def close() -> None:
    """Close the default client and forget it."""
    global default_client
    if default_client is not None:
        default_client.close()
        default_client = None
