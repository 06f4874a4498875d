"""
Statful client for buffering metrics and events and shipping them in batches.
"""
from .aggregations import (
    AGG_AVG, AGG_COUNT, AGG_FIRST, AGG_LAST, AGG_MAX, AGG_MIN,
    AGG_P90, AGG_P95, AGG_P99, AGG_SUM,
    FREQ_10S, FREQ_30S, FREQ_60S, FREQ_120S, FREQ_180S, FREQ_300S,
)
from .buffer import MetricsBuffer
from .client import (
    Statful,
    close,
    counter,
    ensure_default_client,
    event,
    flush,
    gauge,
    put,
    timer,
)
from .collector import Collector
from .errors import FlushError, SenderError, UnsupportedOperationError
from .event_buffer import EventBuffer
from .events import Amount, Attribute, Event, new_event
from .metric import metric_to_string
from .scheduler import MIN_FLUSH_INTERVAL, FlushInterval
from .sender import ChannelSender, HttpSender, Sender, SentBatch, UdpSender, create_sender

__all__ = [
    'Statful',
    'MetricsBuffer',
    'EventBuffer',
    'FlushInterval',
    'MIN_FLUSH_INTERVAL',
    'Collector',
    'Sender',
    'HttpSender',
    'UdpSender',
    'ChannelSender',
    'SentBatch',
    'create_sender',
    'Event',
    'Amount',
    'Attribute',
    'new_event',
    'FlushError',
    'SenderError',
    'UnsupportedOperationError',
    'metric_to_string',
    'ensure_default_client',
    'counter',
    'gauge',
    'timer',
    'put',
    'event',
    'flush',
    'close',
    'AGG_AVG', 'AGG_COUNT', 'AGG_FIRST', 'AGG_LAST', 'AGG_MAX', 'AGG_MIN',
    'AGG_P90', 'AGG_P95', 'AGG_P99', 'AGG_SUM',
    'FREQ_10S', 'FREQ_30S', 'FREQ_60S', 'FREQ_120S', 'FREQ_180S', 'FREQ_300S',
]
