"""
Transports that deliver serialized batches to Statful.

Every sender takes an already joined payload (bytes) and either delivers it
or raises SenderError. Senders hold no buffers of their own.
"""
import gzip
import logging
import queue
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import requests
from retrying import retry

from . import config
from .errors import SenderError, UnsupportedOperationError

logger = logging.getLogger(__name__)

EP_METRICS = '/tel/v2.0/metrics'
EP_METRICS_AGGREGATED = '/tel/v2.0/aggregation/:agg/frequency/:freq'

TEXT_ENCODING = 'text/plain'
JSON_ENCODING = 'application/json'


class Sender(ABC):
    """
    Abstract base class for all transports.

    Subclasses must implement:
    - send(): Deliver a batch of plain metric lines
    - send_aggregated(): Deliver a batch for one aggregation and frequency
    """

    @abstractmethod
    def send(self, payload: bytes) -> None:
        """
        Send a newline separated batch of metric lines.

        Args:
            payload (bytes): The batch

        Raises:
            SenderError: If the batch could not be delivered
        """
        pass

    @abstractmethod
    def send_aggregated(self, payload: bytes, aggregation: str, frequency: int) -> None:
        """
        Send a batch of already aggregated metric lines.

        Args:
            payload (bytes): The batch
            aggregation (str): Aggregation every line in the batch belongs to
            frequency (int): Aggregation frequency in seconds

        Raises:
            SenderError: If the batch could not be delivered
        """
        pass

    def send_events(self, payload: bytes) -> None:
        """
        Send a JSON array of events.

        Raises:
            UnsupportedOperationError: Unless the sender overrides this
        """
        raise UnsupportedOperationError()

    def close(self) -> None:
        """Release any resources held by the sender."""


def _retry_if_connection_error(exception: Exception) -> bool:
    """Return True if we should retry (in this case when it's a connection error)"""
    return isinstance(exception, (requests.ConnectionError, requests.Timeout))


class HttpSender(Sender):
    """Sends batches to the Statful HTTP API."""

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        base_path: Optional[str] = None,
        no_compression: Optional[bool] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        request_timeout: Optional[float] = None
    ):
        """
        Initialize the HTTP sender.

        Args:
            url (str, optional): API host. Defaults to config.SERVER_URL.
            token (str, optional): API token. Defaults to config.API_TOKEN.
            base_path (str, optional): Prefix for every endpoint. Defaults to config.BASE_PATH.
            no_compression (bool, optional): Send bodies uncompressed. Defaults to config.NO_COMPRESSION.
            max_retries (int, optional): Attempts on connection errors. Defaults to config.MAX_RETRIES.
            retry_delay (float, optional): Seconds between attempts. Defaults to config.RETRY_DELAY.
            request_timeout (float, optional): Request timeout in seconds. Defaults to config.REQUEST_TIMEOUT.
        """
        self.url = (url if url is not None else config.SERVER_URL).rstrip('/')
        self.token = token if token is not None else config.API_TOKEN
        self.base_path = base_path if base_path is not None else config.BASE_PATH
        self.no_compression = no_compression if no_compression is not None else config.NO_COMPRESSION
        self.max_retries = max_retries if max_retries is not None else config.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else config.RETRY_DELAY
        self.request_timeout = request_timeout if request_timeout is not None else config.REQUEST_TIMEOUT

    def send(self, payload: bytes) -> None:
        self._put(self.url + self.base_path + EP_METRICS, payload)

    def send_aggregated(self, payload: bytes, aggregation: str, frequency: int) -> None:
        path = EP_METRICS_AGGREGATED.replace(':agg', str(aggregation)).replace(':freq', str(int(frequency)))
        self._put(self.url + self.base_path + path, payload)

    def send_events(self, payload: bytes) -> None:
        self._put(self.url + self.base_path, payload, content_type=JSON_ENCODING)

    def _put(self, url: str, payload: bytes, content_type: str = TEXT_ENCODING) -> None:
        """
        PUT a payload, retrying on connection errors.

        Args:
            url (str): Full endpoint URL
            payload (bytes): Request body before compression
            content_type (str): Content type of the uncompressed body

        Raises:
            SenderError: On request failure or a status code >= 400
        """
        headers = {
            'M-Api-Token': self.token,
            'Content-Type': content_type
        }

        if not self.no_compression:
            payload = gzip.compress(payload)
            headers['Content-Encoding'] = 'gzip'

        @retry(
            retry_on_exception=_retry_if_connection_error,
            stop_max_attempt_number=max(1, self.max_retries),
            wait_fixed=int(self.retry_delay * 1000)  # milliseconds
        )
        def _send_request():
            return requests.request(
                'put',
                url,
                data=payload,
                headers=headers,
                timeout=self.request_timeout
            )

        try:
            response = _send_request()
        except requests.exceptions.RequestException as e:
            raise SenderError(f"Http request to {url} failed: {str(e)}") from e

        if response.status_code >= 400:
            raise SenderError(f"Http request failed with {response.status_code} {response.text}")

        logger.debug("Sent %d bytes to %s", len(payload), url)


def _parse_address(address: str) -> Tuple[str, int]:
    host, _, port = address.rpartition(':')
    if not host or not port.isdigit():
        raise ValueError(f"Invalid UDP address: {address}")
    return host, int(port)


def split_datagrams(payload: bytes, max_size: int) -> Iterator[bytes]:
    """
    Split a newline separated batch into datagrams of at most max_size bytes.

    Lines are never split; a single line longer than max_size goes out alone.

    Args:
        payload (bytes): The batch
        max_size (int): Largest datagram to produce

    Yields:
        bytes: Newline joined groups of whole lines
    """
    chunk: List[bytes] = []
    size = 0
    for line in payload.split(b'\n'):
        needed = len(line) + (1 if chunk else 0)
        if chunk and size + needed > max_size:
            yield b'\n'.join(chunk)
            chunk, size, needed = [], 0, len(line)
        chunk.append(line)
        size += needed
    if chunk:
        yield b'\n'.join(chunk)


class UdpSender(Sender):
    """Sends plain metric batches as UDP datagrams."""

    def __init__(
        self,
        address: Optional[str] = None,
        timeout: Optional[float] = None,
        max_datagram_size: Optional[int] = None
    ):
        """
        Initialize the UDP sender.

        Args:
            address (str, optional): "host:port" to send to. Defaults to config.UDP_ADDRESS.
            timeout (float, optional): Socket timeout in seconds. Defaults to config.UDP_TIMEOUT.
            max_datagram_size (int, optional): Largest datagram in bytes; bigger batches are
                split on line boundaries. Defaults to config.UDP_MAX_DATAGRAM_SIZE.

        Raises:
            ValueError: If the address is not "host:port"
        """
        self.address = address if address is not None else config.UDP_ADDRESS
        self.timeout = timeout if timeout is not None else config.UDP_TIMEOUT
        self.max_datagram_size = (
            max_datagram_size if max_datagram_size is not None else config.UDP_MAX_DATAGRAM_SIZE
        )
        self._target = _parse_address(self.address)

    def send(self, payload: bytes) -> None:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(self.timeout)
                for datagram in split_datagrams(payload, self.max_datagram_size):
                    sock.sendto(datagram, self._target)
        except OSError as e:
            raise SenderError(f"UDP send to {self.address} failed: {str(e)}") from e

    def send_aggregated(self, payload: bytes, aggregation: str, frequency: int) -> None:
        raise UnsupportedOperationError()


@dataclass(frozen=True)
class SentBatch:
    """One batch handed over by a ChannelSender."""
    kind: str
    payload: bytes
    aggregation: Optional[str] = None
    frequency: Optional[int] = None


class ChannelSender(Sender):
    """Hands batches over to an in-process queue instead of the network."""

    def __init__(self, channel: Optional[queue.Queue] = None):
        self.channel = channel if channel is not None else queue.Queue()

    def send(self, payload: bytes) -> None:
        self.channel.put(SentBatch('metrics', payload))

    def send_aggregated(self, payload: bytes, aggregation: str, frequency: int) -> None:
        self.channel.put(SentBatch('aggregated', payload, aggregation, frequency))

    def send_events(self, payload: bytes) -> None:
        self.channel.put(SentBatch('events', payload))


def create_sender(transport: Optional[str] = None, **kwargs) -> Sender:
    """
    Build a sender for the configured transport.

    Args:
        transport (str, optional): 'http' or 'udp'. Defaults to config.TRANSPORT.
        **kwargs: Passed to the sender constructor

    Returns:
        Sender: The new sender

    Raises:
        ValueError: If the transport is unknown
    """
    transport = (transport or config.TRANSPORT).lower()
    if transport == 'http':
        return HttpSender(**kwargs)
    elif transport == 'udp':
        return UdpSender(**kwargs)
    raise ValueError(f"Unknown transport: {transport}")
