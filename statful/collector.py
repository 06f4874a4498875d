"""
Base collector class for sampling values on an interval and sending them as gauges.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .tags import Tags

logger = logging.getLogger(__name__)


class Collector(ABC):
    """
    Abstract base class for all metric collectors.

    All collectors should inherit from this class and implement:
    - collect(): Sample the current values, keyed by metric name
    """

    @abstractmethod
    def collect(self) -> Dict[str, float]:
        """
        Collect metrics.

        Returns:
            dict: Metric name to current value
        """
        pass

    @property
    def name(self) -> str:
        """
        Get the name of the collector.

        Returns:
            str: The name of the collector (class name by default)
        """
        return self.__class__.__name__

    @property
    def metric_prefix(self) -> str:
        """
        Get the prefix prepended to every metric name.
        If a custom prefix was set, use that, otherwise no prefix.

        Returns:
            str: The prefix, without trailing dot
        """
        return getattr(self, '_metric_prefix', '')

    @metric_prefix.setter
    def metric_prefix(self, value: str) -> None:
        self._metric_prefix = value

    def safe_collect(self) -> Optional[Dict[str, float]]:
        """
        Safely collect metrics, catching any exceptions.

        Returns:
            dict: The collected metrics, or None if collection failed
        """
        try:
            return self.collect()
        except Exception as e:
            logger.error("Error collecting metrics from %s: %s", self.name, str(e))
            return None

    def collect_and_send(self, client, tags: Optional[Tags] = None) -> Optional[Dict[str, float]]:
        """
        Collect metrics and buffer each one as a gauge on the client.

        Args:
            client (Statful): The client to buffer gauges on
            tags (dict, optional): Extra tags for every gauge

        Returns:
            dict: Collected metrics, or None if collection failed
        """
        metrics = self.safe_collect()
        if metrics is None:
            return None

        gauge_tags = dict(tags or {})
        gauge_tags.setdefault('collector', self.name)

        for metric_name, value in metrics.items():
            full_name = f"{self.metric_prefix}.{metric_name}" if self.metric_prefix else metric_name
            client.gauge(full_name, value, gauge_tags)

        logger.debug("%s buffered %d gauges", self.name, len(metrics))
        return metrics
