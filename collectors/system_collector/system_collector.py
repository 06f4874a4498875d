import logging
from typing import Dict

import psutil

from statful.collector import Collector

logger = logging.getLogger(__name__)


class SystemCollector(Collector):
    """Collector for host CPU, memory and disk usage."""

    def __init__(self, disk_path: str = '/', cpu_interval: float = 0.1, prefix: str = 'system'):
        self.disk_path = disk_path
        self.cpu_interval = float(cpu_interval)
        self.metric_prefix = prefix

    def collect(self) -> Dict[str, float]:
        """Collect system usage percentages.

        Returns:
            dict: cpu_usage, memory_usage and disk_usage in percent
        """
        try:
            return {
                'cpu_usage': psutil.cpu_percent(interval=self.cpu_interval),
                'memory_usage': psutil.virtual_memory().percent,
                'disk_usage': psutil.disk_usage(self.disk_path).percent,
            }
        except (psutil.Error, OSError) as e:
            logger.error("Error collecting system metrics: %s", str(e))
            raise RuntimeError(f"Error collecting system metrics: {str(e)}")
