"""
Background thread that flushes buffers on a fixed interval.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MIN_FLUSH_INTERVAL = 0.05  # seconds


class FlushInterval:
    """
    Calls a flush function every `interval` seconds until stopped.

    start() while running and stop() while stopped only log and return.
    stop() waits for a flush that is already running to complete, so it
    blocks for as long as the transport takes to return.
    """

    def __init__(self, flush: Callable[[], None], interval: float):
        """
        Initialize the flush interval.

        Args:
            flush (callable): Called on every tick; exceptions are logged
            interval (float): Seconds between ticks, clamped to MIN_FLUSH_INTERVAL
        """
        self.flush = flush
        self.interval = max(float(interval), MIN_FLUSH_INTERVAL)
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self.thread is not None

    def start(self) -> None:
        """Start the flush thread."""
        with self._state_lock:
            if self.running:
                logger.warning("Flush interval already running")
                return

            stop_event = self._stop_event = threading.Event()

            def flush_loop():
                logger.debug("Starting flush loop every %.3f seconds", self.interval)
                while not stop_event.wait(self.interval):
                    try:
                        self.flush()
                    except Exception as e:
                        logger.error("Error in flush loop: %s", str(e))

            self.thread = threading.Thread(target=flush_loop, name="statful-flush-interval", daemon=True)
            self.thread.start()

        logger.info("Flush interval started (%.3f seconds)", self.interval)

    def stop(self) -> None:
        """Stop the flush thread, letting an in-flight flush complete."""
        with self._state_lock:
            if not self.running:
                logger.debug("Flush interval not running")
                return

            logger.info("Stopping flush interval")
            self._stop_event.set()
            thread, self.thread = self.thread, None

        if thread is not threading.current_thread():
            thread.join()
