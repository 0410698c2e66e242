"""
Cancelable periodic task.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs a task every ``interval_seconds`` on a background thread."""

    def __init__(self, task: Callable[[], None], interval_seconds: float = 300):
        """
        Initialize scheduler.

        Args:
            task: Callable run on each tick
            interval_seconds: Delay between ticks
        """
        self.task = task
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking; a no-op if already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="budgetwatch-sync", daemon=True
        )
        self._thread.start()
        logger.info(f"Periodic sync started (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel future ticks and wait for the thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Periodic sync stopped")

    def _run(self) -> None:
        # First tick happens one interval after start
        while not self._stop.wait(self.interval_seconds):
            try:
                self.task()
            except Exception as e:
                logger.error(f"Periodic sync failed: {e}")
