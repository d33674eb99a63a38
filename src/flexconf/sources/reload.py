"""
Per-source reload timer.

Each source that was configured with a reload interval owns exactly one
``ReloadTimer``. The timer runs the callback on a daemon thread every
``interval`` seconds until ``stop`` is called; the first tick happens one full
interval after ``start``.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ReloadTimer:
    """Recurring background timer bound to one source."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "reload"):
        if interval <= 0:
            raise ValueError(f"Reload interval must be positive, got {interval}")
        self.interval = interval
        self.name = name
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking. Calling start on a running timer does nothing."""
        with self._lock:
            if self._thread is not None:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run, name=f"flexconf-reload[{self.name}]", daemon=True
            )
            self._thread.start()
        logger.info(f"Reload timer started for {self.name} (every {self.interval}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the timer. Safe to call more than once and from the timer thread."""
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return

        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Reload timer for {self.name} did not stop within {timeout}s")
        logger.info(f"Reload timer stopped for {self.name}")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Reload tick failed for {self.name}: {e}")
