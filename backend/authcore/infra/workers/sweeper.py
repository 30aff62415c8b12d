"""Periodic in-process removal of expired refresh tokens."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

log = logging.getLogger(__name__)


class SessionSweeper:
    """
    Daemon thread calling ``sweep`` every ``interval`` seconds.

    Errors are logged and the next tick retries. Deployments running several
    processes should prefer ``flask sessions cleanup`` from a scheduler.

    :param sweep: Callable returning the number of deleted records.
    :param interval: Seconds between runs; must be positive.
    """

    def __init__(self, sweep: Callable[[], int], *, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive.")
        self._sweep = sweep
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="session-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def tick(self) -> int:
        """Run one sweep; never raises."""
        try:
            removed = self._sweep()
        except Exception:
            log.error("sessions.sweep_failed", extra={"event": "sessions.sweep"}, exc_info=True)
            return 0
        if removed:
            log.info("sessions.swept", extra={"event": "sessions.sweep", "count": removed})
        return removed

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()
