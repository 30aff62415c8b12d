"""Bounded worker pool for CPU-heavy hashing."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class PoolSaturatedError(RuntimeError):
    """Raised when a hashing job waits too long for admission."""


class HashingPool:
    """
    Run hashing jobs on a fixed set of threads with bounded admission.

    Argon2 releases the GIL while hashing, so threads give real parallelism.
    At most ``max_pending`` jobs may be queued or running; callers beyond that
    wait up to ``queue_timeout`` seconds and then get
    :class:`PoolSaturatedError` instead of piling up.

    :param max_workers: Number of hashing threads.
    :param max_pending: Admission limit (running + queued jobs).
    :param queue_timeout: Seconds a caller may wait for admission.
    """

    def __init__(self, *, max_workers: int = 4, max_pending: int = 64, queue_timeout: float = 10.0):
        if max_workers < 1 or max_pending < 1:
            raise ValueError("max_workers and max_pending must be positive.")
        self.max_workers = max_workers
        self.max_pending = max_pending
        self.queue_timeout = queue_timeout
        self._slots = threading.BoundedSemaphore(max_pending)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="hashing")
        self._shutdown = False

    def submit(self, fn: Callable[..., T], *args: object) -> Future[T]:
        """
        Schedule ``fn(*args)`` once a slot is free.

        :raises PoolSaturatedError: When no slot frees up within ``queue_timeout``.
        :raises RuntimeError: After :meth:`shutdown`.
        """
        if self._shutdown:
            raise RuntimeError("HashingPool is shut down.")
        if not self._slots.acquire(timeout=self.queue_timeout):
            log.warning("hashing.saturated", extra={"event": "hashing.saturated"})
            raise PoolSaturatedError("Hashing capacity exhausted.")
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError:
            self._slots.release()
            raise
        future.add_done_callback(lambda _f: self._slots.release())
        return future

    def run(self, fn: Callable[..., T], *args: object) -> T:
        """Submit ``fn(*args)`` and block for its result."""
        return self.submit(fn, *args).result()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and release the threads. Idempotent."""
        if self._shutdown:
            return
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
