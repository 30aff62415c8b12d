"""Post-commit delivery of notifications on a background worker."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

from authcore.services._shared.ports import Notifier, Recipient

log = logging.getLogger(__name__)


class NotificationOutbox:
    """
    Deliver emails off the request thread.

    Jobs are enqueued only after the triggering transaction committed, so a
    rolled-back registration never sends mail. Delivery failures are logged
    and swallowed: the user-facing operation already succeeded.

    :param notifier: Adapter doing the actual delivery.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="outbox")
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._shutdown = False

    def enqueue_verification(self, recipient: Recipient, token: str) -> None:
        self._enqueue("verification", recipient, token)

    def enqueue_password_reset(self, recipient: Recipient, token: str) -> None:
        self._enqueue("password_reset", recipient, token)

    def _enqueue(self, kind: str, recipient: Recipient, token: str) -> None:
        if self._shutdown:
            log.error("outbox.closed", extra={"event": f"outbox.{kind}.dropped"})
            return
        future = self._executor.submit(self._deliver, kind, recipient, token)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def _deliver(self, kind: str, recipient: Recipient, token: str) -> None:
        try:
            if kind == "verification":
                self.notifier.send_verification_email(recipient, token)
            else:
                self.notifier.send_password_reset_email(recipient, token)
        except Exception:
            log.error("outbox.delivery_failed", extra={"event": f"outbox.{kind}"}, exc_info=True)

    def drain(self, timeout: float | None = 10.0) -> bool:
        """
        Wait for every queued delivery.

        :returns: ``True`` when nothing is left pending.
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        self._executor.shutdown(wait=wait)
