from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class Recipient:
    """
    Snapshot of the user fields an email needs.

    Taken inside the transaction so delivery never touches the ORM object.
    """

    email: str
    username: str
    full_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class Notifier(Protocol):
    """Port for outbound account emails."""

    def send_verification_email(self, recipient: Recipient, token: str) -> None: ...

    def send_password_reset_email(self, recipient: Recipient, token: str) -> None: ...


@dataclass(frozen=True, slots=True)
class SentMessage:
    kind: str
    recipient: Recipient
    token: str


@dataclass
class InMemoryNotifier(Notifier):
    """Thread-safe notifier double recording every message."""

    sent: list[SentMessage] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def send_verification_email(self, recipient: Recipient, token: str) -> None:
        with self._lock:
            self.sent.append(SentMessage("verification", recipient, token))

    def send_password_reset_email(self, recipient: Recipient, token: str) -> None:
        with self._lock:
            self.sent.append(SentMessage("password_reset", recipient, token))

    def last(self, kind: str, email: str | None = None) -> SentMessage | None:
        """Return the most recent message of ``kind`` (optionally for ``email``)."""
        with self._lock:
            for msg in reversed(self.sent):
                if msg.kind == kind and (email is None or msg.recipient.email == email):
                    return msg
        return None


class NotificationQueue(Protocol):
    """Port for post-commit, non-blocking delivery (see ``NotificationOutbox``)."""

    def enqueue_verification(self, recipient: Recipient, token: str) -> None: ...

    def enqueue_password_reset(self, recipient: Recipient, token: str) -> None: ...
