"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that the service layer depends on.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`: abstraction for access-token signing.

- :mod:`secret_hasher`:
    Defines :class:`~.SecretHasher`: slow keyed hashing of passwords and
    refresh tokens.

- :mod:`notifier`:
    Defines :class:`~.Notifier` and :class:`~.Recipient`: outbound email for
    verification and password reset links.

Design Notes
------------
Concrete adapters (flask-jwt-extended, argon2-cffi, SMTP) live under
``authcore.infra``; in-memory doubles live next to each port for tests.
"""

from __future__ import annotations

from .notifier import InMemoryNotifier, NotificationQueue, Notifier, Recipient
from .secret_hasher import SecretHasher
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "TokenProvider",
    "StubTokenProvider",
    "SecretHasher",
    "Notifier",
    "NotificationQueue",
    "Recipient",
    "InMemoryNotifier",
]
