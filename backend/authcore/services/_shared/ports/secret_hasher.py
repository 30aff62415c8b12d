from __future__ import annotations

from typing import Protocol


class SecretHasher(Protocol):
    """
    Port for slow, keyed one-way hashing of secrets.

    ``verify`` must never raise for malformed or foreign hashes; it fails
    closed and returns ``False``.
    """

    def hash(self, secret: str) -> str: ...

    def verify(self, secret: str, hashed: str) -> bool: ...

    def needs_rehash(self, hashed: str) -> bool: ...
