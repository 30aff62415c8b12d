"""Random opaque tokens and their fast lookup digests."""

from __future__ import annotations

import hashlib
import secrets
from uuid import uuid4

TOKEN_BYTES = 32  # 256 bits


class OpaqueTokenFactory:
    """
    Generate unguessable URL-safe tokens.

    Refresh tokens, verification tokens and reset tokens all come from here.
    Only refresh tokens are stored hashed; recovery tokens are single-use and
    cleared on consumption.
    """

    def __init__(self, nbytes: int = TOKEN_BYTES) -> None:
        if nbytes < 16:
            raise ValueError("Tokens need at least 128 bits of entropy.")
        self.nbytes = nbytes

    def new_token(self) -> str:
        return secrets.token_urlsafe(self.nbytes)

    @staticmethod
    def new_family() -> str:
        """Return a fresh family identifier."""
        return uuid4().hex

    @staticmethod
    def lookup_hash(raw: str) -> str:
        """
        SHA-256 hex digest used to locate a record by its raw value.

        Unkeyed and fast: the slow keyed hash is what proves possession.
        """
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()
