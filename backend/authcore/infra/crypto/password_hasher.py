# authcore/infra/crypto/password_hasher.py
from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from authcore.core.config import HashProfile
from authcore.services._shared.ports import SecretHasher

if TYPE_CHECKING:
    from authcore.infra.workers.hashing_pool import HashingPool

log = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialHasher(SecretHasher):
    """
    Argon2id hasher keyed with a process-wide secret (pepper).

    argon2-cffi does not expose the Argon2 ``secret`` input, so the secret is
    applied as an HMAC-SHA256 pre-hash: ``argon2id(hmac(secret, value))``. A
    stolen database without the secret cannot be brute-forced offline.

    One instance hashes passwords; another one, with its own secret and a
    lighter profile, hashes refresh tokens.

    :param profile: Secret and Argon2 cost parameters.
    :param pool: Optional bounded pool running the CPU-heavy calls.
    """

    def __init__(self, profile: HashProfile, *, pool: HashingPool | None = None) -> None:
        if not profile.secret:
            raise ValueError("Hashing secret must not be empty.")
        self._key = profile.secret.encode("utf-8")
        self._pool = pool
        self._ph = PasswordHasher(
            time_cost=profile.time_cost,
            memory_cost=profile.memory_cost,
            parallelism=profile.parallelism,
            type=Type.ID,
        )

    def _keyed(self, value: str) -> str:
        return hmac.new(self._key, value.encode("utf-8"), hashlib.sha256).hexdigest()

    def _run(self, fn: Callable[..., T], *args: object) -> T:
        if self._pool is None:
            return fn(*args)
        return self._pool.run(fn, *args)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def hash(self, secret: str) -> str:
        """
        Return an encoded Argon2id hash of ``secret``.

        :raises ValueError: If ``secret`` is not a non-empty string.
        :raises PoolSaturatedError: If the hashing pool rejects the job.
        """
        if not isinstance(secret, str) or not secret:
            raise ValueError("Value to hash must be a non-empty string.")
        return self._run(self._hash_sync, secret)

    def verify(self, secret: str, hashed: str) -> bool:
        """
        Check ``secret`` against an encoded hash.

        Never raises for hash problems: a mismatch is ``False`` and a corrupt,
        truncated or foreign hash is logged and also ``False``.

        :raises PoolSaturatedError: If the hashing pool rejects the job.
        """
        if not isinstance(secret, str) or not isinstance(hashed, str) or not hashed:
            return False
        return self._run(self._verify_sync, secret, hashed)

    def needs_rehash(self, hashed: str) -> bool:
        """``True`` when ``hashed`` was produced with other cost parameters."""
        try:
            return self._ph.check_needs_rehash(hashed)
        except InvalidHashError:
            return False

    # ------------------------------------------------------------------ #
    # Worker bodies
    # ------------------------------------------------------------------ #

    def _hash_sync(self, secret: str) -> str:
        return self._ph.hash(self._keyed(secret))

    def _verify_sync(self, secret: str, hashed: str) -> bool:
        try:
            return self._ph.verify(hashed, self._keyed(secret))
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            log.error("hash.verify_failed", extra={"event": "hash.invalid"}, exc_info=True)
            return False
        except Exception:
            log.error("hash.verify_failed", extra={"event": "hash.error"}, exc_info=True)
            return False
