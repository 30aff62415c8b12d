# authcore/services/auth/refresh_store.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto

from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.models.base import as_utc
from authcore.models.refresh_token import RefreshToken
from authcore.repositories.refresh_token import RefreshTokenRepository
from authcore.services._shared.ports import SecretHasher
from authcore.services.auth.dto import SessionMeta

log = logging.getLogger(__name__)


class RotationResult(Enum):
    """Outcome of consuming a presented refresh token."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()
    INVALIDATED = auto()
    REUSED = auto()
    MISMATCH = auto()


@dataclass(frozen=True, slots=True)
class Consumption:
    """
    Result of :meth:`RefreshTokenStore.consume`.

    :ivar result: What happened.
    :ivar record: The matched record, ``None`` only for ``NOT_FOUND``.
    """

    result: RotationResult
    record: RefreshToken | None = None


class RefreshTokenStore:
    """
    Server-side state machine for refresh tokens.

    Every method takes the repository of the caller's unit of work, so a
    rotation (consume + issue successor) or a reuse response (invalidate the
    family) lands in one transaction.

    States: ``Active`` → ``Consumed`` | ``Invalidated`` | ``Expired``; none
    returns to ``Active``.

    :param hasher: Keyed slow hasher dedicated to refresh tokens.
    :param tokens: Source of raw values, families and lookup digests.
    :param ttl: Validity window of each issued token.
    """

    def __init__(
        self,
        *,
        hasher: SecretHasher,
        tokens: OpaqueTokenFactory,
        ttl: timedelta = timedelta(days=7),
    ) -> None:
        self.hasher = hasher
        self.tokens = tokens
        self.ttl = ttl

    def issue(
        self,
        repo: RefreshTokenRepository,
        *,
        user_id: int,
        now: datetime,
        family: str | None = None,
        meta: SessionMeta | None = None,
    ) -> str:
        """
        Create and persist a new refresh token.

        :param family: Existing family to extend; a new one is started if ``None``.
        :returns: The raw token. It is never stored and never logged.
        """
        raw = self.tokens.new_token()
        meta = meta or SessionMeta()
        record = RefreshToken(
            lookup_hash=self.tokens.lookup_hash(raw),
            token_hash=self.hasher.hash(raw),
            user_id=user_id,
            family=family or self.tokens.new_family(),
            expires_at=now + self.ttl,
            used=False,
            invalidated=False,
            user_agent=meta.user_agent[:255] if meta.user_agent else None,
            ip_address=meta.ip_address[:64] if meta.ip_address else None,
        )
        repo.add(record)
        return raw

    def consume(self, repo: RefreshTokenRepository, raw: str, *, now: datetime) -> Consumption:
        """
        Atomically mark the presented token as used.

        Checks run in this order on the locked row: expiry, invalidation,
        prior use, possession (keyed hash), then a compare-and-set on
        ``used``. Losing the compare-and-set to a concurrent rotation is
        reported as ``REUSED``.
        """
        record = repo.find_by_lookup_hash(self.tokens.lookup_hash(raw), for_update=True)
        if record is None:
            return Consumption(RotationResult.NOT_FOUND)

        expires_at = as_utc(record.expires_at)
        if expires_at is None or expires_at < now:
            return Consumption(RotationResult.EXPIRED, record)
        if record.invalidated:
            return Consumption(RotationResult.INVALIDATED, record)
        if record.used:
            return Consumption(RotationResult.REUSED, record)
        if not self.hasher.verify(raw, record.token_hash):
            return Consumption(RotationResult.MISMATCH, record)
        if not repo.mark_used_if_active(record.id):
            return Consumption(RotationResult.REUSED, record)
        return Consumption(RotationResult.OK, record)

    def invalidate_family(self, repo: RefreshTokenRepository, family: str) -> int:
        return repo.invalidate_family(family)

    def discard(self, repo: RefreshTokenRepository, raw: str) -> int:
        """Delete the record matching ``raw``; unknown tokens delete nothing."""
        return repo.delete_by_lookup_hash(self.tokens.lookup_hash(raw))

    def revoke_all(self, repo: RefreshTokenRepository, user_id: int) -> int:
        return repo.delete_for_user(user_id)

    def sweep(self, repo: RefreshTokenRepository, *, now: datetime) -> int:
        """Delete every record already past its expiry."""
        return repo.delete_expired(now)
