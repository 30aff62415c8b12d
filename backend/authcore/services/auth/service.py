# authcore/services/auth/service.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from authcore.models.user import User
from authcore.services._shared.base import BaseService
from authcore.services._shared.dto import UserPublicOut, to_user_public
from authcore.services._shared.errors import (
    EmailNotVerified,
    InvalidCredentials,
    InvalidToken,
    NotFoundError,
    ReuseDetected,
    TokenExpired,
    TokenInvalidated,
    ValidationError,
)
from authcore.services._shared.ports import SecretHasher, TokenProvider
from authcore.services.auth.dto import (
    AckOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SessionMeta,
    TokenPairOut,
)
from authcore.services.auth.refresh_store import RefreshTokenStore, RotationResult

log = logging.getLogger(__name__)

# Verified against unknown emails so both failure paths cost one Argon2 run.
_DUMMY_PASSWORD = "authcore-timing-equalizer"


class AuthService(BaseService):
    """
    Session lifecycle: login, refresh-token rotation, logout, revocation.

    Access tokens are signed by a pluggable :class:`TokenProvider` and never
    stored. Refresh tokens are opaque, stored hashed, rotated on every use and
    grouped into families: presenting a consumed token kills its family.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        refresh_store: RefreshTokenStore,
        password_hasher: SecretHasher,
        access_expires: timedelta = timedelta(minutes=15),
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for signing access tokens.
        :param refresh_store: Refresh-token state machine.
        :param password_hasher: Peppered password hasher.
        :param access_expires: Access-token lifetime.
        """
        super().__init__()
        self.tokens = token_provider
        self.refresh_store = refresh_store
        self.passwords = password_hasher
        self.access_expires = access_expires
        self._dummy_hash: str | None = None

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn, meta: SessionMeta | None = None) -> TokenPairOut:
        """
        Authenticate credentials and issue a fresh token pair in a new family.

        Unknown email, wrong password and unverified email all raise with the
        same public message.

        :raises InvalidCredentials: Unknown email or wrong password.
        :raises EmailNotVerified: Correct password but email not confirmed.
        """
        with self.storage_guard("auth.login"), self.ro_uow() as uow:
            user = uow.users.find_by_email(dto.email)
            snapshot = to_user_public(user) if user is not None else None
            stored_hash = user.password_hash if user is not None else None

        if snapshot is None or stored_hash is None:
            # Equalize timing with the existing-user path.
            self.passwords.verify(dto.password, self._timing_hash())
            log.warning("auth.login_failed", extra={"event": "auth.login.unknown_user"})
            raise InvalidCredentials()
        if not self.passwords.verify(dto.password, stored_hash):
            log.warning(
                "auth.login_failed",
                extra={"event": "auth.login.bad_password", "user_id": snapshot.id},
            )
            raise InvalidCredentials()
        if not snapshot.is_email_verified:
            log.warning(
                "auth.login_failed",
                extra={"event": "auth.login.unverified", "user_id": snapshot.id},
            )
            raise EmailNotVerified()

        new_hash = (
            self.passwords.hash(dto.password) if self.passwords.needs_rehash(stored_hash) else None
        )
        now = self.now_utc()
        with self.storage_guard("auth.login"), self.rw_uow() as uow:
            locked = uow.users.find_by_id(snapshot.id, for_update=True)
            if locked is None:
                raise InvalidCredentials()
            if new_hash is not None and locked.password_hash == stored_hash:
                uow.users.update_credentials(locked, new_hash)
            raw = self.refresh_store.issue(uow.refresh_tokens, user_id=locked.id, now=now, meta=meta)
            access = self._access_token_for(locked, fresh=True)

        log.info("auth.login", extra={"event": "auth.login", "user_id": snapshot.id})
        return self._pair(access, raw)

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, dto: RefreshIn, meta: SessionMeta | None = None) -> TokenPairOut:
        """
        Consume a refresh token and issue its successor in the same family.

        Security
        --------
        - Each refresh token is accepted at most once.
        - Re-presenting a consumed token invalidates its whole family; the
          invalidation is committed before :class:`ReuseDetected` is raised.
        - All failures share one public message.

        :raises InvalidToken: Unknown token or failed possession check.
        :raises TokenInvalidated: Token belongs to a killed family.
        :raises TokenExpired: Token past its expiry.
        :raises ReuseDetected: Token was already consumed.
        """
        raw = (dto.refresh_token or "").strip()
        if not raw:
            raise InvalidToken()

        now = self.now_utc()
        reuse: ReuseDetected | None = None
        with self.storage_guard("auth.rotate"), self.rw_uow() as uow:
            outcome = self.refresh_store.consume(uow.refresh_tokens, raw, now=now)
            record = outcome.record
            match outcome.result:
                case RotationResult.NOT_FOUND | RotationResult.MISMATCH:
                    log.warning(
                        "auth.refresh_rejected",
                        extra={"event": f"auth.refresh.{outcome.result.name.lower()}"},
                    )
                    raise InvalidToken()
                case RotationResult.EXPIRED:
                    log.warning("auth.refresh_rejected", extra={"event": "auth.refresh.expired"})
                    raise TokenExpired()
                case RotationResult.INVALIDATED:
                    log.warning(
                        "auth.refresh_rejected",
                        extra={"event": "auth.refresh.invalidated", "family": record.family},
                    )
                    raise TokenInvalidated()
                case RotationResult.REUSED:
                    count = self.refresh_store.invalidate_family(uow.refresh_tokens, record.family)
                    reuse = ReuseDetected(family=record.family, user_id=record.user_id)
                    log.error(
                        "auth.refresh_reuse_detected invalidated=%s",
                        count,
                        extra={
                            "event": "auth.refresh.reuse",
                            "family": record.family,
                            "user_id": record.user_id,
                        },
                    )
                case RotationResult.OK:
                    user = uow.users.find_by_id(record.user_id)
                    if user is None:
                        raise InvalidToken()
                    new_raw = self.refresh_store.issue(
                        uow.refresh_tokens,
                        user_id=user.id,
                        now=now,
                        family=record.family,
                        meta=meta,
                    )
                    access = self._access_token_for(user, fresh=False)
            # leaving the block commits: the successor, or the family invalidation

        if reuse is not None:
            raise reuse
        return self._pair(access, new_raw)

    # ------------------------------------------------------------------ #
    # Logout / revocation / cleanup
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> AckOut:
        """
        Forget one refresh token. Always succeeds, even for unknown tokens or
        when storage fails (failures are logged).
        """
        raw = (dto.refresh_token or "").strip()
        if not raw:
            return AckOut(success=True)
        try:
            with self.rw_uow() as uow:
                removed = self.refresh_store.discard(uow.refresh_tokens, raw)
        except SQLAlchemyError:
            log.error("auth.logout_failed", extra={"event": "auth.logout"}, exc_info=True)
            return AckOut(success=True)
        log.info("auth.logout", extra={"event": "auth.logout", "count": removed})
        return AckOut(success=True)

    def revoke_all_sessions(self, user_id: int) -> int:
        """
        Delete every refresh token of ``user_id``.

        Outstanding access tokens stay valid until they expire.

        :returns: Number of deleted records.
        """
        with self.storage_guard("auth.revoke_all"), self.rw_uow() as uow:
            count = self.refresh_store.revoke_all(uow.refresh_tokens, user_id)
        log.info(
            "auth.sessions_revoked",
            extra={"event": "auth.revoke_all", "user_id": user_id, "count": count},
        )
        return count

    def cleanup_expired(self) -> int:
        """
        Delete expired refresh tokens. Idempotent; never raises.

        :returns: Number of deleted records, ``0`` on failure.
        """
        try:
            with self.rw_uow() as uow:
                count = self.refresh_store.sweep(uow.refresh_tokens, now=self.now_utc())
        except SQLAlchemyError:
            log.error("sessions.cleanup_failed", extra={"event": "sessions.cleanup"}, exc_info=True)
            return 0
        log.info("sessions.cleanup", extra={"event": "sessions.cleanup", "count": count})
        return count

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def whoami(self, subject: int | str) -> UserPublicOut:
        """
        Load the user behind an access-token subject.

        :raises NotFoundError: If the user no longer exists.
        """
        user_id = self._coerce_user_id(subject)
        with self.storage_guard("auth.whoami"), self.ro_uow() as uow:
            user = uow.users.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return to_user_public(user)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _access_token_for(self, user: User, *, fresh: bool) -> str:
        claims: dict[str, Any] = {
            "username": user.username,
            "email": user.email,
            "role": user.role,
        }
        return self.tokens.create_access_token(
            identity=str(user.id),
            additional_claims=claims,
            expires_delta=self.access_expires,
            fresh=fresh,
        )

    def _pair(self, access: str, raw_refresh: str) -> TokenPairOut:
        return TokenPairOut(
            access_token=access,
            refresh_token=raw_refresh,
            expires_in=int(self.access_expires.total_seconds()),
        )

    def _timing_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.passwords.hash(_DUMMY_PASSWORD)
        return self._dummy_hash

    @staticmethod
    def _coerce_user_id(subject: int | str) -> int:
        """Ensure the token subject can be treated as an integer user id."""
        if isinstance(subject, int):
            return subject
        if isinstance(subject, str) and subject.isdigit():
            return int(subject)
        raise ValidationError("Invalid token subject.")
