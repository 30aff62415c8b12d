"""
CredentialRecoveryService
=========================

Single-use token flows that do not require an authenticated session:

- email verification (link sent at registration),
- forgot password (issue a time-limited reset token),
- reset password (consume it, replace the hash, revoke every session).
"""

from __future__ import annotations

import logging
from datetime import timedelta

from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.models.base import as_utc
from authcore.services._shared.base import BaseService
from authcore.services._shared.errors import (
    RESET_FAILED,
    VERIFICATION_FAILED,
    InvalidRecoveryToken,
    ValidationError,
)
from authcore.services._shared.ports import NotificationQueue, Recipient, SecretHasher
from authcore.services.auth.dto import AckOut
from authcore.services.auth.refresh_store import RefreshTokenStore
from authcore.services.recovery.dto import (
    EMAIL_ALREADY_VERIFIED,
    EMAIL_VERIFIED,
    PASSWORD_RESET_DONE,
    RESET_REQUESTED,
    ForgotPasswordIn,
    ResetPasswordIn,
)
from authcore.services.registration.dto import MIN_PASSWORD_LENGTH

log = logging.getLogger(__name__)


class CredentialRecoveryService(BaseService):
    """
    Verification and password-reset flows.

    :param password_hasher: Peppered password hasher.
    :param tokens: Source of verification / reset tokens.
    :param outbox: Post-commit email queue.
    :param refresh_store: Session store revoked on a successful reset.
    :param reset_ttl: Validity of a reset token.
    """

    def __init__(
        self,
        *,
        password_hasher: SecretHasher,
        tokens: OpaqueTokenFactory,
        outbox: NotificationQueue,
        refresh_store: RefreshTokenStore,
        reset_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        super().__init__()
        self.refresh_store = refresh_store
        self.passwords = password_hasher
        self.tokens = tokens
        self.outbox = outbox
        self.reset_ttl = reset_ttl

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, token: str) -> AckOut:
        """
        Mark the owner of ``token`` as verified and clear the token.

        Following the link twice is harmless; the second call reports that the
        email is already verified.

        :raises ValidationError: Empty token.
        :raises InvalidRecoveryToken: Unknown token.
        """
        token = (token or "").strip()
        if not token:
            raise ValidationError("Verification token is required.")

        with self.storage_guard("recovery.verify_email"), self.rw_uow() as uow:
            user = uow.users.find_by_verification_token(token, for_update=True)
            if user is None:
                log.warning("recovery.verify_failed", extra={"event": "recovery.verify.unknown"})
                raise InvalidRecoveryToken(VERIFICATION_FAILED)
            if user.is_email_verified:
                return AckOut(success=True, message=EMAIL_ALREADY_VERIFIED)
            uow.users.mark_email_verified(user)
            user_id = user.id

        log.info("recovery.email_verified", extra={"event": "recovery.verify", "user_id": user_id})
        return AckOut(success=True, message=EMAIL_VERIFIED)

    # ------------------------------------------------------------------ #
    # Forgot / reset password
    # ------------------------------------------------------------------ #

    def forgot_password(self, dto: ForgotPasswordIn) -> AckOut:
        """
        Issue a reset token when the account exists.

        The response never reveals whether the email is registered.
        """
        email = (dto.email or "").strip().lower()
        if not email:
            raise ValidationError("Email is required.")

        recipient: Recipient | None = None
        token = self.tokens.new_token()
        with self.storage_guard("recovery.forgot_password"), self.rw_uow() as uow:
            user = uow.users.find_by_email(email, for_update=True)
            if user is not None:
                uow.users.set_reset_token(user, token, self.now_utc() + self.reset_ttl)
                recipient = Recipient(email=user.email, username=user.username, full_name=user.full_name)

        if recipient is not None:
            self.outbox.enqueue_password_reset(recipient, token)
            log.info("recovery.reset_issued", extra={"event": "recovery.forgot"})
        else:
            log.info("recovery.reset_unknown_email", extra={"event": "recovery.forgot"})
        return AckOut(success=True, message=RESET_REQUESTED)

    def reset_password(self, dto: ResetPasswordIn) -> AckOut:
        """
        Replace the password and revoke every refresh token of the user.

        The new hash, the cleared reset fields and the session revocation are
        committed together. An expired token is cleared before failing.

        :raises ValidationError: Empty token or too-short password.
        :raises InvalidRecoveryToken: Unknown or expired token.
        """
        token = (dto.token or "").strip()
        if not token:
            raise ValidationError("Reset token is required.")
        if not dto.new_password or len(dto.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )

        now = self.now_utc()
        with self.storage_guard("recovery.reset_password"), self.ro_uow() as uow_ro:
            user = uow_ro.users.find_by_reset_token(token)
            expires_at = as_utc(user.password_reset_expires) if user is not None else None
            known = user is not None

        if not known:
            log.warning("recovery.reset_failed", extra={"event": "recovery.reset.unknown"})
            raise InvalidRecoveryToken(RESET_FAILED)
        if expires_at is None or expires_at < now:
            with self.storage_guard("recovery.reset_password"), self.rw_uow() as uow:
                stale = uow.users.find_by_reset_token(token, for_update=True)
                if stale is not None:
                    uow.users.clear_reset_token(stale)
            log.warning("recovery.reset_failed", extra={"event": "recovery.reset.expired"})
            raise InvalidRecoveryToken(RESET_FAILED)

        new_hash = self.passwords.hash(dto.new_password)

        with self.storage_guard("recovery.reset_password"), self.rw_uow() as uow:
            # The token may have been consumed while we were hashing.
            user = uow.users.find_by_reset_token(token, for_update=True)
            if user is None:
                raise InvalidRecoveryToken(RESET_FAILED)
            uow.users.update_credentials(user, new_hash)
            uow.users.clear_reset_token(user)
            revoked = self.refresh_store.revoke_all(uow.refresh_tokens, user.id)
            user_id = user.id

        log.info(
            "recovery.password_reset",
            extra={"event": "recovery.reset", "user_id": user_id, "count": revoked},
        )
        return AckOut(success=True, message=PASSWORD_RESET_DONE)
