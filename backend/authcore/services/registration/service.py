"""
UserRegistrationService
=======================

Process-level service that registers a new identity:

- Rejects duplicate email / username, both up front and on constraint races.
- Stores the Argon2id hash of the peppered password and a verification token
  in a single transaction.
- Enqueues the verification email only after the commit.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.models.user import User
from authcore.services._shared.base import BaseService
from authcore.services._shared.dto import to_user_public
from authcore.services._shared.errors import ConflictError, ValidationError, violates
from authcore.services._shared.ports import NotificationQueue, Recipient, SecretHasher
from authcore.services.auth.dto import AckOut
from authcore.services.registration.dto import (
    MIN_PASSWORD_LENGTH,
    RESEND_MESSAGE,
    UserRegistrationIn,
    UserRegistrationOut,
)

log = logging.getLogger(__name__)


class UserRegistrationService(BaseService):
    """
    Orchestrates account creation and (re)issuing of verification links.
    """

    def __init__(
        self,
        *,
        password_hasher: SecretHasher,
        tokens: OpaqueTokenFactory,
        outbox: NotificationQueue,
    ) -> None:
        super().__init__()
        self.passwords = password_hasher
        self.tokens = tokens
        self.outbox = outbox

    def register(self, dto: UserRegistrationIn) -> UserRegistrationOut:
        """
        Register a user with a pending email verification.

        :param dto: Registration input.
        :type dto: :class:`UserRegistrationIn`
        :returns: Registration result payload.
        :rtype: :class:`UserRegistrationOut`
        :raises ValidationError: On missing fields or a too-short password.
        :raises ConflictError: When the email or username is already taken.
        """
        email = (dto.email or "").strip().lower()
        username = (dto.username or "").strip()
        if not email or not username:
            raise ValidationError("Email and username are required.")
        if "@" not in email or "." not in email.rsplit("@", 1)[-1]:
            raise ValidationError("Email format looks invalid.")
        if not dto.password or len(dto.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )

        # 1) Fast-path duplicate checks (the constraints still decide on races)
        with self.storage_guard("registration.precheck"), self.ro_uow() as uow_ro:
            if uow_ro.users.exists_by_email(email):
                raise ConflictError("User", "email already in use")
            if uow_ro.users.exists_by_username(username):
                raise ConflictError("User", "username already in use")

        # 2) Hash outside the transaction: it is the slow part
        password_hash = self.passwords.hash(dto.password)
        token = self.tokens.new_token()

        with self.storage_guard("registration.register"):
            try:
                with self.rw_uow() as uow:
                    user = User(
                        email=email,
                        username=username,
                        full_name=dto.full_name,
                        password_hash=password_hash,
                        is_email_verified=False,
                        verification_token=token,
                    )
                    uow.users.add(user)
                    out = UserRegistrationOut(user=to_user_public(user))
                    recipient = Recipient(email=user.email, username=user.username, full_name=user.full_name)
            except IntegrityError as exc:
                if violates(exc, "uq_users_email", column="users.email"):
                    raise ConflictError("User", "email already in use") from exc
                if violates(exc, "uq_users_username", column="users.username"):
                    raise ConflictError("User", "username already in use") from exc
                raise

        # 3) Post-commit side-effect
        self.outbox.enqueue_verification(recipient, token)
        log.info("registration.created", extra={"event": "registration", "user_id": out.user.id})
        return out

    def issue_verification_token(self, email: str) -> AckOut:
        """
        Re-send the verification link to an unverified account.

        The response is identical whether or not the account exists or is
        already verified.
        """
        normalized = (email or "").strip().lower()
        if not normalized:
            raise ValidationError("Email is required.")

        recipient: Recipient | None = None
        token = self.tokens.new_token()
        with self.storage_guard("registration.resend"), self.rw_uow() as uow:
            user = uow.users.find_by_email(normalized, for_update=True)
            if user is not None and not user.is_email_verified:
                uow.users.set_verification_token(user, token)
                recipient = Recipient(email=user.email, username=user.username, full_name=user.full_name)

        if recipient is not None:
            self.outbox.enqueue_verification(recipient, token)
            log.info("registration.verification_reissued", extra={"event": "registration.resend"})
        else:
            log.info("registration.resend_ignored", extra={"event": "registration.resend"})
        return AckOut(success=True, message=RESEND_MESSAGE)
