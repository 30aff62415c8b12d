"""Unit tests for CredentialRecoveryService (verification, forgot/reset)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from authcore.models.refresh_token import RefreshToken
from authcore.models.user import User
from authcore.services._shared.errors import (
    RESET_FAILED,
    VERIFICATION_FAILED,
    InvalidRecoveryToken,
    ValidationError,
)
from authcore.services.auth.dto import LoginIn
from authcore.services.recovery.dto import (
    EMAIL_ALREADY_VERIFIED,
    EMAIL_VERIFIED,
    PASSWORD_RESET_DONE,
    RESET_REQUESTED,
    ForgotPasswordIn,
    ResetPasswordIn,
)
from freezegun import freeze_time

from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UnverifiedUserFactory, UserFactory
from tests.helpers.security import password_hasher


def _reload(session, user_id: int) -> User:
    session.expire_all()
    return session.get(User, user_id)


# ---------------------------- Verification -------------------------------- #
def test_verify_email_marks_user_and_clears_token(recovery_service, session):
    user = UnverifiedUserFactory()

    ack = recovery_service.verify_email(user.verification_token)

    assert ack.message == EMAIL_VERIFIED
    fresh = _reload(session, user.id)
    assert fresh.is_email_verified is True
    assert fresh.verification_token is None


def test_verified_user_can_log_in(recovery_service, auth_service, session):
    user = UnverifiedUserFactory(password="Tr1nity!!")
    recovery_service.verify_email(user.verification_token)

    pair = auth_service.login(LoginIn(email=user.email, password="Tr1nity!!"))
    assert pair.refresh_token


def test_verify_email_for_verified_account_with_pending_token(recovery_service, session):
    UserFactory(verification_token="kept-token")

    assert recovery_service.verify_email("kept-token").message == EMAIL_ALREADY_VERIFIED


def test_verification_link_followed_twice(recovery_service, session):
    """The first click consumes the token, so the second one is rejected."""
    token = UnverifiedUserFactory().verification_token

    assert recovery_service.verify_email(token).message == EMAIL_VERIFIED
    with pytest.raises(InvalidRecoveryToken) as exc:
        recovery_service.verify_email(token)
    assert exc.value.public_message == VERIFICATION_FAILED


def test_verify_email_unknown_token(recovery_service, session):
    with pytest.raises(InvalidRecoveryToken) as exc:
        recovery_service.verify_email("no-such-token")
    assert exc.value.public_message == VERIFICATION_FAILED


def test_verify_email_requires_token(recovery_service):
    with pytest.raises(ValidationError):
        recovery_service.verify_email(" ")


# --------------------------- Forgot password ------------------------------ #
def test_forgot_password_stores_token_and_sends_link(recovery_service, outbox, mailbox, session):
    user = UserFactory()

    with freeze_time("2026-05-01 08:00:00"):
        ack = recovery_service.forgot_password(ForgotPasswordIn(email=user.email.upper()))

    assert ack.message == RESET_REQUESTED
    fresh = _reload(session, user.id)
    assert fresh.password_reset_token
    assert fresh.password_reset_expires.replace(tzinfo=UTC) == datetime(2026, 5, 1, 9, tzinfo=UTC)
    assert outbox.drain(timeout=5)
    assert mailbox.last("password_reset", user.email).token == fresh.password_reset_token


def test_forgot_password_response_is_identical_for_unknown_email(
    recovery_service, outbox, mailbox, session
):
    user = UserFactory()

    known = recovery_service.forgot_password(ForgotPasswordIn(email=user.email))
    unknown = recovery_service.forgot_password(ForgotPasswordIn(email="nobody@example.com"))

    assert known == unknown
    assert outbox.drain(timeout=5)
    assert [m.recipient.email for m in mailbox.sent] == [user.email]


# ---------------------------- Reset password ------------------------------ #
def test_reset_password_replaces_hash_and_revokes_every_session(recovery_service, session):
    user = UserFactory(
        password_reset_token="reset-ok",
        password_reset_expires=datetime.now(UTC) + timedelta(minutes=30),
    )
    RefreshTokenFactory(user=user)
    RefreshTokenFactory(user=user, used=True)
    bystander = RefreshTokenFactory()

    ack = recovery_service.reset_password(
        ResetPasswordIn(token="reset-ok", new_password="N3wPassword!")
    )

    assert ack.message == PASSWORD_RESET_DONE
    fresh = _reload(session, user.id)
    assert password_hasher().verify("N3wPassword!", fresh.password_hash)
    assert fresh.password_reset_token is None
    assert fresh.password_reset_expires is None
    assert session.query(RefreshToken).filter_by(user_id=user.id).count() == 0
    assert session.get(RefreshToken, bystander.id) is not None


def test_reset_token_is_single_use(recovery_service, session):
    UserFactory(
        password_reset_token="once",
        password_reset_expires=datetime.now(UTC) + timedelta(minutes=30),
    )
    recovery_service.reset_password(ResetPasswordIn(token="once", new_password="Another1!"))

    with pytest.raises(InvalidRecoveryToken):
        recovery_service.reset_password(ResetPasswordIn(token="once", new_password="Another2!"))


def test_expired_reset_token_is_cleared_then_rejected(recovery_service, session):
    user = UserFactory(
        password_reset_token="stale",
        password_reset_expires=datetime.now(UTC) - timedelta(minutes=1),
    )
    old_hash = user.password_hash

    with pytest.raises(InvalidRecoveryToken) as exc:
        recovery_service.reset_password(ResetPasswordIn(token="stale", new_password="Whatever1!"))

    assert exc.value.public_message == RESET_FAILED
    fresh = _reload(session, user.id)
    assert fresh.password_reset_token is None
    assert fresh.password_hash == old_hash


def test_reset_with_unknown_token(recovery_service, session):
    with pytest.raises(InvalidRecoveryToken):
        recovery_service.reset_password(ResetPasswordIn(token="nope", new_password="Whatever1!"))


@pytest.mark.parametrize(
    "token,password", [("", "LongEnough1"), ("tok", "short"), ("tok", "")]
)
def test_reset_validates_input(recovery_service, token, password):
    with pytest.raises(ValidationError):
        recovery_service.reset_password(ResetPasswordIn(token=token, new_password=password))


def test_reset_revokes_sessions_through_the_refresh_store(
    recovery_service, refresh_store, session, monkeypatch
):
    user = UserFactory(
        password_reset_token="reset-spy",
        password_reset_expires=datetime.now(UTC) + timedelta(minutes=30),
    )
    user_id = user.id
    RefreshTokenFactory.create_batch(2, user=user)
    calls = []
    original = refresh_store.revoke_all

    def spy(repo, owner_id):
        count = original(repo, owner_id)
        calls.append((owner_id, count))
        return count

    monkeypatch.setattr(refresh_store, "revoke_all", spy)

    recovery_service.reset_password(ResetPasswordIn(token="reset-spy", new_password="N3wPassword!"))

    assert calls == [(user_id, 2)]


def test_reset_token_is_valid_up_to_its_expiry_instant(recovery_service, session):
    with freeze_time("2026-05-01 08:00:00"):
        UserFactory(
            password_reset_token="edge",
            password_reset_expires=datetime(2026, 5, 1, 8, tzinfo=UTC),
        )

        ack = recovery_service.reset_password(ResetPasswordIn(token="edge", new_password="Another1!"))

    assert ack.message == PASSWORD_RESET_DONE
