"""Unit tests for the User model validators and constraints."""

from __future__ import annotations

import pytest
from authcore.models.user import User, UserRole
from sqlalchemy.exc import IntegrityError

from tests.factories.user import UserFactory


def test_email_is_normalized(session):
    user = UserFactory(email="  Mixed.Case@Example.COM ")
    assert user.email == "mixed.case@example.com"


@pytest.mark.parametrize("email", ["", "no-at-sign", "user@nodot"])
def test_invalid_email_rejected(email):
    with pytest.raises(ValueError):
        User(email=email, username="someone", password_hash="x")


def test_unknown_role_rejected():
    with pytest.raises(ValueError):
        User(email="a@b.co", username="x", password_hash="x", role="superuser")


def test_defaults(session):
    user = UserFactory(is_email_verified=False)

    assert user.role == UserRole.CUSTOMER.value
    assert user.is_email_verified is False
    assert user.verification_token is None
    assert user.password_reset_token is None
    assert user.created_at is not None


def test_email_is_unique(session):
    UserFactory(email="dup@example.com")
    with pytest.raises(IntegrityError):
        UserFactory(email="DUP@example.com")
    session.rollback()


def test_password_hash_is_not_raw(session):
    user = UserFactory(password="Sup3rSecret!")
    assert "Sup3rSecret!" not in user.password_hash
    assert user.password_hash.startswith("$argon2id$")
