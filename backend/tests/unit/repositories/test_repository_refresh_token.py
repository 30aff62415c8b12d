"""Unit tests for RefreshTokenRepository bulk transitions."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.models.refresh_token import RefreshToken
from authcore.repositories.refresh_token import RefreshTokenRepository

from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory


@pytest.fixture()
def repo(session) -> RefreshTokenRepository:
    return RefreshTokenRepository(session=session)


def _reload(session, record_id: int) -> RefreshToken:
    session.expire_all()
    return session.get(RefreshToken, record_id)


def test_find_by_lookup_hash(repo):
    record = RefreshTokenFactory(raw="raw-value-1")

    found = repo.find_by_lookup_hash(OpaqueTokenFactory.lookup_hash("raw-value-1"), for_update=True)
    assert found is not None and found.id == record.id
    assert repo.find_by_lookup_hash(OpaqueTokenFactory.lookup_hash("other")) is None


def test_mark_used_is_compare_and_set(repo, session):
    record = RefreshTokenFactory()

    assert repo.mark_used_if_active(record.id) is True
    assert repo.mark_used_if_active(record.id) is False
    assert _reload(session, record.id).used is True


def test_mark_used_refuses_invalidated(repo, session):
    record = RefreshTokenFactory(invalidated=True)

    assert repo.mark_used_if_active(record.id) is False
    assert _reload(session, record.id).used is False


def test_invalidate_family_touches_only_that_family(repo, session):
    user = UserFactory()
    a = RefreshTokenFactory(user=user, family="fam-a")
    b = RefreshTokenFactory(user=user, family="fam-a", used=True)
    other = RefreshTokenFactory(user=user, family="fam-b")

    assert repo.invalidate_family("fam-a") == 2
    assert _reload(session, a.id).invalidated is True
    assert _reload(session, b.id).invalidated is True
    assert _reload(session, other.id).invalidated is False
    # already invalidated rows are not counted again
    assert repo.invalidate_family("fam-a") == 0
    assert [r.id for r in repo.list_family("fam-a")] == [a.id, b.id]


def test_delete_for_user_and_by_lookup_hash(repo):
    user = UserFactory()
    RefreshTokenFactory(user=user, raw="keep-me")
    RefreshTokenFactory(user=user)
    RefreshTokenFactory()  # other user

    assert repo.delete_by_lookup_hash(OpaqueTokenFactory.lookup_hash("keep-me")) == 1
    assert repo.delete_by_lookup_hash(OpaqueTokenFactory.lookup_hash("keep-me")) == 0
    assert repo.count_for_user(user.id) == 1
    assert repo.delete_for_user(user.id) == 1
    assert repo.count_for_user(user.id) == 0


def test_delete_expired_uses_strict_cutoff(repo):
    now = datetime.now(UTC)
    user = UserFactory()
    RefreshTokenFactory(user=user, expires_at=now - timedelta(days=1))
    RefreshTokenFactory(user=user, expires_at=now - timedelta(seconds=1))
    RefreshTokenFactory(user=user, expires_at=now + timedelta(days=1))

    assert repo.delete_expired(now) == 2
    assert repo.count_for_user(user.id) == 1
