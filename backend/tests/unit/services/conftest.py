"""Service fixtures wired to cheap hashers and in-memory doubles."""

from __future__ import annotations

from datetime import timedelta

import pytest
from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.infra.workers.outbox import NotificationOutbox
from authcore.services._shared.ports import InMemoryNotifier, StubTokenProvider
from authcore.services.auth.refresh_store import RefreshTokenStore
from authcore.services.auth.service import AuthService
from authcore.services.recovery.service import CredentialRecoveryService
from authcore.services.registration.service import UserRegistrationService

from tests.helpers.security import password_hasher, refresh_hasher


@pytest.fixture()
def mailbox() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def outbox(mailbox):
    box = NotificationOutbox(mailbox)
    yield box
    box.shutdown()


@pytest.fixture()
def refresh_store() -> RefreshTokenStore:
    return RefreshTokenStore(
        hasher=refresh_hasher(), tokens=OpaqueTokenFactory(), ttl=timedelta(days=7)
    )


@pytest.fixture()
def auth_service(refresh_store) -> AuthService:
    """
    Build an AuthService wired to the stub token provider.

    .. note::
       Access tokens look like ``access.<user_id>.<n>``.
    """
    return AuthService(
        token_provider=StubTokenProvider(),
        refresh_store=refresh_store,
        password_hasher=password_hasher(),
        access_expires=timedelta(minutes=15),
    )


@pytest.fixture()
def registration_service(outbox) -> UserRegistrationService:
    return UserRegistrationService(
        password_hasher=password_hasher(), tokens=OpaqueTokenFactory(), outbox=outbox
    )


@pytest.fixture()
def recovery_service(outbox, refresh_store) -> CredentialRecoveryService:
    return CredentialRecoveryService(
        password_hasher=password_hasher(),
        tokens=OpaqueTokenFactory(),
        outbox=outbox,
        refresh_store=refresh_store,
        reset_ttl=timedelta(hours=1),
    )
