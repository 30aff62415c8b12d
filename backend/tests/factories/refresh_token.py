"""Factory Boy definition for :class:`authcore.models.refresh_token.RefreshToken`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import factory
from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.models.refresh_token import RefreshToken

from tests.factories import BaseFactory
from tests.factories.user import UserFactory
from tests.helpers.security import refresh_hasher


class RefreshTokenFactory(BaseFactory):
    """
    Persist an active refresh token for a fresh user.

    The raw value is a factory parameter: keep it around (``raw=...``) when
    the test needs to present the token.
    """

    class Meta:
        model = RefreshToken

    class Params:
        raw = factory.Sequence(lambda n: f"raw-refresh-token-{n:06d}")

    id = None
    user = factory.SubFactory(UserFactory)
    lookup_hash = factory.LazyAttribute(lambda o: OpaqueTokenFactory.lookup_hash(o.raw))
    token_hash = factory.LazyAttribute(lambda o: refresh_hasher().hash(o.raw))
    family = factory.LazyFunction(lambda: uuid4().hex)
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=7))
    used = False
    invalidated = False
