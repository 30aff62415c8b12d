"""Unit tests for OpaqueTokenFactory."""

from __future__ import annotations

import hashlib
import re

import pytest
from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory


def test_tokens_are_urlsafe_and_long_enough():
    token = OpaqueTokenFactory().new_token()

    assert re.fullmatch(r"[A-Za-z0-9_-]+", token)
    # 32 random bytes -> 43 base64url characters
    assert len(token) >= 43


def test_tokens_are_unique():
    factory = OpaqueTokenFactory()
    assert len({factory.new_token() for _ in range(200)}) == 200


def test_family_is_uuid_hex():
    family = OpaqueTokenFactory.new_family()
    assert re.fullmatch(r"[0-9a-f]{32}", family)
    assert family != OpaqueTokenFactory.new_family()


def test_lookup_hash_is_sha256_hex():
    assert OpaqueTokenFactory.lookup_hash("abc") == hashlib.sha256(b"abc").hexdigest()


def test_refuses_low_entropy():
    with pytest.raises(ValueError):
        OpaqueTokenFactory(nbytes=8)
