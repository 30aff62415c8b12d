"""Secrets and cheap hashers shared by fixtures and factories."""

from __future__ import annotations

from functools import cache

from authcore.core.config import HashProfile
from authcore.infra.crypto.password_hasher import CredentialHasher

TEST_PEPPER = "test-pepper-0123456789abcdef"
TEST_REFRESH_SECRET = "test-refresh-secret-0123456789"
TEST_JWT_SECRET = "test-jwt-secret-0123456789abcdefghijklmnop"
DEFAULT_PASSWORD = "Passw0rd!"

# Argon2 accepts 1 KiB * 8 lanes minimum; keep the suite fast.
CHEAP_MEMORY_COST = 1024
CHEAP_TIME_COST = 1


def password_profile(secret: str = TEST_PEPPER) -> HashProfile:
    return HashProfile(
        secret=secret, memory_cost=CHEAP_MEMORY_COST, time_cost=CHEAP_TIME_COST, parallelism=1
    )


def refresh_profile(secret: str = TEST_REFRESH_SECRET) -> HashProfile:
    return HashProfile(
        secret=secret, memory_cost=CHEAP_MEMORY_COST, time_cost=CHEAP_TIME_COST, parallelism=1
    )


@cache
def password_hasher() -> CredentialHasher:
    """Hasher matching the application's password pepper (no pool)."""
    return CredentialHasher(password_profile())


@cache
def refresh_hasher() -> CredentialHasher:
    return CredentialHasher(refresh_profile())
