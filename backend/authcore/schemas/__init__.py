"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    EmailOnlySchema,
    LoginSchema,
    MessageSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    UserSchema,
    VerifyEmailSchema,
)

__all__ = [
    "EmailOnlySchema",
    "LoginSchema",
    "MessageSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "ResetPasswordSchema",
    "TokenPairSchema",
    "UserSchema",
    "VerifyEmailSchema",
]
