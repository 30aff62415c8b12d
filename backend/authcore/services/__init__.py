"""Service layer public API.

This package exposes the building blocks of the authentication subsystem so
that callers can import from :mod:`authcore.services` without knowing the
internal structure.

Re-exports
----------
- Base primitives (from ``authcore.services._shared.base``)
    * :class:`BaseService`

- Session lifecycle (from ``authcore.services.auth``)
    * :class:`AuthService`, :class:`RefreshTokenStore`
    * DTOs: :class:`LoginIn`, :class:`RefreshIn`, :class:`LogoutIn`,
      :class:`SessionMeta`, :class:`TokenPairOut`, :class:`AckOut`

- Registration (from ``authcore.services.registration``)
    * :class:`UserRegistrationService`
    * DTOs: :class:`UserRegistrationIn`, :class:`UserRegistrationOut`

- Recovery (from ``authcore.services.recovery``)
    * :class:`CredentialRecoveryService`
    * DTOs: :class:`ForgotPasswordIn`, :class:`ResetPasswordIn`

The composition root lives in :mod:`authcore.services.registry` and is not
re-exported here to keep this import light.
"""

from __future__ import annotations

from ._shared.base import BaseService
from ._shared.dto import UserPublicOut
from .auth.dto import AckOut, LoginIn, LogoutIn, RefreshIn, SessionMeta, TokenPairOut
from .auth.refresh_store import RefreshTokenStore, RotationResult
from .auth.service import AuthService
from .recovery.dto import ForgotPasswordIn, ResetPasswordIn
from .recovery.service import CredentialRecoveryService
from .registration.dto import UserRegistrationIn, UserRegistrationOut
from .registration.service import UserRegistrationService

__all__ = [
    "BaseService",
    "UserPublicOut",
    "AuthService",
    "RefreshTokenStore",
    "RotationResult",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "SessionMeta",
    "TokenPairOut",
    "AckOut",
    "UserRegistrationService",
    "UserRegistrationIn",
    "UserRegistrationOut",
    "CredentialRecoveryService",
    "ForgotPasswordIn",
    "ResetPasswordIn",
]
