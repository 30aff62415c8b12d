"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are the stable contract between repositories, the security
components and the application services.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

# Public messages, one per flow. Every failure inside a flow uses the same text.
LOGIN_FAILED = "Invalid credentials."
REFRESH_FAILED = "Invalid or expired refresh token."
VERIFICATION_FAILED = "Invalid or expired verification link."
RESET_FAILED = "Invalid or expired password reset token."


def violates(exc: IntegrityError, constraint_name: str, *, column: str | None = None) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').
    column : str, optional
        ``table.column`` fallback for dialects that report the column instead
        of the constraint name (SQLite: ``UNIQUE constraint failed: users.email``).

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    return column is not None and column.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them through ``BaseService.translate_exceptions``.
    """

    pass


class ValidationError(ServiceError):
    """Raised when input fails a service-level rule (empty token, short password)."""


class InternalError(ServiceError):
    """
    Raised when storage fails. The message is opaque; the cause is logged.
    """

    def __init__(self, message: str = "Internal error.") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Authentication failures
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """
    Base class for authentication failures.

    ``public_message`` is what clients see. Subclasses only exist so callers
    and logs can tell the reason apart; they never leak it to the response.

    :param public_message: Client-facing text, shared by a whole flow.
    """

    default_message = "Authentication failed."

    def __init__(self, public_message: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(self.public_message)

    @property
    def reason(self) -> str:
        """Stable internal reason, for logs."""
        return type(self).__name__


class InvalidCredentials(AuthenticationError):
    default_message = LOGIN_FAILED


class EmailNotVerified(AuthenticationError):
    default_message = LOGIN_FAILED


class InvalidToken(AuthenticationError):
    default_message = REFRESH_FAILED


class TokenInvalidated(AuthenticationError):
    default_message = REFRESH_FAILED


class TokenExpired(AuthenticationError):
    default_message = REFRESH_FAILED


class ReuseDetected(AuthenticationError):
    """
    A consumed refresh token was presented again. The family is already dead.

    :param family: Family that was invalidated.
    :param user_id: Owner of the family.
    """

    default_message = REFRESH_FAILED

    def __init__(self, family: str, user_id: int) -> None:
        super().__init__()
        self.family = family
        self.user_id = user_id


class InvalidRecoveryToken(AuthenticationError):
    """Unknown or expired verification / reset token."""

    default_message = VERIFICATION_FAILED


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"
