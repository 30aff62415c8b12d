"""
DTOs for UserRegistrationService.

Contracts for the self-registration flow: create the user with a hashed
password and a pending verification token, then mail the link.
"""

from __future__ import annotations

from dataclasses import dataclass

from authcore.services._shared.dto import UserPublicOut

REGISTERED_MESSAGE = "Registration successful. Please check your email to verify your account."
RESEND_MESSAGE = (
    "If an account with that email exists and is not yet verified, "
    "a new verification link has been sent."
)

MIN_PASSWORD_LENGTH = 8


# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserRegistrationIn:
    """
    Input payload for the registration process.

    :param email: Login email (will be normalized to lowercase+trim).
    :type email: str
    :param password: Raw password (hashed by the service, never stored).
    :type password: str
    :param username: Public handle (unique).
    :type username: str
    :param full_name: Optional real name.
    :type full_name: str | None
    """

    email: str
    password: str
    username: str
    full_name: str | None = None


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserRegistrationOut:
    """
    Output summary for the registration process.

    :param user: Public-safe user payload.
    :type user: :class:`UserPublicOut`
    :param message: Client-facing confirmation.
    :type message: str
    """

    user: UserPublicOut
    message: str = REGISTERED_MESSAGE
