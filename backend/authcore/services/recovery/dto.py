"""
DTOs and public messages for CredentialRecoveryService.
"""

from __future__ import annotations

from dataclasses import dataclass

EMAIL_VERIFIED = "Email successfully verified. You can now log in."
EMAIL_ALREADY_VERIFIED = "Email has already been verified."
RESET_REQUESTED = "If an account with that email exists, a password reset link has been sent."
PASSWORD_RESET_DONE = "Password has been successfully reset."


@dataclass(frozen=True, slots=True)
class ForgotPasswordIn:
    email: str


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    """
    Input DTO for completing a password reset.

    :param token: Reset token received by email.
    :type token: str
    :param new_password: Raw new password.
    :type new_password: str
    """

    token: str
    new_password: str
