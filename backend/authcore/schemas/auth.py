"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from authcore.services.registration.dto import MIN_PASSWORD_LENGTH

MAX_PASSWORD_LENGTH = 128


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    password = fields.String(
        required=True,
        validate=validate.Length(min=MIN_PASSWORD_LENGTH, max=MAX_PASSWORD_LENGTH),
    )
    full_name = fields.String(load_default=None, validate=validate.Length(max=100))


class LoginSchema(Schema):
    """Input payload for authenticating a user.

    Password length is not enforced here: a short password must fail exactly
    like a wrong one.
    """

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=MAX_PASSWORD_LENGTH))


class RefreshTokenSchema(Schema):
    """Input payload carrying an opaque refresh token (refresh and logout)."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class EmailOnlySchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=254))


class VerifyEmailSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1, max=128))


class ResetPasswordSchema(Schema):
    """Input payload completing a password reset."""

    token = fields.String(required=True, validate=validate.Length(min=1, max=128))
    new_password = fields.String(
        required=True,
        validate=validate.Length(min=MIN_PASSWORD_LENGTH, max=MAX_PASSWORD_LENGTH),
    )


class TokenPairSchema(Schema):
    """Response payload containing the access / refresh token pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)


class UserSchema(Schema):
    """Public representation of an account (no hashes, no pending tokens)."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    full_name = fields.String(allow_none=True)
    role = fields.String(required=True)
    is_email_verified = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)


class MessageSchema(Schema):
    success = fields.Boolean(dump_default=True)
    message = fields.String(allow_none=True)
