"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from authcore.api.deps import (
    json_body,
    json_response,
    no_store,
    require_auth,
    services,
    session_meta,
    timing,
)
from authcore.schemas import (
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
from authcore.services.auth.dto import AckOut, LoginIn, LogoutIn, RefreshIn
from authcore.services.recovery.dto import ForgotPasswordIn, ResetPasswordIn
from authcore.services.registration.dto import UserRegistrationIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
email_schema = EmailOnlySchema()
verify_schema = VerifyEmailSchema()
reset_schema = ResetPasswordSchema()
token_schema = TokenPairSchema()
user_schema = UserSchema()
message_schema = MessageSchema()


def _ack(ack: AckOut, status: int = 200):
    return json_response({"data": message_schema.dump(ack)}, status=status)


# --------------------------------------------------------------------------- #
# Registration & verification
# --------------------------------------------------------------------------- #


@bp.post("/register")
@timing
def register():
    """Create an account and send the verification email."""

    data = register_schema.load(json_body())
    result = services().registration.register(UserRegistrationIn(**data))
    body = {"data": user_schema.dump(result.user), "message": result.message}
    return json_response(body, status=201)


@bp.route("/verify-email", methods=["GET", "POST"])
@timing
def verify_email():
    """Confirm an email address from the link (``?token=``) or a JSON body."""

    source = request.args if "token" in request.args else json_body()
    data = verify_schema.load({"token": source.get("token")})
    return _ack(services().recovery.verify_email(data["token"]))


@bp.post("/resend-verification")
@timing
def resend_verification():
    data = email_schema.load(json_body())
    return _ack(services().registration.issue_verification_token(data["email"]))


# --------------------------------------------------------------------------- #
# Sessions
# --------------------------------------------------------------------------- #


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access / refresh token pair."""

    data = login_schema.load(json_body())
    pair = services().auth.login(LoginIn(**data), meta=session_meta())
    return no_store(json_response({"data": token_schema.dump(pair)}))


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate a refresh token. The presented token can never be used again."""

    data = refresh_schema.load(json_body())
    pair = services().auth.rotate(RefreshIn(**data), meta=session_meta())
    return no_store(json_response({"data": token_schema.dump(pair)}))


@bp.post("/logout")
@timing
def logout():
    """Forget one refresh token. Succeeds for unknown tokens too."""

    data = refresh_schema.load(json_body())
    return _ack(services().auth.logout(LogoutIn(**data)))


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Revoke every refresh token of the authenticated user."""

    user = services().auth.whoami(get_jwt_identity())
    revoked = services().auth.revoke_all_sessions(user.id)
    return json_response({"data": {"success": True, "revoked": revoked}})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user profile."""

    user = services().auth.whoami(get_jwt_identity())
    return json_response({"data": user_schema.dump(user)})


# --------------------------------------------------------------------------- #
# Password recovery
# --------------------------------------------------------------------------- #


@bp.post("/forgot-password")
@timing
def forgot_password():
    """Send a reset link when the account exists; the answer never tells."""

    data = email_schema.load(json_body())
    return _ack(services().recovery.forgot_password(ForgotPasswordIn(**data)))


@bp.post("/reset-password")
@timing
def reset_password():
    """Set a new password from a reset token and end every session."""

    data = reset_schema.load(json_body())
    return _ack(services().recovery.reset_password(ResetPasswordIn(**data)))
