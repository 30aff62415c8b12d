# authcore/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from authcore.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Access tokens are self-contained and short-lived; nothing is stored
    server-side for them. Signing key and algorithm come from
    ``JWT_SECRET_KEY`` / ``JWT_ALGORITHM``.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                # 'sub' must be a string for PyJWT >= 2.10
                identity=str(identity),
                additional_claims=dict(additional_claims or {}),
                expires_delta=expires_delta,
                fresh=fresh,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        return cast(dict[str, Any], decode_token(token))

    def get_subject(self, token: str) -> int | str:
        subject = self.decode(token)["sub"]
        return cast(int | str, subject)

    def get_expires_at(self, token: str) -> datetime:
        exp = int(self.decode(token)["exp"])
        return datetime.fromtimestamp(exp, tz=UTC)
