# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public-safe user payload (never carries hashes or pending tokens).

    :param id: User identifier.
    :type id: int
    :param email: Normalized email.
    :type email: str
    :param username: Public handle.
    :type username: str
    :param full_name: Optional real name.
    :type full_name: str | None
    :param role: Role name.
    :type role: str
    :param is_email_verified: Whether the email was confirmed.
    :type is_email_verified: bool
    :param created_at: Creation timestamp, when loaded.
    :type created_at: datetime | None
    """

    id: int
    email: str
    username: str
    full_name: str | None
    role: str
    is_email_verified: bool
    created_at: datetime | None = None


def to_user_public(user: Any) -> UserPublicOut:
    """
    Map an ORM ``User`` to :class:`UserPublicOut` while it is still attached.

    :param user: ORM user instance.
    :returns: Detached, immutable snapshot.
    """
    return UserPublicOut(
        id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        role=user.role,
        is_email_verified=bool(user.is_email_verified),
        created_at=user.created_at,
    )
