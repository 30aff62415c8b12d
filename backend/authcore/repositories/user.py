"""User directory repository: lookups and credential updates."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from authcore.models.user import User
from authcore.repositories.base import BaseRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never issues tokens or hashes passwords; callers pass ready-made hashes.
    """

    model = User

    def _updatable_fields(self):
        """Publicly allowed updatable fields (not including credentials)."""
        return {"email", "username", "full_name", "role"}

    # ---------------------------- Lookup helpers ----------------------------

    def find_by_email(self, email: str, *, for_update: bool = False) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :param for_update: Lock the row for the rest of the transaction.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == normalize_email(email))
        return self._first(stmt, for_update=for_update)

    def find_by_id(self, user_id: int, *, for_update: bool = False) -> User | None:
        return self._first(select(User).where(User.id == user_id), for_update=for_update)

    def find_by_verification_token(self, token: str, *, for_update: bool = False) -> User | None:
        stmt = select(User).where(User.verification_token == token)
        return self._first(stmt, for_update=for_update)

    def find_by_reset_token(self, token: str, *, for_update: bool = False) -> User | None:
        stmt = select(User).where(User.password_reset_token == token)
        return self._first(stmt, for_update=for_update)

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == normalize_email(email))
        return self.session.execute(stmt).first() is not None

    def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username.strip())
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Credential ops ----------------------------

    def update_credentials(self, user: User, password_hash: str) -> None:
        """Store a new password hash and flush."""
        user.password_hash = password_hash
        self.flush()

    def set_verification_token(self, user: User, token: str | None) -> None:
        user.verification_token = token
        self.flush()

    def mark_email_verified(self, user: User) -> None:
        """Flag the email as verified and drop the pending token."""
        user.is_email_verified = True
        user.verification_token = None
        self.flush()

    def set_reset_token(self, user: User, token: str, expires_at: datetime) -> None:
        user.password_reset_token = token
        user.password_reset_expires = expires_at
        self.flush()

    def clear_reset_token(self, user: User) -> None:
        user.password_reset_token = None
        user.password_reset_expires = None
        self.flush()
