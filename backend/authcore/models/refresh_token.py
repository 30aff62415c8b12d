"""Server-side refresh token records grouped into rotation families."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from authcore.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class RefreshToken(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    One issued refresh token.

    The raw token is never stored: ``lookup_hash`` (SHA-256 hex) locates the
    row and ``token_hash`` (keyed Argon2id) confirms possession.

    ``used`` and ``invalidated`` only ever move from ``False`` to ``True``;
    assigning ``False`` after ``True`` raises :class:`ValueError`.
    """

    __tablename__ = "refresh_tokens"

    lookup_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    family: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    invalidated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    user = relationship("User", back_populates="refresh_tokens", lazy="select")

    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_family", "family"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    @validates("used", "invalidated")
    def _monotonic_flag(self, key: str, value: bool) -> bool:
        """
        Refuse any transition of a state flag back to ``False``.

        :raises ValueError: If ``key`` is already ``True`` and ``value`` is falsy.
        """
        if getattr(self, key, None) is True and not value:
            raise ValueError(f"{key} cannot be reset once set.")
        return bool(value)
