"""Refresh token repository: locked lookups and bulk state transitions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update

from authcore.models.refresh_token import RefreshToken
from authcore.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Bulk writes only ever set ``used``/``invalidated`` to ``True``.
    """

    model = RefreshToken

    def find_by_lookup_hash(
        self, lookup_hash: str, *, for_update: bool = False
    ) -> RefreshToken | None:
        """
        Fetch the record whose SHA-256 lookup hash matches.

        :param lookup_hash: Hex digest of the raw token.
        :param for_update: Lock the row (``SELECT ... FOR UPDATE``).
        """
        stmt = select(RefreshToken).where(RefreshToken.lookup_hash == lookup_hash)
        return self._first(stmt, for_update=for_update)

    def list_family(self, family: str) -> list[RefreshToken]:
        stmt = select(RefreshToken).where(RefreshToken.family == family).order_by(RefreshToken.id)
        return list(self.session.execute(stmt).scalars().all())

    def count_for_user(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(RefreshToken).where(RefreshToken.user_id == user_id)
        return int(self.session.execute(stmt).scalar_one())

    def mark_used_if_active(self, record_id: int) -> bool:
        """
        Compare-and-set ``used`` on an active record.

        :returns: ``True`` when this call flipped the flag, ``False`` when the
            record was already used or invalidated (a concurrent winner).
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == record_id,
                RefreshToken.used.is_(False),
                RefreshToken.invalidated.is_(False),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount)

    def invalidate_family(self, family: str) -> int:
        """Set ``invalidated`` on every still-valid member of ``family``."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.family == family, RefreshToken.invalidated.is_(False))
            .values(invalidated=True)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_by_lookup_hash(self, lookup_hash: str) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.lookup_hash == lookup_hash)
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_for_user(self, user_id: int) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        """Delete every record whose ``expires_at`` is strictly before ``now``."""
        stmt = delete(RefreshToken).where(RefreshToken.expires_at < now)
        return int(self.session.execute(stmt).rowcount or 0)
