"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from authcore.core.extensions import db
from authcore.repositories import RefreshTokenRepository, UserRepository
from authcore.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories for a consistent
    transaction. Row locks taken inside the block (``FOR UPDATE``) are held
    until the block exits.

    :param read_only: Roll back on exit instead of committing, and refuse
        :meth:`commit`.
    """

    def __init__(self, *, read_only: bool = False) -> None:
        super().__init__(session=db.session)
        self.read_only = read_only

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None or self.read_only:
            self.rollback()
            return
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        """
        Commit the current transaction.

        :raises RuntimeError: When the unit of work is read-only.
        """
        if self.read_only:
            raise RuntimeError("Read-only UnitOfWork does not allow commit().")
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
