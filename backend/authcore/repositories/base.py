"""Generic repository base for SQLAlchemy 2.x.

Repositories stay persistence-only:

- They never call commit/rollback; the Unit of Work owns transactions.
- They never implement use cases or security policy.
- Updates go through a per-repository whitelist to avoid mass-assignment.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from authcore.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single mapped class.

    Subclasses MUST define ``model`` and MAY override ``_updatable_fields``.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the Unit of Work scope. When
            omitted the Flask-scoped ``db.session`` is used.
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Extensibility ----------------------------

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _updatable_fields(self) -> set[str]:
        """Whitelist of attribute names assignable through :meth:`update`."""
        return set()

    def _sanitize_update_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return ``fields`` restricted to the whitelist.

        :raises ValueError: On unknown keys, or when no whitelist is configured.
        """
        allowed = self._updatable_fields()
        unknown = [k for k in fields if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        return dict(fields)

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize the PK."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """
        Retrieve a single entity by primary key.

        :raises RuntimeError: If no PK attribute can be detected.
        """
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get requires a detectable PK attribute.")
        result = self.session.execute(select(self.model).where(pk_attr == entity_id))
        return cast(E | None, result.scalars().first())

    def _first(self, stmt: Select[Any], *, for_update: bool = False) -> E | None:
        """Execute ``stmt`` and return the first entity, locking the row if asked.

        ``FOR UPDATE`` is silently ignored by dialects without row locks (SQLite).
        Locked reads refresh identity-map state since bulk updates bypass it.
        """
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        self.session.flush()

    def update(self, instance: E, **fields: Any) -> E:
        """
        Assign whitelisted ``fields`` to ``instance`` and flush.

        Assignment uses ``setattr`` so ``@validates`` hooks on the model run.
        """
        for k, v in self._sanitize_update_fields(fields).items():
            setattr(instance, k, v)
        self.flush()
        return instance
