# authcore/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from authcore.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from authcore.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Turn storage failures into opaque :class:`InternalError`.
    * Centralize error translation towards the HTTP layer.

    Notes
    -----
    - Services never touch the global session; always use a Unit of Work.
    - Security rules (rotation, reuse detection) live in the services.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyUnitOfWork:
        """Create a read-only Unit of Work (rolled back on exit)."""
        return SQLAlchemyUnitOfWork(read_only=True)

    @contextmanager
    def storage_guard(self, operation: str) -> Iterator[None]:
        """
        Convert unexpected ``SQLAlchemyError`` into :class:`InternalError`.

        :param operation: Name logged with the traceback.
        :raises InternalError: When the wrapped block hits a storage error.
        """
        try:
            yield
        except SQLAlchemyError as exc:
            log.error("storage.failure", extra={"event": operation}, exc_info=True)
            raise InternalError() from exc

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        from authcore.core import errors as api_errors

        if isinstance(exc, AuthenticationError):
            # → 401, never the internal reason
            return api_errors.Unauthorized(exc.public_message)

        if isinstance(exc, ValidationError):
            return api_errors.APIError(
                message=str(exc),
                status_code=422,
                code="validation_error",
            )

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, InternalError):
            return api_errors.APIError(
                message=str(exc),
                status_code=500,
                code="internal_server_error",
            )

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
