"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import verify_jwt_in_request

from authcore.core.proxy import client_address, user_agent
from authcore.services.auth.dto import SessionMeta
from authcore.services.registry import ServiceRegistry, get_registry

F = TypeVar("F", bound=Callable[..., Any])


def services() -> ServiceRegistry:
    """Return the service registry bound to the current application."""

    return get_registry()


def session_meta() -> SessionMeta:
    """Collect audit metadata for refresh tokens issued by this request."""

    return SessionMeta(user_agent=user_agent(request), ip_address=client_address(request))


def json_body() -> dict[str, Any]:
    """Return the JSON body, or an empty mapping when absent or malformed."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_store(response: Response) -> Response:
    """Forbid caches from keeping responses that carry credentials."""

    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
