"""WSGI proxy middleware configuration and client address helpers."""

from __future__ import annotations

from flask import Flask, Request
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Parameters
    ----------
    app: flask.Flask
        Application whose WSGI pipeline should respect upstream proxy headers.

    Notes
    -----
    Controlled by the ``USE_PROXYFIX`` configuration flag (defaults to
    ``True``). Only one hop of ``X-Forwarded-For`` / ``X-Forwarded-Proto`` is
    trusted, so ``request.remote_addr`` becomes the first proxy's view of the
    client address.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[method-assign]


def client_address(req: Request) -> str | None:
    """Return the client address recorded for audit purposes."""
    return req.remote_addr or None


def user_agent(req: Request) -> str | None:
    """Return the raw ``User-Agent`` header truncated to the stored length."""
    ua = req.headers.get("User-Agent")
    return ua[:255] if ua else None
