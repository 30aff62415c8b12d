"""Authentication and session-security subsystem.

Expose :func:`authcore.factory.create_app` at package level so callers can
``from authcore import create_app``.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
