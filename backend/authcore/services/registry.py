"""
Composition root for the authentication services.

Built once per application from :class:`AuthSettings` and stored in
``app.extensions["authcore"]``. Request handlers and CLI commands fetch the
services through :func:`get_registry`.
"""

from __future__ import annotations

import atexit
import logging
from dataclasses import dataclass

from flask import Flask, current_app

from authcore.core.config import AuthSettings
from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.infra.crypto.password_hasher import CredentialHasher
from authcore.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from authcore.infra.mail.smtp_notifier import SMTPNotifier
from authcore.infra.workers.hashing_pool import HashingPool
from authcore.infra.workers.outbox import NotificationOutbox
from authcore.infra.workers.sweeper import SessionSweeper
from authcore.services._shared.ports import Notifier, TokenProvider
from authcore.services.auth.refresh_store import RefreshTokenStore
from authcore.services.auth.service import AuthService
from authcore.services.recovery.service import CredentialRecoveryService
from authcore.services.registration.service import UserRegistrationService

EXTENSION_KEY = "authcore"

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceRegistry:
    """Every long-lived component of the authentication subsystem."""

    settings: AuthSettings
    hashing_pool: HashingPool
    password_hasher: CredentialHasher
    refresh_hasher: CredentialHasher
    tokens: OpaqueTokenFactory
    outbox: NotificationOutbox
    auth: AuthService
    registration: UserRegistrationService
    recovery: CredentialRecoveryService
    sweeper: SessionSweeper | None = None

    def shutdown(self) -> None:
        """Stop background workers. Idempotent."""
        if self.sweeper is not None:
            self.sweeper.stop()
        self.outbox.shutdown(wait=True)
        self.hashing_pool.shutdown(wait=True)


def build_registry(
    settings: AuthSettings,
    *,
    notifier: Notifier,
    token_provider: TokenProvider | None = None,
) -> ServiceRegistry:
    """
    Wire the services from immutable settings.

    :param settings: Frozen authentication settings.
    :param notifier: Email adapter wrapped by the outbox.
    :param token_provider: Access-token signer (flask-jwt-extended by default).
    """
    pool = HashingPool(
        max_workers=settings.hashing_max_workers,
        max_pending=settings.hashing_max_pending,
        queue_timeout=settings.hashing_queue_timeout,
    )
    password_hasher = CredentialHasher(settings.password, pool=pool)
    refresh_hasher = CredentialHasher(settings.refresh_token, pool=pool)
    tokens = OpaqueTokenFactory()
    outbox = NotificationOutbox(notifier)
    store = RefreshTokenStore(hasher=refresh_hasher, tokens=tokens, ttl=settings.refresh_token_ttl)

    return ServiceRegistry(
        settings=settings,
        hashing_pool=pool,
        password_hasher=password_hasher,
        refresh_hasher=refresh_hasher,
        tokens=tokens,
        outbox=outbox,
        auth=AuthService(
            token_provider=token_provider or JWTTokenProvider(),
            refresh_store=store,
            password_hasher=password_hasher,
            access_expires=settings.access_token_ttl,
        ),
        registration=UserRegistrationService(
            password_hasher=password_hasher, tokens=tokens, outbox=outbox
        ),
        recovery=CredentialRecoveryService(
            password_hasher=password_hasher,
            tokens=tokens,
            outbox=outbox,
            refresh_store=store,
            reset_ttl=settings.password_reset_ttl,
        ),
    )


def smtp_notifier_from(settings: AuthSettings, api_prefix: str = "/api/v1") -> SMTPNotifier:
    return SMTPNotifier(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        smtp_password=settings.smtp_password,
        smtp_use_tls=settings.smtp_use_tls,
        from_email=settings.mail_from,
        verification_base_url=f"{settings.backend_url.rstrip('/')}{api_prefix}",
        reset_base_url=settings.frontend_url,
        reset_ttl=settings.password_reset_ttl,
    )


def init_app(app: Flask, *, notifier: Notifier | None = None) -> ServiceRegistry:
    """
    Build the registry for ``app`` and start the optional sweeper.

    :param notifier: Override for the SMTP adapter (tests pass an in-memory one).
    :raises ValueError: When the authentication settings are invalid.
    """
    production = app.config.get("ENV_NAME") == "production"
    settings = AuthSettings.from_mapping(app.config, production=production)
    api_prefix = f"{app.config.get('API_BASE_PREFIX', '/api')}/v1"
    registry = build_registry(
        settings, notifier=notifier or smtp_notifier_from(settings, api_prefix)
    )

    if settings.sweep_interval_seconds > 0:

        def _sweep() -> int:
            with app.app_context():
                return registry.auth.cleanup_expired()

        registry.sweeper = SessionSweeper(_sweep, interval=settings.sweep_interval_seconds)
        registry.sweeper.start()
        log.info("sessions.sweeper_started", extra={"event": "sessions.sweeper"})

    app.extensions[EXTENSION_KEY] = registry
    atexit.register(registry.shutdown)
    return registry


def get_registry(app: Flask | None = None) -> ServiceRegistry:
    """Return the registry of ``app`` (defaults to the current app)."""
    target = app or current_app
    try:
        return target.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Auth services are not initialized. Call init_app() first.") from exc
