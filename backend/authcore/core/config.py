"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Placeholders shipped for local runs; rejected in production
PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset(
    {"CHANGE_ME", "CHANGE_ME_JWT", "CHANGE_ME_PEPPER", "CHANGE_ME_REFRESH"}
)

# Load .env in development (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back on blanks or garbage."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Not used for token material.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access tokens.
    JWT_ACCESS_TOKEN_MINUTES: int
        Lifetime of access tokens.
    PASSWORD_PEPPER: str
        Process-wide secret mixed into password hashes.
    PASSWORD_MEMORY_COST, PASSWORD_TIME_COST, PASSWORD_PARALLELISM: int
        Argon2id cost profile for passwords (KiB, iterations, lanes).
    REFRESH_TOKEN_SECRET: str
        Secret for the keyed refresh-token hash. Must differ from the pepper.
    REFRESH_TOKEN_EXPIRY_DAYS: int
        Validity window of each refresh token.
    REFRESH_TOKEN_MEMORY_COST, REFRESH_TOKEN_TIME_COST, REFRESH_TOKEN_PARALLELISM: int
        Lighter Argon2id profile for refresh tokens (input is already high entropy).
    PASSWORD_RESET_TTL_MINUTES: int
        Validity window of password reset tokens.
    HASHING_MAX_WORKERS, HASHING_MAX_PENDING: int
        Size of the hashing worker pool and of its admission queue.
    HASHING_QUEUE_TIMEOUT_SECONDS: int
        How long a caller may wait for a hashing slot before failing.
    SESSION_SWEEP_INTERVAL_SECONDS: int
        Period of the in-process expired-token sweep (``0`` disables it).
    SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, SMTP_USE_TLS, MAIL_FROM:
        Outbound email settings. Without ``SMTP_HOST`` emails are only logged.
    FRONTEND_URL, BACKEND_URL: str
        Base URLs used to build links in emails.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    USE_PROXYFIX: bool
        Trust one hop of ``X-Forwarded-*`` headers for the client address.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes. They are read once into
    :class:`AuthSettings` when the application is created.
    """

    ENV_NAME = "development"
    API_BASE_PREFIX = "/api"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    PASSWORD_PEPPER = os.getenv("PASSWORD_PEPPER", "CHANGE_ME_PEPPER")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "CHANGE_ME_REFRESH")

    # Token lifetimes
    JWT_ACCESS_TOKEN_MINUTES = env_int("JWT_ACCESS_TOKEN_MINUTES", 15)
    REFRESH_TOKEN_EXPIRY_DAYS = env_int("REFRESH_TOKEN_EXPIRY_DAYS", 7)
    PASSWORD_RESET_TTL_MINUTES = env_int("PASSWORD_RESET_TTL_MINUTES", 60)

    # Argon2id cost profiles
    PASSWORD_MEMORY_COST = env_int("PASSWORD_MEMORY_COST", 65536)
    PASSWORD_TIME_COST = env_int("PASSWORD_TIME_COST", 4)
    PASSWORD_PARALLELISM = env_int("PASSWORD_PARALLELISM", 1)
    REFRESH_TOKEN_MEMORY_COST = env_int("REFRESH_TOKEN_MEMORY_COST", 32768)
    REFRESH_TOKEN_TIME_COST = env_int("REFRESH_TOKEN_TIME_COST", 2)
    REFRESH_TOKEN_PARALLELISM = env_int("REFRESH_TOKEN_PARALLELISM", 1)

    # Hashing worker pool
    HASHING_MAX_WORKERS = env_int("HASHING_MAX_WORKERS", 4)
    HASHING_MAX_PENDING = env_int("HASHING_MAX_PENDING", 64)
    HASHING_QUEUE_TIMEOUT_SECONDS = env_int("HASHING_QUEUE_TIMEOUT_SECONDS", 10)

    # Background sweep of expired refresh tokens
    SESSION_SWEEP_INTERVAL_SECONDS = env_int("SESSION_SWEEP_INTERVAL_SECONDS", 0)

    # Mail
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = env_int("SMTP_PORT", 587)
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)
    MAIL_FROM = os.getenv("MAIL_FROM")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
    BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses the cheapest Argon2 parameters so the suite stays fast.
    """

    ENV_NAME = "testing"
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    PASSWORD_MEMORY_COST = 1024
    PASSWORD_TIME_COST = 1
    REFRESH_TOKEN_MEMORY_COST = 1024
    REFRESH_TOKEN_TIME_COST = 1
    SESSION_SWEEP_INTERVAL_SECONDS = 0


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled. Placeholder secrets are refused by
    :meth:`AuthSettings.from_mapping`.
    """

    ENV_NAME = "production"
    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


# --------------------------------------------------------------------------- #
# Immutable runtime settings
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class HashProfile:
    """
    Argon2id cost profile plus the secret mixed into every hash.

    :param secret: Keying secret (pepper).
    :param memory_cost: Memory in KiB.
    :param time_cost: Iterations.
    :param parallelism: Lanes.
    """

    secret: str
    memory_cost: int
    time_cost: int
    parallelism: int


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Process-wide authentication settings.

    Built once from the Flask config when the app is created and injected into
    every component; never read from ambient state afterwards.
    """

    password: HashProfile
    refresh_token: HashProfile
    access_token_ttl: timedelta
    refresh_token_ttl: timedelta
    password_reset_ttl: timedelta
    hashing_max_workers: int
    hashing_max_pending: int
    hashing_queue_timeout: float
    sweep_interval_seconds: int
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    smtp_use_tls: bool
    mail_from: str | None
    frontend_url: str
    backend_url: str

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any], *, production: bool = False) -> AuthSettings:
        """
        Build settings from a config mapping (usually ``app.config``).

        :param cfg: Source mapping.
        :param production: Reject placeholder secrets when ``True``.
        :raises ValueError: On missing, shared or placeholder secrets.
        """
        pepper = str(cfg.get("PASSWORD_PEPPER") or "")
        refresh_secret = str(cfg.get("REFRESH_TOKEN_SECRET") or "")
        if not pepper or not refresh_secret:
            raise ValueError("PASSWORD_PEPPER and REFRESH_TOKEN_SECRET must be set.")
        if pepper == refresh_secret:
            raise ValueError("PASSWORD_PEPPER and REFRESH_TOKEN_SECRET must differ.")
        if production:
            used = {pepper, refresh_secret, str(cfg.get("JWT_SECRET_KEY") or "")}
            if used & PLACEHOLDER_SECRETS or "" in used:
                raise ValueError("Placeholder secrets are not allowed in production.")

        def _int(key: str, default: int) -> int:
            return int(cfg.get(key, default))

        return cls(
            password=HashProfile(
                secret=pepper,
                memory_cost=_int("PASSWORD_MEMORY_COST", 65536),
                time_cost=_int("PASSWORD_TIME_COST", 4),
                parallelism=_int("PASSWORD_PARALLELISM", 1),
            ),
            refresh_token=HashProfile(
                secret=refresh_secret,
                memory_cost=_int("REFRESH_TOKEN_MEMORY_COST", 32768),
                time_cost=_int("REFRESH_TOKEN_TIME_COST", 2),
                parallelism=_int("REFRESH_TOKEN_PARALLELISM", 1),
            ),
            access_token_ttl=timedelta(minutes=_int("JWT_ACCESS_TOKEN_MINUTES", 15)),
            refresh_token_ttl=timedelta(days=_int("REFRESH_TOKEN_EXPIRY_DAYS", 7)),
            password_reset_ttl=timedelta(minutes=_int("PASSWORD_RESET_TTL_MINUTES", 60)),
            hashing_max_workers=max(1, _int("HASHING_MAX_WORKERS", 4)),
            hashing_max_pending=max(1, _int("HASHING_MAX_PENDING", 64)),
            hashing_queue_timeout=float(cfg.get("HASHING_QUEUE_TIMEOUT_SECONDS", 10)),
            sweep_interval_seconds=max(0, _int("SESSION_SWEEP_INTERVAL_SECONDS", 0)),
            smtp_host=cfg.get("SMTP_HOST") or None,
            smtp_port=_int("SMTP_PORT", 587),
            smtp_user=cfg.get("SMTP_USER") or None,
            smtp_password=cfg.get("SMTP_PASSWORD") or None,
            smtp_use_tls=bool(cfg.get("SMTP_USE_TLS", True)),
            mail_from=cfg.get("MAIL_FROM") or None,
            frontend_url=str(cfg.get("FRONTEND_URL") or "http://localhost:3000"),
            backend_url=str(cfg.get("BACKEND_URL") or "http://localhost:8000"),
        )
