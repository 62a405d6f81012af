"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when missing)
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
    val = os.getenv(name)
    return default if val is None or not val.strip() else int(val)


def env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    return default if val is None or not val.strip() else float(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    JWT_SECRET_KEY: str
        Shared HMAC secret used to sign access and refresh tokens. Empty by
        default: the application refuses to start without one.
    TOKEN_ISSUER: str
        ``iss`` claim written into, and required from, every token.
    ACCESS_TOKEN_MINUTES: int
        Access token lifetime.
    REFRESH_TOKEN_HOURS: int
        Refresh token lifetime; also the whitelist reaper's max age.
    REFRESH_TOKEN_SINGLE_USE: bool
        Remove a refresh token from the whitelist when it is exchanged.
    SQLALCHEMY_DATABASE_URI: str
        Local user store connection string.
    WHITELIST_BACKEND: str
        ``"sql"`` (embedded SQLite file by default), ``"redis"`` or
        ``"memory"`` (process-local, tests only).
    WHITELIST_URL: str
        SQLAlchemy URL of the SQL whitelist.
    REDIS_URL: str
        Redis URL used when ``WHITELIST_BACKEND == "redis"``.
    WHITELIST_REAPER_ENABLED: bool
        Start the background reaper with the application.
    WHITELIST_REAP_BATCH_SIZE: int
        Entries inspected per reap transaction.
    WHITELIST_REAP_INTERVAL: float
        Seconds slept between reap batches.
    LEGACY_API_URL: str
        Base URL of the legacy credential API; empty disables migration.
    LEGACY_API_TIMEOUT: float
        Per-request timeout for the legacy API, in seconds.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS (``*`` for any).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / token policy
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
    TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "gatehouse")
    ACCESS_TOKEN_MINUTES = env_int("ACCESS_TOKEN_MINUTES", 15)
    REFRESH_TOKEN_HOURS = env_int("REFRESH_TOKEN_HOURS", 72)
    REFRESH_TOKEN_SINGLE_USE = env_bool("REFRESH_TOKEN_SINGLE_USE", False)

    # User store
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./gatehouse.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Whitelist
    WHITELIST_BACKEND = os.getenv("WHITELIST_BACKEND", "sql")
    WHITELIST_URL = os.getenv("WHITELIST_URL", "sqlite:///./whitelist.db")
    REDIS_URL = os.getenv("REDIS_URL", "")
    WHITELIST_REAPER_ENABLED = env_bool("WHITELIST_REAPER_ENABLED", True)
    WHITELIST_REAP_BATCH_SIZE = env_int("WHITELIST_REAP_BATCH_SIZE", 1000)
    WHITELIST_REAP_INTERVAL = env_float("WHITELIST_REAP_INTERVAL", 1.0)

    # Legacy system
    LEGACY_API_URL = os.getenv("LEGACY_API_URL", "")
    LEGACY_API_TIMEOUT = env_float("LEGACY_API_TIMEOUT", 5.0)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Local runs: debug on, a throwaway secret when none is exported.

    The fallback secret makes ``flask run`` work out of the box; it is never
    used outside this class.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-secret-change-me-0123456789")
    CORS_MAX_AGE = 600


class TestingConfig(BaseConfig):
    """Automated test runs.

    In-memory SQLite for users, an in-memory whitelist, no reaper thread and
    no legacy system. Exceptions propagate so pytest shows tracebacks.
    """

    TESTING = True
    JWT_SECRET_KEY = "testing-secret-key-with-at-least-32-bytes"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    WHITELIST_BACKEND = "memory"
    WHITELIST_REAPER_ENABLED = False
    LEGACY_API_URL = ""
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Deployed service: secret must come from the environment, no echo."""

    SQLALCHEMY_ECHO = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the config class named by ``APP_ENV`` (development when unknown)."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_auth_settings(config: Mapping[str, Any]) -> None:
    """Refuse to start with settings that would issue unusable tokens.

    :param config: Loaded Flask configuration.
    :raises RuntimeError: Missing secret or issuer, or non-positive lifetimes.
    """
    if not config.get("JWT_SECRET_KEY"):
        raise RuntimeError("No JWT_SECRET_KEY configured; refusing to sign tokens.")
    if not config.get("TOKEN_ISSUER"):
        raise RuntimeError("No TOKEN_ISSUER configured.")
    if access_lifetime(config) <= timedelta(0) or refresh_lifetime(config) <= timedelta(0):
        raise RuntimeError("Token lifetimes must be positive.")


def access_lifetime(config: Mapping[str, Any]) -> timedelta:
    return timedelta(minutes=int(config.get("ACCESS_TOKEN_MINUTES", 15)))


def refresh_lifetime(config: Mapping[str, Any]) -> timedelta:
    return timedelta(hours=int(config.get("REFRESH_TOKEN_HOURS", 72)))
