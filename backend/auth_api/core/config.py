"""Settings classes for the auth API, read from the process environment."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any, Final, TypeVar

from dotenv import load_dotenv

#: Selects the settings class: ``development``, ``testing`` or ``production``.
ENV_VAR: Final[str] = "APP_ENV"

_TRUTHY: Final = frozenset({"1", "true", "yes", "y", "on"})

# .env is optional; exported variables win over it.
load_dotenv()

_T = TypeVar("_T")


def _env(name: str, default: _T, cast: Callable[[str], _T]) -> _T:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return cast(raw.strip())


def env_bool(name: str, default: bool = False) -> bool:
    """Read a flag such as ``COOKIE_SECURE=on``.

    Parameters
    ----------
    name: str
        Variable name.
    default: bool, optional
        Returned when the variable is missing or blank.

    Returns
    -------
    bool
        Whether the value is one of ``1/true/yes/y/on`` (any case).
    """
    return _env(name, default, lambda raw: raw.lower() in _TRUTHY)


def env_int(name: str, default: int) -> int:
    """Read an integer; blank or missing gives ``default``."""
    return _env(name, default, int)


def env_float(name: str, default: float) -> float:
    """Read a float; blank or missing gives ``default``."""
    return _env(name, default, float)


def engine_options(database_uri: str, timeout: float) -> dict[str, Any]:
    """SQLAlchemy engine options that cap how long a request waits on the database.

    SQLite only accepts a busy ``timeout``. Server databases also get a pool
    checkout timeout, a connect timeout and ``pool_pre_ping`` so stale
    connections are swapped out before use.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout,
        "connect_args": {"connect_timeout": max(1, int(timeout))},
    }


_STORE_TIMEOUT = env_float("STORE_TIMEOUT_SECONDS", 5.0)


class BaseConfig:
    """Defaults shared by every environment.

    Attributes
    ----------
    SECRET_KEY: str
        Flask secret; also signs the OAuth ``state`` envelope.
    JWT_SECRET_KEY: str
        HMAC key for access and refresh tokens.
    ACCESS_TOKEN_TTL_SECONDS, REFRESH_TOKEN_TTL_SECONDS: int
        Token lifetimes, 15 minutes and 30 days. Cookie ``Max-Age`` follows them.
    SESSION_STORE_BACKEND: str
        Where sessions live: ``"sql"`` or ``"redis"`` (needs ``REDIS_URL``).
    STORE_TIMEOUT_SECONDS: float
        Longest a single store call may block before the request gets a 503.
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI: str
        Google OAuth client; sign-in with Google is off while any is empty.
    APP_URL: str
        Frontend origin that OAuth redirects land on.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 30 * 24 * 60 * 60)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=ACCESS_TOKEN_TTL_SECONDS)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(seconds=REFRESH_TOKEN_TTL_SECONDS)

    # Tokens travel only in HttpOnly cookies
    JWT_TOKEN_LOCATION = ["cookies"]
    JWT_ACCESS_COOKIE_NAME = "access_token"
    JWT_REFRESH_COOKIE_NAME = "refresh_token"
    JWT_ACCESS_COOKIE_PATH = "/"
    JWT_REFRESH_COOKIE_PATH = "/"
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_COOKIE_SECURE = env_bool("COOKIE_SECURE", False)
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_SESSION_COOKIE = False

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI, _STORE_TIMEOUT)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    SESSION_STORE_BACKEND = os.getenv("SESSION_STORE_BACKEND", "sql").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL")
    STORE_TIMEOUT_SECONDS = _STORE_TIMEOUT
    STORE_RETRY_ATTEMPTS = env_int("STORE_RETRY_ATTEMPTS", 3)
    STORE_RETRY_BACKOFF_SECONDS = env_float("STORE_RETRY_BACKOFF_SECONDS", 0.05)

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "")
    OAUTH_HTTP_TIMEOUT_SECONDS = env_float("OAUTH_HTTP_TIMEOUT_SECONDS", 10.0)
    OAUTH_STATE_MAX_AGE_SECONDS = env_int("OAUTH_STATE_MAX_AGE_SECONDS", 600)

    APP_URL = os.getenv("APP_URL", "http://localhost:3000")
    POST_LOGIN_PATH = os.getenv("POST_LOGIN_PATH", "/notebooks")
    OAUTH_ERROR_PATH = os.getenv("OAUTH_ERROR_PATH", "/login?error=oauth")

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    # Direct exposure is the safe assumption; proxies must be declared
    TRUSTED_PROXY_HOPS = env_int("TRUSTED_PROXY_HOPS", 0)

    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "10 per minute")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Local runs: debug on unless ``FLASK_DEBUG`` says otherwise."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600


class TestingConfig(BaseConfig):
    """Test runs.

    In-memory SQLite (override with ``TEST_DATABASE_URL``), SQL session
    store, no rate limiting and no retry backoff.
    """

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI, _STORE_TIMEOUT)
    SESSION_STORE_BACKEND = "sql"
    RATELIMIT_ENABLED = False
    STORE_RETRY_BACKOFF_SECONDS = 0.0


class ProductionConfig(BaseConfig):
    """Deployed behind TLS and the frontend rewrite of ``/api/auth/*``.

    Auth cookies are ``Secure`` and one proxy hop is trusted unless the
    environment says otherwise.
    """

    SQLALCHEMY_ECHO = False
    JWT_COOKIE_SECURE = env_bool("COOKIE_SECURE", True)
    TRUSTED_PROXY_HOPS = env_int("TRUSTED_PROXY_HOPS", 1)


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Pick the settings class named by ``APP_ENV``.

    Unknown or missing names fall back to :class:`DevelopmentConfig`.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
