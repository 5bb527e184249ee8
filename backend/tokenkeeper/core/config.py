"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

BACKEND_REDIS: Final[str] = "redis"
BACKEND_MEMORY: Final[str] = "memory"

# Load .env during development (no-op when absent)
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
    """Parse an integer environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def env_float(name: str, default: float) -> float:
    """Parse a float environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return float(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    REDIS_URL: str | None
        Connection URL for the token store and user index.
    REDIS_SOCKET_TIMEOUT: float
        Upper bound (seconds) for any single Redis call, connect included.
    TOKEN_BACKEND: str
        ``"redis"`` or ``"memory"`` (in-process, single worker only).
    TOKEN_KEY_PREFIX: str
        Key namespace for token records.
    USER_INDEX_KEY_PREFIX: str
        Key namespace for per-user token indexes.
    INDEX_CONTAINER_TTL: bool
        Let each user index expire together with its newest entry.
    TOKEN_MAX_ATTEMPTS: int
        Issuance attempts before giving up on collisions; ``0`` retries forever.
    TOKEN_BACKOFF_INITIAL_MS: int
        Backoff after the first collision.
    TOKEN_BACKOFF_MAX_MS: int
        Cap for a single backoff.
    TOKEN_BACKOFF_JITTER: float
        Fraction of each backoff randomized.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    DEBUG: bool
        Toggles Flask debug mode.
    TESTING: bool
        Enables Flask testing mode when ``True``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # Redis
    REDIS_URL: str | None = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = env_float("REDIS_SOCKET_TIMEOUT", 5.0)

    # Token storage
    TOKEN_BACKEND = os.getenv("TOKEN_BACKEND", BACKEND_REDIS)
    TOKEN_KEY_PREFIX = os.getenv("TOKEN_KEY_PREFIX", "TOKENS")
    USER_INDEX_KEY_PREFIX = os.getenv("USER_INDEX_KEY_PREFIX", "USER_TOKENS")
    INDEX_CONTAINER_TTL = env_bool("INDEX_CONTAINER_TTL", False)

    # Issuance retry policy
    TOKEN_MAX_ATTEMPTS = env_int("TOKEN_MAX_ATTEMPTS", 10)
    TOKEN_BACKOFF_INITIAL_MS = env_int("TOKEN_BACKOFF_INITIAL_MS", 5)
    TOKEN_BACKOFF_MAX_MS = env_int("TOKEN_BACKOFF_MAX_MS", 200)
    TOKEN_BACKOFF_JITTER = env_float("TOKEN_BACKOFF_JITTER", 0.5)

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses the in-memory backend unless ``TEST_REDIS_URL`` is set.
    """

    TESTING = True
    DEBUG = False
    REDIS_URL = os.getenv("TEST_REDIS_URL")
    TOKEN_BACKEND = BACKEND_REDIS if os.getenv("TEST_REDIS_URL") else BACKEND_MEMORY


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Always backed by Redis; the in-memory store is per process and would split
    token state between workers.
    """

    DEBUG = False
    TOKEN_BACKEND = BACKEND_REDIS


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
