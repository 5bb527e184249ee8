"""Global extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from tokenkeeper.core.config import BACKEND_MEMORY, BACKEND_REDIS
from tokenkeeper.infra.redis import RedisTokenStore, RedisUserIndex
from tokenkeeper.services._shared.ports import InMemoryTokenStore, InMemoryUserIndex
from tokenkeeper.services.tokens import TokenLifecycleConfig, UserTokenService

TOKEN_SERVICE_EXT = "token_service"
REDIS_CLIENT_EXT = "redis_client"


def _connect(redis_url: str, socket_timeout: float) -> redis.Redis:
    client = redis.Redis.from_url(
        redis_url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    return client


def build_token_service(config, client: redis.Redis | None = None) -> UserTokenService:
    """Assemble a :class:`UserTokenService` from a Flask-style config mapping.

    Parameters
    ----------
    config: Mapping[str, Any]
        Settings holding the ``REDIS_*``, ``TOKEN_*`` and ``*_KEY_PREFIX`` keys.
    client: redis.Redis | None, optional
        Pre-built client (e.g. ``fakeredis.FakeRedis`` in tests). When omitted
        and the backend is ``redis``, one is created from ``REDIS_URL``.

    Raises
    ------
    RuntimeError
        If the Redis backend is selected without a reachable server.
    ValueError
        If ``TOKEN_BACKEND`` names an unknown backend.
    """
    cfg = TokenLifecycleConfig.from_mapping(config)
    backend = str(config.get("TOKEN_BACKEND", BACKEND_REDIS)).strip().lower()

    if backend == BACKEND_MEMORY and client is None:
        return UserTokenService(
            token_store=InMemoryTokenStore(),
            user_index=InMemoryUserIndex(),
            cfg=cfg,
        )
    if backend not in (BACKEND_REDIS, BACKEND_MEMORY):
        raise ValueError(f"Unknown TOKEN_BACKEND {backend!r}")

    if client is None:
        redis_url = config.get("REDIS_URL")
        if not redis_url:
            raise RuntimeError("REDIS_URL is required for the redis token backend.")
        client = _connect(redis_url, float(config.get("REDIS_SOCKET_TIMEOUT", 5.0)))

    return UserTokenService(
        token_store=RedisTokenStore(r=client, prefix=config.get("TOKEN_KEY_PREFIX", "TOKENS")),
        user_index=RedisUserIndex(
            r=client,
            prefix=config.get("USER_INDEX_KEY_PREFIX", "USER_TOKENS"),
            container_ttl=bool(config.get("INDEX_CONTAINER_TTL", False)),
        ),
        cfg=cfg,
    )


def init_app(app: Flask, redis_client: redis.Redis | None = None) -> None:
    """Bind the token service (and its Redis client, if any) to ``app``.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``extensions`` receive the service.
    redis_client: redis.Redis | None, optional
        Injected client; takes precedence over ``REDIS_URL`` and implies the
        Redis adapters even when ``TOKEN_BACKEND`` is ``memory``.
    """
    service = build_token_service(app.config, redis_client)
    app.extensions[TOKEN_SERVICE_EXT] = service
    if isinstance(service.store, RedisTokenStore):
        app.extensions[REDIS_CLIENT_EXT] = service.store.r
    else:
        app.extensions.pop(REDIS_CLIENT_EXT, None)


def get_token_service(app: Flask | None = None) -> UserTokenService:
    """Return the token service bound to ``app`` (default: the current app)."""
    target = app or current_app
    service = target.extensions.get(TOKEN_SERVICE_EXT)
    if service is None:
        raise RuntimeError("Token service is not initialized. Call init_app() first.")
    return service

