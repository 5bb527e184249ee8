"""Unit tests for token service wiring."""

from __future__ import annotations

import pytest
from flask import Flask

from tokenkeeper.core.extensions import (
    REDIS_CLIENT_EXT,
    build_token_service,
    get_token_service,
)
from tokenkeeper.infra.redis import RedisTokenStore, RedisUserIndex
from tokenkeeper.services._shared.ports import InMemoryTokenStore, InMemoryUserIndex


def test_memory_backend_without_client():
    service = build_token_service({"TOKEN_BACKEND": "memory", "TOKEN_MAX_ATTEMPTS": 0})

    assert isinstance(service.store, InMemoryTokenStore)
    assert isinstance(service.index, InMemoryUserIndex)
    assert service.cfg.max_attempts is None


def test_injected_client_selects_redis_adapters(fake_redis):
    service = build_token_service(
        {
            "TOKEN_BACKEND": "memory",
            "TOKEN_KEY_PREFIX": "T",
            "USER_INDEX_KEY_PREFIX": "U",
            "INDEX_CONTAINER_TTL": True,
        },
        fake_redis,
    )

    assert isinstance(service.store, RedisTokenStore)
    assert isinstance(service.index, RedisUserIndex)
    assert service.store.prefix == "T"
    assert service.index.prefix == "U"
    assert service.index.container_ttl is True


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        build_token_service({"TOKEN_BACKEND": "memcached"})


def test_redis_backend_requires_url():
    with pytest.raises(RuntimeError):
        build_token_service({"TOKEN_BACKEND": "redis", "REDIS_URL": None})


def test_app_exposes_service_and_client(app, fake_redis):
    with app.app_context():
        service = get_token_service()
    assert service is get_token_service(app)
    assert app.extensions[REDIS_CLIENT_EXT] is fake_redis


def test_get_token_service_requires_init():
    with pytest.raises(RuntimeError):
        get_token_service(Flask(__name__))
