"""
Unit tests for RedisTokenStore using fakeredis.

These tests exercise the main flows:
- save_token as SET NX (create-if-absent) with a millisecond TTL
- load_token / is_token_exist / extend_expire
- idempotent delete_token
- translation of driver failures into BackendError
"""

from __future__ import annotations

import time
from datetime import timedelta

import fakeredis
import pytest

from tokenkeeper.infra.redis import RedisTokenStore
from tokenkeeper.services._shared.errors import BackendError, TokenNotFoundError


@pytest.fixture
def store(fake_redis):
    """Provide a RedisTokenStore backed by FakeRedis."""
    return RedisTokenStore(r=fake_redis)


def test_save_and_load(store):
    """A saved token is stored under the prefixed key with its TTL."""
    assert store.save_token("abc", "payload1", timedelta(seconds=30)) is True

    assert store.load_token("abc") == "payload1"
    assert store.is_token_exist("abc") is True
    pttl = store.r.pttl("TOKENS:abc")
    assert 0 < pttl <= 30_000


def test_save_collision_keeps_original(store):
    """SET NX refuses to overwrite a live token."""
    store.save_token("abc", "first", timedelta(seconds=30))

    assert store.save_token("abc", "second", timedelta(seconds=30)) is False
    assert store.load_token("abc") == "first"


def test_custom_prefix(fake_redis):
    store = RedisTokenStore(r=fake_redis, prefix="sess")
    store.save_token("abc", "v", timedelta(seconds=5))
    assert fake_redis.exists("sess:abc") == 1


def test_load_missing_raises_not_found(store):
    with pytest.raises(TokenNotFoundError):
        store.load_token("nope")
    assert store.is_token_exist("nope") is False


def test_token_expires_with_its_ttl(store):
    """The record is gone once its own TTL elapses."""
    store.save_token("short", "v", timedelta(milliseconds=200))
    assert store.is_token_exist("short") is True

    time.sleep(0.3)

    assert store.is_token_exist("short") is False
    with pytest.raises(TokenNotFoundError):
        store.load_token("short")


def test_delete_token_is_idempotent(store):
    """UNLINK of several keys, missing ones included, never fails."""
    store.save_token("a", "1", timedelta(seconds=30))
    store.save_token("b", "2", timedelta(seconds=30))

    store.delete_token("a", "b", "missing")
    store.delete_token("a", "b")
    store.delete_token()

    assert store.is_token_exist("a") is False
    assert store.is_token_exist("b") is False


def test_extend_expire(store):
    """PEXPIRE refreshes the TTL but not the payload; missing tokens report False."""
    store.save_token("abc", "v", timedelta(seconds=5))

    assert store.extend_expire("abc", timedelta(seconds=120)) is True
    assert store.r.pttl("TOKENS:abc") > 5_000
    assert store.load_token("abc") == "v"

    assert store.extend_expire("missing", timedelta(seconds=120)) is False


def test_rejects_non_positive_ttl(store):
    with pytest.raises(ValueError):
        store.save_token("abc", "v", timedelta(0))


def test_driver_failures_become_backend_errors():
    """Connection failures surface as BackendError with the driver error chained."""
    server = fakeredis.FakeServer()
    store = RedisTokenStore(r=fakeredis.FakeRedis(server=server))
    server.connected = False

    with pytest.raises(BackendError) as excinfo:
        store.save_token("abc", "v", timedelta(seconds=5))
    assert excinfo.value.operation == "save_token"
    assert excinfo.value.__cause__ is not None

    with pytest.raises(BackendError):
        store.is_token_exist("abc")
    with pytest.raises(BackendError):
        store.delete_token("abc")
