from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from tokenkeeper.services._shared.errors import BackendError


@contextmanager
def translate_redis_errors(operation: str) -> Iterator[None]:
    """Re-raise any :class:`redis.exceptions.RedisError` as :class:`BackendError`."""
    try:
        yield
    except RedisError as exc:
        raise BackendError(operation) from exc


def to_str(value: bytes | bytearray | str) -> str:
    """Normalize a Redis reply member (bytes unless ``decode_responses``) to ``str``."""
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)
