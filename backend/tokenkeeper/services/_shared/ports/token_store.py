from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from tokenkeeper.services._shared.errors import TokenNotFoundError

Payload = str
"""Opaque token payload; adapters store it as UTF-8 and hand it back as ``str``."""


def ttl_millis(ttl: timedelta) -> int:
    """
    Convert a positive TTL into whole milliseconds.

    :param ttl: Time-to-live.
    :returns: Milliseconds, at least 1.
    :raises ValueError: If ``ttl`` is zero or negative.
    """
    if ttl <= timedelta(0):
        raise ValueError("ttl must be positive")
    return max(1, int(ttl.total_seconds() * 1000))


class TokenStore(Protocol):
    """
    Primary record storage: one entry per token with an opaque payload and a
    store-enforced absolute expiration.

    ``save_token`` MUST be an atomic create-if-absent; every other write is
    unconditional and idempotent.
    """

    def save_token(self, token: str, payload: Payload, ttl: timedelta) -> bool:
        """
        Create ``token`` only if it does not exist yet.

        :returns: ``False`` (not an error) when the token is already taken.
        """

    def load_token(self, token: str) -> Payload:
        """
        Return the payload stored for ``token``.

        :raises TokenNotFoundError: If the token is absent or expired.
        """

    def delete_token(self, *tokens: str) -> None:
        """Remove the given tokens; missing ones are ignored."""

    def is_token_exist(self, token: str) -> bool:
        """Return ``True`` while the record is retrievable."""

    def extend_expire(self, token: str, ttl: timedelta) -> bool:
        """Reset the TTL of ``token``. :returns: ``False`` if it no longer exists."""


@dataclass(slots=True)
class _Record:
    payload: Payload
    expires_at: float


class InMemoryTokenStore(TokenStore):
    """
    In-process token store with TTL semantics.

    .. note::
       Uses a threading lock so ``save_token`` is atomic across threads. The
       clock is injectable so expiry can be exercised without sleeping.
    """

    #: Minimum seconds between full sweeps of expired records.
    SWEEP_INTERVAL = 1.0

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._records: dict[str, _Record] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    # ------------------------- helpers -------------------------

    def _live(self, token: str) -> _Record | None:
        # Caller must hold the lock.
        rec = self._records.get(token)
        if rec is None:
            return None
        if rec.expires_at <= self._clock():
            del self._records[token]
            return None
        return rec

    def _sweep(self, now: float) -> None:
        # Caller must hold the lock.
        if now < self._next_sweep:
            return
        expired = [t for t, rec in self._records.items() if rec.expires_at <= now]
        for token in expired:
            del self._records[token]
        self._next_sweep = now + self.SWEEP_INTERVAL

    # -------------------------- API ----------------------------

    def save_token(self, token: str, payload: Payload, ttl: timedelta) -> bool:
        ms = ttl_millis(ttl)
        with self._lock:
            now = self._clock()
            self._sweep(now)
            if self._live(token) is not None:
                return False
            self._records[token] = _Record(payload=payload, expires_at=now + ms / 1000)
            return True

    def load_token(self, token: str) -> Payload:
        with self._lock:
            rec = self._live(token)
        if rec is None:
            raise TokenNotFoundError(token)
        return rec.payload

    def delete_token(self, *tokens: str) -> None:
        with self._lock:
            for token in tokens:
                self._records.pop(token, None)

    def is_token_exist(self, token: str) -> bool:
        with self._lock:
            return self._live(token) is not None

    def extend_expire(self, token: str, ttl: timedelta) -> bool:
        ms = ttl_millis(ttl)
        with self._lock:
            rec = self._live(token)
            if rec is None:
                return False
            rec.expires_at = self._clock() + ms / 1000
            return True
