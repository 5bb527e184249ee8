# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]

from tokenkeeper.infra.redis._errors import to_str, translate_redis_errors
from tokenkeeper.services._shared.errors import TokenNotFoundError
from tokenkeeper.services._shared.ports import Payload, TokenStore
from tokenkeeper.services._shared.ports.token_store import ttl_millis


@dataclass(slots=True)
class RedisTokenStore(TokenStore):
    """
    Redis-backed token records: one string key per token, expiring on its own.

    :param r: A Redis client (already connected).
    :param prefix: Key namespace for token records.
    """

    r: redis.Redis
    prefix: str = "TOKENS"

    # -------------------- helpers --------------------

    def _k(self, token: str) -> str:
        return f"{self.prefix}:{token}"

    # -------------------- API ------------------------

    def save_token(self, token: str, payload: Payload, ttl: timedelta) -> bool:
        """
        Create the record with ``SET NX PX``.

        This is the only atomic primitive the lifecycle relies on: two concurrent
        issuances can never both claim the same token.
        """
        ms = ttl_millis(ttl)
        with translate_redis_errors("save_token"):
            created = self.r.set(self._k(token), payload, nx=True, px=ms)
        return bool(created)

    def load_token(self, token: str) -> Payload:
        with translate_redis_errors("load_token"):
            value = self.r.get(self._k(token))
        if value is None:
            raise TokenNotFoundError(token)
        return to_str(value)

    def delete_token(self, *tokens: str) -> None:
        if not tokens:
            return
        with translate_redis_errors("delete_token"):
            self.r.unlink(*(self._k(t) for t in tokens))

    def is_token_exist(self, token: str) -> bool:
        with translate_redis_errors("is_token_exist"):
            return cast(int, self.r.exists(self._k(token))) > 0

    def extend_expire(self, token: str, ttl: timedelta) -> bool:
        ms = ttl_millis(ttl)
        with translate_redis_errors("extend_expire"):
            return bool(self.r.pexpire(self._k(token), ms))
