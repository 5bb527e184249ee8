# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import redis  # type: ignore[import-untyped]

from tokenkeeper.infra.redis._errors import to_str, translate_redis_errors
from tokenkeeper.services._shared.ports import UserIndex


@dataclass(slots=True)
class RedisUserIndex(UserIndex):
    """
    Redis sorted-set index of the tokens owned by each user.

    Member is the token string, score is its absolute expiry (epoch seconds).

    :param r: A Redis client (already connected).
    :param prefix: Key namespace for per-user sorted sets.
    :param container_ttl: When ``True`` the sorted set itself expires at its
        highest score, so an abandoned user's index cannot outlive its newest entry.
    """

    r: redis.Redis
    prefix: str = "USER_TOKENS"
    container_ttl: bool = False

    # -------------------- helpers --------------------

    def _ku(self, user_id: str) -> str:
        return f"{self.prefix}:{user_id}"

    def _refresh_container_ttl(self, key: str) -> None:
        top = self.r.zrange(key, -1, -1, withscores=True)
        if top:
            _, score = top[0]
            self.r.expireat(key, int(score) + 1)

    # -------------------- API ------------------------

    def insert(self, user_id: str, token: str, expiry_epoch: int) -> None:
        key = self._ku(user_id)
        with translate_redis_errors("index_insert"):
            self.r.zadd(key, {token: float(expiry_epoch)})
            if self.container_ttl:
                self._refresh_container_ttl(key)

    def remove_expired_by_score(self, user_id: str, now_epoch: int) -> int:
        with translate_redis_errors("index_remove_expired"):
            return cast(int, self.r.zremrangebyscore(self._ku(user_id), "-inf", now_epoch))

    def remove_members(self, user_id: str, *tokens: str) -> int:
        if not tokens:
            return 0
        with translate_redis_errors("index_remove_members"):
            return cast(int, self.r.zrem(self._ku(user_id), *tokens))

    def list_all(self, user_id: str) -> list[str]:
        with translate_redis_errors("index_list_all"):
            members = self.r.zrange(self._ku(user_id), 0, -1)
        return [to_str(m) for m in members]

    def is_member(self, user_id: str, token: str) -> bool:
        with translate_redis_errors("index_is_member"):
            return self.r.zscore(self._ku(user_id), token) is not None

