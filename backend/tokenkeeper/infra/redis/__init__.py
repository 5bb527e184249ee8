"""Redis adapters for the token store and user index ports."""

from __future__ import annotations

from .redis_token_store import RedisTokenStore
from .redis_user_index import RedisUserIndex

__all__ = ["RedisTokenStore", "RedisUserIndex"]
