from __future__ import annotations

import threading
from typing import Protocol


class UserIndex(Protocol):
    """
    Per-user ordered collection of token identifiers scored by their absolute
    expiry epoch (seconds).

    The index never consults the token store; keeping the two in line is the
    job of the lifecycle service.
    """

    def insert(self, user_id: str, token: str, expiry_epoch: int) -> None:
        """Add ``token`` to the user's index, or update its score if present."""

    def remove_expired_by_score(self, user_id: str, now_epoch: int) -> int:
        """
        Remove every entry whose score is ``<= now_epoch`` in a single call.

        :returns: Number of entries removed.
        """

    def remove_members(self, user_id: str, *tokens: str) -> int:
        """Remove specific entries regardless of score. :returns: Number removed."""

    def list_all(self, user_id: str) -> list[str]:
        """Return all current members; order is not significant."""

    def is_member(self, user_id: str, token: str) -> bool:
        """Return ``True`` if ``token`` is listed for ``user_id``."""


class InMemoryUserIndex(UserIndex):
    """Simple in-memory index (dict of ``token -> score`` per user)."""

    def __init__(self) -> None:
        self._by_user: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def _drop_if_empty(self, user_id: str) -> None:
        # Caller must hold the lock.
        if user_id in self._by_user and not self._by_user[user_id]:
            del self._by_user[user_id]

    def insert(self, user_id: str, token: str, expiry_epoch: int) -> None:
        with self._lock:
            self._by_user.setdefault(user_id, {})[token] = int(expiry_epoch)

    def remove_expired_by_score(self, user_id: str, now_epoch: int) -> int:
        with self._lock:
            entries = self._by_user.get(user_id, {})
            expired = [t for t, score in entries.items() if score <= now_epoch]
            for t in expired:
                del entries[t]
            self._drop_if_empty(user_id)
            return len(expired)

    def remove_members(self, user_id: str, *tokens: str) -> int:
        with self._lock:
            entries = self._by_user.get(user_id, {})
            removed = sum(1 for t in tokens if entries.pop(t, None) is not None)
            self._drop_if_empty(user_id)
            return removed

    def list_all(self, user_id: str) -> list[str]:
        with self._lock:
            entries = self._by_user.get(user_id, {})
            return sorted(entries, key=lambda t: (entries[t], t))

    def is_member(self, user_id: str, token: str) -> bool:
        with self._lock:
            return token in self._by_user.get(user_id, {})
