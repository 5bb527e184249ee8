from __future__ import annotations

import secrets
import threading
from collections.abc import Callable, Iterable

TokenGenerator = Callable[[], str]
"""Port for producing candidate token strings (assumed cryptographically random)."""


def secure_token_generator(nbytes: int = 32) -> TokenGenerator:
    """
    Build a generator of URL-safe random tokens.

    :param nbytes: Bytes of entropy per token.
    :returns: Zero-argument callable returning a fresh token.
    """

    def _gen() -> str:
        return secrets.token_urlsafe(nbytes)

    return _gen


class SequenceTokenGenerator:
    """
    Deterministic generator used in unit tests.

    Returns the given candidates in order and then repeats the last one, which
    makes collisions easy to provoke. Thread-safe, so several concurrent
    issuances can share one instance.
    """

    def __init__(self, candidates: Iterable[str]) -> None:
        self._candidates = list(candidates)
        if not self._candidates:
            raise ValueError("at least one candidate is required")
        self._pos = 0
        self._lock = threading.Lock()
        self.calls = 0

    def __call__(self) -> str:
        with self._lock:
            self.calls += 1
            idx = min(self._pos, len(self._candidates) - 1)
            self._pos += 1
            return self._candidates[idx]
