# tokenkeeper/services/tokens/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tokenkeeper.services._shared.ports import Payload

# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserTokenView:
    """
    Read-only projection of an owned token and its stored payload.

    :param token_string: The opaque token.
    :type token_string: str
    :param token_data: Payload loaded from the token store.
    :type token_data: str
    """

    token_string: str
    token_data: Payload


# ------------------------ Config DTO -------------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenLifecycleConfig:
    """
    Issuance retry policy.

    :param max_attempts: Candidates tried before giving up; ``None`` retries
        without bound.
    :type max_attempts: int | None
    :param backoff_initial_ms: Backoff after the first collision.
    :type backoff_initial_ms: int
    :param backoff_max_ms: Upper bound for a single backoff.
    :type backoff_max_ms: int
    :param backoff_jitter: Fraction of the backoff added or subtracted at random.
    :type backoff_jitter: float
    """

    max_attempts: int | None = 10
    backoff_initial_ms: int = 5
    backoff_max_ms: int = 200
    backoff_jitter: float = 0.5

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenLifecycleConfig:
        """Build the policy from ``TOKEN_*`` configuration keys (``0`` attempts = unbounded)."""
        attempts = int(config.get("TOKEN_MAX_ATTEMPTS", 10))
        return cls(
            max_attempts=attempts if attempts > 0 else None,
            backoff_initial_ms=int(config.get("TOKEN_BACKOFF_INITIAL_MS", 5)),
            backoff_max_ms=int(config.get("TOKEN_BACKOFF_MAX_MS", 200)),
            backoff_jitter=float(config.get("TOKEN_BACKOFF_JITTER", 0.5)),
        )
