"""
tokenkeeper.services._shared.ports
==================================

Collection of *ports* (hexagonal interfaces) that define the contracts the
token lifecycle service needs from its storage and token generation
collaborators.

Modules
-------
- :mod:`token_store`:
    Defines :class:`~.TokenStore`: primary token records with TTL and atomic
    create-if-absent, plus :class:`~.InMemoryTokenStore`.

- :mod:`user_index`:
    Defines :class:`~.UserIndex`: per-user ordered set of tokens scored by
    expiry epoch, plus :class:`~.InMemoryUserIndex`.

- :mod:`token_generator`:
    Defines :data:`~.TokenGenerator` and the stock generators.

Design Notes
------------
Concrete Redis adapters implement these interfaces under
``tokenkeeper.infra.redis``; the in-memory adapters back the ``memory``
backend and the unit tests.
"""

from __future__ import annotations

from .token_generator import SequenceTokenGenerator, TokenGenerator, secure_token_generator
from .token_store import InMemoryTokenStore, Payload, TokenStore
from .user_index import InMemoryUserIndex, UserIndex

__all__ = [
    "TokenStore",
    "UserIndex",
    "TokenGenerator",
    "Payload",
    "InMemoryTokenStore",
    "InMemoryUserIndex",
    "SequenceTokenGenerator",
    "secure_token_generator",
]
