"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or Redis directly. They serve as stable contracts between the storage
adapters, the ports and the token lifecycle service.

Adapters translate transport failures into :class:`BackendError`; everything
the service raises to callers is a :class:`ServiceError` subclass.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from adapters or from the lifecycle service.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class TokenNotFoundError(ServiceError):
    """
    Raised when a token is absent, expired, or not owned by the queried user.

    The three cases are deliberately reported with the same type so callers can
    never tell "not indexed" from "indexed but the record is gone".

    :param token: The token that could not be resolved.
    :type token: str
    """

    token: str

    def __str__(self) -> str:  # pragma: no cover
        return "Token not found"


class BackendError(ServiceError):
    """
    Raised when the backing store fails (connection, timeout, bad response).

    The original driver exception is always chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str = "Backend operation failed") -> None:
        super().__init__(f"{message}: {operation}")
        self.operation = operation


class GenerationError(ServiceError):
    """
    Raised when no token could be issued.

    Either the caller-supplied generator failed, or every attempt of a bounded
    retry collided with an existing token.
    """

    def __init__(self, message: str = "Token generation failed", *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class OperationCancelledError(ServiceError):
    """Raised when the call context was cancelled or its deadline passed."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)
