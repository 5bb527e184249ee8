"""Expose the public building blocks at package level.

Provide convenient access to :func:`tokenkeeper.factory.create_app` and to the
token lifecycle service so callers can ``from tokenkeeper import ...`` without
traversing the package structure.
"""

from __future__ import annotations

from .factory import create_app
from .services._shared.base import ServiceContext
from .services._shared.errors import (
    BackendError,
    GenerationError,
    OperationCancelledError,
    ServiceError,
    TokenNotFoundError,
)
from .services.tokens import TokenLifecycleConfig, UserTokenService, UserTokenView

__all__ = [
    "create_app",
    "ServiceContext",
    "UserTokenService",
    "UserTokenView",
    "TokenLifecycleConfig",
    "ServiceError",
    "TokenNotFoundError",
    "BackendError",
    "GenerationError",
    "OperationCancelledError",
]
