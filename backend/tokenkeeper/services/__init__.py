"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`tokenkeeper.services` without knowing internal structure.

Re-exports
----------
- Base primitives (from ``tokenkeeper.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Token lifecycle service (from ``tokenkeeper.services.tokens``)
    * :class:`UserTokenService`
    * DTOs: :class:`UserTokenView`, :class:`TokenLifecycleConfig`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .tokens import TokenLifecycleConfig, UserTokenService, UserTokenView

__all__ = [
    "BaseService",
    "ServiceContext",
    "UserTokenService",
    "UserTokenView",
    "TokenLifecycleConfig",
]
