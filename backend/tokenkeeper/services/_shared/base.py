# tokenkeeper/services/_shared/base.py
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from tokenkeeper.services._shared.errors import OperationCancelledError


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting call-scoped data (cancellation, deadline, request ids).

    :param request_id: Correlation id for logging/tracing.
    :param deadline: Absolute ``time.monotonic()`` value after which the call
        is abandoned, or ``None`` for no deadline.
    :param cancel_event: Event another thread may set to abort the call.
    """

    request_id: str | None = None
    deadline: float | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, seconds: float, *, request_id: str | None = None) -> ServiceContext:
        """Build a context whose deadline is ``seconds`` from now."""
        return cls(request_id=request_id, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """
        Request cancellation of every operation running under this context.

        Takes effect at the next checkpoint, i.e. before the next remote call. A
        Redis call already in flight is not interrupted; it completes or fails
        within ``REDIS_SOCKET_TIMEOUT``.
        """
        self.cancel_event.set()

    def ensure_active(self) -> None:
        """
        Fail fast when the call can no longer proceed.

        :raises OperationCancelledError: If cancelled or past the deadline.
        """
        if self.cancel_event.is_set():
            raise OperationCancelledError()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise OperationCancelledError("Operation deadline exceeded")


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Hold the call-scoped :class:`ServiceContext`.
    * Offer a single checkpoint used before every remote call.
    * Keep services thin, orchestration-only, no transport leakage.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional call-scoped context (cancellation, tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    def checkpoint(self, ctx: ServiceContext | None = None) -> None:
        """
        Abort before the next remote call if the context is no longer active.

        :param ctx: Per-call override of the service-level context.
        :raises OperationCancelledError: When cancelled or timed out.
        """
        (ctx or self.ctx).ensure_active()

    def log_extra(self, ctx: ServiceContext | None = None, **fields: Any) -> dict[str, Any]:
        """
        Build the ``extra=`` mapping for a log call, tagged with the request id.

        :param ctx: Per-call override of the service-level context.
        :returns: ``fields`` plus ``request_id`` when the context carries one.
        """
        request_id = (ctx or self.ctx).request_id
        if request_id is not None:
            fields["request_id"] = request_id
        return fields
