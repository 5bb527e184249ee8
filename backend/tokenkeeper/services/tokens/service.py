# tokenkeeper/services/tokens/service.py
from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable
from datetime import timedelta
from enum import Enum, auto

from tokenkeeper.services._shared.base import BaseService, ServiceContext
from tokenkeeper.services._shared.errors import (
    BackendError,
    GenerationError,
    OperationCancelledError,
    ServiceError,
    TokenNotFoundError,
)
from tokenkeeper.services._shared.ports import Payload, TokenGenerator, TokenStore, UserIndex
from tokenkeeper.services._shared.ports.token_store import ttl_millis

from .dto import TokenLifecycleConfig, UserTokenView

logger = logging.getLogger(__name__)


class Divergence(Enum):
    """Which side of the store/index pair was found stale while resolving a token."""

    NOT_INDEXED = auto()  # record may exist, but the user does not list it
    STORE_MISSING = auto()  # listed, but the record already expired


def backoff_ms(attempt: int, cfg: TokenLifecycleConfig) -> int:
    """Exponential backoff with jitter (attempt is zero-based)."""
    expo = cfg.backoff_initial_ms * math.pow(2, attempt)
    capped = min(expo, cfg.backoff_max_ms)
    jitter_span = capped * cfg.backoff_jitter
    return int(max(0, capped + random.uniform(-jitter_span, jitter_span)))  # noqa: S311 - non-crypto backoff jitter


class UserTokenService(BaseService):
    """
    Token lifecycle service (issue / resolve / list / extend / revoke).

    Keeps two independently expiring structures in line: the token store, where
    each record carries its own TTL, and the per-user index, where each entry is
    scored with its expiry epoch. They are never written atomically together;
    divergence is treated as a normal transient state and repaired by the
    reconciliation pass and by lazy self-healing reads.

    The only atomic primitive relied upon is the store's create-if-absent.
    """

    def __init__(
        self,
        *,
        token_store: TokenStore,
        user_index: UserIndex,
        cfg: TokenLifecycleConfig | None = None,
        ctx: ServiceContext | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_store: Primary token records (TTL, create-if-absent).
        :param user_index: Per-user token index scored by expiry epoch.
        :param cfg: Issuance retry policy.
        :param ctx: Default call context used when an operation gets none.
        :param clock: Wall clock in epoch seconds; must agree with the store's.
        :param sleep: Used for backoff between collided attempts.
        """
        super().__init__(ctx=ctx)
        self.store = token_store
        self.index = user_index
        self.cfg = cfg or TokenLifecycleConfig()
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    # Reconciliation
    # ------------------------------------------------------------------ #

    def cleanup_user_token(self, user_id: str, *, ctx: ServiceContext | None = None) -> int:
        """
        Drop index entries that no longer have a live token behind them.

        Phase 1 removes entries whose score has passed, without touching the
        store. Phase 2 checks each survivor against the store and removes the
        ones whose record expired on its own. Idempotent and safe to run
        concurrently for the same user.

        :returns: Number of index entries removed.
        :raises BackendError: If either structure fails.
        """
        self.checkpoint(ctx)
        removed = self.index.remove_expired_by_score(user_id, math.floor(self._clock()))

        self.checkpoint(ctx)
        stale: list[str] = []
        for token in self.index.list_all(user_id):
            self.checkpoint(ctx)
            if not self.store.is_token_exist(token):
                stale.append(token)

        if stale:
            self.checkpoint(ctx)
            removed += self.index.remove_members(user_id, *stale)

        if removed:
            logger.debug(
                "User token index reconciled",
                extra=self.log_extra(ctx, user_id=user_id, removed=removed),
            )
        return removed

    def _cleanup_best_effort(self, user_id: str, ctx: ServiceContext | None) -> None:
        # Never lets the primary operation depend on cleanup succeeding.
        try:
            self.cleanup_user_token(user_id, ctx=ctx)
        except OperationCancelledError:
            raise
        except ServiceError:
            logger.warning(
                "Implicit token cleanup failed",
                extra=self.log_extra(ctx, user_id=user_id),
                exc_info=True,
            )

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def save_user_token(
        self,
        user_id: str,
        gen_token: TokenGenerator,
        payload: Payload,
        expires_in: timedelta,
        *,
        ctx: ServiceContext | None = None,
    ) -> str:
        """
        Issue a new token for ``user_id`` and return it.

        Candidates from ``gen_token`` that collide with a live token are
        discarded and a new one is drawn, with jittered backoff in between.
        Once the record is created, the index entry is inserted; if that fails
        the record is deleted again so no unindexed token survives.

        :raises GenerationError: If the generator fails or every allowed attempt collided.
        :raises BackendError: If the store or the index fails.
        :raises ValueError: If ``expires_in`` is not positive.
        """
        ttl_millis(expires_in)
        self._cleanup_best_effort(user_id, ctx)

        attempt = 0
        while True:
            if self.cfg.max_attempts is not None and attempt >= self.cfg.max_attempts:
                logger.error(
                    "Token issuance gave up after repeated collisions",
                    extra=self.log_extra(ctx, user_id=user_id, attempt=attempt),
                )
                raise GenerationError(
                    "Token collisions exhausted the retry budget", attempts=attempt
                )
            if attempt:
                self._sleep(backoff_ms(attempt - 1, self.cfg) / 1000)
            attempt += 1

            token = self._generate(gen_token, attempt)
            self.checkpoint(ctx)
            if not self.store.save_token(token, payload, expires_in):
                logger.debug(
                    "Token candidate collided",
                    extra=self.log_extra(ctx, user_id=user_id, attempt=attempt),
                )
                continue

            # Scored from after the write so the entry never expires ahead of the record.
            expiry_epoch = math.ceil(self._clock() + expires_in.total_seconds())
            try:
                self.checkpoint(ctx)
                self.index.insert(user_id, token, expiry_epoch)
            except ServiceError:
                self._rollback(user_id, token, ctx)
                raise

            logger.info(
                "User token issued",
                extra=self.log_extra(ctx, user_id=user_id, attempt=attempt),
            )
            return token

    @staticmethod
    def _generate(gen_token: TokenGenerator, attempt: int) -> str:
        try:
            token = gen_token()
        except Exception as exc:
            raise GenerationError("Token generator failed", attempts=attempt) from exc
        if not token:
            raise GenerationError("Token generator returned an empty token", attempts=attempt)
        return token

    def _rollback(self, user_id: str, token: str, ctx: ServiceContext | None) -> None:
        try:
            self.store.delete_token(token)
        except ServiceError:
            # The record still expires on its own TTL; the original failure is what the caller sees.
            logger.error(
                "Rollback of unindexed token failed",
                extra=self.log_extra(ctx, user_id=user_id),
                exc_info=True,
            )

    # ------------------------------------------------------------------ #
    # Resolve
    # ------------------------------------------------------------------ #

    def _resolve(
        self, user_id: str, token: str, ctx: ServiceContext | None
    ) -> UserTokenView | Divergence:
        self.checkpoint(ctx)
        if not self.index.is_member(user_id, token):
            return Divergence.NOT_INDEXED
        self.checkpoint(ctx)
        try:
            data = self.store.load_token(token)
        except TokenNotFoundError:
            return Divergence.STORE_MISSING
        return UserTokenView(token_string=token, token_data=data)

    def _heal(
        self, user_id: str, token: str, divergence: Divergence, ctx: ServiceContext | None
    ) -> None:
        try:
            if divergence is Divergence.NOT_INDEXED:
                self.store.delete_token(token)
            else:
                self.index.remove_members(user_id, token)
        except BackendError:
            logger.warning(
                "Self-heal failed",
                extra=self.log_extra(ctx, user_id=user_id, divergence=divergence.name),
                exc_info=True,
            )

    def load_user_token(
        self, user_id: str, token: str, *, ctx: ServiceContext | None = None
    ) -> UserTokenView:
        """
        Resolve ``token`` for ``user_id``.

        A token the user does not list has its record deleted; a listed token
        whose record is gone has its index entry removed. Both cases raise the
        same error.

        :raises TokenNotFoundError: If the token is not a live token of this user.
        :raises BackendError: If the store or the index fails.
        """
        self._cleanup_best_effort(user_id, ctx)
        result = self._resolve(user_id, token, ctx)
        if isinstance(result, Divergence):
            self._heal(user_id, token, result, ctx)
            raise TokenNotFoundError(token)
        return result

    def load_user_token_list(
        self, user_id: str, *, ctx: ServiceContext | None = None
    ) -> list[UserTokenView]:
        """
        List every live token of ``user_id``.

        Members that fail to resolve are skipped so one stale entry never hides
        the rest of the user's sessions.

        :raises BackendError: If the index cannot be enumerated.
        """
        self._cleanup_best_effort(user_id, ctx)
        self.checkpoint(ctx)
        views: list[UserTokenView] = []
        for token in self.index.list_all(user_id):
            try:
                result = self._resolve(user_id, token, ctx)
            except BackendError:
                logger.warning(
                    "Skipping unresolvable user token",
                    extra=self.log_extra(ctx, user_id=user_id),
                    exc_info=True,
                )
                continue
            if isinstance(result, Divergence):
                self._heal(user_id, token, result, ctx)
                continue
            views.append(result)
        return views

    # ------------------------------------------------------------------ #
    # Extend
    # ------------------------------------------------------------------ #

    def extend_user_token(
        self,
        user_id: str,
        token: str,
        expires_in: timedelta,
        *,
        ctx: ServiceContext | None = None,
    ) -> UserTokenView:
        """
        Reset the lifetime of a live token to ``expires_in`` from now.

        The record's TTL is refreshed first, then the index entry is re-scored.

        :raises TokenNotFoundError: If the token is not a live token of this user.
        :raises BackendError: If the store or the index fails.
        :raises ValueError: If ``expires_in`` is not positive.
        """
        ttl_millis(expires_in)
        self._cleanup_best_effort(user_id, ctx)
        result = self._resolve(user_id, token, ctx)
        if isinstance(result, Divergence):
            self._heal(user_id, token, result, ctx)
            raise TokenNotFoundError(token)

        self.checkpoint(ctx)
        if not self.store.extend_expire(token, expires_in):
            self._heal(user_id, token, Divergence.STORE_MISSING, ctx)
            raise TokenNotFoundError(token)

        try:
            self.checkpoint(ctx)
            self.index.insert(
                user_id, token, math.ceil(self._clock() + expires_in.total_seconds())
            )
        except ServiceError:
            # Record already extended; the old score only shortens the entry's life.
            logger.warning(
                "Token extended in store but index entry kept its old expiry",
                extra=self.log_extra(ctx, user_id=user_id),
                exc_info=True,
            )
            raise
        logger.info("User token extended", extra=self.log_extra(ctx, user_id=user_id))
        return result

    # ------------------------------------------------------------------ #
    # Revoke
    # ------------------------------------------------------------------ #

    def delete_user_token(
        self, user_id: str, *tokens: str, ctx: ServiceContext | None = None
    ) -> None:
        """
        Revoke ``tokens`` from both the index and the store.

        Idempotent: tokens missing from either side are ignored.

        :raises BackendError: If the store or the index fails.
        """
        self._cleanup_best_effort(user_id, ctx)
        if not tokens:
            return
        self.checkpoint(ctx)
        self.index.remove_members(user_id, *tokens)
        self.checkpoint(ctx)
        self.store.delete_token(*tokens)
        logger.info(
            "User tokens revoked",
            extra=self.log_extra(ctx, user_id=user_id, count=len(tokens)),
        )

    def delete_all_user_tokens(self, user_id: str, *, ctx: ServiceContext | None = None) -> int:
        """
        Revoke every token currently listed for ``user_id``.

        Tokens issued concurrently with this call are not affected.

        :returns: Number of tokens revoked.
        :raises BackendError: If the store or the index fails.
        """
        self._cleanup_best_effort(user_id, ctx)
        self.checkpoint(ctx)
        tokens = self.index.list_all(user_id)
        if not tokens:
            return 0
        self.checkpoint(ctx)
        count = self.index.remove_members(user_id, *tokens)
        self.checkpoint(ctx)
        self.store.delete_token(*tokens)
        logger.info(
            "All user tokens revoked",
            extra=self.log_extra(ctx, user_id=user_id, count=count),
        )
        return count
