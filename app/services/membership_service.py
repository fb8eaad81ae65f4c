"""Dinner group join/leave operations."""
import asyncio
import logging
from typing import Callable

from app.dao import RedisMembershipDAO
from app.errors import MembershipConflictError, PersistenceError
from app.metrics import MEMBERSHIP_CONFLICTS_TOTAL, MEMBERSHIP_TRANSITIONS_TOTAL
from app.services.directory_cache import DirectoryCache

logger = logging.getLogger(__name__)


class MembershipService:
    """Runs membership transitions and keeps the restaurant listing cache in step.

    Each transition is one Redis transaction. When a concurrent request
    touches the same keys the transaction aborts; the transition is then
    re-read and retried, up to ``max_retries`` times.
    """

    def __init__(
        self,
        membership_dao: RedisMembershipDAO,
        directory_cache: DirectoryCache,
        max_retries: int = 5,
    ):
        self.membership_dao = membership_dao
        self.directory_cache = directory_cache
        self.max_retries = max_retries

    async def join_group(self, user_id: str, restaurant_id: str) -> None:
        """Attach user to the restaurant's dinner group (idempotent).

        Raises:
            VenueNotFoundError: If the restaurant is unknown
            PersistenceError: If Redis fails or retries are exhausted
        """
        await self._transition("join", self.membership_dao.join, user_id, restaurant_id)

    async def leave_group(self, user_id: str) -> None:
        """Detach user from their dinner group; no-op if they have none."""
        await self._transition("leave", self.membership_dao.leave, user_id)

    async def _transition(self, operation: str, apply: Callable[..., bool], *args: str) -> None:
        for attempt in range(1, self.max_retries + 1):
            try:
                changed = await asyncio.to_thread(apply, *args)
            except MembershipConflictError as e:
                MEMBERSHIP_CONFLICTS_TOTAL.labels(operation=operation).inc()
                logger.info(
                    f"[MembershipService] {operation} conflict (attempt {attempt}/{self.max_retries}): {e}"
                )
                continue
            except PersistenceError:
                MEMBERSHIP_TRANSITIONS_TOTAL.labels(operation=operation, result="error").inc()
                raise

            if changed:
                MEMBERSHIP_TRANSITIONS_TOTAL.labels(operation=operation, result="changed").inc()
                self.directory_cache.invalidate()
            else:
                MEMBERSHIP_TRANSITIONS_TOTAL.labels(operation=operation, result="unchanged").inc()
            return

        MEMBERSHIP_TRANSITIONS_TOTAL.labels(operation=operation, result="error").inc()
        raise PersistenceError(
            f"Dinner group {operation} for {args[0]} kept conflicting after {self.max_retries} attempts"
        )
