"""Redis-based Data Access Object for dinner groups and attendees.

Key layout:
    dinner_groups_v1                              set of group ids
    dinner_group_v1:{group_id}                    hash {id, restaurant_id, created_at}
    dinner_group_by_restaurant_v1:{restaurant_id} group id (one group per restaurant)
    dinner_group_attendees_v1:{group_id}          set of user ids
    attendee_v1:{user_id}                         hash {id, user_id, dinner_group_id, created_at}

Every state change runs as a single optimistic transaction (WATCH/MULTI/EXEC)
so that no reader ever observes a user in two groups, an attendee pointing at
a deleted group, or a group with no attendees. Requests are served by a pool
of workers, so the transaction is the only mutual exclusion.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

import redis
from redis.exceptions import WatchError

from app.dao.redis_venue_dao import RESTAURANT_KEY_FORMAT
from app.db.redis_client import RedisClient
from app.errors import MembershipConflictError, PersistenceError, VenueNotFoundError
from app.models import Attendee, DinnerGroup, GroupAttendance

logger = logging.getLogger(__name__)

DINNER_GROUPS_KEY = "dinner_groups_v1"
DINNER_GROUP_KEY_FORMAT = "dinner_group_v1:{}"
DINNER_GROUP_BY_RESTAURANT_KEY_FORMAT = "dinner_group_by_restaurant_v1:{}"
DINNER_GROUP_ATTENDEES_KEY_FORMAT = "dinner_group_attendees_v1:{}"
ATTENDEE_KEY_FORMAT = "attendee_v1:{}"


class RedisMembershipDAO:
    """Data Access Object for dinner group membership using Redis."""

    def __init__(self, client: RedisClient):
        self.client = client

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def join(self, user_id: str, restaurant_id: str) -> bool:
        """Attach a user to the dinner group of a restaurant.

        Leaves the user's previous group first (deleting it if it becomes
        empty) and creates the restaurant's group if none exists, all in one
        transaction.

        Args:
            user_id: Requesting user
            restaurant_id: Restaurant to join

        Returns:
            True if membership changed, False if the user was already there

        Raises:
            VenueNotFoundError: If the restaurant is not in the local store
            MembershipConflictError: If a watched key changed concurrently
            PersistenceError: If Redis fails
        """
        attendee_key = ATTENDEE_KEY_FORMAT.format(user_id)
        index_key = DINNER_GROUP_BY_RESTAURANT_KEY_FORMAT.format(restaurant_id)

        try:
            with self.client.pipeline() as pipe:
                pipe.watch(attendee_key, index_key)
                current = pipe.hgetall(attendee_key)
                current_group_id = current.get("dinner_group_id") if current else None
                target_group_id = pipe.get(index_key)

                if current_group_id is not None and current_group_id == target_group_id:
                    return False

                if not pipe.exists(RESTAURANT_KEY_FORMAT.format(restaurant_id)):
                    raise VenueNotFoundError(restaurant_id)

                old_group: dict[str, str] = {}
                old_remaining: set[str] = set()
                if current_group_id is not None:
                    old_members_key = DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(current_group_id)
                    old_group_key = DINNER_GROUP_KEY_FORMAT.format(current_group_id)
                    pipe.watch(old_members_key, old_group_key)
                    old_group = pipe.hgetall(old_group_key)
                    old_remaining = pipe.smembers(old_members_key) - {user_id}

                create_group = target_group_id is None
                if create_group:
                    target_group_id = uuid.uuid4().hex
                now = datetime.now(timezone.utc).isoformat()

                pipe.multi()
                if current_group_id is not None:
                    pipe.delete(attendee_key)
                    self._queue_detach(pipe, user_id, current_group_id, old_group, old_remaining)
                if create_group:
                    # The WATCH on index_key makes a concurrent creation abort this EXEC
                    pipe.hset(
                        DINNER_GROUP_KEY_FORMAT.format(target_group_id),
                        mapping={
                            "id": target_group_id,
                            "restaurant_id": restaurant_id,
                            "created_at": now,
                        },
                    )
                    pipe.set(index_key, target_group_id)
                    pipe.sadd(DINNER_GROUPS_KEY, target_group_id)
                pipe.hset(
                    attendee_key,
                    mapping={
                        "id": uuid.uuid4().hex,
                        "user_id": user_id,
                        "dinner_group_id": target_group_id,
                        "created_at": now,
                    },
                )
                pipe.sadd(DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(target_group_id), user_id)
                pipe.execute()
        except WatchError as e:
            raise MembershipConflictError(
                f"Concurrent change while user {user_id} joined restaurant {restaurant_id}"
            ) from e
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to join user {user_id} to {restaurant_id}: {e}") from e

        logger.info(
            f"[RedisMembershipDAO] User {user_id} joined group {target_group_id} "
            f"(restaurant={restaurant_id}, created={create_group}, previous={current_group_id})"
        )
        return True

    def leave(self, user_id: str) -> bool:
        """Detach a user from their dinner group, deleting the group if it empties.

        Returns:
            True if the user was attached, False if there was nothing to do

        Raises:
            MembershipConflictError: If a watched key changed concurrently
            PersistenceError: If Redis fails
        """
        attendee_key = ATTENDEE_KEY_FORMAT.format(user_id)

        try:
            with self.client.pipeline() as pipe:
                pipe.watch(attendee_key)
                current = pipe.hgetall(attendee_key)
                if not current:
                    return False

                group_id = current["dinner_group_id"]
                members_key = DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(group_id)
                group_key = DINNER_GROUP_KEY_FORMAT.format(group_id)
                pipe.watch(members_key, group_key)
                group = pipe.hgetall(group_key)
                remaining = pipe.smembers(members_key) - {user_id}

                pipe.multi()
                pipe.delete(attendee_key)
                self._queue_detach(pipe, user_id, group_id, group, remaining)
                pipe.execute()
        except WatchError as e:
            raise MembershipConflictError(f"Concurrent change while user {user_id} left") from e
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to remove user {user_id} from group: {e}") from e

        logger.info(
            f"[RedisMembershipDAO] User {user_id} left group {group_id} "
            f"(group_deleted={not remaining})"
        )
        return True

    def _queue_detach(
        self,
        pipe: redis.client.Pipeline,
        user_id: str,
        group_id: str,
        group: dict[str, str],
        remaining: set[str],
    ) -> None:
        """Queue removal of user from group; queue group deletion if nobody remains."""
        members_key = DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(group_id)
        pipe.srem(members_key, user_id)
        if remaining:
            return

        pipe.delete(DINNER_GROUP_KEY_FORMAT.format(group_id), members_key)
        pipe.srem(DINNER_GROUPS_KEY, group_id)
        restaurant_id = group.get("restaurant_id")
        if restaurant_id:
            pipe.delete(DINNER_GROUP_BY_RESTAURANT_KEY_FORMAT.format(restaurant_id))

    # =========================================================================
    # READS
    # =========================================================================

    def find_attendee(self, user_id: str) -> Optional[Attendee]:
        data = self._hgetall(ATTENDEE_KEY_FORMAT.format(user_id))
        return Attendee(**data) if data else None

    def get_group(self, group_id: str) -> Optional[DinnerGroup]:
        data = self._hgetall(DINNER_GROUP_KEY_FORMAT.format(group_id))
        return DinnerGroup(**data) if data else None

    def find_group_by_restaurant(self, restaurant_id: str) -> Optional[DinnerGroup]:
        try:
            group_id = self.client.get(DINNER_GROUP_BY_RESTAURANT_KEY_FORMAT.format(restaurant_id))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to look up group for {restaurant_id}: {e}") from e
        if group_id is None:
            return None
        return self.get_group(group_id)

    def count_attendees(self, group_id: str) -> int:
        try:
            return self.client.scard(DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(group_id))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to count attendees of {group_id}: {e}") from e

    def get_user_restaurant_id(self, user_id: str) -> Optional[str]:
        """Return the restaurant of the group the user is attending, if any."""
        attendee = self.find_attendee(user_id)
        if attendee is None:
            return None
        group = self.get_group(attendee.dinner_group_id)
        return group.restaurant_id if group else None

    def list_groups_with_counts(self) -> list[GroupAttendance]:
        """Return every dinner group with its current attendee count."""
        try:
            group_ids = sorted(self.client.smembers(DINNER_GROUPS_KEY))
            if not group_ids:
                return []

            with self.client.pipeline(transaction=False) as pipe:
                for group_id in group_ids:
                    pipe.hgetall(DINNER_GROUP_KEY_FORMAT.format(group_id))
                    pipe.scard(DINNER_GROUP_ATTENDEES_KEY_FORMAT.format(group_id))
                results = pipe.execute()
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to list dinner groups: {e}") from e

        groups = []
        for group_id, group, count in zip(group_ids, results[0::2], results[1::2]):
            if not group:
                logger.warning(f"[RedisMembershipDAO] Group {group_id} indexed but missing")
                continue
            groups.append(
                GroupAttendance(
                    group_id=group_id,
                    restaurant_id=group["restaurant_id"],
                    attendee_count=count,
                )
            )
        return groups

    def _hgetall(self, key: str) -> dict[str, str]:
        try:
            return self.client.hgetall(key)
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to read {key}: {e}") from e
