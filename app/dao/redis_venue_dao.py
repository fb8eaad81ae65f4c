"""Redis-based Data Access Object for restaurant records."""
import logging
from datetime import datetime, timezone
from typing import Optional

import redis
from pydantic import ValidationError

from app.db.redis_client import RedisClient
from app.errors import PersistenceError
from app.models import Venue

logger = logging.getLogger(__name__)

RESTAURANTS_INDEX_KEY = "restaurants_v1"
RESTAURANT_KEY_FORMAT = "restaurant_v1:{}"


class RedisVenueDAO:
    """Data Access Object for restaurants using Redis."""

    def __init__(self, client: RedisClient):
        """Initialize RedisVenueDAO.

        Args:
            client: RedisClient instance
        """
        self.client = client

    def upsert_venue(self, venue: Venue) -> Venue:
        """Insert or update a restaurant by id.

        All mutable fields are overwritten and ``updated_at`` is bumped; the
        original ``created_at`` survives updates.

        Args:
            venue: Restaurant fetched from Google Places

        Returns:
            The stored record

        Raises:
            PersistenceError: If Redis rejects the write
        """
        key = RESTAURANT_KEY_FORMAT.format(venue.id)
        now = datetime.now(timezone.utc)

        try:
            existing = self._load(key)
            stored = venue.model_copy(
                update={
                    "created_at": existing.created_at if existing and existing.created_at else now,
                    "updated_at": now,
                }
            )
            self.client.set_json_indexed(
                index_key=RESTAURANTS_INDEX_KEY,
                member=venue.id,
                key=key,
                data=stored,
            )
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to upsert restaurant {venue.id}: {e}") from e

        logger.debug(f"[RedisVenueDAO] Upserted restaurant {venue.id}")
        return stored

    def list_all_venue_ids(self) -> list[str]:
        try:
            return sorted(self.client.smembers(RESTAURANTS_INDEX_KEY))
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to list restaurant ids: {e}") from e

    def list_all_venues(self) -> list[Venue]:
        """Return every stored restaurant.

        Unparseable records are logged and skipped.
        """
        venue_ids = self.list_all_venue_ids()
        keys = [RESTAURANT_KEY_FORMAT.format(venue_id) for venue_id in venue_ids]

        try:
            documents = self.client.mget(keys)
        except redis.RedisError as e:
            raise PersistenceError(f"Failed to list restaurants: {e}") from e

        venues = []
        for key, json_str in zip(keys, documents):
            if json_str is None:
                continue
            try:
                venues.append(Venue.model_validate_json(json_str))
            except ValidationError as e:
                logger.error(f"Failed to parse restaurant from key {key}: {e}")
                continue

        logger.debug(f"[RedisVenueDAO] Listed {len(venues)} restaurants")
        return venues

    def _load(self, key: str) -> Optional[Venue]:
        json_str = self.client.get(key)
        if json_str is None:
            return None
        try:
            return Venue.model_validate_json(json_str)
        except ValidationError as e:
            logger.error(f"Failed to parse restaurant from key {key}: {e}")
            return None
