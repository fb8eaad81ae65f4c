"""Cached listing of every stored restaurant."""
import asyncio
import logging

from app.cache import TTLCache
from app.dao import RedisVenueDAO
from app.models import Venue

logger = logging.getLogger(__name__)

ALL_RESTAURANTS_CACHE_KEY = "all-restaurants"
ALL_RESTAURANTS_CACHE_TTL_SECONDS = 60 * 60 * 24  # 24 hours


class DirectoryCache:
    """Full restaurant table cached under one key.

    Restaurant upserts do not invalidate it; only TTL expiry and membership
    changes (via ``invalidate``) do.
    """

    def __init__(
        self,
        cache: TTLCache,
        venue_dao: RedisVenueDAO,
        ttl_seconds: float = ALL_RESTAURANTS_CACHE_TTL_SECONDS,
    ):
        self.cache = cache
        self.venue_dao = venue_dao
        self.ttl_seconds = ttl_seconds

    async def all_venues(self) -> list[Venue]:
        return await self.cache.get(ALL_RESTAURANTS_CACHE_KEY, self.ttl_seconds, self._load)

    def invalidate(self) -> None:
        self.cache.delete(ALL_RESTAURANTS_CACHE_KEY)

    async def _load(self) -> list[Venue]:
        venues = await asyncio.to_thread(self.venue_dao.list_all_venues)
        logger.info(f"[DirectoryCache] Loaded {len(venues)} restaurants from Redis")
        return venues
