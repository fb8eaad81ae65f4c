"""Cached Google Places lookups with write-through persistence of restaurants."""
import asyncio
import logging

from app.api.google_places_client import GooglePlacesAPIClient
from app.cache import TTLCache
from app.dao import RedisVenueDAO
from app.errors import PersistenceError
from app.metrics import RESTAURANT_UPSERTS_TOTAL
from app.models import Venue

logger = logging.getLogger(__name__)

GOOGLE_PLACES_CACHE_PREFIX = "google-places-restaurants"
GOOGLE_PLACES_CACHE_TTL_SECONDS = 60 * 60 * 24  # 24 hours


class VenueCache:
    """Caches nearby searches per exact (lat, lng, radius) for a fixed TTL.

    On a miss the Places client is called once (concurrent misses for the
    same key share that call) and every returned restaurant is upserted into
    Redis before the result is cached. Hits touch neither Google nor Redis.
    """

    def __init__(
        self,
        cache: TTLCache,
        places_client: GooglePlacesAPIClient,
        venue_dao: RedisVenueDAO,
        ttl_seconds: float = GOOGLE_PLACES_CACHE_TTL_SECONDS,
        upsert_concurrency: int = 10,
    ):
        self.cache = cache
        self.places_client = places_client
        self.venue_dao = venue_dao
        self.ttl_seconds = ttl_seconds
        self.upsert_concurrency = upsert_concurrency

    @staticmethod
    def cache_key(lat: float, lng: float, radius: float) -> tuple:
        return (GOOGLE_PLACES_CACHE_PREFIX, lat, lng, radius)

    async def get_venues(self, lat: float, lng: float, radius: float) -> list[Venue]:
        """Return restaurants around a point, fetching and persisting them on a miss.

        Args:
            lat: Latitude
            lng: Longitude
            radius: Search radius in meters

        Raises:
            ProviderError: If the nearby search failed
            PersistenceError: If any restaurant could not be stored
        """
        return await self.cache.get(
            self.cache_key(lat, lng, radius),
            self.ttl_seconds,
            lambda: self._fetch_and_store(lat, lng, radius),
        )

    async def _fetch_and_store(self, lat: float, lng: float, radius: float) -> list[Venue]:
        logger.info(f"[VenueCache] Cache miss for ({lat}, {lng}, {radius}); calling Google Places")
        venues = await self.places_client.search_nearby(lat, lng, radius)
        await self.upsert_all(venues)
        logger.info(f"[VenueCache] Stored {len(venues)} restaurants")
        return venues

    async def upsert_all(self, venues: list[Venue]) -> None:
        """Upsert a batch concurrently; raise one aggregate error once all attempts finish."""
        if not venues:
            return

        semaphore = asyncio.Semaphore(self.upsert_concurrency)

        async def upsert(venue: Venue) -> None:
            async with semaphore:
                await asyncio.to_thread(self.venue_dao.upsert_venue, venue)

        results = await asyncio.gather(*(upsert(v) for v in venues), return_exceptions=True)

        failures = []
        for venue, result in zip(venues, results):
            if isinstance(result, Exception):
                RESTAURANT_UPSERTS_TOTAL.labels(status="error").inc()
                logger.error(f"[VenueCache] Failed to upsert restaurant {venue.id}: {result}")
                failures.append((venue.id, result))
            else:
                RESTAURANT_UPSERTS_TOTAL.labels(status="success").inc()

        if failures:
            raise PersistenceError(
                f"Failed to upsert {len(failures)} of {len(venues)} restaurants",
                errors=failures,
            )
