"""Dependency injection container for application components."""
import logging
from typing import Optional

import redis

from app.api import GooglePlacesAPIClient
from app.cache import TTLCache
from app.config import Settings
from app.dao import RedisMembershipDAO, RedisVenueDAO
from app.db import RedisClient
from app.handlers import RestaurantHandler
from app.services import (
    AggregationService,
    DirectoryCache,
    MembershipService,
    VenueCache,
)

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    Initializes and wires up all application dependencies. Created once at
    startup; the cache it owns lives for the whole process.
    """

    def __init__(self, settings: Settings, redis_internal_client: Optional[redis.Redis] = None):
        """Initialize container with all dependencies.

        Args:
            settings: Application settings
            redis_internal_client: Pre-built Redis client (tests); connects from settings if None

        Raises:
            ConfigurationError: If the Google Places API key is missing
        """
        logger.info("[Container] Initializing container")
        self.settings = settings

        # Fail fast before opening any connection
        self.google_places_api = GooglePlacesAPIClient(
            api_key=settings.google_places_api_key,
            base_url=settings.google_places_base_url,
            timeout=settings.google_places_timeout_seconds,
            max_concurrent_details=settings.places_max_concurrent_details,
        )
        logger.info("[Container] Google Places API client initialized")

        if redis_internal_client is None:
            logger.info(
                f"[Container] Connecting to Redis at {settings.redis_host}:{settings.redis_port}"
            )
            redis_internal_client = redis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password or None,
                db=settings.redis_db,
                decode_responses=True,
            )

        # RedisClient pings on construction and raises if Redis is unreachable
        self.redis_client = RedisClient(redis_internal_client)

        # DAOs
        self.venue_dao = RedisVenueDAO(self.redis_client)
        self.membership_dao = RedisMembershipDAO(self.redis_client)

        # Process-wide cache shared by the Places and restaurant-listing layers
        self.cache = TTLCache(name="restaurants", max_entries=settings.cache_max_entries)

        self.venue_cache = VenueCache(
            self.cache,
            self.google_places_api,
            self.venue_dao,
            ttl_seconds=settings.venue_cache_ttl_seconds,
            upsert_concurrency=settings.venue_upsert_concurrency,
        )
        self.directory_cache = DirectoryCache(
            self.cache,
            self.venue_dao,
            ttl_seconds=settings.directory_cache_ttl_seconds,
        )

        # Services
        self.membership_service = MembershipService(
            self.membership_dao,
            self.directory_cache,
            max_retries=settings.membership_max_retries,
        )
        self.aggregation_service = AggregationService(
            self.venue_cache,
            self.directory_cache,
            self.membership_dao,
            nearby_limit=settings.nearby_limit,
        )

        # Handlers
        self.restaurant_handler = RestaurantHandler(
            self.aggregation_service,
            self.membership_service,
            default_lat=settings.default_lat,
            default_lng=settings.default_lng,
            default_distance_miles=settings.default_distance_miles,
        )

        logger.info("[Container] Container initialized successfully")

    async def shutdown(self):
        """Clean up resources on shutdown."""
        logger.info("[Container] Shutting down container")
        try:
            await self.google_places_api.close()
            logger.info("[Container] Google Places API client closed")
        except Exception as e:
            logger.error(f"[Container] Error closing Google Places API client: {e}")
