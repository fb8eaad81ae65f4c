"""Builds the per-user restaurant listing."""
import asyncio
import logging
from typing import Optional

from app.dao import RedisMembershipDAO
from app.errors import InvalidQueryError
from app.geo import calculate_distance
from app.models import AggregatedVenue, Venue, VenueFilters, VenueListing
from app.services.directory_cache import DirectoryCache
from app.services.venue_cache import VenueCache

logger = logging.getLogger(__name__)

NEARBY_LIMIT = 15


def validate_query(lat: float, lng: float, radius: float) -> None:
    """Reject coordinates outside the valid range and non-positive radii."""
    if not -90 <= lat <= 90:
        raise InvalidQueryError(f"Latitude {lat} is outside [-90, 90]")
    if not -180 <= lng <= 180:
        raise InvalidQueryError(f"Longitude {lng} is outside [-180, 180]")
    if not radius > 0:
        raise InvalidQueryError(f"Radius {radius} must be positive")


def rank_with_attendance(venues: list[AggregatedVenue]) -> list[AggregatedVenue]:
    """Restaurants with active dinner groups, busiest first. No filters, no cap."""
    with_attendance = [v for v in venues if v.attendee_count > 0]
    return sorted(with_attendance, key=lambda v: -v.attendee_count)


def rank_nearby(
    venues: list[AggregatedVenue],
    filters: Optional[VenueFilters] = None,
    limit: int = NEARBY_LIMIT,
) -> list[AggregatedVenue]:
    """Restaurants without dinner groups: filtered, best rated first, closest on ties.

    Missing ratings count as 0 for both the filter and the sort; a missing
    price level never matches an active price filter.
    """
    filters = filters or VenueFilters()
    nearby = [v for v in venues if v.attendee_count == 0]

    if filters.max_distance is not None:
        nearby = [v for v in nearby if v.distance <= filters.max_distance]

    if filters.min_rating is not None:
        nearby = [v for v in nearby if (v.rating or 0) >= filters.min_rating]

    if filters.price_level is not None:
        nearby = [v for v in nearby if v.price_level == filters.price_level]

    nearby.sort(key=lambda v: (-(v.rating or 0), v.distance))
    return nearby[:limit]


class AggregationService:
    """Combines cached Places data, the stored restaurant table and live group counts."""

    def __init__(
        self,
        venue_cache: VenueCache,
        directory_cache: DirectoryCache,
        membership_dao: RedisMembershipDAO,
        nearby_limit: int = NEARBY_LIMIT,
    ):
        self.venue_cache = venue_cache
        self.directory_cache = directory_cache
        self.membership_dao = membership_dao
        self.nearby_limit = nearby_limit

    async def aggregate_venues(
        self,
        lat: float,
        lng: float,
        radius: float,
        user_id: Optional[str] = None,
    ) -> list[AggregatedVenue]:
        """Every stored restaurant with distance, attendee count and membership flag.

        Args:
            lat: Requester latitude
            lng: Requester longitude
            radius: Places search radius in meters
            user_id: Requesting user; anonymous queries never get a membership flag

        Raises:
            InvalidQueryError: If coordinates or radius are out of range
            ProviderError: If Google Places failed on a cache miss
            PersistenceError: If Redis failed
        """
        validate_query(lat, lng, radius)

        # Populates Redis for this area; the listing itself comes from the full table
        await self.venue_cache.get_venues(lat, lng, radius)

        all_venues = await self.directory_cache.all_venues()

        # Never cached: attendance must be live
        groups = await asyncio.to_thread(self.membership_dao.list_groups_with_counts)
        counts_by_restaurant = {g.restaurant_id: g.attendee_count for g in groups}

        user_restaurant_id: Optional[str] = None
        if user_id:
            user_restaurant_id = await asyncio.to_thread(
                self.membership_dao.get_user_restaurant_id, user_id
            )

        return [
            self._aggregate(venue, lat, lng, counts_by_restaurant, user_restaurant_id)
            for venue in all_venues
        ]

    async def list_venues(
        self,
        lat: float,
        lng: float,
        radius: float,
        user_id: Optional[str] = None,
        filters: Optional[VenueFilters] = None,
    ) -> VenueListing:
        """Ranked listing: active dinner groups, then the top nearby restaurants."""
        aggregated = await self.aggregate_venues(lat, lng, radius, user_id)

        listing = VenueListing(
            with_attendance=rank_with_attendance(aggregated),
            nearby=rank_nearby(aggregated, filters, self.nearby_limit),
        )

        logger.info(
            f"[AggregationService] lat={lat:.6f}, lng={lng:.6f}, radius={radius:.0f}m: "
            f"{len(listing.with_attendance)} with attendance, {len(listing.nearby)} nearby "
            f"(of {len(aggregated)} stored)"
        )
        return listing

    @staticmethod
    def _aggregate(
        venue: Venue,
        lat: float,
        lng: float,
        counts_by_restaurant: dict[str, int],
        user_restaurant_id: Optional[str],
    ) -> AggregatedVenue:
        return AggregatedVenue(
            id=venue.id,
            name=venue.name,
            price_level=venue.price_level,
            rating=venue.rating,
            lat=venue.lat,
            lng=venue.lng,
            photo_ref=venue.photo_ref,
            maps_url=venue.maps_url,
            distance=calculate_distance(lat, lng, venue.lat, venue.lng),
            attendee_count=counts_by_restaurant.get(venue.id, 0),
            is_user_attending=user_restaurant_id is not None and user_restaurant_id == venue.id,
        )
