"""Restaurant handler for HTTP requests."""
import logging
from typing import Optional

from app.geo import MILES_TO_METERS
from app.models import VenueFilters, VenueListing
from app.services import AggregationService, MembershipService

logger = logging.getLogger(__name__)


class RestaurantHandler:
    """Translates request parameters into service calls."""

    def __init__(
        self,
        aggregation_service: AggregationService,
        membership_service: MembershipService,
        default_lat: float,
        default_lng: float,
        default_distance_miles: int = 1,
    ):
        self.aggregation_service = aggregation_service
        self.membership_service = membership_service
        self.default_lat = default_lat
        self.default_lng = default_lng
        self.default_distance_miles = default_distance_miles

    async def get_restaurants(
        self,
        user_id: Optional[str] = None,
        distance: Optional[int] = None,
        rating: Optional[int] = None,
        price: Optional[int] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
    ) -> VenueListing:
        """List restaurants around the requested (or default) point.

        ``distance`` (miles) sets the Places search radius and, when given,
        also caps the nearby list by computed distance.
        """
        distance_miles = distance if distance is not None else self.default_distance_miles
        radius_meters = distance_miles * MILES_TO_METERS

        filters = VenueFilters(
            max_distance=distance,
            min_rating=rating,
            price_level=price,
        )

        logger.info(
            f"[RestaurantHandler] GetRestaurants: user={user_id}, distance={distance}, "
            f"rating={rating}, price={price}"
        )

        return await self.aggregation_service.list_venues(
            lat if lat is not None else self.default_lat,
            lng if lng is not None else self.default_lng,
            radius_meters,
            user_id=user_id,
            filters=filters,
        )

    async def join(self, user_id: str, restaurant_id: str) -> None:
        logger.info(f"[RestaurantHandler] Join: user={user_id}, restaurant={restaurant_id}")
        await self.membership_service.join_group(user_id, restaurant_id)

    async def leave(self, user_id: str) -> None:
        logger.info(f"[RestaurantHandler] Leave: user={user_id}")
        await self.membership_service.leave_group(user_id)

    def ping(self) -> dict[str, str]:
        logger.debug("[RestaurantHandler] Ping")
        return {"status": "pong"}
