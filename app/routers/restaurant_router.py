"""FastAPI routes for restaurant and dinner group endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from app.errors import (
    InvalidQueryError,
    PersistenceError,
    ProviderError,
    ProviderTimeoutError,
    VenueNotFoundError,
)
from app.models import VenueFilters, VenueListing

logger = logging.getLogger(__name__)

# Create router at module level
router = APIRouter()

# Global handler reference - set during startup
_restaurant_handler = None


class RestaurantsResponse(VenueListing):
    """Listing plus the filters that produced it."""

    filters: VenueFilters


class JoinRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)


class LeaveRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


def set_restaurant_handler(handler):
    """Set the restaurant handler instance (called during startup)."""
    global _restaurant_handler
    _restaurant_handler = handler
    logger.info("[RestaurantRouter] Handler injected successfully")


def get_handler():
    """Get the restaurant handler, raising error if not initialized."""
    if _restaurant_handler is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _restaurant_handler


def to_http_exception(e: Exception, operation: str) -> HTTPException:
    """Map application errors to HTTP responses."""
    if isinstance(e, InvalidQueryError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, VenueNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ProviderTimeoutError):
        logger.error(f"[RestaurantRouter] Provider timeout in {operation}: {e}")
        return HTTPException(status_code=504, detail="Restaurant directory timed out")
    if isinstance(e, ProviderError):
        logger.error(f"[RestaurantRouter] Provider error in {operation}: {e}")
        return HTTPException(status_code=502, detail="Restaurant directory unavailable")
    if isinstance(e, PersistenceError):
        logger.error(f"[RestaurantRouter] Persistence error in {operation}: {e}")
        return HTTPException(status_code=503, detail="Storage unavailable")
    logger.exception(f"[RestaurantRouter] Error in {operation}: {e}")
    return HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/v1/restaurants",
    response_model=RestaurantsResponse,
    summary="List restaurants",
    description="Restaurants with active dinner groups, then the best nearby restaurants",
)
async def get_restaurants(
    user_id: Optional[str] = Query(None, description="Requesting user id"),
    distance: Optional[int] = Query(None, description="Search radius and max distance in miles", gt=0),
    rating: Optional[int] = Query(None, description="Minimum rating", ge=0, le=5),
    price: Optional[int] = Query(None, description="Exact price level", ge=0, le=4),
    lat: Optional[float] = Query(None, description="Latitude", ge=-90, le=90),
    lng: Optional[float] = Query(None, description="Longitude", ge=-180, le=180),
) -> RestaurantsResponse:
    """List restaurants for the requesting user."""
    handler = get_handler()
    try:
        listing = await handler.get_restaurants(
            user_id=user_id, distance=distance, rating=rating, price=price, lat=lat, lng=lng
        )
    except Exception as e:
        raise to_http_exception(e, "get_restaurants") from e

    return RestaurantsResponse(
        with_attendance=listing.with_attendance,
        nearby=listing.nearby,
        filters=VenueFilters(max_distance=distance, min_rating=rating, price_level=price),
    )


@router.post("/v1/dinner-groups/join", status_code=204, summary="Join a restaurant's dinner group")
async def join_dinner_group(body: JoinRequest) -> None:
    handler = get_handler()
    try:
        await handler.join(body.user_id, body.restaurant_id)
    except Exception as e:
        raise to_http_exception(e, "join_dinner_group") from e


@router.post("/v1/dinner-groups/leave", status_code=204, summary="Leave the current dinner group")
async def leave_dinner_group(body: LeaveRequest) -> None:
    handler = get_handler()
    try:
        await handler.leave(body.user_id)
    except Exception as e:
        raise to_http_exception(e, "leave_dinner_group") from e


@router.get("/ping", summary="Health check", description="Health check endpoint")
def ping() -> dict[str, str]:
    """Health check endpoint."""
    handler = get_handler()
    return handler.ping()
