"""Restaurant data models using Pydantic."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Venue(BaseModel):
    """Restaurant mirrored from Google Places, keyed by its place id."""

    id: str
    name: str
    price_level: Optional[int] = None  # Google scale 0..4
    rating: Optional[float] = None
    lat: float
    lng: float
    photo_ref: Optional[str] = None
    maps_url: Optional[str] = None

    # Maintained by the store on upsert
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    def __str__(self) -> str:
        return f"Venue(id={self.id}, name={self.name}, lat={self.lat}, lng={self.lng})"


class AggregatedVenue(BaseModel):
    """Restaurant as seen by one requesting user."""

    id: str
    name: str
    price_level: Optional[int] = None
    rating: Optional[float] = None
    lat: float
    lng: float
    photo_ref: Optional[str] = None
    maps_url: Optional[str] = None
    distance: float  # miles, one decimal
    attendee_count: int = 0
    is_user_attending: bool = False


class VenueFilters(BaseModel):
    """Optional, combinable filters for the nearby (no attendance) list."""

    max_distance: Optional[float] = Field(default=None, description="Inclusive, miles")
    min_rating: Optional[int] = Field(default=None, description="Inclusive, missing rating counts as 0")
    price_level: Optional[int] = Field(default=None, description="Exact match, missing price excluded")


class VenueListing(BaseModel):
    """Result of a restaurant query: active dinner groups first, then nearby picks."""

    with_attendance: list[AggregatedVenue] = Field(default_factory=list)
    nearby: list[AggregatedVenue] = Field(default_factory=list)
