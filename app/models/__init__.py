"""Data models package for dinner-groups-server."""
from app.models.venue import (
    Venue,
    AggregatedVenue,
    VenueFilters,
    VenueListing,
)
from app.models.membership import (
    DinnerGroup,
    Attendee,
    GroupAttendance,
)
from app.models.places import (
    NearbySearchResponse,
    NearbySearchResult,
    PlaceDetailsResponse,
    PlaceDetailsResult,
    PlacePhoto,
    Geometry,
    LatLng,
)

__all__ = [
    # Venue models
    "Venue",
    "AggregatedVenue",
    "VenueFilters",
    "VenueListing",
    # Membership models
    "DinnerGroup",
    "Attendee",
    "GroupAttendance",
    # Google Places payloads
    "NearbySearchResponse",
    "NearbySearchResult",
    "PlaceDetailsResponse",
    "PlaceDetailsResult",
    "PlacePhoto",
    "Geometry",
    "LatLng",
]
