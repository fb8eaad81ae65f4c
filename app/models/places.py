"""Google Places (legacy web service) response models.

Only the fields the service reads are modeled; everything else in the
payload is ignored.
"""
from typing import Optional

from pydantic import BaseModel, Field


class LatLng(BaseModel):
    lat: float
    lng: float


class Geometry(BaseModel):
    location: LatLng


class NearbySearchResult(BaseModel):
    """Single place from /nearbysearch/json."""

    place_id: str
    name: str
    price_level: Optional[int] = None
    rating: Optional[float] = None
    geometry: Geometry
    vicinity: Optional[str] = None


class NearbySearchResponse(BaseModel):
    status: str
    results: list[NearbySearchResult] = Field(default_factory=list)
    error_message: Optional[str] = None


class PlacePhoto(BaseModel):
    photo_reference: str


class PlaceDetailsResult(BaseModel):
    photos: Optional[list[PlacePhoto]] = None
    url: Optional[str] = None

    @property
    def first_photo_reference(self) -> Optional[str]:
        if not self.photos:
            return None
        return self.photos[0].photo_reference


class PlaceDetailsResponse(BaseModel):
    status: str
    result: PlaceDetailsResult = Field(default_factory=PlaceDetailsResult)
    error_message: Optional[str] = None
