"""External API clients package."""
from app.api.google_places_client import GooglePlacesAPIClient

__all__ = ["GooglePlacesAPIClient"]
