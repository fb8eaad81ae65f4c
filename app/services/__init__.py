"""Services package."""
from app.services.venue_cache import VenueCache
from app.services.directory_cache import DirectoryCache
from app.services.membership_service import MembershipService
from app.services.aggregation_service import AggregationService

__all__ = ["VenueCache", "DirectoryCache", "MembershipService", "AggregationService"]
