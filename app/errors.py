"""Exception hierarchy for dinner-groups-server."""
from typing import Optional


class DinnerGroupsError(Exception):
    """Base class for all application errors."""


class ConfigurationError(DinnerGroupsError):
    """Required configuration (e.g. the Places API key) is missing."""


class InvalidQueryError(DinnerGroupsError, ValueError):
    """Query coordinates or radius are out of range."""


class ProviderError(DinnerGroupsError):
    """Nearby search failed. Fatal for the query, never retried automatically."""

    retryable = False

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout."""

    retryable = True


class DetailFetchError(DinnerGroupsError):
    """Place detail lookup failed for a single venue."""

    def __init__(self, place_id: str, reason: str):
        super().__init__(f"Place details failed for {place_id}: {reason}")
        self.place_id = place_id
        self.reason = reason


class PersistenceError(DinnerGroupsError):
    """Local store operation failed.

    For batched writes, ``errors`` holds one ``(key, exception)`` pair per
    failed member so callers can see exactly which writes did not land.
    """

    def __init__(self, message: str, errors: Optional[list[tuple[str, BaseException]]] = None):
        super().__init__(message)
        self.errors = errors or []


class VenueNotFoundError(PersistenceError):
    """Referenced venue does not exist in the local store."""

    def __init__(self, restaurant_id: str):
        super().__init__(f"Restaurant {restaurant_id} not found")
        self.restaurant_id = restaurant_id


class MembershipConflictError(DinnerGroupsError):
    """A watched membership key changed while a transition was being applied."""
