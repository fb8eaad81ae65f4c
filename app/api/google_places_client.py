"""Google Places API (legacy web service) client for nearby restaurant discovery."""
import asyncio
import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from app.errors import (
    ConfigurationError,
    DetailFetchError,
    ProviderError,
    ProviderTimeoutError,
)
from app.metrics import (
    GOOGLE_PLACES_API_CALLS_TOTAL,
    GOOGLE_PLACES_API_CALL_DURATION_SECONDS,
    GOOGLE_PLACES_API_ERRORS_TOTAL,
    PLACE_DETAILS_DEGRADED_TOTAL,
)
from app.models import (
    NearbySearchResponse,
    NearbySearchResult,
    PlaceDetailsResponse,
    PlaceDetailsResult,
    Venue,
)

logger = logging.getLogger(__name__)

GOOGLE_PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"

NEARBY_SEARCH_ENDPOINT = "/nearbysearch/json"
PLACE_DETAILS_ENDPOINT = "/details/json"

RESTAURANT_PLACE_TYPE = "restaurant"
DETAILS_FIELDS = "photos,url"

SEARCH_SUCCESS_STATUSES = {"OK", "ZERO_RESULTS"}


class GooglePlacesAPIClient:
    """Async HTTP client for the Google Places nearby search and details APIs.

    Nearby search runs first; one details request per result then runs
    concurrently, capped by ``max_concurrent_details``. A failed details
    request degrades only its own restaurant.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = GOOGLE_PLACES_API_BASE,
        timeout: float = 10.0,
        max_concurrent_details: int = 8,
    ):
        """Initialize Google Places API client.

        Args:
            api_key: Google Maps/Places API key
            base_url: Places web service base URL
            timeout: Request timeout in seconds
            max_concurrent_details: Cap on in-flight details requests

        Raises:
            ConfigurationError: If api_key is empty
        """
        if not api_key:
            raise ConfigurationError("GOOGLE_PLACES_API_KEY is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_concurrent_details = max_concurrent_details

        # Create async HTTP client with connection pooling
        self.client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )

    async def close(self):
        """Close the HTTP client and clean up resources."""
        await self.client.aclose()

    async def _get(self, endpoint: str, metric_endpoint: str, params: dict) -> dict:
        """GET an endpoint with the API key attached and return the JSON body.

        Raises:
            httpx.HTTPStatusError: If response status is not 2xx
            httpx.TimeoutException: If the request timed out
            httpx.RequestError: If the request failed
            ValueError: If the body is not JSON
        """
        url = f"{self.base_url}{endpoint}"
        query_params = {**params, "key": self.api_key}

        logger.debug(f"[GooglePlacesAPIClient] GET {endpoint} params={params}")

        start_time = time.perf_counter()

        try:
            response = await self.client.get(url, params=query_params)

            logger.debug(f"[GooglePlacesAPIClient] Response status: {response.status_code}")

            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError:
            self._record_error(metric_endpoint, start_time, "http_error")
            raise
        except httpx.TimeoutException:
            self._record_error(metric_endpoint, start_time, "timeout")
            raise
        except httpx.RequestError:
            self._record_error(metric_endpoint, start_time, "connection_error")
            raise
        except ValueError:
            self._record_error(metric_endpoint, start_time, "invalid_json")
            raise

        duration = time.perf_counter() - start_time
        GOOGLE_PLACES_API_CALL_DURATION_SECONDS.labels(endpoint=metric_endpoint).observe(duration)
        GOOGLE_PLACES_API_CALLS_TOTAL.labels(endpoint=metric_endpoint, status="success").inc()
        return data

    def _record_error(self, metric_endpoint: str, start_time: float, error_type: str) -> None:
        duration = time.perf_counter() - start_time
        GOOGLE_PLACES_API_CALL_DURATION_SECONDS.labels(endpoint=metric_endpoint).observe(duration)
        GOOGLE_PLACES_API_CALLS_TOTAL.labels(endpoint=metric_endpoint, status="error").inc()
        GOOGLE_PLACES_API_ERRORS_TOTAL.labels(endpoint=metric_endpoint, error_type=error_type).inc()

    async def search_nearby(self, lat: float, lng: float, radius: float) -> list[Venue]:
        """Find restaurants around a point and enrich each with photo and Maps URL.

        Args:
            lat: Center latitude
            lng: Center longitude
            radius: Search radius in meters

        Returns:
            Normalized restaurants (empty on ZERO_RESULTS)

        Raises:
            ProviderTimeoutError: If the search request timed out
            ProviderError: If the search failed or returned a non-success status
        """
        params = {
            "location": f"{lat},{lng}",
            "radius": str(int(radius)),
            "type": RESTAURANT_PLACE_TYPE,
        }

        logger.info(
            f"[GooglePlacesAPIClient] Nearby search: lat={lat:.6f}, lng={lng:.6f}, radius={int(radius)}m"
        )

        try:
            data = await self._get(NEARBY_SEARCH_ENDPOINT, "nearby_search", params)
            response = NearbySearchResponse.model_validate(data)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Google Places nearby search timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Google Places nearby search failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise ProviderError(f"Google Places nearby search returned an invalid body: {e}") from e

        if response.status not in SEARCH_SUCCESS_STATUSES:
            GOOGLE_PLACES_API_ERRORS_TOTAL.labels(endpoint="nearby_search", error_type="api_status").inc()
            detail = f" ({response.error_message})" if response.error_message else ""
            raise ProviderError(
                f"Google Places API error: {response.status}{detail}", status=response.status
            )

        if response.status == "ZERO_RESULTS" or not response.results:
            logger.info("[GooglePlacesAPIClient] Nearby search returned no restaurants")
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent_details)

        async def enrich(place: NearbySearchResult) -> Venue:
            async with semaphore:
                return await self._enrich_place(place)

        venues = await asyncio.gather(*(enrich(place) for place in response.results))

        logger.info(f"[GooglePlacesAPIClient] Nearby search returned {len(venues)} restaurants")
        return list(venues)

    async def get_place_details(self, place_id: str) -> PlaceDetailsResult:
        """Fetch photo references and the canonical Maps URL for a place.

        Raises:
            DetailFetchError: On any failure, including a non-OK status
        """
        params = {"place_id": place_id, "fields": DETAILS_FIELDS}

        try:
            data = await self._get(PLACE_DETAILS_ENDPOINT, "place_details", params)
            response = PlaceDetailsResponse.model_validate(data)
        except httpx.TimeoutException as e:
            raise DetailFetchError(place_id, f"timeout: {e}") from e
        except httpx.HTTPError as e:
            raise DetailFetchError(place_id, str(e)) from e
        except (ValueError, ValidationError) as e:
            raise DetailFetchError(place_id, f"invalid body: {e}") from e

        if response.status != "OK":
            GOOGLE_PLACES_API_ERRORS_TOTAL.labels(endpoint="place_details", error_type="api_status").inc()
            raise DetailFetchError(place_id, f"status {response.status}")

        return response.result

    async def _enrich_place(self, place: NearbySearchResult) -> Venue:
        details: Optional[PlaceDetailsResult] = None
        try:
            details = await self.get_place_details(place.place_id)
        except DetailFetchError as e:
            PLACE_DETAILS_DEGRADED_TOTAL.inc()
            logger.warning(f"[GooglePlacesAPIClient] {e}; returning base fields only")

        return self.to_venue(place, details)

    @staticmethod
    def to_venue(place: NearbySearchResult, details: Optional[PlaceDetailsResult] = None) -> Venue:
        """Merge a search result and optional details into our Venue model."""
        return Venue(
            id=place.place_id,
            name=place.name,
            price_level=place.price_level,
            rating=place.rating,
            lat=place.geometry.location.lat,
            lng=place.geometry.location.lng,
            photo_ref=details.first_photo_reference if details else None,
            maps_url=details.url if details else None,
        )
