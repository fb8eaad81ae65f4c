"""Unit tests for the Google Places API client."""
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from app.api import GooglePlacesAPIClient
from app.errors import (
    ConfigurationError,
    DetailFetchError,
    ProviderError,
    ProviderTimeoutError,
)
from app.models import Venue


def make_response(data: dict) -> Mock:
    response = Mock()
    response.status_code = 200
    response.json.return_value = data
    response.raise_for_status.return_value = None
    return response


def nearby_result(place_id: str, name: str, **extra) -> dict:
    return {
        "place_id": place_id,
        "name": name,
        "geometry": {"location": {"lat": 40.76, "lng": -111.89}},
        "vicinity": "Main St",
        **extra,
    }


def details_ok(photo_ref: str, url: str) -> dict:
    return {
        "status": "OK",
        "result": {"photos": [{"photo_reference": photo_ref}, {"photo_reference": "other"}], "url": url},
    }


@pytest.fixture
def api_client():
    """Create Google Places API client for testing."""
    client = GooglePlacesAPIClient(api_key="test_key", timeout=10.0, max_concurrent_details=2)
    yield client


def route_by_endpoint(search_data: dict, details_by_place: dict):
    """Build a side effect answering nearby search and per-place details calls."""

    async def fake_get(url, params=None):
        if url.endswith("/nearbysearch/json"):
            return make_response(search_data)
        outcome = details_by_place[params["place_id"]]
        if isinstance(outcome, Exception):
            raise outcome
        return make_response(outcome)

    return fake_get


class TestGooglePlacesAPIClient:
    """Unit tests for GooglePlacesAPIClient."""

    def test_missing_api_key_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            GooglePlacesAPIClient(api_key="")

    @pytest.mark.asyncio
    async def test_search_nearby_merges_details(self, api_client):
        search = {
            "status": "OK",
            "results": [
                nearby_result("p1", "Taco Place", price_level=1, rating=4.5),
                nearby_result("p2", "Noodle Bar"),
            ],
        }
        details = {
            "p1": details_ok("ref-1", "https://maps.google.com/?cid=1"),
            "p2": details_ok("ref-2", "https://maps.google.com/?cid=2"),
        }

        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = route_by_endpoint(search, details)

            venues = await api_client.search_nearby(40.7596, -111.8867, 1609.34)

        assert [v.id for v in venues] == ["p1", "p2"]
        assert venues[0] == Venue(
            id="p1",
            name="Taco Place",
            price_level=1,
            rating=4.5,
            lat=40.76,
            lng=-111.89,
            photo_ref="ref-1",
            maps_url="https://maps.google.com/?cid=1",
        )
        assert venues[1].price_level is None
        assert venues[1].rating is None

    @pytest.mark.asyncio
    async def test_search_request_parameters(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response({"status": "ZERO_RESULTS", "results": []})

            await api_client.search_nearby(40.7596, -111.8867, 1609.34)

        call = mock_get.call_args
        assert call.args[0] == "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
        assert call.kwargs["params"] == {
            "location": "40.7596,-111.8867",
            "radius": "1609",
            "type": "restaurant",
            "key": "test_key",
        }

    @pytest.mark.asyncio
    async def test_details_request_parameters(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response(details_ok("ref", "https://maps/x"))

            result = await api_client.get_place_details("p9")

        assert result.first_photo_reference == "ref"
        assert mock_get.call_args.kwargs["params"] == {
            "place_id": "p9",
            "fields": "photos,url",
            "key": "test_key",
        }

    @pytest.mark.asyncio
    async def test_zero_results_returns_empty_list_without_details(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response({"status": "ZERO_RESULTS", "results": []})

            venues = await api_client.search_nearby(40.0, -111.0, 500)

        assert venues == []
        assert mock_get.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["OVER_QUERY_LIMIT", "REQUEST_DENIED", "INVALID_REQUEST"])
    async def test_non_ok_status_raises_provider_error(self, api_client, status):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response(
                {"status": status, "results": [nearby_result("p1", "Ignored")]}
            )

            with pytest.raises(ProviderError) as exc_info:
                await api_client.search_nearby(40.0, -111.0, 500)

        assert exc_info.value.status == status
        assert exc_info.value.retryable is False
        # No details lookups after a failed search
        assert mock_get.call_count == 1

    @pytest.mark.asyncio
    async def test_search_timeout_raises_retryable_error(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = httpx.ReadTimeout("timed out")

            with pytest.raises(ProviderTimeoutError) as exc_info:
                await api_client.search_nearby(40.0, -111.0, 500)

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_search_connection_error_raises_provider_error(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = httpx.ConnectError("refused")

            with pytest.raises(ProviderError):
                await api_client.search_nearby(40.0, -111.0, 500)

    @pytest.mark.asyncio
    async def test_failed_details_degrade_single_venue(self, api_client):
        search = {
            "status": "OK",
            "results": [
                nearby_result("p1", "Good", rating=4.0),
                nearby_result("p2", "Bad Status", rating=3.0),
                nearby_result("p3", "Timed Out", rating=3.5),
            ],
        }
        details = {
            "p1": details_ok("ref-1", "https://maps/1"),
            "p2": {"status": "NOT_FOUND", "result": {}},
            "p3": httpx.ReadTimeout("slow"),
        }

        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = route_by_endpoint(search, details)

            venues = await api_client.search_nearby(40.0, -111.0, 500)

        by_id = {v.id: v for v in venues}
        assert len(venues) == 3
        assert by_id["p1"].photo_ref == "ref-1"
        assert by_id["p2"].photo_ref is None and by_id["p2"].maps_url is None
        assert by_id["p2"].rating == 3.0
        assert by_id["p3"].photo_ref is None and by_id["p3"].maps_url is None

    @pytest.mark.asyncio
    async def test_details_non_ok_status_raises(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response({"status": "INVALID_REQUEST"})

            with pytest.raises(DetailFetchError) as exc_info:
                await api_client.get_place_details("p1")

        assert exc_info.value.place_id == "p1"

    @pytest.mark.asyncio
    async def test_details_without_photos(self, api_client):
        with patch.object(api_client.client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = make_response({"status": "OK", "result": {"url": "https://maps/1"}})

            result = await api_client.get_place_details("p1")

        assert result.first_photo_reference is None
        assert result.url == "https://maps/1"
