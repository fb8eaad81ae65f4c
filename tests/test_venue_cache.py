"""Unit tests for VenueCache and DirectoryCache."""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from app.cache import TTLCache
from app.errors import PersistenceError, ProviderError
from app.models import Venue
from app.services import DirectoryCache, VenueCache

DAY = 60 * 60 * 24


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_venue(venue_id: str, **extra) -> Venue:
    return Venue(id=venue_id, name=f"Restaurant {venue_id}", lat=40.76, lng=-111.89, **extra)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(name="test", clock=clock)


@pytest.fixture
def mock_places_client():
    mock = Mock()
    mock.search_nearby = AsyncMock(return_value=[make_venue("p1"), make_venue("p2")])
    return mock


@pytest.fixture
def mock_venue_dao():
    return Mock()


@pytest.fixture
def venue_cache(cache, mock_places_client, mock_venue_dao):
    return VenueCache(cache, mock_places_client, mock_venue_dao, ttl_seconds=DAY)


@pytest.fixture
def directory_cache(cache, mock_venue_dao):
    return DirectoryCache(cache, mock_venue_dao, ttl_seconds=DAY)


class TestVenueCache:
    """Test Places caching with write-through persistence."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_upserts_every_venue(
        self, venue_cache, mock_places_client, mock_venue_dao
    ):
        venues = await venue_cache.get_venues(40.7596, -111.8867, 1609.34)

        assert [v.id for v in venues] == ["p1", "p2"]
        mock_places_client.search_nearby.assert_awaited_once_with(40.7596, -111.8867, 1609.34)
        upserted = sorted(call.args[0].id for call in mock_venue_dao.upsert_venue.call_args_list)
        assert upserted == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_hit_bypasses_provider_and_store(
        self, venue_cache, mock_places_client, mock_venue_dao
    ):
        await venue_cache.get_venues(40.7596, -111.8867, 1609.34)
        await venue_cache.get_venues(40.7596, -111.8867, 1609.34)

        assert mock_places_client.search_nearby.await_count == 1
        assert mock_venue_dao.upsert_venue.call_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_trigger_one_provider_call(self, venue_cache, mock_places_client):
        release = asyncio.Event()

        async def slow_search(lat, lng, radius):
            await release.wait()
            return [make_venue("p1")]

        mock_places_client.search_nearby.side_effect = slow_search

        callers = [
            asyncio.create_task(venue_cache.get_venues(40.7596, -111.8867, 1609.34))
            for _ in range(20)
        ]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*callers)

        assert mock_places_client.search_nearby.await_count == 1
        assert all([v.id for v in r] == ["p1"] for r in results)

    @pytest.mark.asyncio
    async def test_key_is_exact_coordinates_and_radius(self, venue_cache, mock_places_client):
        await venue_cache.get_venues(40.7596, -111.8867, 1609.34)
        await venue_cache.get_venues(40.7597, -111.8867, 1609.34)
        await venue_cache.get_venues(40.7596, -111.8867, 3218.68)

        assert mock_places_client.search_nearby.await_count == 3

    @pytest.mark.asyncio
    async def test_value_unchanged_before_ttl_and_refetched_after(
        self, venue_cache, mock_places_client, clock
    ):
        first = await venue_cache.get_venues(40.0, -111.0, 500)

        mock_places_client.search_nearby.return_value = [make_venue("p3")]
        clock.now += DAY - 1
        assert await venue_cache.get_venues(40.0, -111.0, 500) == first

        clock.now += 1
        refreshed = await venue_cache.get_venues(40.0, -111.0, 500)
        assert [v.id for v in refreshed] == ["p3"]
        assert mock_places_client.search_nearby.await_count == 2

    @pytest.mark.asyncio
    async def test_upsert_failures_aggregate_after_all_attempts(
        self, venue_cache, mock_places_client, mock_venue_dao
    ):
        mock_places_client.search_nearby.return_value = [
            make_venue("p1"),
            make_venue("p2"),
            make_venue("p3"),
        ]

        def upsert(venue):
            if venue.id == "p2":
                raise PersistenceError("redis down")
            return venue

        mock_venue_dao.upsert_venue.side_effect = upsert

        with pytest.raises(PersistenceError) as exc_info:
            await venue_cache.get_venues(40.0, -111.0, 500)

        assert mock_venue_dao.upsert_venue.call_count == 3
        assert [key for key, _ in exc_info.value.errors] == ["p2"]

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, venue_cache, mock_places_client):
        mock_places_client.search_nearby.side_effect = [
            ProviderError("Google Places API error: OVER_QUERY_LIMIT", status="OVER_QUERY_LIMIT"),
            [make_venue("p1")],
        ]

        with pytest.raises(ProviderError):
            await venue_cache.get_venues(40.0, -111.0, 500)

        venues = await venue_cache.get_venues(40.0, -111.0, 500)
        assert [v.id for v in venues] == ["p1"]

    @pytest.mark.asyncio
    async def test_empty_result_skips_upserts(self, venue_cache, mock_places_client, mock_venue_dao):
        mock_places_client.search_nearby.return_value = []

        assert await venue_cache.get_venues(40.0, -111.0, 500) == []
        mock_venue_dao.upsert_venue.assert_not_called()


class TestDirectoryCache:
    """Test the cached full restaurant listing."""

    @pytest.mark.asyncio
    async def test_loads_once_within_ttl(self, directory_cache, mock_venue_dao, clock):
        mock_venue_dao.list_all_venues.return_value = [make_venue("p1")]

        await directory_cache.all_venues()
        mock_venue_dao.list_all_venues.return_value = [make_venue("p1"), make_venue("p2")]
        clock.now += DAY - 1
        venues = await directory_cache.all_venues()

        assert [v.id for v in venues] == ["p1"]
        assert mock_venue_dao.list_all_venues.call_count == 1

    @pytest.mark.asyncio
    async def test_reloads_after_ttl(self, directory_cache, mock_venue_dao, clock):
        mock_venue_dao.list_all_venues.return_value = [make_venue("p1")]
        await directory_cache.all_venues()

        mock_venue_dao.list_all_venues.return_value = [make_venue("p1"), make_venue("p2")]
        clock.now += DAY
        venues = await directory_cache.all_venues()

        assert len(venues) == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, directory_cache, mock_venue_dao):
        mock_venue_dao.list_all_venues.return_value = [make_venue("p1")]
        await directory_cache.all_venues()

        directory_cache.invalidate()
        await directory_cache.all_venues()

        assert mock_venue_dao.list_all_venues.call_count == 2

    @pytest.mark.asyncio
    async def test_not_invalidated_by_venue_upserts(
        self, directory_cache, venue_cache, mock_venue_dao, mock_places_client
    ):
        mock_venue_dao.list_all_venues.return_value = []
        assert await directory_cache.all_venues() == []

        mock_places_client.search_nearby.return_value = [make_venue("p9")]
        await venue_cache.get_venues(40.0, -111.0, 500)

        assert await directory_cache.all_venues() == []
        assert mock_venue_dao.list_all_venues.call_count == 1
