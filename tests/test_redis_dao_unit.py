"""Unit tests for Redis DAO (mocked, no real Redis needed)."""
import pytest
import redis
from unittest.mock import Mock
from app.dao import RedisVenueDAO
from app.errors import PersistenceError
from app.models import Venue


class TestRedisVenueDAOUnit:
    """Unit tests for RedisVenueDAO with mocked Redis client."""

    @pytest.fixture
    def mock_redis_client(self):
        """Create a mock Redis client."""
        mock = Mock()
        mock.get.return_value = None
        return mock

    @pytest.fixture
    def venue_dao(self, mock_redis_client):
        """Create RedisVenueDAO with mocked client."""
        return RedisVenueDAO(mock_redis_client)

    def test_upsert_venue_calls_redis_correctly(self, venue_dao, mock_redis_client):
        """Test that upsert_venue stores JSON and indexes the id."""
        venue = Venue(id="test_123", name="Test Venue", lat=40.76, lng=-111.89)

        stored = venue_dao.upsert_venue(venue)

        mock_redis_client.get.assert_called_once_with("restaurant_v1:test_123")
        mock_redis_client.set_json_indexed.assert_called_once()
        call_args = mock_redis_client.set_json_indexed.call_args

        assert call_args.kwargs["index_key"] == "restaurants_v1"
        assert call_args.kwargs["member"] == "test_123"
        assert call_args.kwargs["key"] == "restaurant_v1:test_123"
        assert call_args.kwargs["data"] == stored
        assert stored.created_at is not None

    def test_upsert_preserves_existing_created_at(self, venue_dao, mock_redis_client):
        mock_redis_client.get.return_value = (
            '{"id": "v1", "name": "Old", "lat": 40.0, "lng": -111.0, '
            '"created_at": "2024-01-01T00:00:00Z"}'
        )

        stored = venue_dao.upsert_venue(Venue(id="v1", name="New", lat=40.0, lng=-111.0))

        assert stored.name == "New"
        assert stored.created_at.year == 2024
        assert stored.updated_at > stored.created_at

    def test_upsert_wraps_redis_errors(self, venue_dao, mock_redis_client):
        mock_redis_client.set_json_indexed.side_effect = redis.ConnectionError("gone")

        with pytest.raises(PersistenceError):
            venue_dao.upsert_venue(Venue(id="v1", name="Test", lat=40.0, lng=-111.0))

    def test_list_all_venues_uses_single_mget(self, venue_dao, mock_redis_client):
        """Test list_all_venues deserializes venues from one batched read."""
        mock_redis_client.smembers.return_value = {"v2", "v1"}
        mock_redis_client.mget.return_value = [
            '{"id": "v1", "name": "One", "lat": 40.0, "lng": -111.0}',
            None,
        ]

        venues = venue_dao.list_all_venues()

        assert [v.id for v in venues] == ["v1"]
        mock_redis_client.smembers.assert_called_once_with("restaurants_v1")
        mock_redis_client.mget.assert_called_once_with(["restaurant_v1:v1", "restaurant_v1:v2"])

    def test_list_all_venues_wraps_redis_errors(self, venue_dao, mock_redis_client):
        mock_redis_client.smembers.side_effect = redis.TimeoutError("slow")

        with pytest.raises(PersistenceError):
            venue_dao.list_all_venues()
