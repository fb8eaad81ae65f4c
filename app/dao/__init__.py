"""Data access package."""
from app.dao.redis_venue_dao import RedisVenueDAO
from app.dao.redis_membership_dao import RedisMembershipDAO

__all__ = ["RedisVenueDAO", "RedisMembershipDAO"]
