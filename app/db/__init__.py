"""Database package."""
from app.db.redis_client import RedisClient

__all__ = ["RedisClient"]
