"""Thin Redis client wrapper used by the DAOs."""
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper exposing the commands the DAOs rely on."""

    def __init__(self, client: redis.Redis):
        """Wrap an existing Redis client.

        Args:
            client: redis.Redis instance created with decode_responses=True
        """
        self.client = client

        try:
            self.ping()
            logger.info("Connected to Redis")
        except redis.ConnectionError as e:
            logger.error(f"Could not connect to Redis: {e}")
            raise

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def mget(self, keys: list[str]) -> list[Optional[str]]:
        """Get values for many keys in one round trip (None for missing keys)."""
        if not keys:
            return []
        return self.client.mget(keys)

    def hgetall(self, key: str) -> dict[str, str]:
        return self.client.hgetall(key)

    def smembers(self, key: str) -> set[str]:
        return self.client.smembers(key)

    def scard(self, key: str) -> int:
        return self.client.scard(key)

    def set_json_indexed(self, index_key: str, member: str, key: str, data: Any) -> None:
        """Store JSON data under key and register member in an index set atomically.

        Args:
            index_key: Redis set listing all members (e.g. "restaurants_v1")
            member: Member identifier added to the index
            key: Key holding the JSON document
            data: Pydantic model or JSON-serializable object
        """
        if hasattr(data, "model_dump_json"):
            json_data = data.model_dump_json()
        else:
            json_data = json.dumps(data)

        with self.client.pipeline(transaction=True) as pipe:
            pipe.set(key, json_data)
            pipe.sadd(index_key, member)
            pipe.execute()

        logger.debug(f"Stored JSON and indexed member: {key}")

    def pipeline(self, transaction: bool = True) -> redis.client.Pipeline:
        """Return a pipeline for WATCH/MULTI/EXEC transactions or batched reads."""
        return self.client.pipeline(transaction=transaction)

    def ping(self) -> bool:
        """Check connectivity to Redis.

        Raises:
            redis.ConnectionError if connection fails
        """
        return self.client.ping()
