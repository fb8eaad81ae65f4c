"""Cache package."""
from app.cache.ttl_cache import TTLCache, CacheEntry

__all__ = ["TTLCache", "CacheEntry"]
