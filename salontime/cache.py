"""
Redis caching utilities for frequently read public data
Reads fall through to the database whenever Redis is unavailable
"""
import json
import logging
from typing import Any, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

SALON_CACHE_TTL = 300
CATEGORIES_CACHE_TTL = 3600


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.debug(f"Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


# Global cache instance
cache = Cache()


def get_salon_cached(salon_id: str) -> Optional[dict]:
    return cache.get(f"salon:{salon_id}")


def set_salon_cached(salon_id: str, salon: dict) -> bool:
    return cache.set(f"salon:{salon_id}", salon, SALON_CACHE_TTL)


def invalidate_salon_cache(salon_id: str) -> bool:
    """Invalidate cached public salon data when the salon or its rating changes"""
    return cache.delete(f"salon:{salon_id}")


def get_categories_cached() -> Optional[list]:
    return cache.get("service_categories")


def set_categories_cached(categories: list) -> bool:
    return cache.set("service_categories", categories, CATEGORIES_CACHE_TTL)
