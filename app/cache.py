"""
Redis caching for dashboard aggregates
"""

import json
import logging
from typing import Any, Optional

from .config import CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with JSON serialization. Every call degrades to a miss without Redis."""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        if not CACHE_ENABLED:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.debug(f"Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None
        try:
            value = client.get(key)
            return json.loads(value) if value else None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.delete(key)
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


cache = Cache()


def dashboard_cache_key(account_id: int) -> str:
    return f"dashboard:stats:{account_id}"


def invalidate_dashboard(account_id: int) -> None:
    """Call after writes that change dashboard totals"""
    cache.delete(dashboard_cache_key(account_id))
