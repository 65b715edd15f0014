"""
Redis caching utilities for provider lookups
Fails soft: without Redis every read is a miss and every write is dropped
"""
import json
import logging
from typing import Any, Optional

import redis

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client

    def _get_client(self) -> Optional[redis.Redis]:
        if self.redis_client is None:
            self.redis_client = get_redis_client()
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
        except redis.RedisError as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

        if value:
            logger.debug(f"✅ Cache HIT: {key}")
            return json.loads(value)
        logger.debug(f"❌ Cache MISS: {key}")
        return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def add(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set only if absent; True when this call stored the key"""
        client = self._get_client()
        if not client:
            return True

        try:
            return bool(client.set(key, json.dumps(value), ex=ttl, nx=True))
        except redis.RedisError as e:
            logger.error(f"❌ Cache add error for {key}: {e}")
            return True

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


cache = Cache()


def event_type_cache_key(slug: str) -> str:
    return f"cal_event_type:{slug}"


def get_event_type_cached(slug: str) -> Optional[dict]:
    """Cal.com event type previously resolved for a service slug"""
    return cache.get(event_type_cache_key(slug))


def set_event_type_cached(slug: str, event_type: dict, ttl: int = 600) -> bool:
    return cache.set(event_type_cache_key(slug), event_type, ttl)


def claim_webhook_event(event_id: str, ttl: int = 86400) -> bool:
    """False when a webhook event was already processed (Stripe retries deliveries)"""
    return cache.add(f"stripe_event:{event_id}", True, ttl)


def release_webhook_event(event_id: str) -> bool:
    """Forget a claimed event so a Stripe retry is processed again"""
    return cache.delete(f"stripe_event:{event_id}")
