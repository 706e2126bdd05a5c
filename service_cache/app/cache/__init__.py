"""
Cache access for the Redis Tester service.

One session per process, shared by all concurrent requests. Point GET, SET
and PING only; the cache owns expiry.
"""

from .base import CacheClient
from .redis_cache import RedisCache

__all__ = ["CacheClient", "RedisCache"]
