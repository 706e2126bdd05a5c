"""
Redis session for the Redis Tester service.
"""

import asyncio
from contextlib import nullcontext
from typing import Any, Awaitable, Optional

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from shared.config import Settings
from shared.errors import CacheConnectionError, CacheError, KeyNotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector


class RedisCache:
    """Point GET/SET/PING against one Redis database.

    The underlying connection pool is safe to share between concurrent
    requests. Calls are never retried: each one succeeds, raises
    KeyNotFoundError (GET only) or raises CacheError, and every call is
    bounded by ``timeout_seconds``.
    """

    def __init__(
        self,
        client: redis.Redis,
        timeout_seconds: float = 5.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.redis = client
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.logger = get_logger("redistester.cache")

    @classmethod
    def from_settings(cls, settings: Settings, metrics: Optional[MetricsCollector] = None) -> "RedisCache":
        """Build the client without touching the network."""
        client = redis.Redis(
            host=settings.redis_address,
            port=settings.redis_port,
            password=settings.redis_password or None,
            db=settings.redis_db,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.cache_timeout_seconds,
            socket_timeout=settings.cache_timeout_seconds,
            retry_on_timeout=False,
            retry=Retry(NoBackoff(), 0),
        )
        return cls(client, timeout_seconds=settings.cache_timeout_seconds, metrics=metrics)

    @classmethod
    async def connect(cls, settings: Settings, metrics: Optional[MetricsCollector] = None) -> "RedisCache":
        """Open the session and ping it once; failure is fatal for startup."""
        cache = cls.from_settings(settings, metrics)
        try:
            await cache.ping()
        except CacheError as e:
            await cache.close()
            raise CacheConnectionError(
                e.details.get("error", e.message),
                details={
                    "address": f"{settings.redis_address}:{settings.redis_port}",
                    "db": settings.redis_db,
                },
            ) from e
        return cache

    async def close(self) -> None:
        """Close the session."""
        try:
            await self.redis.aclose()
        except RedisError as e:
            self.logger.warning("Error closing Redis connection", error=str(e))
        else:
            self.logger.info("Redis connection closed")

    async def ping(self) -> str:
        """Round-trip a PING."""
        self.logger.info("Pinging database")
        reply = await self._call("ping", self.redis.ping())
        self._record("ping", "ok")
        return "PONG" if reply is True else str(reply)

    async def set(self, key: str, value: str, ttl_seconds: int) -> str:
        """Write ``key`` unconditionally; a TTL of 0 means no expiry."""
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")

        self.logger.info("Writing key to Redis cache", key=key, ttl_seconds=ttl_seconds)
        result = await self._call("set", self.redis.set(key, value, ex=ttl_seconds or None), key=key)
        if not result:
            self._record("set", "error")
            raise CacheError("set", "write was not acknowledged", details={"key": key})

        self._record("set", "ok")
        return "OK"

    async def get(self, key: str) -> str:
        """Fetch ``key``; raises KeyNotFoundError if it is absent or expired."""
        self.logger.info("Fetching key from Redis cache", key=key)
        value = await self._call("get", self.redis.get(key), key=key)
        if value is None:
            self._record("get", "miss")
            raise KeyNotFoundError(key)

        self._record("get", "ok")
        return value

    async def _call(self, operation: str, awaitable: Awaitable[Any], **context: Any) -> Any:
        timer = self.metrics.time_cache_operation(operation) if self.metrics else nullcontext()
        with timer:
            try:
                return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
            except asyncio.TimeoutError as e:
                self._record(operation, "error")
                raise CacheError(
                    operation,
                    f"timed out after {self.timeout_seconds}s",
                    details={"error": "timeout", **context},
                ) from e
            except RedisError as e:
                self._record(operation, "error")
                raise CacheError(operation, str(e), details={"error": str(e), **context}) from e

    def _record(self, operation: str, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_cache_operation(operation, outcome)
