"""
Test helper functions and fakes for Redis Tester services.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from shared.config import Settings
from shared.errors import CacheError, KeyNotFoundError


@dataclass
class SetCall:
    """A recorded cache write."""
    key: str
    value: str
    ttl_seconds: int


@dataclass
class FakeCache:
    """In-memory stand-in for RedisCache with the same contract.

    Set ``available = False`` to make every call fail like an unreachable
    cache.
    """
    available: bool = True
    entries: Dict[str, Tuple[str, Optional[float]]] = field(default_factory=dict)
    set_calls: List[SetCall] = field(default_factory=list)
    closed: bool = False

    def _check(self, operation: str):
        if not self.available:
            raise CacheError(operation, "Error 111 connecting to localhost:6379. Connection refused.")

    async def ping(self) -> str:
        self._check("ping")
        return "PONG"

    async def set(self, key: str, value: str, ttl_seconds: int) -> str:
        self._check("set")
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        self.entries[key] = (value, expires_at)
        self.set_calls.append(SetCall(key, value, ttl_seconds))
        return "OK"

    async def get(self, key: str) -> str:
        self._check("get")
        entry = self.entries.get(key)
        if entry is None:
            raise KeyNotFoundError(key)
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self.entries[key]
            raise KeyNotFoundError(key)
        return value

    async def close(self) -> None:
        self.closed = True

    def expire(self, key: str):
        """Force ``key`` to look expired."""
        value, _ = self.entries[key]
        self.entries[key] = (value, time.monotonic() - 1)


def create_test_settings(**overrides: Any) -> Settings:
    """Settings with small, predictable limits for tests."""
    values = {
        "default_ttl": 300,
        "max_body_size": 1024,
        "redis_password": "s3cret",
        "cache_timeout_seconds": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


def write_payload(key: str = "greeting", value: str = "hello", ttl: Optional[int] = None) -> bytes:
    """JSON body for /write-redis."""
    body: Dict[str, Any] = {"key": key, "value": value}
    if ttl is not None:
        body["ttl"] = ttl
    return json.dumps(body).encode("utf-8")


def read_payload(key: str = "greeting") -> bytes:
    """JSON body for /read-redis."""
    return json.dumps({"key": key}).encode("utf-8")


JSON_HEADERS = {"Content-Type": "application/json"}
