from typing import Protocol


class CacheClient(Protocol):
    """Interface the handlers use to reach the cache."""

    async def ping(self) -> str:
        """Round-trip a liveness check; returns the cache's reply."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> str:
        """Store a value with a TTL; returns the acknowledgement text."""
        ...

    async def get(self, key: str) -> str:
        """Fetch a value; raises KeyNotFoundError when absent."""
        ...

    async def close(self) -> None:
        """Release the session."""
        ...
