"""
Redis Tester service: write and read single keys in Redis over HTTP.
"""

from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from shared.base_service import ALL_METHODS, BaseService, check_supported_method
from shared.config import Settings
from shared.errors import CacheConnectionError, CacheError

from .cache import CacheClient, RedisCache
from .codec import decode_json_body, encode_json_response
from .models import ReadRequest, ReadResult, WriteRequest

SERVICE_NAME = "redistester"
WRITE_METHODS = ["POST", "PUT"]
READ_METHODS = ["GET"]


class CacheService(BaseService):
    """HTTP handlers over a shared cache session.

    ``cache`` may be injected (tests); otherwise a RedisCache is connected
    during startup and a failed connection aborts the process.
    """

    def __init__(self, settings: Optional[Settings] = None, cache: Optional[CacheClient] = None):
        super().__init__(SERVICE_NAME, settings)
        self.cache = cache
        self._owns_cache = cache is None
        self._setup_cache_routes()

    async def startup(self):
        if self.cache is not None:
            self.logger.info("Using provided cache client")
            return

        try:
            self.cache = await RedisCache.connect(self.config, metrics=self.metrics)
        except CacheConnectionError as e:
            self.logger.error(
                "Error encountered connecting to Redis cache",
                error=e.message,
                details=e.details,
                configuration=self.config.redacted().model_dump()
            )
            raise

        self.logger.info("Connected to Redis database and received pong when testing the connection")

    async def shutdown(self):
        if self._owns_cache and self.cache is not None:
            await self.cache.close()
            self.cache = None

    def _require_cache(self) -> CacheClient:
        if self.cache is None:
            raise CacheError("connect", "cache client is not connected")
        return self.cache

    async def _check_dependencies(self) -> Dict[str, str]:
        try:
            await self._require_cache().ping()
        except CacheError as e:
            self.logger.error("Cache ping failed", error=e.message)
            return {"cache": "error"}
        return {"cache": "ok"}

    def _setup_cache_routes(self):
        """Set up service routes."""

        @self.app.api_route("/ping", methods=ALL_METHODS)
        async def ping():
            """Liveness; does not touch the cache."""
            self.logger.info("Handling a ping")
            return PlainTextResponse("pong")

        @self.app.api_route("/debug", methods=ALL_METHODS)
        async def debug():
            """Dump the active configuration (password redacted)."""
            self.logger.info("Dumping debug information")
            uptime = f"Uptime: {self._get_uptime():.0f}s\n"
            return PlainTextResponse(self.config.describe() + uptime)

        @self.app.api_route("/write-redis", methods=ALL_METHODS)
        async def write_redis(request: Request):
            """Store a key with a TTL (POST creates, PUT updates; both overwrite)."""
            check_supported_method(request.method, WRITE_METHODS)

            if request.method == "POST":
                self.logger.info("Processing POST request for new cache entry")
            else:
                self.logger.info("Processing PUT request to update existing cache entry")

            message = await decode_json_body(
                request,
                WriteRequest,
                self.config.max_body_size,
                defaults={"ttl": self.config.default_ttl},
            )
            ttl = message.ttl or self.config.default_ttl

            ack = await self._require_cache().set(message.key, message.value, ttl)
            return PlainTextResponse(ack)

        @self.app.api_route("/read-redis", methods=ALL_METHODS)
        async def read_redis(request: Request):
            """Look up a key; 404 when it is absent or expired."""
            check_supported_method(request.method, READ_METHODS)
            self.logger.info("Processing GET request to retrieve a cache entry")

            query = await decode_json_body(request, ReadRequest, self.config.max_body_size)
            value = await self._require_cache().get(query.key)
            return encode_json_response(ReadResult(value=value))


def create_app(settings: Optional[Settings] = None, cache: Optional[CacheClient] = None) -> FastAPI:
    """Create Redis Tester application."""
    service = CacheService(settings, cache)
    return service.app


def main():
    service = CacheService()
    service.run()


if __name__ == "__main__":
    main()
