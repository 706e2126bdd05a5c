"""
Redis Tester service package.

A small HTTP front end that writes and reads single keys in a Redis cache
with a per-entry TTL. It provides:

- app.main: API surface (ping, readiness, debug, write, read).
- app.models: Request and result shapes accepted and returned by the API.
- app.codec: Bounded, strict JSON request decoding and response encoding.
- app.cache: The Redis session used by every request.

Guidelines:
- The service is stateless; Redis owns values and their expiry.
- Dependencies are injected into CacheService; nothing is module-global.
- No retries; every failure maps to exactly one HTTP status.
"""
