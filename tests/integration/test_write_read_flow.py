"""
Integration tests for the write/read flow.

``TestWriteReadFlow`` runs in-process against the in-memory cache.
``TestLiveRedis`` talks to a real Redis and only runs when
``REDISTESTER_INTEGRATION_REDIS`` is set (e.g. ``localhost:6379``).
"""

import time
import uuid
import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.test_helpers import (
    JSON_HEADERS,
    FakeCache,
    create_test_settings,
    read_payload,
    write_payload,
)
from service_cache.app.main import CacheService

LIVE_REDIS = os.getenv("REDISTESTER_INTEGRATION_REDIS")


class TestWriteReadFlow:
    """End-to-end flow through the HTTP surface."""

    @pytest.fixture
    def cache(self):
        return FakeCache()

    @pytest.fixture
    def client(self, cache):
        service = CacheService(create_test_settings(default_ttl=120), cache)
        with TestClient(service.app) as client:
            yield client

    @pytest.mark.parametrize("value", ["V", "", "with spaces", "ünïcødé", '{"nested": "json"}'])
    def test_round_trip(self, client, value):
        write = client.post("/write-redis", content=write_payload("k", value), headers=JSON_HEADERS)
        assert write.status_code == 200

        read = client.request("GET", "/read-redis", content=read_payload("k"), headers=JSON_HEADERS)
        assert read.status_code == 200
        assert read.json() == {"value": value}

    def test_explicit_ttl_wins_over_default(self, client, cache):
        client.post("/write-redis", content=write_payload("k", "v", ttl=7), headers=JSON_HEADERS)
        assert cache.set_calls[-1].ttl_seconds == 7

    def test_default_ttl_applied(self, client, cache):
        client.post("/write-redis", content=write_payload("k", "v"), headers=JSON_HEADERS)
        client.put("/write-redis", content=write_payload("k", "v", ttl=0), headers=JSON_HEADERS)
        assert [call.ttl_seconds for call in cache.set_calls] == [120, 120]

    def test_unwritten_key_is_404(self, client):
        read = client.request("GET", "/read-redis", content=read_payload("ghost"), headers=JSON_HEADERS)
        assert read.status_code == 404

    def test_readiness_follows_cache(self, client, cache):
        assert client.get("/healthz").status_code == 200
        cache.available = False
        assert client.get("/healthz").status_code != 200
        assert client.get("/ping").status_code == 200
        cache.available = True
        assert client.get("/healthz").status_code == 200


@pytest.mark.skipif(not LIVE_REDIS, reason="REDISTESTER_INTEGRATION_REDIS not set")
class TestLiveRedis:
    """Same flow against a running Redis."""

    @pytest.fixture
    def client(self):
        host, _, port = LIVE_REDIS.partition(":")
        settings = create_test_settings(
            redis_address=host,
            redis_port=int(port or 6379),
            redis_password=os.getenv("REDISTESTER_INTEGRATION_REDIS_PASSWORD", ""),
        )
        service = CacheService(settings)
        with TestClient(service.app) as client:
            yield client

    def test_round_trip_and_expiry(self, client):
        key = f"redistester-it-{uuid.uuid4()}"

        write = client.post("/write-redis", content=write_payload(key, "V", ttl=1), headers=JSON_HEADERS)
        assert write.status_code == 200
        assert write.text == "OK"

        read = client.request("GET", "/read-redis", content=read_payload(key), headers=JSON_HEADERS)
        assert read.json() == {"value": "V"}

        time.sleep(2.1)
        read = client.request("GET", "/read-redis", content=read_payload(key), headers=JSON_HEADERS)
        assert read.status_code == 404

    def test_readiness(self, client):
        assert client.get("/healthz").text == "ok"
