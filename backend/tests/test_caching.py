import json
import threading

import pytest
import redis

from companyintel.services import caching
from companyintel.services.caching import cached_get, record_cache_key


class FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.store = {}
        self.ttls = {}
        self.fail = fail
        self.closed = False

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("down")
        return self.store.get(key)

    def set(self, key, value, ex=None):
        if self.fail:
            raise redis.ConnectionError("down")
        self.store[key] = value
        self.ttls[key] = ex

    def close(self):
        self.closed = True


def test_cache_key_is_company_identity():
    assert record_cache_key("  Acme   Corp ") == "intel:v1:acme-corp"
    assert record_cache_key(None, "acme.com") == "intel:v1:acme.com"


def test_cache_key_separates_known_domain():
    without_domain = record_cache_key("Acme Corp", None)
    with_domain = record_cache_key("Acme Corp", "https://www.acme.com/about")

    assert with_domain == "intel:v1:acme-corp:acme.com"
    assert with_domain != without_domain


@pytest.mark.asyncio
async def test_round_trip_with_ttl(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(caching, "_get_sync_redis", lambda: fake)

    await cached_get("intel:v1:acme", set_value={"company_name": "Acme"}, ttl=60)

    assert json.loads(fake.store["intel:v1:acme"]) == {"company_name": "Acme"}
    assert fake.ttls["intel:v1:acme"] == 60
    assert await cached_get("intel:v1:acme") == {"company_name": "Acme"}
    assert fake.closed


@pytest.mark.asyncio
async def test_disabled_cache_is_a_miss(monkeypatch):
    monkeypatch.setattr(caching, "_get_sync_redis", lambda: None)

    assert await cached_get("intel:v1:acme") is None
    assert await cached_get("intel:v1:acme", set_value={"a": 1}) == {"a": 1}


@pytest.mark.asyncio
async def test_redis_errors_behave_as_miss(monkeypatch):
    monkeypatch.setattr(caching, "_get_sync_redis", lambda: FakeRedis(fail=True))

    assert await cached_get("intel:v1:acme") is None


@pytest.mark.asyncio
async def test_redis_calls_run_off_the_event_loop(monkeypatch):
    seen_threads = []

    def fake_client():
        seen_threads.append(threading.current_thread())
        return FakeRedis()

    monkeypatch.setattr(caching, "_get_sync_redis", fake_client)

    await cached_get("intel:v1:acme")

    assert seen_threads and seen_threads[0] is not threading.main_thread()
