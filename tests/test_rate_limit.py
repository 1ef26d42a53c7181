import mongomock
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rate_limit import (InMemoryRateLimitStore, MongoRateLimitStore, RateLimiter, RateLimitMiddleware,
                        RateLimitStore, build_store)


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_limiter_counts_and_resets_after_window():
    clock = FakeClock()
    limiter = RateLimiter(InMemoryRateLimitStore(), window_seconds=60, max_requests=2, clock=clock)
    assert limiter.check("1.2.3.4")[0]
    allowed, headers = limiter.check("1.2.3.4")
    assert allowed and headers["X-RateLimit-Remaining"] == "0"
    assert limiter.check("1.2.3.4")[0] is False
    assert limiter.check("5.6.7.8")[0]

    clock.now += 60
    allowed, headers = limiter.check("1.2.3.4")
    assert allowed
    assert headers["X-RateLimit-Remaining"] == "1"


def test_reset_header_is_window_end():
    limiter = RateLimiter(InMemoryRateLimitStore(), window_seconds=900, max_requests=5, clock=FakeClock(0))
    _, headers = limiter.check("k")
    assert headers["X-RateLimit-Limit"] == "5"
    assert headers["X-RateLimit-Reset"] == "1970-01-01T00:15:00.000Z"


def test_memory_store_sweeps_expired_windows():
    store = InMemoryRateLimitStore()
    store.hit("a", 0, 10)
    store.hit("b", 5, 10)
    assert len(store) == 2
    store.hit("c", 12, 10)
    assert len(store) == 2


def test_mongo_store_shares_counters():
    database = mongomock.MongoClient()["limits"]
    store = MongoRateLimitStore(database)
    assert store.hit("k", 100.0, 60) == (1, 100.0)
    assert MongoRateLimitStore(database).hit("k", 110.0, 60) == (2, 100.0)
    assert store.hit("k", 160.0, 60) == (1, 160.0)


def test_build_store():
    assert isinstance(build_store("memory", None), InMemoryRateLimitStore)
    assert isinstance(build_store("mongo", mongomock.MongoClient()["x"]), MongoRateLimitStore)


def test_middleware_rejects_over_limit():
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=RateLimiter(InMemoryRateLimitStore(), 60, 2))

    @app.get("/ping")
    def ping():
        return {"ok": True}

    client = TestClient(app)
    first = client.get("/ping")
    assert first.status_code == 200
    assert first.headers["X-RateLimit-Remaining"] == "1"
    client.get("/ping")

    blocked = client.get("/ping")
    assert blocked.status_code == 429
    assert blocked.json() == {"success": False, "message": "Too many requests. Please try again later.",
                              "retryAfter": 60}
    assert blocked.headers["X-RateLimit-Remaining"] == "0"


def test_store_without_hit_cannot_be_created():
    class Incomplete(RateLimitStore):
        pass

    with pytest.raises(TypeError):
        Incomplete()
