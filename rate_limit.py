"""
Fixed-window rate limiting keyed by client address.

The counter store is injected. ``InMemoryRateLimitStore`` is process-local
and sweeps expired windows on every hit; ``MongoRateLimitStore`` keeps the
counters in a shared collection so several API instances enforce one
limit between them.
"""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from database import RATE_LIMITS
from helpers import isoformat

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    @abstractmethod
    def hit(self, key: str, now: float, window: float) -> Tuple[int, float]:
        """Count one request for ``key``; return (count in window, window start)."""
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def sweep(self, now: float, window: float) -> None:
        cutoff = now - window
        for key in [k for k, (_, start) in self._windows.items() if start <= cutoff]:
            del self._windows[key]

    def hit(self, key: str, now: float, window: float) -> Tuple[int, float]:
        with self._lock:
            self.sweep(now, window)
            count, start = self._windows.get(key, (0, now))
            self._windows[key] = (count + 1, start)
            return count + 1, start


class MongoRateLimitStore(RateLimitStore):
    def __init__(self, database: Database) -> None:
        self.collection = database[RATE_LIMITS]

    def hit(self, key: str, now: float, window: float) -> Tuple[int, float]:
        # open a new window if the stored one has expired
        self.collection.update_one(
            {"_id": key, "windowStart": {"$lte": now - window}},
            {"$set": {"count": 0, "windowStart": now}},
        )
        doc = self.collection.find_one_and_update(
            {"_id": key},
            {"$inc": {"count": 1}, "$setOnInsert": {"windowStart": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["count"]), float(doc["windowStart"])


class RateLimiter:
    def __init__(self, store: RateLimitStore, window_seconds: int = 15 * 60, max_requests: int = 100,
                 clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.clock = clock

    def check(self, key: str) -> Tuple[bool, Dict[str, str]]:
        count, start = self.store.hit(key, self.clock(), self.window_seconds)
        reset = datetime.fromtimestamp(start + self.window_seconds, tz=timezone.utc)
        headers = {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(0, self.max_requests - count)),
            "X-RateLimit-Reset": isoformat(reset),
        }
        return count <= self.max_requests, headers


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next) -> Response:
        client_id = request.client.host if request.client else "unknown"
        allowed, headers = self.limiter.check(client_id)
        if not allowed:
            logger.warning("Rate limit exceeded for %s", client_id)
            response: Response = JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests. Please try again later.",
                    "retryAfter": math.ceil(self.limiter.window_seconds),
                },
            )
        else:
            response = await call_next(request)
        response.headers.update(headers)
        return response


def build_store(backend: str, database: Optional[Database]) -> RateLimitStore:
    if backend == "mongo":
        if database is None:
            raise ValueError("RATE_LIMIT_BACKEND=mongo needs a configured database")
        return MongoRateLimitStore(database)
    return InMemoryRateLimitStore()
