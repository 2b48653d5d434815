"""Per-key, per-minute request counters.

Counters live in Redis rather than the database: they are shared by every
worker process, expire on their own, and are never part of an order
transaction. ``InMemoryCounterStore`` stands in for Redis in tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from app.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

UNLIMITED_KEY_TYPES = frozenset({"internal"})
KEY_PREFIX = "api_rate_limit"


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current UTC datetime."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class CounterStore(ABC):
    """Atomic counters with a time-to-live."""

    @abstractmethod
    def incr(self, key: str, ttl: int) -> int:
        """Increment ``key`` by one, (re)arm its expiry, return the new value."""

    @abstractmethod
    def get(self, key: str) -> int:
        """Current value, 0 when missing or expired."""


class RedisCounterStore(CounterStore):
    def __init__(self, redis_url: str):
        import redis
        self._client = redis.from_url(redis_url, decode_responses=True)

    def incr(self, key: str, ttl: int) -> int:
        # INCR and EXPIRE in one MULTI/EXEC so the counter never lives without a TTL
        pipe = self._client.pipeline(transaction=True)
        pipe.incr(key, 1)
        pipe.expire(key, ttl)
        count, _ = pipe.execute()
        return int(count)

    def get(self, key: str) -> int:
        value = self._client.get(key)
        return int(value) if value is not None else 0


class InMemoryCounterStore(CounterStore):
    """Process-local store for tests; expiry follows the supplied clock."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._store: Dict[str, Tuple[int, float]] = {}  # key -> (count, expires_at)

    def incr(self, key: str, ttl: int) -> int:
        now = self._clock.now().timestamp()
        with self._lock:
            count, expires_at = self._store.get(key, (0, 0.0))
            if expires_at <= now:
                count = 0
            count += 1
            self._store[key] = (count, now + ttl)
            return count

    def get(self, key: str) -> int:
        now = self._clock.now().timestamp()
        with self._lock:
            count, expires_at = self._store.get(key, (0, 0.0))
            return count if expires_at > now else 0


class RateLimiter:
    """Fixed one-minute windows keyed by API key id and UTC minute."""

    RETRY_AFTER_SECONDS = 60

    def __init__(self, store: CounterStore, clock: Optional[Clock] = None, window_seconds: int = 60):
        self.store = store
        self.clock = clock or SystemClock()
        self.window_seconds = window_seconds

    def bucket_key(self, key_id: int) -> str:
        minute = self.clock.now().astimezone(timezone.utc).strftime("%Y-%m-%d-%H-%M")
        return f"{KEY_PREFIX}:{key_id}:{minute}"

    def is_exempt(self, key_type: str) -> bool:
        return key_type in UNLIMITED_KEY_TYPES

    def hit(self, key_id: int, key_type: str, limit: int) -> Optional[int]:
        """Count one request against the key's current bucket.

        Returns the post-increment count (None for exempt keys) and raises
        RateLimitExceeded once the count goes past ``limit``.
        """
        if self.is_exempt(key_type):
            return None

        count = self.store.incr(self.bucket_key(key_id), ttl=self.window_seconds)
        if count > limit:
            logger.warning("Rate limit exceeded for api key %s (%d/%d)", key_id, count, limit)
            raise RateLimitExceeded(limit, retry_after=self.RETRY_AFTER_SECONDS)
        return count

    def current_usage(self, key_id: int) -> int:
        return self.store.get(self.bucket_key(key_id))
