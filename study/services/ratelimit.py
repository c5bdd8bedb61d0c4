"""
Per-identity request quota.

Counters live in an injected Django cache backend (bounded, TTL-expiring), so
losing the cache under-counts usage but never blocks a caller that should pass.
"""

import hashlib
import time
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz

from django.core.cache import caches
import structlog

from ..config import rate_limit_options
from ..domain.errors import RateLimitExceeded

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitInfo:
    limit: int
    remaining: int
    reset_at: datetime

    @property
    def exceeded(self) -> bool:
        return self.remaining < 0


class RateLimiter:
    def __init__(self, cache, limit: int, window_seconds: int,
                 scope: str = "default", clock=time.time):
        self.cache = cache
        self.limit = limit
        self.window_seconds = window_seconds
        self.scope = scope
        self.clock = clock

    @classmethod
    def from_settings(cls, scope: str = "default") -> "RateLimiter":
        options = rate_limit_options(scope)
        return cls(
            caches[options["cache"]],
            limit=options["limit"],
            window_seconds=options["window_seconds"],
            scope=scope,
        )

    def _keys(self, identity: str):
        digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:32]
        base = f"rl:{self.scope}:{digest}"
        return f"{base}:count", f"{base}:reset"

    def check_limit(self, identity: str) -> RateLimitInfo:
        """Count one request for ``identity`` and report the window's state."""
        now = self.clock()
        count_key, reset_key = self._keys(identity)

        reset_ts = self.cache.get(reset_key)
        if reset_ts is None or reset_ts <= now:
            reset_ts = now + self.window_seconds
            self.cache.set_many({reset_key: reset_ts, count_key: 1},
                                timeout=self.window_seconds)
            count = 1
        else:
            try:
                count = self.cache.incr(count_key)
            except ValueError:
                # Counter evicted while the window marker survived
                self.cache.set(count_key, 1, timeout=int(reset_ts - now) + 1)
                count = 1

        return RateLimitInfo(
            limit=self.limit,
            remaining=self.limit - count,
            reset_at=datetime.fromtimestamp(reset_ts, tz=dt_tz.utc),
        )

    def enforce(self, identity: str) -> RateLimitInfo:
        info = self.check_limit(identity)
        if info.exceeded:
            logger.warning("rate_limit_exceeded",
                scope=self.scope,
                identity=identity,
                limit=info.limit,
                reset_at=info.reset_at.isoformat(),
            )
            raise RateLimitExceeded(info)
        return info
