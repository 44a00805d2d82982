"""
Sliding window rate limiting for API calls.

Two stores share the same interface: an in-process store used by default and
in tests, and a Redis sorted-set store used when ``RATE_LIMIT_REDIS_URL`` is set.
"""

import hashlib
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Deque, Dict, Optional

import redis

from ..config.settings import RateLimitConfig
from ..services.logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


@dataclass
class RateLimitRule:
    """Rate limit rule configuration"""

    max_requests: int
    window_seconds: int


@dataclass
class RateLimitResult:
    """Rate limit check result"""

    allowed: bool
    remaining: int
    reset_at: datetime
    retry_after: Optional[int] = None


def default_rules(config: Optional[RateLimitConfig] = None) -> Dict[str, RateLimitRule]:
    """Named windows: login/register, reads, writes and health checks."""
    config = config or RateLimitConfig()
    return {
        "auth": RateLimitRule(config.auth_max_requests, config.auth_window_seconds),
        "api": RateLimitRule(config.api_max_requests, config.api_window_seconds),
        "write": RateLimitRule(config.write_max_requests, config.write_window_seconds),
        "health": RateLimitRule(config.health_max_requests, config.health_window_seconds),
    }


class MemoryRateLimitStore:
    """Sliding window kept in process memory."""

    def __init__(self, sweep_interval: int = 60):
        self._hits: Dict[str, Deque[float]] = {}
        self._expires_at: Dict[str, float] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def _sweep(self, now: float) -> None:
        """Drop keys whose newest hit has left its window."""
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._sweep_interval
        for key in [k for k, expires_at in self._expires_at.items() if expires_at <= now]:
            del self._hits[key]
            del self._expires_at[key]

    def hit(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        with self._lock:
            self._sweep(now)
            window = self._hits.setdefault(key, deque())
            while window and window[0] <= now - rule.window_seconds:
                window.popleft()

            if len(window) >= rule.max_requests:
                retry_after = max(1, int(window[0] + rule.window_seconds - now) + 1)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=datetime.fromtimestamp(window[0] + rule.window_seconds),
                    retry_after=retry_after,
                )

            window.append(now)
            self._expires_at[key] = now + rule.window_seconds
            return RateLimitResult(
                allowed=True,
                remaining=rule.max_requests - len(window),
                reset_at=datetime.fromtimestamp(window[0] + rule.window_seconds),
            )

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._expires_at.clear()


class RedisRateLimitStore:
    """Sliding window on a Redis sorted set per key."""

    def __init__(self, redis_client: redis.Redis, prefix: str = "rate_limit:"):
        self.redis_client = redis_client
        self.prefix = prefix

    def hit(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        redis_key = f"{self.prefix}{key}"
        window_start = now - rule.window_seconds

        pipe = self.redis_client.pipeline()
        pipe.zremrangebyscore(redis_key, 0, window_start)
        pipe.zcard(redis_key)
        pipe.zrange(redis_key, 0, 0, withscores=True)
        _, current, oldest = pipe.execute()

        oldest_score = oldest[0][1] if oldest else now
        reset_at = datetime.fromtimestamp(oldest_score + rule.window_seconds)
        if current >= rule.max_requests:
            retry_after = max(1, int(oldest_score + rule.window_seconds - now) + 1)
            return RateLimitResult(False, 0, reset_at, retry_after)

        pipe = self.redis_client.pipeline()
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
        pipe.expire(redis_key, rule.window_seconds)
        pipe.execute()
        return RateLimitResult(True, rule.max_requests - current - 1, reset_at)

    def reset(self) -> None:
        for key in self.redis_client.scan_iter(f"{self.prefix}*"):
            self.redis_client.delete(key)


class RateLimiter:
    """Applies named rules to an identifier (user id or client address)."""

    def __init__(self, config: Optional[RateLimitConfig] = None, store=None):
        self.config = config or RateLimitConfig()
        self.rules = default_rules(self.config)
        if store is not None:
            self.store = store
        elif self.config.redis_url:
            self.store = RedisRateLimitStore(redis.Redis.from_url(self.config.redis_url))
        else:
            self.store = MemoryRateLimitStore()
        logger.info(
            "Rate limiter initialized",
            rules_count=len(self.rules),
            store=type(self.store).__name__,
        )

    @staticmethod
    def _key(identifier: str, rule_name: str) -> str:
        hashed_id = hashlib.sha256(identifier.encode()).hexdigest()[:16]
        return f"{rule_name}:{hashed_id}"

    def check(self, identifier: str, rule_name: str, now: Optional[float] = None) -> RateLimitResult:
        """
        Register a request and tell whether it is within the limit.

        Args:
            identifier: Unique identifier (client address, user id)
            rule_name: One of ``auth``, ``api``, ``write``, ``health``
            now: Epoch seconds, defaults to the current time

        Returns:
            RateLimitResult with allow/deny decision
        """
        rule = self.rules.get(rule_name)
        if not self.config.enabled or rule is None:
            return RateLimitResult(True, 999, datetime.now() + timedelta(seconds=60))

        now = time.time() if now is None else now
        try:
            result = self.store.hit(self._key(identifier, rule_name), rule, now)
        except redis.RedisError as e:
            logger.error("Rate limit store unavailable", error=str(e), rule_name=rule_name)
            return RateLimitResult(True, rule.max_requests, datetime.now())

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                rule_name=rule_name,
                retry_after=result.retry_after,
            )
        return result

    def reset(self) -> None:
        self.store.reset()
