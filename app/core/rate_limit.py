"""Fixed-window rate limiting for the API.

Counters live in Redis when REDIS_URL is configured so that every worker
shares them; otherwise each process keeps its own window counters.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import redis.asyncio as redis
from fastapi import HTTPException, Request, status

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Request budget for one window."""

    requests: int = 100
    window_seconds: int = 60


# Limits per endpoint family
DEFAULT_LIMITS = {
    "default": RateLimitConfig(requests=100, window_seconds=60),
    "scores": RateLimitConfig(requests=10, window_seconds=60),  # Each call fans out to Graph
    "reports": RateLimitConfig(requests=20, window_seconds=60),
}


class RateLimiter:
    """Per-client, per-path fixed-window limiter."""

    def __init__(self) -> None:
        self._settings = get_settings()
        self._enabled = self._settings.rate_limit_enabled
        self._redis: redis.Redis | None = None
        self._memory_cache: dict[str, tuple[int, float]] = {}  # window key -> (count, reset_time)

        if self._settings.redis_url:
            self._redis = redis.from_url(
                self._settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Redis rate limiter initialized")
        else:
            logger.info("Redis URL not configured, using in-memory rate limiting")

    def _get_client_identifier(self, request: Request) -> str:
        """Client IP (first X-Forwarded-For hop) plus user id once authenticated."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"

        user_id = getattr(request.state, "user_id", None)
        if user_id:
            return f"{ip}:{user_id}"
        return ip

    @staticmethod
    def _headers(config: RateLimitConfig, count: int, reset_time: float) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(config.requests),
            "X-RateLimit-Remaining": str(max(0, config.requests - count)),
            "X-RateLimit-Reset": str(int(reset_time)),
        }

    async def _incr_redis(self, window_key: str, config: RateLimitConfig) -> int:
        pipe = self._redis.pipeline()
        pipe.incr(window_key)
        pipe.expire(window_key, config.window_seconds)
        results = await pipe.execute()
        return int(results[0])

    def _incr_memory(self, window_key: str, reset_time: float, now: float) -> int:
        if len(self._memory_cache) > 10000:
            self._memory_cache = {
                k: v for k, v in self._memory_cache.items() if v[1] > now
            }

        count, _ = self._memory_cache.get(window_key, (0, reset_time))
        count += 1
        self._memory_cache[window_key] = (count, reset_time)
        return count

    async def is_allowed(
        self, request: Request, config: RateLimitConfig | None = None
    ) -> tuple[bool, dict[str, str]]:
        """Count this request and report whether it fits the window."""
        if not self._enabled:
            return True, {}

        config = config or DEFAULT_LIMITS["default"]
        now = time.time()
        window_start = int(now // config.window_seconds) * config.window_seconds
        reset_time = window_start + config.window_seconds
        key = f"rate_limit:{request.url.path}:{self._get_client_identifier(request)}:{window_start}"

        try:
            if self._redis is not None:
                count = await self._incr_redis(key, config)
            else:
                count = self._incr_memory(key, reset_time, now)
        except redis.RedisError as e:
            # Fail open when the shared counter store is unreachable
            logger.error(f"Rate limit check failed: {e}")
            return True, {}

        return count <= config.requests, self._headers(config, count, reset_time)

    async def check_rate_limit(
        self,
        request: Request,
        limit_type: str = "default",
    ) -> None:
        """Raise 429 when the caller has exhausted the window."""
        config = DEFAULT_LIMITS.get(limit_type, DEFAULT_LIMITS["default"])
        allowed, headers = await self.is_allowed(request, config)

        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded. Please try again later.",
                headers={**headers, "Retry-After": str(config.window_seconds)},
            )

        request.state.rate_limit_headers = headers


rate_limiter = RateLimiter()


def rate_limit(limit_type: str = "default") -> Callable:
    """FastAPI dependency for rate limiting.

    Usage:
        @router.post("/scores", dependencies=[Depends(rate_limit("scores"))])
    """

    async def check_limit(request: Request) -> None:
        await rate_limiter.check_rate_limit(request, limit_type)

    return check_limit
