"""
Per-client request rate limiting
"""
import logging
import math
import threading
import time
from collections import deque
from typing import Deque, Dict, Tuple

from fastapi import HTTPException, Request

from quizcraft.config import settings

logger = logging.getLogger(__name__)

# Never throttled
EXEMPT_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}

MINUTE = 60
HOUR = 3600
# Idle clients are forgotten at most this often
SWEEP_INTERVAL = 300


class RateLimiter:
    """
    Sliding-window limiter kept in process memory

    Each client has one deque of request timestamps covering the last
    hour; the minute window is the tail of the same deque. Limits are per
    worker process. Clients idle for an hour are dropped by a periodic
    sweep.
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        self._requests: Dict[str, Deque[float]] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    def client_id(self, request: Request) -> str:
        """Principal id forwarded by the gateway, else client IP"""
        user_id = request.headers.get("X-User-Id")
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def is_exempt(self, request: Request) -> bool:
        return request.url.path in EXEMPT_PATHS

    def _window_state(self, timestamps: Deque[float], now: float) -> Tuple[int, int]:
        """Drop entries older than an hour; return (last minute, last hour) counts"""
        while timestamps and timestamps[0] <= now - HOUR:
            timestamps.popleft()

        minute_count = 0
        for ts in reversed(timestamps):
            if ts <= now - MINUTE:
                break
            minute_count += 1

        return minute_count, len(timestamps)

    def _sweep(self, now: float) -> None:
        """Forget clients with no request inside the hour window"""
        for client_id in list(self._requests):
            timestamps = self._requests[client_id]
            self._window_state(timestamps, now)
            if not timestamps:
                del self._requests[client_id]

        self._last_sweep = now
        logger.debug(f"Rate limiter sweep done, tracking {len(self._requests)} client(s)")

    def _reject(self, client_id: str, limit: int, unit: str, retry_after: float):
        logger.warning(f"Rate limit exceeded ({unit}): {client_id}")
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {unit}",
                "retry_after": max(1, math.ceil(retry_after))
            }
        )

    async def check_rate_limit(self, request: Request) -> None:
        """
        Record the request or reject it

        Raises:
            HTTPException: 429 with retry_after seconds until a slot frees up
        """
        client_id = self.client_id(request)
        now = time.time()

        with self._lock:
            if now - self._last_sweep >= SWEEP_INTERVAL:
                self._sweep(now)

            timestamps = self._requests.setdefault(client_id, deque())
            minute_count, hour_count = self._window_state(timestamps, now)

            if minute_count >= self.requests_per_minute:
                oldest_in_minute = timestamps[len(timestamps) - minute_count]
                self._reject(client_id, self.requests_per_minute, "minute", oldest_in_minute + MINUTE - now)

            if hour_count >= self.requests_per_hour:
                self._reject(client_id, self.requests_per_hour, "hour", timestamps[0] + HOUR - now)

            timestamps.append(now)

        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_count + 1}, hour: {hour_count + 1})")


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
