"""
In-memory rate limiting for checkout endpoints.

Throttles order creation and payment verification per client so a script
cannot hammer the payment gateway through us. Uses a sliding-window
counter per (client IP, route) key; each worker process keeps its own
window, so limits are per-process.
"""
import time
import logging
from collections import defaultdict

from fastapi import Request

from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    Tracks request timestamps per key. Not shared across workers.
    """

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _cleanup(self, key: str, window_seconds: int):
        """Remove expired timestamps from the window."""
        cutoff = time.time() - window_seconds
        live = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if live:
            self._requests[key] = live
        else:
            self._requests.pop(key, None)

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a request and report whether it is allowed.

        Args:
            key: Unique identifier (e.g., "IP:route")
            max_requests: Maximum allowed requests in the window
            window_seconds: Time window in seconds

        Returns:
            True if allowed, False if rate-limited
        """
        self._cleanup(key, window_seconds)

        if len(self._requests.get(key, ())) >= max_requests:
            return False

        self._requests[key].append(time.time())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        """Get the number of remaining requests in the current window."""
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests.get(key, ())))

    def reset(self):
        """Forget every window (test isolation, admin tooling)."""
        self._requests.clear()


# Global rate limiter instance
limiter = RateLimiter()


def rate_limit(max_requests: int = 10, window_seconds: int = 60):
    """
    FastAPI dependency factory for rate limiting.

    Usage:
        @router.post("/create-order")
        async def create_order(..., _rate=Depends(rate_limit(20, 60))):
            ...
    """
    async def _check_rate_limit(request: Request):
        client_ip = request.client.host if request.client else "unknown"
        route_path = request.url.path
        key = f"{client_ip}:{route_path}"

        if not limiter.check(key, max_requests, window_seconds):
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {route_path} "
                f"({max_requests}/{window_seconds}s)"
            )
            raise RateLimitError(
                f"Too many requests. Maximum {max_requests} per "
                f"{window_seconds} seconds. Try again later.",
                headers={
                    "Retry-After": str(window_seconds),
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Remaining": str(limiter.remaining(key, max_requests, window_seconds)),
                },
            )

    return _check_rate_limit
