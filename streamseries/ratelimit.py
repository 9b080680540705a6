"""Request-count-per-window gate for the relay endpoint."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Dict, Tuple

from flask import jsonify, request

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0


class FixedWindowLimiter:
    """Counts requests per client key inside fixed time windows.

    Example:
        >>> limiter = FixedWindowLimiter(max_requests=100, window_seconds=900)
        >>> limiter.hit("203.0.113.7").allowed
        True
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window = window_seconds
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            self._prune(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            if count >= self.max_requests:
                retry_after = max(1, math.ceil(started + self.window - now))
                return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)
            count += 1
            self._windows[key] = (started, count)
            return RateLimitResult(allowed=True, remaining=self.max_requests - count)

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def rate_limited(limiter: FixedWindowLimiter):
    """Wrap a Flask view so it answers 429 once the client exhausts its window."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            key = request.remote_addr or "unknown"
            result = limiter.hit(key)
            if not result.allowed:
                logger.info("Throttled %s on %s", key, request.path)
                response = jsonify({"status": "error", "message": "Too many requests"})
                response.status_code = 429
                response.headers["Retry-After"] = str(result.retry_after)
                return response
            return view(*args, **kwargs)

        return wrapper

    return decorator
