from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import Request


class RateLimiter:
    """Fixed-window hit counter keyed by an arbitrary string."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def hit(self, key: str, limit: int, window_seconds: float) -> bool:
        """Record a hit; return False when the key is over its limit."""
        if window_seconds <= 0:
            return True
        now = self._clock()
        with self._lock:
            count, reset = self._hits.get(key, (0, now + window_seconds))
            if now >= reset:
                count = 0
                reset = now + window_seconds
            count += 1
            self._hits[key] = (count, reset)
            return count <= limit

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
