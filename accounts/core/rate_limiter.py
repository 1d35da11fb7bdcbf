from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Tuple

from fastapi import Request

from .errors import ErrorKind, Failure, OperationalError
from .utils import client_ip

logger = logging.getLogger(__name__)


class _RateLimiter:
    def __init__(self) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one hit for key; False once the window's limit is exceeded."""
        now = time.time()
        with self._lock:
            count, reset = self._hits.get(key, (0, now + window_seconds))
            if now > reset:
                count = 0
                reset = now + window_seconds
            count += 1
            self._hits[key] = (count, reset)
            return count <= limit

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = _RateLimiter()


def reset_limits() -> None:
    _limiter.reset()


def auth_rate_limit(request: Request) -> None:
    """FastAPI dependency throttling authentication endpoints per client IP."""
    settings = request.app.state.settings
    if settings.auth_rate_limit <= 0:
        return
    ip = client_ip(request.headers.get("x-forwarded-for"), request.client.host if request.client else None)
    key = f"auth:{request.url.path}:{ip}"
    if not _limiter.check(key, settings.auth_rate_limit, settings.auth_rate_window_seconds):
        logger.warning("Rate limit exceeded for IP %s on %s", ip, request.url.path)
        raise OperationalError(
            Failure(ErrorKind.TOO_MANY_REQUESTS, "Too many authentication attempts, please try again later")
        )
