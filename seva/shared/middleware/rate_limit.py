# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from functools import wraps
from threading import Lock

from flask import request

from seva.shared.config import load_config
from seva.shared.errors.base import RateLimitError
from seva.shared.logging import logger


class InMemoryRateLimiter:
    """Sliding-window log per key; process local, so per worker."""

    def __init__(self, limit: int, window_seconds: float) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str, now: float | None = None) -> float:
        """Record a hit for ``key``.

        Returns 0.0 when the hit is admitted, otherwise the seconds until the
        oldest hit in the window expires.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            window = self._hits.setdefault(key, deque())
            while window and now - window[0] > self._window:
                window.popleft()
            if len(window) >= self._limit:
                return max(0.001, self._window - (now - window[0]))
            window.append(now)
            return 0.0

    def allow(self, key: str) -> bool:
        return self.hit(key) == 0.0


def _caller_key() -> str:
    # /auth and /donations multiplex operations on ?action=
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    address = forwarded or request.remote_addr or "unknown"
    return f"{request.path}|{request.args.get('action', '')}|{address}"


def rate_limit(
    limit: int | None = None,
    window_seconds: float | None = None,
    *,
    enabled: bool | None = None,
):
    security = load_config().security
    if enabled is None:
        enabled = security.enable_rate_limit
    limiter = InMemoryRateLimiter(
        limit or security.rate_limit_requests,
        window_seconds or security.rate_limit_window,
    )

    def decorator(view: Callable):
        if not enabled:
            return view

        @wraps(view)
        def limited(*args, **kwargs):
            key = _caller_key()
            retry_after = limiter.hit(key)
            if retry_after:
                logger.warning(f"rate limit exceeded key={key} retry_after={retry_after:.1f}s")
                raise RateLimitError(retry_after)
            return view(*args, **kwargs)

        return limited

    return decorator


__all__ = ["InMemoryRateLimiter", "rate_limit"]
