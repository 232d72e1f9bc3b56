from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request

PRUNE_INTERVAL_SECONDS = 1.0


class RateLimiter:
    """Fixed-window counter per key. Expired windows are dropped as time passes."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._last_prune = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def _prune(self, now: float) -> None:
        if now - self._last_prune < PRUNE_INTERVAL_SECONDS:
            return
        self._last_prune = now
        for key in [k for k, (_, reset) in self._hits.items() if now > reset]:
            del self._hits[key]

    def check(self, key: str, limit: int, window_seconds: int) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            count, reset = self._hits.get(key, (0, now + window_seconds))
            if now > reset:
                count = 0
                reset = now + window_seconds
            count += 1
            self._hits[key] = (count, reset)
            if count > limit:
                raise HTTPException(429, "Muitas requisições. Tente novamente em instantes.")

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = RateLimiter()


def client_ip(request: Request, *, trust_forwarded: bool = False) -> str:
    # X-Forwarded-For is client-controlled unless a proxy in front rewrites it
    if trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    state = request.app.state
    limiter = getattr(state, "rate_limiter", None) or _limiter
    settings = getattr(state, "settings", None)
    trust_forwarded = bool(settings and settings.trust_proxy_headers)
    limiter.check(f"{scope}:{client_ip(request, trust_forwarded=trust_forwarded)}", limit, window_seconds)
