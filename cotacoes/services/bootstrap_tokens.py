"""
One-time bootstrap tokens.

A token is issued on demand, lives for a short window and can be redeemed
exactly once to open a session. The registry is owned by the application
(app.state.bootstrap_tokens) and swept periodically by a background task.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from cotacoes.core.logging import mask_token

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "TEMP-"
DEFAULT_TTL_SECONDS = 30
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


@dataclass
class _TokenState:
    created_at: float
    used: bool = False


class BootstrapTokenRegistry:
    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._tokens: Dict[str, _TokenState] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._tokens

    @staticmethod
    def looks_like_token(value: str | None) -> bool:
        return bool(value) and value.startswith(TOKEN_PREFIX)

    def _expired(self, state: _TokenState, now: float) -> bool:
        return now - state.created_at > self.ttl_seconds

    def issue(self) -> str:
        token = f"{TOKEN_PREFIX}{int(self._wall_clock() * 1000)}-{secrets.token_urlsafe(9)}"
        with self._lock:
            self._tokens[token] = _TokenState(created_at=self._clock())
        logger.info("Token temporario gerado: %s", mask_token(token, 20))
        return token

    def redeem(self, token: str | None) -> bool:
        """Mark the token as used; False when unknown, expired or already used."""
        if not token:
            return False
        with self._lock:
            state = self._tokens.get(token)
            if state is None or state.used:
                return False
            if self._expired(state, self._clock()):
                del self._tokens[token]
                return False
            state.used = True
        logger.info("Token temporario validado: %s", mask_token(token, 20))
        return True

    def sweep(self) -> int:
        """Drop every token older than its window, used or not."""
        now = self._clock()
        with self._lock:
            stale = [token for token, state in self._tokens.items() if self._expired(state, now)]
            for token in stale:
                del self._tokens[token]
        if stale:
            logger.debug("%d token(s) temporario(s) expirado(s) removido(s)", len(stale))
        return len(stale)


async def sweep_periodically(registry: BootstrapTokenRegistry, interval_seconds: float) -> None:
    """Run registry.sweep() forever; cancelled by the application lifespan."""
    while True:
        await asyncio.sleep(interval_seconds)
        registry.sweep()
