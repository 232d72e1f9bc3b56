"""Session helpers (start, inspect, clear) over the signed session cookie."""
from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import Request

SESSION_COOKIE_NAME = "cotacoes_session"


def start_session(request: Request, ttl_seconds: int, *, now: float | None = None) -> None:
    """Mark the caller as authenticated for an absolute lifetime of ttl_seconds."""
    ts = time.time() if now is None else now
    request.session.clear()
    request.session.update(
        {
            "authenticated": True,
            "loginTime": datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(),
            "expiresAt": ts + max(60, ttl_seconds),
        }
    )


def session_state(request: Request, *, now: float | None = None) -> str:
    """Return "active", "expired" or "none" for the current request's session."""
    session = request.scope.get("session")
    if not session or not session.get("authenticated"):
        return "none"
    ts = time.time() if now is None else now
    try:
        expires_at = float(session.get("expiresAt") or 0)
    except (TypeError, ValueError):
        expires_at = 0
    if expires_at <= ts:
        session.clear()
        return "expired"
    return "active"


def session_active(request: Request) -> bool:
    return session_state(request) == "active"


def clear_session(request: Request) -> None:
    session = request.scope.get("session")
    if session is not None:
        session.clear()
