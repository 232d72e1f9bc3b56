"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from cotacoes.core.config import get_settings
from cotacoes.core.errors import ConfigurationError

Base = declarative_base()


@lru_cache
def get_engine(url: Optional[str] = None):
    settings = get_settings()
    url = (url or settings.database_url or "").strip()
    if not url:
        raise ConfigurationError("DATABASE_URL must be configured to use the SQL backend.")
    connect_args = {}
    if url.startswith("postgres"):
        connect_args["connect_timeout"] = settings.database_timeout_seconds
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


@lru_cache
def _get_sessionmaker(url: Optional[str] = None):
    return sessionmaker(bind=get_engine(url), autoflush=False, autocommit=False, future=True, expire_on_commit=False)


@contextmanager
def get_session(url: Optional[str] = None) -> Iterator[Session]:
    session: Session = _get_sessionmaker(url)()
    try:
        yield session
    finally:
        session.close()
